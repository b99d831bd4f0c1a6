import asyncio
import logging

import barline
import barline.midi_output

logging.basicConfig(level=logging.INFO)

MIDI_DEVICE = None
PIANO_CHANNEL = 0

# A I-vi-IV-V in D major.  Unmarked F and C are played sharp by the key
# signature, and automatic pedalling holds each bar.  The last chord is tied
# into a whole-bar chord so it rings on without being struck again.
NOTATION = """
	bpm=84 key=D autoSustain=on
	| D3_F3_A3:2 B2_D3_F3:2
	| G2_B2_D3:2 A2_C3_E3:2
	| D3_F3_A3:4 F3_A3_D4:4 A3_D4_F4:2~
	| A3_D4_F4:1
"""


async def main () -> None:

	_, midi_out = barline.midi_output.select_output_device(MIDI_DEVICE)

	if midi_out is None:
		return

	transport = barline.Transport()
	barline.midi_output.MidiOutputListener(midi_out, channel=PIANO_CHANNEL).attach(transport)

	# Print the bar numbers as they go by.
	transport.on_event("barStart", lambda event: logging.info(f"Bar {event.bar_index + 1}"))

	transport.init_sequence_with_notation(NOTATION)

	try:
		await transport.play()
	finally:
		transport.stop_sequence()
		midi_out.close()


if __name__ == "__main__":
	print("Press Ctrl+C to stop.")
	asyncio.run(main())
