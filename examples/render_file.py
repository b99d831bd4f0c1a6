import logging

import barline

logging.basicConfig(level=logging.INFO)

# Minuet-style melody in 3/4 with a pickup bar (">" makes the bar only as
# long as its notes) and an explicit beat position in the last bar.
NOTATION = """
	bpm=132 time=3/4 key=G
	| D5:4 >
	| G4:8 A4:8 B4:8 C5:8 D5:4
	| E5:4 C5:4 E5:4
	| D5:2.~
	| D5:4 ## B4@3
"""

if __name__ == "__main__":

	for event in barline.render_events(NOTATION):
		if event.type == "noteStart":
			print(f"{event.time_ms:8.1f} ms  {event.action.note.pitch}")

	barline.render_to_midi(NOTATION, filename="minuet.mid")
