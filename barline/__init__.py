"""
Barline - a bar notation compiler and playback transport for Python.

Barline turns a compact text notation for notes, chords, rests, ties and
performance directives into a precisely timed event stream, then plays that
stream under play / pause / stop control.  It produces events, not sound:
attach a listener (the built-in MIDI output, a sampler, a UI) to hear them.

What it does:

- **Compact notation.** ``"bpm=96 time=3/4 | C4:2 E4 | G4_B4_D5:2."`` -
  bars, chords, durations, dots, ties, rests and explicit beat positions.
- **Musical timing.** Tempo and time signature directives take effect at
  the start of their bar; bars grow to fit their content unless marked
  partial with ``>``.
- **Ties across bar lines.** A tied note sounds once, for the summed length
  of every note its tie chain reaches.
- **Automatic sustain pedal.** ``autoSustain=on`` brackets each bar with
  pedal down/up, and leaves the pedal held where a tie crosses the bar line.
- **Key signatures.** ``key=D`` respells unmarked F and C as F# and C# when
  they play; ``Fn`` forces a natural.
- **Transport.** Play, pause, resume and stop with a 10 Hz frame scheduler
  on asyncio, or in virtual time for offline rendering.
- **MIDI.** Play live to a MIDI port or render to a standard MIDI file.

Minimal example:

    ```python
    import asyncio

    import barline

    transport = barline.Transport()
    transport.init_sequence_with_notation(
        "bpm=100 autoSustain=on | C4_E4_G4:2 A3_C4_E4:2 | F3_A3_C4:2 G3_B3_D4:2",
        on_event=print
    )
    asyncio.run(transport.play())
    ```

Package-level exports: ``Transport``, ``SequencerEvent``, ``parse``, ``compile``,
``render_events``, ``render_to_midi``.
"""

import barline.compiler
import barline.notation
import barline.render
import barline.transport


Transport = barline.transport.Transport
SequencerEvent = barline.transport.SequencerEvent
parse = barline.notation.parse
compile = barline.compiler.compile
render_events = barline.render.render_events
render_to_midi = barline.render.render_to_midi
