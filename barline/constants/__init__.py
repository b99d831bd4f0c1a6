"""Constants for Barline.

This package contains three sets of constants:

- ``barline.constants.durations`` - Note-duration denominators accepted by the notation
- ``barline.constants.timing`` - Transport defaults (BPM, frame rate, pedal lead time)
- ``barline.constants.velocity`` - MIDI velocity and sustain pedal values
"""
