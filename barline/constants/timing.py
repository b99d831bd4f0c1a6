"""Transport timing defaults.

All times are in **milliseconds**.  The transport scans its compiled sequence
once per frame (10 frames per second by default) and schedules each due group
relative to the frame start, so dispatch is finer than the frame period.
"""

DEFAULT_BPM = 120
DEFAULT_TIME_SIGNATURE = "4/4"
DEFAULT_KEY_SIGNATURE = "C"

FRAME_RATE = 10

# The automatic sustain pedal lifts this long before the end of each bar.
SUSTAIN_PEDAL_LEAD_MS = 100
