"""MIDI velocity constants.

Velocity is the MIDI attack strength (0-127).  The notation has no dynamics,
so every note is sent at one velocity chosen by the listener.
"""

DEFAULT_VELOCITY = 100

# MIDI standard range
MIN_VELOCITY = 0
MAX_VELOCITY = 127

# Sustain pedal (CC 64) values
SUSTAIN_PEDAL_CONTROL = 64
SUSTAIN_PEDAL_ON = 127
SUSTAIN_PEDAL_OFF = 0
