"""Note-duration denominators.

A duration is the denominator of a whole note: ``4`` is a quarter note, ``8``
an eighth note, and so on.  These are the only values the notation accepts
after a ``:`` suffix::

    C4:8      # an eighth note
    ##:2.     # a dotted half rest
"""

WHOLE = 1
HALF = 2
QUARTER = 4
EIGHTH = 8
SIXTEENTH = 16
THIRTYSECOND = 32
SIXTYFOURTH = 64

# Longest first - rest decomposition relies on this order.
NOTE_DURATIONS = (WHOLE, HALF, QUARTER, EIGHTH, SIXTEENTH, THIRTYSECOND, SIXTYFOURTH)

DOTTED_MULTIPLIER = 1.5
