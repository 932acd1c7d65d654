from fractions import Fraction

# All the frequencies are in MHz.
MHz = Fraction(1)
kHz = MHz / 1000
Hz = kHz / 1000

# Every ASIC PLL is fed from the 25MHz crystal.
REF_FREQ = 25 * MHz

# Two frequencies closer than this are the same frequency.
EPSILON = 0.01

# Resolution of the ramp sweep.  Finer steps find a few more of the odd
# divider ratios, at a linear cost in solver calls.
SWEEP_STEP = 0.5

# The BM1370 solver accepts up to 1MHz of error, so a swept input only needs
# to land within half a MHz of its output to count.
BM1370_RAMP_BAND = 0.5

# Reference divider and post divider search ranges, largest first.
REF_DIVS = 2, 1
POST_DIVS = 7, 6, 5, 4, 3, 2, 1

# BM1397 closed form limits.
BM1397_FREQ_LOW = 50.0
BM1397_FREQ_HIGH = 650.0
BM1397_FB_MIN = 0x10
BM1397_FB_MAX = 0x104
BM1397_FALLBACK = 200.0

# Increment choices offered for delta steps.
INCREMENTS = 1, 10, 25, 50, 100
