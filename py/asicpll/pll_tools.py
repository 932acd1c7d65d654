from .pll_constants import Hz, MHz, kHz

from fractions import Fraction
from math import floor, isfinite
from typing import NoReturn

class SynthesisFailed(RuntimeError):
    pass

def fail(why: str) -> NoReturn:
    raise SynthesisFailed(why)

def round_half_up(x: float) -> int:
    '''Round to nearest, with halves going up, as the firmware does.  Python's
    round() would send halves to even.'''
    return floor(x + 0.5)

def str_to_freq(s: str) -> float:
    s = s.lower()
    for suffix, scale in ('khz', kHz), ('mhz', MHz), ('ghz', 1000 * MHz), \
            ('hz', Hz):
        if s.endswith(suffix):
            break
        if suffix != 'hz' and s.endswith(suffix[0]):
            suffix = suffix[0]
            break
    else:
        suffix = ''
        scale = MHz

    f = float(Fraction(s.removesuffix(suffix).strip()) * scale)
    if not isfinite(f) or f < 0:
        raise ValueError(f'Bad frequency {s}')
    return f

# Set the name of str_to_freq to give sensible argparse help test.
str_to_freq.__name__ = 'frequency'

FRACTIONS = {
    Fraction(0): '',
    Fraction(1, 2): '½',
    Fraction(1, 3): '⅓',
    Fraction(2, 3): '⅔',
    Fraction(1, 4): '¼',
    Fraction(3, 4): '¾',
    Fraction(1, 6): '⅙',
    Fraction(5, 6): '⅚',
    Fraction(1, 7): '⅐',
    Fraction(1, 8): '⅛',
    Fraction(1, 9): '⅑',
}

def freq_to_str(freq: Fraction|float, precision: int = 2) -> str:
    '''Format a MHz value.  Exact fractions with a small denominator are shown
    with the vulgar fraction, everything else to the given number of
    decimals.'''
    if isinstance(freq, Fraction) and freq >= 0:
        fract = freq % 1
        if fract in FRACTIONS:
            return f'{int(freq)}{FRACTIONS[fract]} MHz'
        if fract.denominator in (7, 9) or 11 <= fract.denominator <= 19:
            return f'{int(freq)}+{fract} MHz'
    return f'{float(freq):.{precision}f} MHz'

def test_round_half_up() -> None:
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(2.49) == 2
    assert round_half_up(-0.5) == 0

def test_str_to_freq() -> None:
    assert str_to_freq('490') == 490
    assert str_to_freq('490MHz') == 490
    assert str_to_freq('490m') == 490
    assert str_to_freq('0.5GHz') == 500
    assert str_to_freq('1025/2') == 512.5
    assert str_to_freq('425000 kHz') == 425
    for bad in '-5', 'banana':
        try:
            str_to_freq(bad)
            assert False, bad
        except ValueError:
            pass

def test_freq_to_str() -> None:
    assert freq_to_str(Fraction(1400, 3)) == '466⅔ MHz'
    assert freq_to_str(Fraction(525)) == '525 MHz'
    assert freq_to_str(Fraction(3525, 7)) == '503+4/7 MHz'
    assert freq_to_str(503.57) == '503.57 MHz'
    assert freq_to_str(-0.125, 3) == '-0.125 MHz'
