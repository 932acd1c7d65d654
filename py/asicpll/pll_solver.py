from __future__ import annotations

from .chip_models import ChipModel
from .pll_constants import *
from .pll_tools import SynthesisFailed, fail, freq_to_str, round_half_up

from dataclasses import dataclass
from fractions import Fraction
from math import ceil, isfinite
from typing import Callable, Generator

__all__ = 'PLLSettings', 'is_synthesizable', 'require_settings', 'solve', \
    'solve_settings'

@dataclass(frozen=True)
class PLLSettings:
    ref_div: int
    fb_div: int
    post_div1: int
    post_div2: int
    # The frequency that was asked for, in MHz.
    target: float

    def freq(self) -> Fraction:
        '''Exact PLL output frequency, in MHz.'''
        return REF_FREQ * self.fb_div / self.divide()

    def divide(self) -> int:
        return self.ref_div * self.post_div1 * self.post_div2

    def post_div(self) -> int:
        return self.post_div1 * self.post_div2

    def error(self) -> float:
        # Float arithmetic, as in the firmware.
        freq = float(REF_FREQ) * self.fb_div / self.divide()
        return abs(self.target - freq)

    def rounded(self) -> float:
        '''The frequency to two decimals, as the device reports it.'''
        return round(float(self.freq()), 2)

    def __str__(self) -> str:
        return f'{freq_to_str(self.freq())} = {freq_to_str(REF_FREQ)} * ' \
            f'{self.fb_div} / ({self.ref_div} * {self.post_div1} * ' \
            f'{self.post_div2})'

class DividerSolver:
    def solve(self, target: float) -> PLLSettings | None:
        raise NotImplementedError

def smaller_error(a: PLLSettings, b: PLLSettings) -> bool:
    return a.error() < b.error()

def smaller_post_div(a: PLLSettings, b: PLLSettings) -> bool:
    '''Prefer the smallest post divider product, then the smaller second post
    divider.'''
    return a.post_div() < b.post_div() and a.post_div2 <= b.post_div2

@dataclass(frozen=True)
class SearchSolver(DividerSolver):
    '''Brute force search over the reference and post dividers, computing the
    feedback divider for each.'''
    fb_min: int
    fb_max: int
    # Structural constraint on (post_div1, post_div2).
    post_divs_ok: Callable[[int, int], bool]
    # Candidates must have an error strictly below this.
    max_error: float
    # Does candidate a replace the running best b?
    better: Callable[[PLLSettings, PLLSettings], bool] = smaller_error
    # Scan post_div2 upwards rather than downwards.
    post_div2_up: bool = False

    def candidates(self, target: float) -> Generator[PLLSettings]:
        post_div2s = POST_DIVS[::-1] if self.post_div2_up else POST_DIVS
        for ref_div in REF_DIVS:
            for post_div1 in POST_DIVS:
                for post_div2 in post_div2s:
                    if not self.post_divs_ok(post_div1, post_div2):
                        continue
                    divide = ref_div * post_div1 * post_div2
                    fb_div = round_half_up(target * divide / float(REF_FREQ))
                    if not self.fb_min <= fb_div <= self.fb_max:
                        continue
                    settings = PLLSettings(
                        ref_div, fb_div, post_div1, post_div2, target)
                    if settings.error() < self.max_error:
                        yield settings

    def solve(self, target: float) -> PLLSettings | None:
        assert isfinite(target), target
        best = None
        for settings in self.candidates(target):
            if best is None or self.better(settings, best):
                best = settings
        return best

@dataclass(frozen=True)
class MultiplierSolver(DividerSolver):
    '''The BM1397 picks a multiplier stage from the input range and then rounds
    the VCO frequency up to a multiple of 25MHz.  No search needed.'''
    low: float = BM1397_FREQ_LOW
    high: float = BM1397_FREQ_HIGH
    fb_min: int = BM1397_FB_MIN
    fb_max: int = BM1397_FB_MAX
    fallback: float = BM1397_FALLBACK

    def solve(self, target: float) -> PLLSettings:
        assert isfinite(target), target
        f = min(max(target, self.low), self.high)

        # Base stage multiplies by 10.
        ref_div, post_div1, post_div2 = 2, 1, 5
        if f >= 500:
            ref_div = 1                 # Halve down to 250-325.
        elif f <= 150:
            post_div1 = 3               # Triple up to 150-450.
        elif f <= 250:
            post_div1 = 2               # Double up to 300-500.

        divide = ref_div * post_div1 * post_div2
        fb_div = ceil(f * divide / float(REF_FREQ))
        if not self.fb_min <= fb_div <= self.fb_max:
            assert target != self.fallback
            return self.solve(self.fallback)

        return PLLSettings(ref_div, fb_div, post_div1, post_div2, target)

SOLVERS: dict[ChipModel, DividerSolver] = {
    ChipModel.BM1370: SearchSolver(
        fb_min = 0xa0, fb_max = 0xef, max_error = 1.0,
        post_divs_ok = lambda p1, p2: p1 >= p2),
    ChipModel.BM1366: SearchSolver(
        fb_min = 144, fb_max = 235, max_error = 10.0,
        post_divs_ok = lambda p1, p2: p1 > p2, post_div2_up = True),
    ChipModel.BM1368: SearchSolver(
        fb_min = 144, fb_max = 235, max_error = 0.001,
        post_divs_ok = lambda p1, p2: p1 >= p2, better = smaller_post_div),
    ChipModel.BM1397: MultiplierSolver(),
}

def solve_settings(model: ChipModel, target: float) -> PLLSettings | None:
    return SOLVERS[model].solve(target)

def solve(model: ChipModel, target: float) -> float | None:
    '''The frequency the chip will actually run at when asked for target, or
    None if there are no usable dividers.'''
    settings = solve_settings(model, target)
    if settings is None:
        return None
    return settings.rounded()

def require_settings(model: ChipModel, target: float) -> PLLSettings:
    settings = solve_settings(model, target)
    if settings is None:
        fail(f'No {model.value} PLL settings for {freq_to_str(target)}')
    return settings

def is_synthesizable(model: ChipModel, f: float) -> bool:
    actual = solve(model, f)
    return actual is not None and abs(actual - f) < EPSILON

def test_bm1397_default() -> None:
    s = solve_settings(ChipModel.BM1397, 425)
    assert s is not None
    assert (s.ref_div, s.fb_div, s.post_div1, s.post_div2) == (2, 170, 1, 5)
    assert solve(ChipModel.BM1397, 425) == 425.0

def test_bm1397_stages() -> None:
    # Rounds up to the stage resolution.
    assert solve(ChipModel.BM1397, 426) == 427.5
    assert solve(ChipModel.BM1397, 501) == 505.0
    assert solve(ChipModel.BM1397, 201) == 201.25
    assert solve(ChipModel.BM1397, 100) == 100.0
    # Clamped to the supported range.
    assert solve(ChipModel.BM1397, 675) == 650.0
    assert solve(ChipModel.BM1397, 10) == 50.0
    assert solve(ChipModel.BM1397, 0) == 50.0

def test_bm1368_default() -> None:
    s = require_settings(ChipModel.BM1368, 490)
    assert abs(float(s.freq()) - 490) < 0.001
    assert (s.ref_div, s.fb_div, s.post_div1, s.post_div2) == (2, 196, 5, 1)

def test_bm1368_exact_only() -> None:
    # 25 * fb / d can't hit 490.3 to within 1kHz.
    assert solve(ChipModel.BM1368, 490.3) is None
    try:
        require_settings(ChipModel.BM1368, 490.3)
        assert False
    except SynthesisFailed:
        pass

def test_bm1366_default() -> None:
    s = require_settings(ChipModel.BM1366, 485)
    assert s.post_div1 > s.post_div2
    assert (s.ref_div, s.fb_div, s.post_div1, s.post_div2) == (2, 194, 5, 1)
    assert solve(ChipModel.BM1366, 485) == 485.0

def test_bm1370_first_exact() -> None:
    # Several exact settings exist, the first one in search order wins.
    s = require_settings(ChipModel.BM1370, 500)
    assert (s.ref_div, s.fb_div, s.post_div1, s.post_div2) == (2, 200, 5, 1)
    s = require_settings(ChipModel.BM1370, 525)
    assert (s.ref_div, s.fb_div, s.post_div1, s.post_div2) == (2, 210, 5, 1)

def test_far_below_range() -> None:
    assert solve(ChipModel.BM1370, 10) is None
    assert solve(ChipModel.BM1366, 10) is None
    assert solve(ChipModel.BM1368, 10) is None

def test_constraints() -> None:
    for model in ChipModel.BM1370, ChipModel.BM1366, ChipModel.BM1368:
        for x in range(int(model.min_freq), int(model.max_freq) + 1, 7):
            s = solve_settings(model, x)
            if s is None:
                continue
            if model == ChipModel.BM1366:
                assert s.post_div1 > s.post_div2
            else:
                assert s.post_div1 >= s.post_div2
            if model == ChipModel.BM1370:
                assert 0xa0 <= s.fb_div <= 0xef
                assert s.error() < 1.0
            else:
                assert 144 <= s.fb_div <= 235

def test_bounded() -> None:
    # How far outside the operating range a result may fall.
    tolerance = {
        ChipModel.BM1370: 1.0,
        ChipModel.BM1366: 1.0,
        ChipModel.BM1368: 0.001,
        ChipModel.BM1397: 0.0,
    }
    for model in ChipModel:
        solver = SOLVERS[model]
        slack = tolerance[model]
        x = model.min_freq
        while x <= model.max_freq:
            s = solve_settings(model, x)
            x += 2.5
            if s is None:
                continue
            f = float(s.freq())
            assert model.min_freq - slack <= f <= model.max_freq + slack, \
                f'{model} {s.target} {f}'
            if isinstance(solver, SearchSolver):
                assert s.error() < solver.max_error, f'{model} {s}'
            elif s.target <= BM1397_FREQ_HIGH:
                # Rounded up by at most one step of the multiplier stage.
                assert s.target <= f <= s.target + float(REF_FREQ) / s.divide()
            else:
                assert f == BM1397_FREQ_HIGH
