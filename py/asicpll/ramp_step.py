from .chip_models import ChipModel
from .freq_ramp import generate_ramp
from .pll_constants import EPSILON
from .pll_solver import is_synthesizable

from bisect import bisect_left, bisect_right
from dataclasses import dataclass
from math import inf
from typing import Sequence

@dataclass(frozen=True)
class ByIndex:
    '''Move by one ramp position.  Only the sign of count matters.'''
    count: int = 1

@dataclass(frozen=True)
class ByDelta:
    '''Move by approximately mhz.'''
    mhz: float

StepRequest = ByIndex | ByDelta

def step_index(model: ChipModel, ramp: Sequence[float], current: float,
               direction: int) -> float:
    '''The next usable ramp entry beyond current, or current if there are
    none.'''
    if direction > 0:
        indexes = range(bisect_right(ramp, current + EPSILON), len(ramp))
    elif direction < 0:
        indexes = range(bisect_left(ramp, current - EPSILON) - 1, -1, -1)
    else:
        return current

    for i in indexes:
        if is_synthesizable(model, ramp[i]):
            return ramp[i]
    return current

def step_delta(model: ChipModel, ramp: Sequence[float], current: float,
               delta: float) -> float:
    '''The usable ramp entry nearest current + delta, on the delta side of
    current.  Returns current if there are none.'''
    def usable(f: float) -> bool:
        if delta > 0 and f - current < EPSILON:
            return False
        if delta < 0 and current - f < EPSILON:
            return False
        return is_synthesizable(model, f)

    if delta == 0:
        return current

    target = current + delta
    best = current
    best_distance = inf
    # Work outwards from the target, alternating below & above.  Each side
    # stops once it can't beat what we have.
    below = bisect_left(ramp, target) - 1
    above = below + 1
    while below >= 0 or above < len(ramp):
        if below >= 0:
            f = ramp[below]
            below -= 1
            distance = target - f
            if distance >= best_distance:
                below = -1
            elif usable(f):
                best, best_distance = f, distance
        if above < len(ramp):
            f = ramp[above]
            above += 1
            distance = f - target
            if distance >= best_distance:
                above = len(ramp)
            elif usable(f):
                best, best_distance = f, distance
    return best

def step(model: ChipModel, ramp: Sequence[float], current: float,
         request: StepRequest) -> float:
    if isinstance(request, ByIndex):
        result = step_index(model, ramp, current, request.count)
    else:
        result = step_delta(model, ramp, current, request.mhz)
    return model.clamp(result)

def test_forward_from_500() -> None:
    ramp = generate_ramp(ChipModel.BM1370)
    above = [f for f in ramp if f > 500]
    assert step(ChipModel.BM1370, ramp, 500, ByIndex(1)) == above[0]
    below = [f for f in ramp if f < 500]
    assert step(ChipModel.BM1370, ramp, 500, ByIndex(-1)) == below[-1]

def test_index_off_ramp() -> None:
    ramp = generate_ramp(ChipModel.BM1397)
    # 426 isn't on the ramp: step to the neighbours, not past them.
    assert 425 in ramp and 427.5 in ramp and 426 not in ramp
    assert step(ChipModel.BM1397, ramp, 426, ByIndex(1)) == 427.5
    assert step(ChipModel.BM1397, ramp, 426, ByIndex(-1)) == 425
    assert step(ChipModel.BM1397, ramp, 425, ByIndex(1)) == 427.5
    assert step(ChipModel.BM1397, ramp, 425, ByIndex(0)) == 425

def test_boundaries() -> None:
    for model in ChipModel:
        ramp = generate_ramp(model)
        top = ramp[-1]
        bottom = ramp[0]
        assert step(model, ramp, top, ByIndex(1)) == top
        assert step(model, ramp, bottom, ByIndex(-1)) == bottom
        assert step(model, ramp, top, ByDelta(25)) == top
        assert step(model, ramp, bottom, ByDelta(-25)) == bottom

def test_delta_direction() -> None:
    for model in ChipModel:
        ramp = generate_ramp(model)
        current = model.min_freq
        while current <= model.max_freq:
            for delta in 1, 10, 25, 50, 100:
                up = step(model, ramp, current, ByDelta(delta))
                down = step(model, ramp, current, ByDelta(-delta))
                assert up >= current, f'{model} {current} +{delta} {up}'
                assert down <= current, f'{model} {current} -{delta} {down}'
            current += 17.5

def test_delta_increments() -> None:
    # Stepping the BM1370 through the UI increment buttons.
    model = ChipModel.BM1370
    ramp = generate_ramp(model)
    assert step(model, ramp, 500, ByDelta(25)) == 525
    assert step(model, ramp, 500, ByDelta(-50)) == 450
    assert step(model, ramp, model.max_freq - 10, ByDelta(50)) \
        == model.max_freq
    assert step(model, ramp, model.min_freq + 10, ByDelta(-50)) \
        == model.min_freq
    assert step(model, ramp, 500, ByDelta(0)) == 500

def test_delta_nearest() -> None:
    ramp = [100.0, 110.0, 120.0, 130.0]
    model = ChipModel.BM1397
    # 110 + 12 is nearest 120; 110 - 3 can only go down to 100.
    assert step_delta(model, ramp, 110, 12) == 120
    assert step_delta(model, ramp, 110, -3) == 100
    # Equidistant candidates: the one below is reached first.
    assert step_delta(model, ramp, 100, 15) == 110
    assert step_delta(model, ramp, 130, -15) == 110
    assert step_delta(model, ramp, 130, -16) == 110

def test_skips_unusable() -> None:
    # 101 isn't something the BM1397 can do.
    ramp = [100.0, 101.0, 102.5]
    model = ChipModel.BM1397
    assert step_index(model, ramp, 100, 1) == 102.5
    assert step_index(model, ramp, 102.5, -1) == 100
    assert step_delta(model, ramp, 100, 1) == 102.5
    assert step_index(model, [101.0], 100, 1) == 100

def test_empty_ramp() -> None:
    model = ChipModel.BM1366
    assert step(model, [], 500, ByIndex(1)) == 500
    assert step(model, [], 500, ByDelta(-10)) == 500
    assert step(model, [], 1000, ByDelta(10)) == 650
