from .chip_models import ChipModel
from .freq_ramp import RampCache
from .pll_constants import SWEEP_STEP
from .pll_solver import solve
from .ramp_step import ByDelta, ByIndex, StepRequest, step

class FreqEngine:
    '''What the settings page needs: actual frequencies, the ramp, and
    stepping along it.'''
    cache: RampCache

    def __init__(self, step: float = SWEEP_STEP):
        self.cache = RampCache(step)

    def solve(self, model: ChipModel, f: float) -> float | None:
        return solve(model, f)

    def ramp(self, model: ChipModel) -> tuple[float, ...]:
        return self.cache.get(model)

    def step(self, model: ChipModel, current: float,
             request: StepRequest) -> float:
        return step(model, self.cache.get(model), current, request)

    def select_model(self, model: ChipModel) -> tuple[float, ...]:
        '''The device reported a (possibly different) model.'''
        return self.cache.regenerate(model)

def test_engine() -> None:
    engine = FreqEngine()
    assert engine.solve(ChipModel.BM1397, 425) == 425
    assert engine.solve(ChipModel.BM1370, 10) is None

    ramp = engine.ramp(ChipModel.BM1368)
    assert engine.ramp(ChipModel.BM1368) is ramp
    assert engine.select_model(ChipModel.BM1368) == ramp

    up = engine.step(ChipModel.BM1368, 490, ByIndex(1))
    assert up == min(f for f in ramp if f > 490)
    assert engine.step(ChipModel.BM1368, up, ByIndex(-1)) == 490
    assert engine.step(ChipModel.BM1368, 490, ByDelta(10)) == 500

def test_ramps_separate() -> None:
    engine = FreqEngine()
    bm1366 = engine.ramp(ChipModel.BM1366)
    bm1397 = engine.ramp(ChipModel.BM1397)
    assert bm1366 != bm1397
    assert engine.ramp(ChipModel.BM1366) is bm1366
    assert engine.cache.cached(ChipModel.BM1370) is None
