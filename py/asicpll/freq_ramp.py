from .chip_models import ChipModel
from .pll_constants import EPSILON, SWEEP_STEP
from .pll_solver import is_synthesizable, solve

import threading

def sweep(model: ChipModel, step: float = SWEEP_STEP) -> list[float]:
    '''Solve every step through the model's range, keeping the results that
    land close enough to the input.'''
    assert step > 0
    band = model.spec.ramp_band
    found: list[float] = []
    # Index rather than accumulate, so that rounding errors don't build up.
    count = int((model.max_freq - model.min_freq) / step + EPSILON)
    for i in range(count + 1):
        f = model.min_freq + i * step
        actual = solve(model, f)
        if actual is None or abs(actual - f) >= band:
            continue
        # The rounded output must also solve to itself.
        if not is_synthesizable(model, actual):
            continue
        found.append(actual)
    return found

def generate_ramp(model: ChipModel, step: float = SWEEP_STEP) -> list[float]:
    '''Sorted list of the distinct achievable frequencies across the model's
    range.'''
    ramp: list[float] = []
    for f in sorted(sweep(model, step)):
        if ramp and f - ramp[-1] < EPSILON:
            continue
        ramp.append(f)
    return ramp

class RampCache:
    '''Ramps by model, generated on first use.'''
    step: float
    ramps: dict[ChipModel, tuple[float, ...]]

    def __init__(self, step: float = SWEEP_STEP):
        self.step = step
        self.ramps = {}
        self.lock = threading.Lock()

    def get(self, model: ChipModel) -> tuple[float, ...]:
        with self.lock:
            ramp = self.ramps.get(model)
            if ramp is None:
                ramp = tuple(generate_ramp(model, self.step))
                self.ramps[model] = ramp
            return ramp

    def regenerate(self, model: ChipModel) -> tuple[float, ...]:
        with self.lock:
            ramp = tuple(generate_ramp(model, self.step))
            self.ramps[model] = ramp
            return ramp

    def cached(self, model: ChipModel) -> tuple[float, ...] | None:
        with self.lock:
            return self.ramps.get(model)

def test_ramp_ascending() -> None:
    for model in ChipModel:
        ramp = generate_ramp(model)
        assert len(ramp) > 0, model
        for a, b in zip(ramp, ramp[1:]):
            assert b - a >= EPSILON, f'{model} {a} {b}'
        assert model.min_freq <= ramp[0]
        assert ramp[-1] <= model.max_freq

def test_ramp_self_consistent() -> None:
    for model in ChipModel:
        for f in generate_ramp(model):
            actual = solve(model, f)
            assert actual is not None and abs(actual - f) < EPSILON, \
                f'{model} {f} {actual}'

def test_ramp_contents() -> None:
    bm1397 = generate_ramp(ChipModel.BM1397)
    assert 425 in bm1397
    assert bm1397[-1] == 650                # Solver clamps above this.
    # Above 500MHz only multiples of 5MHz are possible.
    assert all(f % 5 == 0 for f in bm1397 if f >= 500)
    bm1368 = generate_ramp(ChipModel.BM1368)
    assert 490 in bm1368
    assert 500 in bm1368
    bm1370 = generate_ramp(ChipModel.BM1370)
    for f in 450, 500, 525, 925:
        assert f in bm1370, f

def test_ramp_deterministic() -> None:
    assert generate_ramp(ChipModel.BM1366) == generate_ramp(ChipModel.BM1366)
    assert generate_ramp(ChipModel.BM1370, 0.25) \
        == generate_ramp(ChipModel.BM1370, 0.25)

def test_finer_step() -> None:
    coarse = generate_ramp(ChipModel.BM1397)
    fine = generate_ramp(ChipModel.BM1397, 0.25)
    # 201.25 is only reachable on a quarter MHz grid.
    assert 201.25 not in coarse
    assert 201.25 in fine
    assert set(coarse) <= set(fine)

def test_cache() -> None:
    cache = RampCache()
    assert cache.cached(ChipModel.BM1368) is None
    ramp = cache.get(ChipModel.BM1368)
    assert cache.get(ChipModel.BM1368) is ramp
    assert cache.cached(ChipModel.BM1368) is ramp
    assert cache.cached(ChipModel.BM1366) is None
    again = cache.regenerate(ChipModel.BM1368)
    assert again is not ramp
    assert again == ramp
    assert cache.get(ChipModel.BM1368) is again

def test_cache_threads(monkeypatch) -> None:
    import sys, time
    original = generate_ramp
    calls: list[ChipModel] = []
    def counting(model: ChipModel, step: float = SWEEP_STEP) -> list[float]:
        calls.append(model)
        time.sleep(0.05)                # Give the other threads a chance.
        return original(model, step)
    monkeypatch.setattr(sys.modules[__name__], 'generate_ramp', counting)

    cache = RampCache()
    results: list[tuple[float, ...]] = []
    def worker() -> None:
        results.append(cache.get(ChipModel.BM1397))
    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert calls == [ChipModel.BM1397]
    assert len(results) == 8
    assert all(r is results[0] for r in results)
    assert 425 in results[0]
