from .pll_constants import BM1370_RAMP_BAND, EPSILON

from dataclasses import dataclass
from enum import Enum

@dataclass(frozen=True)
class ChipSpec:
    # Operating range and factory default, in MHz.
    min_freq: float
    max_freq: float
    default_freq: float
    # How close a swept input must be to its solved frequency to go in the
    # ramp.
    ramp_band: float
    # Suggested settings, as offered by the device UI.
    options: tuple[float, ...]

class ChipModel(Enum):
    BM1366 = 'BM1366'
    BM1368 = 'BM1368'
    BM1370 = 'BM1370'
    BM1397 = 'BM1397'

    @property
    def spec(self) -> ChipSpec:
        return CHIPS[self]

    @property
    def min_freq(self) -> float:
        return CHIPS[self].min_freq

    @property
    def max_freq(self) -> float:
        return CHIPS[self].max_freq

    @property
    def default_freq(self) -> float:
        return CHIPS[self].default_freq

    def clamp(self, f: float) -> float:
        return min(max(f, self.min_freq), self.max_freq)

    @staticmethod
    def get(name: str) -> 'ChipModel':
        try:
            return ChipModel[name.upper()]
        except KeyError:
            raise ValueError(f'Unknown ASIC model {name}')

# Set the name of get to give sensible argparse help test.
ChipModel.get.__name__ = 'ASIC model'

CHIPS = {
    ChipModel.BM1366: ChipSpec(
        min_freq = 200, max_freq = 650, default_freq = 485,
        ramp_band = EPSILON,
        options = (400, 425, 450, 475, 485, 500, 525, 550, 575)),
    ChipModel.BM1368: ChipSpec(
        min_freq = 200, max_freq = 650, default_freq = 490,
        ramp_band = EPSILON,
        options = (400, 425, 450, 475, 490, 500, 525, 550, 575)),
    ChipModel.BM1370: ChipSpec(
        min_freq = 200, max_freq = 925, default_freq = 525,
        ramp_band = BM1370_RAMP_BAND,
        options = (400, 490, 525, 550, 575, 596, 600, 625, 650, 675, 700,
                   725, 750, 775, 800, 825, 850, 875, 900)),
    ChipModel.BM1397: ChipSpec(
        min_freq = 200, max_freq = 675, default_freq = 425,
        ramp_band = EPSILON,
        options = (400, 425, 450, 475, 485, 500, 525, 550, 575, 590, 600,
                   610, 620, 630, 640, 650)),
}

def test_chips() -> None:
    assert set(CHIPS) == set(ChipModel)
    for model in ChipModel:
        spec = model.spec
        assert spec.min_freq < spec.default_freq < spec.max_freq
        assert spec.default_freq in spec.options
        assert list(spec.options) == sorted(spec.options)
        assert all(spec.min_freq <= f <= spec.max_freq for f in spec.options)

def test_get() -> None:
    assert ChipModel.get('bm1370') is ChipModel.BM1370
    assert ChipModel.get('BM1397') is ChipModel.BM1397
    try:
        ChipModel.get('BM1234')
        assert False
    except ValueError:
        pass

def test_clamp() -> None:
    assert ChipModel.BM1370.clamp(1000) == 925
    assert ChipModel.BM1366.clamp(10) == 200
    assert ChipModel.BM1397.clamp(512.5) == 512.5
