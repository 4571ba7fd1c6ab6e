import random

import pytest

from runlength.core.errors import InvalidConfiguration
from runlength.sequential.statistics import (
    Cusum,
    FiniteMovingAverage,
    WindowLimitedCusum,
    moving_sum,
    trailing_sum_maximum,
)
from runlength.sequential.transforms import WindowLimitedLinearTransform

PROCESS = [2, 3, -7, 1, 2, 3, 4, 5, 5, -5]


def test_cusum_values():
    values = Cusum().observe_block(PROCESS)
    assert values == [2, 5, -2, 1, 3, 6, 10, 15, 20, 15]


def test_fma_tail():
    values = FiniteMovingAverage(window_size=5).observe_block(PROCESS)
    assert values[8:] == [19, 12]


def test_window_limited_cusum_tail():
    values = WindowLimitedCusum(window_size=5).observe_block(PROCESS)
    assert values[8:] == [19, 12]


def test_window_helpers():
    assert moving_sum([1, 2, 3]) == 6
    # newest at slot 2, then 0, then 1
    assert trailing_sum_maximum([-4, 10, 1], newest_index=2) == 7


@pytest.mark.parametrize("seed", [0, 1, 2])
def test_long_window_cusum_equals_cusum(seed):
    rng = random.Random(seed)
    values = [rng.uniform(-2.0, 1.0) for _ in range(40)]
    unbounded = Cusum().observe_block(values)
    limited = WindowLimitedCusum(window_size=50).observe_block(values)
    assert limited == pytest.approx(unbounded)


@pytest.mark.parametrize("statistic_type", [FiniteMovingAverage, WindowLimitedCusum])
def test_block_matches_single_steps(statistic_type):
    transform = WindowLimitedLinearTransform([3.0, 1.5, 1.0], [0.5, 0.25, 0.0])
    single = statistic_type(window_size=3, transform=transform)
    block = statistic_type(window_size=3, transform=transform)
    expected = [single.observe(value) for value in PROCESS]
    actual = block.observe_block(PROCESS[:2]) + block.observe_block(PROCESS[2:])
    assert actual == expected
    assert block.count_observations == single.count_observations == len(PROCESS)


def test_transform_applies_during_warm_up_only():
    transform = WindowLimitedLinearTransform([10.0, 10.0, 10.0], [0.0, 0.0, 0.0])
    fma = FiniteMovingAverage(window_size=2, transform=transform)
    # Only the first two observations are in the transient period.
    assert fma.observe_block([1, 1, 1]) == [10, 20, 2]


def test_reset_is_idempotent():
    fma = FiniteMovingAverage(window_size=3)
    fma.observe_block(PROCESS)
    fma.reset()
    fma.reset()
    assert fma.count_observations == 0
    assert fma.observe_block(PROCESS[:3]) == [2, 5, -2]

    cusum = Cusum()
    cusum.observe_block(PROCESS)
    cusum.reset()
    assert cusum.value == 0


def test_zero_window_is_rejected():
    with pytest.raises(InvalidConfiguration):
        FiniteMovingAverage(window_size=0)


def test_serialization():
    assert FiniteMovingAverage(window_size=5).to_json() == '{"type":"FMA","window":5}'
    assert Cusum().to_json() == '{"type":"CUSUM"}'
    restored = WindowLimitedCusum.from_dict(
        {"type": "Window-limited CUSUM", "window": 7}
    )
    assert restored.window_size == 7


def test_cusum_record_window_must_be_zero():
    assert isinstance(Cusum.from_dict({"type": "CUSUM", "window": 0}), Cusum)
    with pytest.raises(InvalidConfiguration):
        Cusum.from_dict({"type": "CUSUM", "window": 3})


def test_type_tag_mismatch():
    with pytest.raises(InvalidConfiguration):
        FiniteMovingAverage.from_dict({"type": "CUSUM", "window": 5})
