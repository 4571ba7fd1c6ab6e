import numpy as np
import pytest
from scipy import stats

from runlength.core.errors import InvalidConfiguration
from runlength.sequential.processes import (
    AutoRegressiveProcess,
    IidPersistentProcess,
    IidProcess,
    IidTransientProcess,
)
from runlength.sequential.stopping_time import CusumChart, OneSidedStoppingTime


def test_observers_receive_every_value():
    process = IidProcess(stats.norm(), seed=11)
    rule = OneSidedStoppingTime(thresholds=[100.0])
    assert process.register_observer(rule)
    assert not process.register_observer(rule)

    process.next()
    process.next_block(9)
    assert process.count == 10
    assert rule.count_observations == 10


def test_clear_resets_observers():
    process = IidProcess(stats.uniform(loc=1.0, scale=1.0), seed=5)
    chart = CusumChart(thresholds=[2.0])
    process.register_observer(chart)
    process.next_block(5)
    assert chart.is_stopped

    process.clear()
    assert process.count == 0
    assert chart.count_observations == 0
    assert chart.is_running


def test_clear_observers():
    process = IidProcess(stats.norm(), seed=0)
    rule = OneSidedStoppingTime(thresholds=[1.0])
    process.register_observer(rule)
    process.clear_observers()
    process.next()
    assert rule.count_observations == 0
    assert process.observers == []


def test_same_seed_same_values():
    first = IidProcess(stats.norm(), seed=42).next_block(20)
    second = IidProcess(stats.norm(), seed=42).next_block(20)
    np.testing.assert_array_equal(first, second)


def test_reseed_restarts_the_sequence():
    process = IidProcess(stats.norm(), seed=3)
    first = process.next_block(5)
    process.reseed(3)
    np.testing.assert_array_equal(process.next_block(5), first)


def test_persistent_change_single_values():
    process = IidPersistentProcess(
        stats.randint(0, 1), stats.randint(5, 6), first_under_change_index=3, seed=0
    )
    values = [process.next() for _ in range(6)]
    assert values == [0, 0, 0, 5, 5, 5]
    assert process.is_under_change


@pytest.mark.parametrize("split", [1, 3, 4])
def test_persistent_change_blocks(split):
    process = IidPersistentProcess(
        stats.randint(0, 1), stats.randint(5, 6), first_under_change_index=3, seed=0
    )
    head = process.next_block(split)
    tail = process.next_block(6 - split)
    assert np.concatenate([head, tail]).tolist() == [0, 0, 0, 5, 5, 5]


def test_change_at_zero_is_immediate():
    process = IidPersistentProcess(
        stats.randint(0, 1), stats.randint(5, 6), first_under_change_index=0
    )
    assert process.next_block(3).tolist() == [5, 5, 5]


def test_negative_change_index():
    with pytest.raises(InvalidConfiguration):
        IidPersistentProcess(stats.norm(), stats.norm(loc=1.0), first_under_change_index=-1)


def test_negative_block_size():
    with pytest.raises(InvalidConfiguration):
        IidProcess(stats.norm()).next_block(-1)


def transient(**kwargs):
    return IidTransientProcess(
        stats.randint(0, 1), stats.randint(5, 6), first_under_change_index=2, **kwargs
    )


TRANSIENT = [0, 0, 5, 5, 5, 0, 0, 0]


def test_transient_change_single_values():
    process = transient(change_duration=3)
    values = []
    for _ in range(8):
        values.append(process.next())
    assert values == TRANSIENT
    assert process.last_under_change_index == 4
    assert process.change_duration == 3
    assert not process.is_under_change


@pytest.mark.parametrize("splits", [[8], [1, 7], [2, 3, 3], [3, 1, 4], [5, 3], [4, 2, 2]])
def test_transient_change_blocks(splits):
    process = transient(change_duration=3)
    blocks = [process.next_block(size) for size in splits]
    assert np.concatenate(blocks).tolist() == TRANSIENT
    assert process.count == 8


def test_transient_block_inside_change():
    process = transient(change_duration=10)
    process.next_block(3)
    assert process.next_block(4).tolist() == [5, 5, 5, 5]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"first_under_change_index": 2, "change_duration": 0},
        {"first_under_change_index": -1, "change_duration": 2},
    ],
)
def test_transient_invalid_parameters(kwargs):
    with pytest.raises(InvalidConfiguration):
        IidTransientProcess(stats.norm(), stats.norm(loc=1.0), **kwargs)


def test_autoregression_recursion():
    process = AutoRegressiveProcess(stats.randint(1, 2), ar_parameters=[0.5, 0.25])
    values = [process.next() for _ in range(4)]
    # x1 = 1, x2 = 1 + 0.5, x3 = 1 + 0.75 + 0.25, x4 = 1 + 1.0 + 0.375
    assert values == [1.0, 1.5, 2.0, 2.375]


@pytest.mark.parametrize("split", [1, 2, 5])
def test_autoregression_blocks_match_single_steps(split):
    single = AutoRegressiveProcess(stats.norm(), ar_parameters=[0.6, -0.2], seed=9)
    expected = [single.next() for _ in range(8)]

    block = AutoRegressiveProcess(stats.norm(), ar_parameters=[0.6, -0.2], seed=9)
    values = np.concatenate([block.next_block(split), block.next_block(8 - split)])
    np.testing.assert_allclose(values, expected)


def test_autoregression_clear_wipes_history():
    process = AutoRegressiveProcess(stats.randint(2, 3), ar_parameters=[1.0])
    process.next_block(3)
    process.clear()
    assert process.next() == 2.0


def test_autoregression_without_parameters_is_noise():
    process = AutoRegressiveProcess(stats.randint(3, 4))
    assert process.next_block(2).tolist() == [3.0, 3.0]
    assert process.ar_parameters == ()


def test_autoregression_invalid_parameters():
    with pytest.raises(InvalidConfiguration):
        AutoRegressiveProcess(stats.norm(), ar_parameters=[0.5, float("nan")])
