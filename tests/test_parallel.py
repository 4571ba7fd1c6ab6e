import random

import numpy as np
import pytest

from runlength.core.errors import InvalidConfiguration
from runlength.core.names import Trigger
from runlength.sequential.parallel import ParallelStoppingTime, SharedStream
from runlength.sequential.statistics import Cusum, FiniteMovingAverage
from runlength.sequential.stopping_time import (
    OneSidedStoppingTime,
    stopping_time_from_json,
)

SCENARIO_C = [(0, 1), (-1, 4), (1, -2), (2, 3), (0, 0), (3, 7), (3, 0)]


def test_threshold_grid():
    rule = ParallelStoppingTime(vertical_thresholds={1, 2, 5}, horizontal_thresholds={4, 0})
    for pair in SCENARIO_C:
        rule.observe(pair)
    assert rule.vertical_thresholds == (1, 2, 5)
    assert rule.horizontal_thresholds == (0, 4)
    assert rule.when().tolist() == [[1, 4], [1, 6], [1, 6]]
    assert rule.which().tolist() == [[2, 1], [2, 3], [2, 2]]
    assert rule.which(0, 1) is Trigger.VERTICAL
    assert rule.which(1, 1) == Trigger.BOTH
    assert rule.when(2, 0) == 1
    assert rule.is_stopped
    assert rule.count_observations == 7


def test_accessors_return_copies():
    rule = ParallelStoppingTime([1], [1])
    rule.observe((2, 0))
    when = rule.when()
    when[0, 0] = 99
    assert rule.when(0, 0) == 1


def test_block_matches_single_steps():
    single = ParallelStoppingTime([1, 2, 5], [4, 0])
    for pair in SCENARIO_C:
        single.observe(pair)
    block = ParallelStoppingTime([1, 2, 5], [4, 0])
    block.observe_block(SCENARIO_C[:4])
    block.observe_block(SCENARIO_C[4:])
    np.testing.assert_array_equal(block.when(), single.when())
    np.testing.assert_array_equal(block.which(), single.which())
    assert block.count_observations == single.count_observations


def _brute_force(pairs, vertical, horizontal):
    """Check every cell independently: first time V > b or H > c."""
    vertical = sorted(vertical)
    horizontal = sorted(horizontal)
    when = np.zeros((len(vertical), len(horizontal)), dtype=np.int64)
    which = np.zeros_like(when)
    for i, b in enumerate(vertical):
        for j, c in enumerate(horizontal):
            for time, (v, h) in enumerate(pairs, start=1):
                flags = (Trigger.VERTICAL if v > b else 0) | (
                    Trigger.HORIZONTAL if h > c else 0
                )
                if flags:
                    when[i, j] = time
                    which[i, j] = int(flags)
                    break
    return when, which


@pytest.mark.parametrize("seed", range(5))
def test_agrees_with_brute_force(seed):
    rng = random.Random(seed)
    vertical = [rng.randint(0, 12) for _ in range(4)]
    horizontal = [rng.randint(0, 12) for _ in range(3)]
    # Monotone statistics, as produced by running maxima.
    pairs, v_max, h_max = [], -1, -1
    for _ in range(30):
        v_max = max(v_max, rng.randint(-2, 13))
        h_max = max(h_max, rng.randint(-2, 13))
        pairs.append((v_max, h_max))

    rule = ParallelStoppingTime(vertical, horizontal)
    rule.observe_block(pairs)

    when, which = _brute_force(pairs, vertical, horizontal)
    np.testing.assert_array_equal(rule.when(), when)
    np.testing.assert_array_equal(rule.which(), which)


@pytest.mark.parametrize("seed", range(3))
def test_single_cell_is_minimum_of_one_sided_rules(seed):
    rng = random.Random(seed)
    values = [rng.uniform(-1.0, 1.5) for _ in range(60)]
    vertical = OneSidedStoppingTime([6.0], statistic=Cusum())
    horizontal = OneSidedStoppingTime([4.0], statistic=FiniteMovingAverage(5))
    rule = ParallelStoppingTime(
        [6.0], [4.0], vertical_statistic=Cusum(), horizontal_statistic=FiniteMovingAverage(5)
    )
    for value in values:
        vertical.observe(value)
        horizontal.observe(value)
        rule.observe((value, value))

    crossings = [w for w in (vertical.when(0), horizontal.when(0)) if w != 0]
    assert rule.when(0, 0) == (min(crossings) if crossings else 0)


def test_empty_dimension_stops_immediately():
    rule = ParallelStoppingTime([1, 2], [])
    assert rule.is_stopped
    rule.observe((5, 5))
    assert rule.when().shape == (2, 0)
    assert rule.count_observations == 1


def test_reset_is_idempotent():
    rule = ParallelStoppingTime([1, 2, 5], [4, 0], vertical_statistic=Cusum())
    rule.observe_block(SCENARIO_C)
    rule.reset()
    rule.reset()
    assert rule.count_observations == 0
    assert not rule.when().any()
    assert not rule.which().any()
    assert rule.is_running
    assert rule.vertical_thresholds == (1, 2, 5)


def test_shared_stream_feeds_both_statistics():
    rule = ParallelStoppingTime(
        [100], [2.5], vertical_statistic=Cusum(), horizontal_statistic=FiniteMovingAverage(3)
    )
    stream = SharedStream(rule)
    stream.observe(1.0)
    stream.observe_block([1.0, 1.0])
    assert rule.when(0, 0) == 3
    assert rule.which(0, 0) is Trigger.HORIZONTAL
    assert stream.is_stopped
    assert stream.count_observations == 3


def test_json_round_trip():
    text = '{"type":"parallel","vertical thresholds":[1,2,5],"horizontal thresholds":[0,4]}'
    rule = ParallelStoppingTime.from_json(text)
    assert rule.to_json() == text
    assert isinstance(stopping_time_from_json(text), ParallelStoppingTime)


def test_numpy_thresholds_serialize():
    rule = ParallelStoppingTime(np.array([2, 1]), np.array([3]))
    text = rule.to_json()
    assert text == '{"type":"parallel","vertical thresholds":[1,2],"horizontal thresholds":[3]}'
    assert ParallelStoppingTime.from_json(text).vertical_thresholds == (1, 2)


def test_invalid_records_and_thresholds():
    with pytest.raises(InvalidConfiguration):
        ParallelStoppingTime.from_json('{"type":"parallel","vertical thresholds":[1]}')
    with pytest.raises(InvalidConfiguration):
        ParallelStoppingTime.from_json(
            '{"type":"one-sided","vertical thresholds":[1],"horizontal thresholds":[1]}'
        )
    with pytest.raises(InvalidConfiguration):
        ParallelStoppingTime([float("nan")], [1.0])
