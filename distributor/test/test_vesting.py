import random

import pytest

from distributor import vesting
from distributor.errors import (
    ArithmeticOverflowError,
    Completed,
    NotStarted,
    NothingToClaim,
)
from distributor.models import U64_MAX, VestingPosition, VestingSchedule

T0 = 1_700_000_000
HOUR = 3600


@pytest.fixture
def schedule() -> VestingSchedule:
    return VestingSchedule(
        tge_bp=1000,
        cliff_bp=1000,
        cliff_duration=HOUR,
        period_duration=HOUR,
        num_periods=10,
    )


def make_position(schedule: VestingSchedule, total: int, start: int = T0) -> VestingPosition:
    return VestingPosition(
        beneficiary="0x9bc33f6155eFAcc290c3C50E9B5b24b668562732",
        total_amount=total,
        start_time=start,
        schedule=schedule,
    )


@pytest.fixture
def position(schedule) -> VestingPosition:
    return make_position(schedule, 1000)


def test_scenario_tge_cliff_and_periods(schedule, position):
    assert vesting.releasable(schedule, position, T0) == 100
    assert vesting.releasable(schedule, position, T0 + HOUR - 1) == 100
    assert vesting.releasable(schedule, position, T0 + HOUR) == 200

    assert vesting.release(schedule, position, T0 + HOUR) == 200
    assert position.released_amount == 200

    assert vesting.unlocked_at(schedule, position, T0 + 2 * HOUR) == 280
    assert vesting.releasable(schedule, position, T0 + 2 * HOUR) == 80

    end = T0 + HOUR + 10 * HOUR
    assert vesting.unlocked_at(schedule, position, end) == 1000
    assert vesting.release(schedule, position, end) == 800
    assert position.fully_vested


def test_non_divisible_total_releases_dust_with_last_period(schedule):
    position = make_position(schedule, 999)
    cliff = T0 + HOUR
    # tge 99, cliff 99, 801 over 10 periods truncates to 80 each
    assert vesting.unlocked_at(schedule, position, T0) == 99
    assert vesting.unlocked_at(schedule, position, cliff) == 198
    assert vesting.unlocked_at(schedule, position, cliff + HOUR) == 278
    assert vesting.unlocked_at(schedule, position, cliff + 9 * HOUR) == 918
    assert vesting.unlocked_at(schedule, position, cliff + 10 * HOUR) == 999
    assert vesting.unlocked_at(schedule, position, cliff + 100 * HOUR) == 999


def test_releasable_is_zero_before_start(schedule, position):
    assert vesting.releasable(schedule, position, T0 - 1) == 0
    with pytest.raises(NotStarted):
        vesting.release(schedule, position, T0 - 1)


def test_nothing_to_claim_between_boundaries(schedule, position):
    vesting.release(schedule, position, T0)
    with pytest.raises(NothingToClaim):
        vesting.release(schedule, position, T0 + HOUR - 1)
    assert position.released_amount == 100


def test_completed_is_final(schedule, position):
    end = vesting.vesting_end(schedule, position)
    assert vesting.release(schedule, position, end) == 1000
    for t in [end, end + 1, end + 10 * HOUR]:
        with pytest.raises(Completed):
            vesting.release(schedule, position, t)
        assert vesting.releasable(schedule, position, t) == 0
    assert position.released_amount == 1000


def test_zero_tge_starts_at_zero():
    schedule = VestingSchedule(
        tge_bp=0, cliff_bp=0, cliff_duration=10, period_duration=5, num_periods=4
    )
    position = make_position(schedule, 100)
    with pytest.raises(NothingToClaim):
        vesting.release(schedule, position, T0)
    assert vesting.unlocked_at(schedule, position, T0 + 10) == 0
    assert vesting.unlocked_at(schedule, position, T0 + 15) == 25


def test_full_tge_unlocks_everything_at_start():
    schedule = VestingSchedule(
        tge_bp=10000, cliff_bp=0, cliff_duration=10, period_duration=5, num_periods=4
    )
    position = make_position(schedule, 77)
    assert vesting.release(schedule, position, T0) == 77


def test_next_unlock_time(schedule, position):
    cliff = T0 + HOUR
    assert vesting.next_unlock_time(schedule, position, T0 - 5) == T0
    assert vesting.next_unlock_time(schedule, position, T0) == cliff
    assert vesting.next_unlock_time(schedule, position, cliff - 1) == cliff
    assert vesting.next_unlock_time(schedule, position, cliff) == cliff + HOUR
    assert vesting.next_unlock_time(schedule, position, cliff + HOUR + 1) == cliff + 2 * HOUR
    assert vesting.next_unlock_time(schedule, position, cliff + 9 * HOUR) == cliff + 10 * HOUR
    assert (
        vesting.next_unlock_time(schedule, position, cliff + 10 * HOUR)
        == vesting.NO_FURTHER_UNLOCK
    )


def test_unlock_table(schedule, position):
    rows = vesting.unlock_table(schedule, position)
    assert rows[0] == (T0, 100)
    assert rows[1] == (T0 + HOUR, 200)
    assert rows[-1] == (vesting.vesting_end(schedule, position), 1000)
    assert len(rows) == 12


def test_overflowing_timestamps_fail_loudly(schedule):
    position = make_position(schedule, 1000, start=U64_MAX - 10)
    with pytest.raises(ArithmeticOverflowError):
        vesting.unlocked_at(schedule, position, U64_MAX)


def test_largest_total_does_not_overflow(schedule):
    position = make_position(schedule, U64_MAX)
    assert vesting.unlocked_at(schedule, position, T0) == U64_MAX * 1000 // 10000
    assert vesting.unlocked_at(schedule, position, vesting.vesting_end(schedule, position)) == U64_MAX


def _random_schedule(rng: random.Random) -> VestingSchedule:
    tge = rng.randint(0, 10000)
    return VestingSchedule(
        tge_bp=tge,
        cliff_bp=rng.randint(0, 10000 - tge),
        cliff_duration=rng.randint(1, 10_000),
        period_duration=rng.randint(1, 10_000),
        num_periods=rng.randint(1, 50),
    )


@pytest.mark.parametrize("seed", range(25))
def test_unlock_is_monotone_and_bounded(seed):
    rng = random.Random(seed)
    schedule = _random_schedule(rng)
    position = make_position(schedule, rng.randint(1, 10**12))
    end = vesting.vesting_end(schedule, position)

    times = sorted(rng.randint(T0 - 100, end + 1000) for _ in range(200))
    values = [vesting.unlocked_at(schedule, position, t) for t in times]

    assert values == sorted(values)
    assert all(v <= position.total_amount for v in values)
    for t in [end, end + 1, end + rng.randint(1, 10**6)]:
        assert vesting.unlocked_at(schedule, position, t) == position.total_amount


@pytest.mark.parametrize("seed", range(10))
def test_unlock_is_flat_between_boundaries(seed):
    rng = random.Random(seed)
    schedule = _random_schedule(rng)
    position = make_position(schedule, rng.randint(1, 10**9))
    boundaries = [t for t, _ in vesting.unlock_table(schedule, position)]

    for start, stop in zip(boundaries, boundaries[1:]):
        value = vesting.unlocked_at(schedule, position, start)
        for t in {start, start + (stop - start) // 2, stop - 1}:
            assert vesting.unlocked_at(schedule, position, t) == value


@pytest.mark.parametrize("seed", range(10))
def test_repeated_release_never_overpays(seed):
    rng = random.Random(seed)
    schedule = _random_schedule(rng)
    position = make_position(schedule, rng.randint(1, 10**9))
    end = vesting.vesting_end(schedule, position)

    paid = 0
    for t in sorted(rng.randint(T0, end + 100) for _ in range(30)) + [end]:
        try:
            paid += vesting.release(schedule, position, t)
        except (NothingToClaim, Completed):
            pass
    assert paid == position.total_amount == position.released_amount
    with pytest.raises(Completed):
        vesting.release(schedule, position, end + 1)
