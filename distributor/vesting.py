"""
Discrete unlock curve for vesting positions.

Unlocks happen in steps: the TGE share at start, the cliff share when the
cliff passes, then an equal share at the end of each period. Between
boundaries the unlocked amount is flat, and a boundary instant itself counts
as unlocked. All arithmetic is integer; `total * bp` uses a u128 intermediate.

Per-period amounts are truncated. The dust that truncation leaves behind is
released with the final period, so a position always reaches its full
total once every period has elapsed.
"""
from distributor.errors import Completed, NotStarted, NothingToClaim
from distributor.models import (
    BASIS_POINTS,
    Timestamp,
    VestingPosition,
    VestingSchedule,
)
from distributor.safe_math import add_u64, check_u64, mul_div_u64, sub_u64

# returned by next_unlock_time once nothing further is scheduled, never a real time
NO_FURTHER_UNLOCK = 0


def tge_amount(schedule: VestingSchedule, position: VestingPosition) -> int:
    return mul_div_u64(position.total_amount, schedule.tge_bp, BASIS_POINTS, "tge")


def cliff_amount(schedule: VestingSchedule, position: VestingPosition) -> int:
    return mul_div_u64(position.total_amount, schedule.cliff_bp, BASIS_POINTS, "cliff")


def cliff_time(schedule: VestingSchedule, position: VestingPosition) -> Timestamp:
    return add_u64(position.start_time, schedule.cliff_duration, "cliff_time")


def vesting_end(schedule: VestingSchedule, position: VestingPosition) -> Timestamp:
    """Instant at which the final period unlocks"""
    return add_u64(
        cliff_time(schedule, position),
        check_u64(schedule.linear_duration, "linear_duration"),
        "vesting_end",
    )


def periods_elapsed(
    schedule: VestingSchedule, position: VestingPosition, now: Timestamp
) -> int:
    cliff = cliff_time(schedule, position)
    if now < cliff:
        return 0
    return min((now - cliff) // schedule.period_duration, schedule.num_periods)


def unlocked_at(
    schedule: VestingSchedule, position: VestingPosition, now: Timestamp
) -> int:
    """Cumulative amount unlocked at `now`. Pure."""
    tge = tge_amount(schedule, position)
    if now < cliff_time(schedule, position):
        return tge

    cliff = cliff_amount(schedule, position)
    remaining = sub_u64(position.total_amount, tge + cliff, "remaining")
    per_period = remaining // schedule.num_periods
    done = periods_elapsed(schedule, position, now)

    if done == schedule.num_periods:
        return position.total_amount
    return tge + cliff + per_period * done


def releasable(
    schedule: VestingSchedule, position: VestingPosition, now: Timestamp
) -> int:
    if now < position.start_time:
        return 0
    return max(0, unlocked_at(schedule, position, now) - position.released_amount)


def release(
    schedule: VestingSchedule, position: VestingPosition, now: Timestamp
) -> int:
    """
    Account for everything releasable at `now` and return the delta.
    Moving the tokens is left to the caller.
    """
    if now < position.start_time:
        raise NotStarted(f"Vesting for {position.beneficiary} starts at {position.start_time}")

    if position.fully_vested:
        raise Completed(f"{position.beneficiary} has released {position.total_amount}")

    delta = releasable(schedule, position, now)
    if delta == 0:
        raise NothingToClaim(f"Nothing unlocked for {position.beneficiary} since last release")

    position.released_amount = add_u64(position.released_amount, delta, "released")
    return delta


def next_unlock_time(
    schedule: VestingSchedule, position: VestingPosition, now: Timestamp
) -> Timestamp:
    """
    When the unlocked amount next steps up, or NO_FURTHER_UNLOCK (0) once the
    final period has passed
    """
    if now < position.start_time:
        return position.start_time

    cliff = cliff_time(schedule, position)
    if now < cliff:
        return cliff

    done = periods_elapsed(schedule, position, now)
    if done >= schedule.num_periods:
        return NO_FURTHER_UNLOCK
    return add_u64(cliff, (done + 1) * schedule.period_duration, "next_unlock")


def unlock_table(
    schedule: VestingSchedule, position: VestingPosition
) -> list[tuple[Timestamp, int]]:
    """Every unlock boundary with the cumulative amount unlocked from it on"""
    cliff = cliff_time(schedule, position)
    boundaries = [position.start_time, cliff] + [
        cliff + p * schedule.period_duration
        for p in range(1, schedule.num_periods + 1)
    ]
    return [(t, unlocked_at(schedule, position, t)) for t in boundaries]
