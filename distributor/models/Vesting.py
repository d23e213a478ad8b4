from __future__ import annotations
from typing import Optional

import eth_utils as eth
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from distributor.errors import BadConfigException
from distributor.models.types import (
    BASIS_POINTS,
    U64_MAX,
    BasisPoints,
    Duration,
    EthereumAddress,
    Timestamp,
)


class VestingSchedule(BaseModel):
    """
    Unlock curve shared by every position that references it.
    Frozen: once a schedule exists nothing may change it.

    :param `tge_bp`: share unlocked at start, in basis points
    :param `cliff_bp`: share unlocked in one step when the cliff passes
    :param `cliff_duration`: seconds from start until the cliff
    :param `period_duration`: seconds per linear period after the cliff
    :param `num_periods`: periods over which the remainder unlocks
    """

    model_config = ConfigDict(frozen=True)

    tge_bp: BasisPoints
    cliff_bp: BasisPoints
    cliff_duration: Duration
    period_duration: Duration
    num_periods: int

    @field_validator("tge_bp", "cliff_bp")
    @classmethod
    def bp_in_range(cls, bp: int) -> int:
        if bp < 0 or bp > BASIS_POINTS:
            raise BadConfigException(f"Basis points out of range: {bp}")
        return bp

    @field_validator("cliff_duration", "period_duration")
    @classmethod
    def positive_duration(cls, duration: int) -> int:
        if duration <= 0 or duration > U64_MAX:
            raise BadConfigException(f"Duration must be positive: {duration}")
        return duration

    @field_validator("num_periods")
    @classmethod
    def positive_periods(cls, periods: int) -> int:
        if periods <= 0 or periods > 2**32 - 1:
            raise BadConfigException(f"Number of periods out of range: {periods}")
        return periods

    @model_validator(mode="after")
    def check_total_bp(self) -> VestingSchedule:
        if self.tge_bp + self.cliff_bp > BASIS_POINTS:
            raise BadConfigException(
                f"TGE and cliff exceed 100%: {self.tge_bp} + {self.cliff_bp}"
            )
        return self

    @property
    def linear_duration(self) -> int:
        return self.period_duration * self.num_periods


class VestingPosition(BaseModel):
    """
    A beneficiary's locked allocation and how much of it has been released.
    Holds either a reference to a stored schedule or its own embedded one.
    """

    beneficiary: EthereumAddress
    total_amount: int
    released_amount: int = 0
    start_time: Timestamp
    schedule_id: Optional[str] = None
    schedule: Optional[VestingSchedule] = None

    @field_validator("beneficiary")
    @classmethod
    def checksum_address(cls, input: str):
        return eth.to_checksum_address(input)

    @field_validator("total_amount")
    @classmethod
    def positive_total(cls, total: int) -> int:
        if total <= 0 or total > U64_MAX:
            raise ValueError(f"Vesting total must be a positive u64: {total}")
        return total

    @field_validator("start_time")
    @classmethod
    def start_fits_u64(cls, start: int) -> int:
        if start < 0 or start > U64_MAX:
            raise ValueError(f"Start time out of range: {start}")
        return start

    @model_validator(mode="after")
    def check_position(self) -> VestingPosition:
        if (self.schedule_id is None) == (self.schedule is None):
            raise ValueError("Position needs exactly one of schedule_id or schedule")
        if self.released_amount < 0 or self.released_amount > self.total_amount:
            raise ValueError("released_amount must be within [0, total_amount]")
        return self

    @property
    def remaining(self) -> int:
        return self.total_amount - self.released_amount

    @property
    def fully_vested(self) -> bool:
        return self.released_amount == self.total_amount

    @property
    def escrow(self) -> str:
        """Ledger account holding the still-locked tokens"""
        return f"vesting:{self.beneficiary}"


class PositionStatus(BaseModel):
    """
    Read-only view of a position at a point in time.
    :param `unlocked`: cumulative amount unlocked so far, released or not
    :param `next_unlock_time`: 0 once nothing further unlocks
    """

    beneficiary: EthereumAddress
    total_amount: int
    released_amount: int
    unlocked: int
    releasable: int
    start_time: Timestamp
    next_unlock_time: Timestamp
    fully_vested: bool
    timestamp: Timestamp
