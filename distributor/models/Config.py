from __future__ import annotations
from typing import Optional

import eth_utils as eth
from pydantic import BaseModel, field_validator, model_validator

from distributor.errors import BadConfigException
from distributor.models.types import EthereumAddress, Timestamp
from distributor.models.Vesting import VestingSchedule


class ERROR_MESSAGES:
    LOCK_RANGE = "Lock duration range is inverted"
    CAMPAIGN_WINDOW = "Campaign ends before it starts"
    CAMPAIGN_DAYS = "Campaign must last at least one day"


class BaseConfig(BaseModel):
    """
    Settings shared by the user input and the generated campaign config
    :param `admin`: receives the vault balance on emergency withdrawal
    :param `vesting_schedule`: shared schedule for every claim-and-vest position
    :param `min_lock_duration`, `max_lock_duration`: bounds in seconds for lock claims
    :param `claims_file`: path to the claims json produced by the offline tree builder
    """

    campaign_id: str
    token_symbol: str
    admin: EthereumAddress
    vesting_schedule: VestingSchedule
    min_lock_duration: int
    max_lock_duration: int
    claims_file: Optional[str] = None

    @field_validator("admin")
    @classmethod
    def checksum_admin(cls, admin: str):
        if not eth.is_address(admin):
            raise BadConfigException(f"Admin is not a valid address: {admin}")
        return eth.to_checksum_address(admin)

    @field_validator("campaign_id")
    @classmethod
    def non_empty_id(cls, campaign_id: str) -> str:
        if not campaign_id.strip():
            raise BadConfigException("Campaign id cannot be empty")
        return campaign_id

    @field_validator("min_lock_duration")
    @classmethod
    def positive_min_lock(cls, duration: int) -> int:
        if duration <= 0:
            raise BadConfigException("Minimum lock duration must be positive")
        return duration

    @model_validator(mode="after")
    def check_lock_range(self) -> BaseConfig:
        if self.min_lock_duration > self.max_lock_duration:
            raise BadConfigException(ERROR_MESSAGES.LOCK_RANGE)
        return self


class InputConfig(BaseConfig):
    """
    What the admin writes by hand: the claim window is given as a first day
    and a length in days instead of timestamps
    :param `start_date`: first day of the campaign, YYYY-MM-DD, UTC
    :param `campaign_days`: number of full days claims stay open
    """

    start_date: str
    campaign_days: int

    @field_validator("campaign_days")
    @classmethod
    def at_least_one_day(cls, days: int) -> int:
        if days < 1:
            raise BadConfigException(ERROR_MESSAGES.CAMPAIGN_DAYS)
        return days


class DistributorConfig(BaseConfig):
    """
    Administrative settings for one campaign, as the CLI loads them
    :param `start_time`, `end_time`: claim window in unix seconds, end inclusive
    """

    start_time: Timestamp
    end_time: Timestamp

    @model_validator(mode="after")
    def check_window(self) -> DistributorConfig:
        if self.end_time < self.start_time:
            raise BadConfigException(ERROR_MESSAGES.CAMPAIGN_WINDOW)
        return self

    def lock_duration_allowed(self, duration: int) -> bool:
        return self.min_lock_duration <= duration <= self.max_lock_duration
