import os
from typing import Optional

import eth_utils as eth
from tinydb import TinyDB, where
from tinydb.storages import MemoryStorage

from distributor.errors import MissingRecordException, ScheduleImmutableError
from distributor.models.Campaign import AirdropCampaign
from distributor.models.types import EthereumAddress
from distributor.models.Vesting import VestingPosition, VestingSchedule


class LedgerDB(TinyDB):
    """
    Keyed record store for campaigns, schedules and positions.
    Records are small and always addressed directly by key, so there is no caching.
    Pass no path to keep everything in memory.
    """

    def __init__(self, path: Optional[str] = None, drop=False, **kwargs):
        if path is None:
            super().__init__(storage=MemoryStorage, **kwargs)
        else:
            # check if the directory exists
            create_dirs = self.exists(path) == False
            super().__init__(path, indent=4, create_dirs=create_dirs, **kwargs)

        if drop:
            self.drop_tables()

    @staticmethod
    def exists(path: str):
        return os.path.exists(path)

    # campaigns

    def find_campaign(self, campaign_id: str) -> Optional[AirdropCampaign]:
        doc = self.table("campaigns").get(where("campaign_id") == campaign_id)
        return None if doc is None else AirdropCampaign.model_validate(dict(doc))

    def get_campaign(self, campaign_id: str) -> AirdropCampaign:
        campaign = self.find_campaign(campaign_id)
        if campaign is None:
            raise MissingRecordException(f"Campaign {campaign_id} not found")
        return campaign

    def save_campaign(self, campaign: AirdropCampaign) -> None:
        self.table("campaigns").upsert(
            campaign.model_dump(), where("campaign_id") == campaign.campaign_id
        )

    def campaigns(self) -> list[AirdropCampaign]:
        return [
            AirdropCampaign.model_validate(dict(d))
            for d in self.table("campaigns").all()
        ]

    # schedules

    def find_schedule(self, schedule_id: str) -> Optional[VestingSchedule]:
        doc = self.table("schedules").get(where("schedule_id") == schedule_id)
        if doc is None:
            return None
        return VestingSchedule.model_validate(doc["schedule"])

    def get_schedule(self, schedule_id: str) -> VestingSchedule:
        schedule = self.find_schedule(schedule_id)
        if schedule is None:
            raise MissingRecordException(f"Schedule {schedule_id} not found")
        return schedule

    def save_schedule(self, schedule_id: str, schedule: VestingSchedule) -> None:
        """Stores a schedule once. Saving the identical schedule again is a no-op."""
        existing = self.find_schedule(schedule_id)
        if existing is not None:
            if existing != schedule:
                raise ScheduleImmutableError(
                    f"Schedule {schedule_id} already exists and cannot be changed"
                )
            return
        self.table("schedules").insert(
            {"schedule_id": schedule_id, "schedule": schedule.model_dump()}
        )

    # positions

    def find_position(self, beneficiary: EthereumAddress) -> Optional[VestingPosition]:
        address = eth.to_checksum_address(beneficiary)
        doc = self.table("positions").get(where("beneficiary") == address)
        return None if doc is None else VestingPosition.model_validate(dict(doc))

    def get_position(self, beneficiary: EthereumAddress) -> VestingPosition:
        position = self.find_position(beneficiary)
        if position is None:
            raise MissingRecordException(f"No vesting position for {beneficiary}")
        return position

    def save_position(self, position: VestingPosition) -> None:
        self.table("positions").upsert(
            position.model_dump(), where("beneficiary") == position.beneficiary
        )

    def remove_position(self, beneficiary: EthereumAddress) -> None:
        address = eth.to_checksum_address(beneficiary)
        self.table("positions").remove(where("beneficiary") == address)

    def positions(self) -> list[VestingPosition]:
        return [
            VestingPosition.model_validate(dict(d))
            for d in self.table("positions").all()
        ]

    def schedule_for(self, position: VestingPosition) -> VestingSchedule:
        if position.schedule is not None:
            return position.schedule
        return self.get_schedule(position.schedule_id)  # type: ignore
