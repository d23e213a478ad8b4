import csv
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from distributor.models.Campaign import AirdropCampaign
from distributor.models.Config import DistributorConfig
from distributor.models.types import Timestamp
from distributor.models.Vesting import VestingPosition


@dataclass
class Writer:
    """Writes campaign and vesting reports under `<reports_dir>/<campaign_id>`"""

    config: DistributorConfig
    reports_dir: str = "reports"

    @property
    def path(self) -> str:
        return f"{self.reports_dir}/{self.config.campaign_id}"

    @property
    def csv_path(self) -> str:
        return f"{self.path}/csv"

    @property
    def json_path(self) -> str:
        return f"{self.path}/json"

    @staticmethod
    def flatten_json(y: Any) -> dict[str, Any]:
        """Nested dicts and lists become `parent_child` keys"""
        out = {}

        def flatten(x, name=""):
            if type(x) is dict:
                for a in x:
                    flatten(x[a], name + str(a) + "_")
            elif type(x) is list:
                for i, a in enumerate(x):
                    flatten(a, name + str(i) + "_")
            else:
                out[name[:-1]] = x

        flatten(y)
        return out

    @staticmethod
    def write_csv(data: list[dict[str, Any]], path: str, fieldnames: list[str]) -> None:
        with open(path, "w+", newline="") as f:
            writer = csv.DictWriter(
                f, delimiter=",", fieldnames=fieldnames, extrasaction="ignore"
            )
            writer.writeheader()
            writer.writerows(data)

    # create the directory in the reports folder for csv and json if it doesn't exist
    def _create_dir(self) -> None:
        Path(self.csv_path).mkdir(parents=True, exist_ok=True)
        Path(self.json_path).mkdir(parents=True, exist_ok=True)

    def to_csv(self, data: list[dict[str, Any]], name: str, fieldnames: list[str]) -> None:
        self._create_dir()
        self.write_csv(data, f"{self.csv_path}/{name}.csv", fieldnames)

    def to_json(self, data: Any, name: str) -> None:
        self._create_dir()
        with open(f"{self.json_path}/{name}.json", "w") as f:
            json.dump(data, f, indent=4)

    def to_csv_and_json(self, data: Any, name: str) -> None:
        if isinstance(data, list):
            csv_data = [self.flatten_json(d) for d in data]
            keys = list(csv_data[0].keys()) if csv_data else []
        else:
            flat = self.flatten_json(data)
            keys = list(flat.keys())
            csv_data = [flat]
        self.to_json(data, name)
        self.to_csv(csv_data, name, keys)

    def write_campaign_status(self, campaign: AirdropCampaign) -> None:
        self.to_csv_and_json(
            {
                "campaign_id": campaign.campaign_id,
                "root": campaign.root,
                "total_allocation": campaign.total_allocation,
                "total_claimed": campaign.total_claimed,
                "total_burned": campaign.total_burned,
                "unclaimed": campaign.unclaimed,
                "claims_made": campaign.claims_made,
                "max_index": campaign.max_index,
                "end_time": campaign.end_time,
            },
            "campaign",
        )

    def write_unlock_table(
        self, position: VestingPosition, rows: list[tuple[Timestamp, int]]
    ) -> None:
        data = [
            {"timestamp": t, "unlocked": unlocked, "locked": position.total_amount - unlocked}
            for t, unlocked in rows
        ]
        self.to_csv_and_json(data, f"unlocks-{position.beneficiary}")
