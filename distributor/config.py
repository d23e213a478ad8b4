import datetime
from pathlib import Path
from typing import NamedTuple

from distributor.env import PATHS
from distributor.models import ClaimsFile, DistributorConfig, InputConfig


class CampaignWindow(NamedTuple):
    start_date: datetime.datetime
    end_date: datetime.datetime

    @property
    def start_timestamp(self) -> int:
        return int(self.start_date.timestamp())

    @property
    def end_timestamp(self) -> int:
        return int(self.end_date.timestamp())


def get_campaign_window(start: str, days: int) -> CampaignWindow:
    """Claim window opening at midnight UTC on `start` (YYYY-MM-DD) and lasting `days` days.

    Args:
        start (str): first day of the campaign, ISO format.
        days (int): number of full days claims stay open.
    """
    if days < 1:
        raise ValueError("Invalid campaign length. Must be at least one day.")

    day = datetime.date.fromisoformat(start)
    start_date = datetime.datetime(
        day.year, day.month, day.day, tzinfo=datetime.timezone.utc
    )
    end_date = start_date + datetime.timedelta(days=days, seconds=-1)

    return CampaignWindow(start_date, end_date)


def create_conf(path: str) -> DistributorConfig:
    """Generates the campaign config from user input"""
    input_config = InputConfig.model_validate_json(Path(path).read_text())

    window = get_campaign_window(input_config.start_date, input_config.campaign_days)

    return DistributorConfig(
        start_time=window.start_timestamp,
        end_time=window.end_timestamp,
        **input_config.model_dump(exclude={"start_date", "campaign_days"}),
    )


def write_conf(conf: DistributorConfig, path: str) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w+") as j:
        j.write(conf.model_dump_json(indent=4))


def load_conf(config_path: str) -> DistributorConfig:
    """Loads an existing config from file"""
    return DistributorConfig.model_validate_json(Path(config_path).read_text())


def load_claims(claims_path: str) -> ClaimsFile:
    """Loads the claims file produced by the offline tree builder"""
    return ClaimsFile.model_validate_json(Path(claims_path).read_text())


def main() -> None:
    """Generates the campaign config from an input file and saves it where the CLI reads it"""
    path_to_config_file = input(" Path to the input config file ")
    conf = create_conf(path_to_config_file)
    write_conf(conf, PATHS.CONFIG)
    print(f"😃 Created config for campaign {conf.campaign_id} at {PATHS.CONFIG}")


if __name__ == "__main__":
    main()
