"""
Command line entry point. Run with `python -m distributor.cli <command>`.

Paths default to the DISTRIBUTOR_* environment variables (see `env.py`).
"""
import logging
import sys
from typing import Optional

import eth_utils as eth
import fire

from distributor import claims, vesting
from distributor.config import load_claims, load_conf
from distributor.distributor import Distributor
from distributor.env import PATHS
from distributor.errors import BadConfigException, ClaimError, VestingError
from distributor.ledger import BalanceLedger, LockRegistryDB, SystemClock
from distributor.models import ClaimsFile, ClaimsRecipient, LedgerDB, Writer
from distributor.utils import format_timestamp, yes_or_no


class DistributorCLI:
    def __init__(self, config: str = PATHS.CONFIG, db: str = PATHS.DB):
        self.config = load_conf(config)
        self.db = LedgerDB(db)
        self.ledger = BalanceLedger(self.db)
        self.lock_registry = LockRegistryDB(self.db)
        self.distributor = Distributor(
            self.db, self.ledger, self.lock_registry, SystemClock(), self.config
        )
        self.writer = Writer(self.config, reports_dir=PATHS.REPORTS)

    def _claims(self) -> ClaimsFile:
        if not self.config.claims_file:
            raise BadConfigException("claims_file is not set in the config")
        return load_claims(self.config.claims_file)

    def _recipient(self, address: str) -> ClaimsRecipient:
        recipients = self._claims().recipients
        entry = recipients.get(eth.to_checksum_address(address))
        if entry is None:
            raise BadConfigException(f"{address} is not in the claims file")
        return entry

    def init(self) -> None:
        """Create the campaign from the claims file and store the global schedule"""
        claims_file = self._claims()
        campaign = self.distributor.create_campaign(
            claims_file.root, claims_file.totalAllocation, claims_file.max_index
        )
        self.distributor.set_global_schedule()
        print(
            f"😃 Created campaign {campaign.campaign_id} with {campaign.max_index} recipients"
        )

    def verify(self, address: str) -> None:
        """Dry run a full claim for `address` without consuming anything"""
        entry = self._recipient(address)
        claims.check_claim(
            self.distributor.campaign(),
            address,
            entry.amount,
            entry.index,
            entry.proof,
            SystemClock().now_seconds(),
        )
        print(f"✅ {address} can claim {entry.amount} at index {entry.index}")

    def claim(
        self, address: str, variant: str = "full", lock_duration: Optional[int] = None
    ) -> None:
        """Claim for `address` using its entry in the claims file"""
        entry = self._recipient(address)
        args = (address, entry.amount, entry.index, entry.proof)
        if variant == "lock":
            if lock_duration is None:
                raise BadConfigException("--lock_duration is required for lock claims")
            receipt = self.distributor.claim_and_lock(*args, lock_duration=int(lock_duration))
        elif variant == "slashed":
            receipt = self.distributor.claim_slashed(*args)
        elif variant == "vest":
            receipt = self.distributor.claim_and_vest(*args)
        else:
            receipt = self.distributor.claim(*args)
        print(f"🚀 {receipt.model_dump_json(indent=4)}")

    def release(self, address: str) -> None:
        receipt = self.distributor.release(address)
        print(
            f"🔓 Released {receipt.amount} to {receipt.beneficiary}, "
            f"next unlock {format_timestamp(receipt.next_unlock_time)}"
        )

    def status(self, write: bool = False) -> None:
        campaign = self.distributor.campaign()
        print(f"Campaign:        {campaign.campaign_id}")
        print(f"Root:            {campaign.root}")
        print(f"Claimed:         {campaign.total_claimed} / {campaign.total_allocation}")
        print(f"Burned:          {campaign.total_burned}")
        print(f"Withdrawn:       {campaign.total_withdrawn}")
        print(f"Vault balance:   {self.ledger.balance_of(campaign.vault)}")
        print(f"Token supply:    {self.ledger.total_minted - self.ledger.total_burned}")
        print(f"Claims made:     {campaign.claims_made} / {campaign.max_index}")
        print(f"Ends:            {format_timestamp(campaign.end_time)}")
        if write:
            self.writer.write_campaign_status(campaign)
            print(f"📄 Wrote report to {self.writer.path}")

    def schedule(self, address: str, write: bool = False) -> None:
        """Print the unlock boundaries of a vesting position"""
        position = self.db.get_position(address)
        rows = vesting.unlock_table(self.db.schedule_for(position), position)
        for t, unlocked in rows:
            print(f"{format_timestamp(t)}  {unlocked}")
        print(f"Released so far: {position.released_amount} / {position.total_amount}")
        if write:
            self.writer.write_unlock_table(position, rows)

    def position(self, address: str) -> None:
        """Print where a vesting position stands right now"""
        status = self.distributor.position_status(address)
        print(f"Beneficiary:     {status.beneficiary}")
        print(f"Unlocked:        {status.unlocked} / {status.total_amount}")
        print(f"Released:        {status.released_amount}")
        print(f"Releasable:      {status.releasable}")
        print(f"Next unlock:     {format_timestamp(status.next_unlock_time)}")

    def locks(self, address: str) -> None:
        """List the locks created by lock claims for `address`"""
        owner = eth.to_checksum_address(address)
        locks = self.lock_registry.locks_for(owner)
        for lock in locks:
            print(f"🔒 {lock['amount']} for {lock['duration']}s")
        print(f"{len(locks)} lock(s) for {owner}")

    def withdraw(self, recipient: Optional[str] = None) -> None:
        """Emergency withdrawal of the unclaimed allocation. Ends the campaign."""
        if not yes_or_no("End the campaign and withdraw everything unclaimed?"):
            print("Aborted")
            return
        amount = self.distributor.emergency_withdraw(recipient)
        print(f"⚠️  Withdrew {amount} from campaign {self.config.campaign_id}")


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(message)s")
    try:
        fire.Fire(DistributorCLI)
    except (ClaimError, VestingError) as e:
        print(f"❌ {type(e).__name__}: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
