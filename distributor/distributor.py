"""
Orchestration of claims and vesting releases.

The `Distributor` reads records from the `LedgerDB`, runs the claim and vesting
rules on working copies, then commits inside a settlement: the records are
saved first (a claim consumes its index before any token moves) and the token
movements follow. If any collaborator raises part way, the movements already
made are reversed and the records are restored to what they were on entry.
"""
import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Sequence

import eth_utils as eth

from distributor import claims, vesting
from distributor.errors import (
    AlreadyHasPosition,
    BadConfigException,
    LockDurationOutOfRange,
    PositionNotDrained,
)
from distributor.ledger import Clock, LockRegistry, Settlement, TokenLedger
from distributor.merkle import ProofElement
from distributor.models import (
    AirdropCampaign,
    ClaimReceipt,
    ClaimRequest,
    ClaimVariant,
    DistributorConfig,
    EthereumAddress,
    HexHash,
    LedgerDB,
    PositionStatus,
    ReleaseReceipt,
    Timestamp,
    VestingPosition,
    VestingSchedule,
)

logger = logging.getLogger(__name__)

GLOBAL_SCHEDULE_ID = "global"


class Distributor:
    def __init__(
        self,
        db: LedgerDB,
        ledger: TokenLedger,
        locks: LockRegistry,
        clock: Clock,
        config: DistributorConfig,
    ):
        self.db = db
        self.ledger = ledger
        self.locks = locks
        self.clock = clock
        self.config = config

    @property
    def campaign_id(self) -> str:
        return self.config.campaign_id

    def campaign(self) -> AirdropCampaign:
        return self.db.get_campaign(self.campaign_id)

    @contextmanager
    def _settlement(
        self,
        campaign_id: Optional[str] = None,
        beneficiary: Optional[EthereumAddress] = None,
    ) -> Iterator[Settlement]:
        """
        Snapshots the named campaign and position, yields a `Settlement` and on
        any error reverses its movements and writes the snapshots back
        """
        campaign_before = None if campaign_id is None else self.db.find_campaign(campaign_id)
        position_before = None if beneficiary is None else self.db.find_position(beneficiary)
        settlement = Settlement(self.ledger)
        try:
            yield settlement
        except Exception as e:
            settlement.rollback()
            if campaign_before is not None:
                self.db.save_campaign(campaign_before)
            if beneficiary is not None:
                if position_before is None:
                    self.db.remove_position(beneficiary)
                else:
                    self.db.save_position(position_before)
            logger.error("Rolled back after %s: %s", type(e).__name__, e)
            raise

    # ---- administration ----

    def create_campaign(
        self,
        root: HexHash,
        total_allocation: int,
        max_index: int,
    ) -> AirdropCampaign:
        """Creates the campaign record and mints its allocation into the vault"""
        if self.db.find_campaign(self.campaign_id) is not None:
            raise BadConfigException(f"Campaign {self.campaign_id} already exists")

        campaign = AirdropCampaign(
            campaign_id=self.campaign_id,
            root=root,
            total_allocation=total_allocation,
            max_index=max_index,
            start_time=self.config.start_time,
            end_time=self.config.end_time,
        )
        with self._settlement() as settlement:
            settlement.mint(campaign.vault, total_allocation)
            self.db.save_campaign(campaign)
        logger.info(
            "Campaign %s created with allocation %d over %d indices",
            campaign.campaign_id,
            total_allocation,
            max_index,
        )
        return campaign

    def set_global_schedule(self) -> VestingSchedule:
        """Stores the configured schedule as the one shared by claim-and-vest positions"""
        schedule = self.config.vesting_schedule
        self.db.save_schedule(GLOBAL_SCHEDULE_ID, schedule)
        return schedule

    def create_position(
        self,
        beneficiary: EthereumAddress,
        amount: int,
        schedule: Optional[VestingSchedule] = None,
        start_time: Optional[Timestamp] = None,
    ) -> VestingPosition:
        """
        Administrative position funded by minting into the beneficiary's escrow.
        Uses the global schedule unless one is given to embed.
        """
        self._ensure_no_open_position(beneficiary)
        position = VestingPosition(
            beneficiary=beneficiary,
            total_amount=amount,
            start_time=self.clock.now_seconds() if start_time is None else start_time,
            schedule_id=GLOBAL_SCHEDULE_ID if schedule is None else None,
            schedule=schedule,
        )
        # referenced schedule must already exist
        self.db.schedule_for(position)

        with self._settlement(beneficiary=position.beneficiary) as settlement:
            self.db.save_position(position)
            settlement.mint(position.escrow, amount)
        logger.info("Vesting position of %d created for %s", amount, position.beneficiary)
        return position

    def end_campaign(self) -> AirdropCampaign:
        """Early termination: no claim after now is accepted"""
        campaign = self.campaign()
        now = self.clock.now_seconds()
        if now < campaign.end_time:
            campaign.end_time = now
            self.db.save_campaign(campaign)
            logger.info("Campaign %s ended early at %d", campaign.campaign_id, now)
        return campaign

    def emergency_withdraw(self, recipient: Optional[EthereumAddress] = None) -> int:
        """Ends the campaign and sends whatever the vault holds to `recipient` (admin by default)"""
        campaign = self.end_campaign()
        destination = eth.to_checksum_address(recipient or self.config.admin)
        amount = campaign.unclaimed
        if amount > 0:
            with self._settlement(campaign.campaign_id) as settlement:
                campaign.total_withdrawn += amount
                self.db.save_campaign(campaign)
                settlement.transfer(campaign.vault, destination, amount)
        logger.warning(
            "Emergency withdrawal of %d from campaign %s to %s",
            amount,
            campaign.campaign_id,
            destination,
        )
        return amount

    def close_position(self, beneficiary: EthereumAddress) -> None:
        position = self.db.get_position(beneficiary)
        if not position.fully_vested:
            raise PositionNotDrained(
                f"{position.beneficiary} still has {position.remaining} locked"
            )
        self.db.remove_position(position.beneficiary)

    # ---- claims ----

    def _authorize(
        self,
        address: EthereumAddress,
        amount: int,
        index: int,
        proof: Sequence[ProofElement],
        now: Timestamp,
    ) -> AirdropCampaign:
        campaign = self.campaign()
        return claims.try_claim(campaign, address, amount, index, proof, now)

    def _log_claim(self, receipt: ClaimReceipt) -> ClaimReceipt:
        logger.info(
            "%s claim of %d at index %d by %s",
            receipt.variant,
            receipt.amount,
            receipt.index,
            receipt.address,
        )
        return receipt

    def _receipt(self, variant: ClaimVariant, address, amount, index, now, **kwargs):
        return ClaimReceipt(
            campaign_id=self.campaign_id,
            variant=variant,
            address=eth.to_checksum_address(address),
            index=index,
            amount=amount,
            timestamp=now,
            **kwargs,
        )

    def claim(
        self,
        address: EthereumAddress,
        amount: int,
        index: int,
        proof: Sequence[ProofElement],
    ) -> ClaimReceipt:
        """Full claim: the whole amount goes to the claimant"""
        now = self.clock.now_seconds()
        campaign = self._authorize(address, amount, index, proof, now)
        receipt = self._receipt("full", address, amount, index, now, received=amount)

        with self._settlement(campaign.campaign_id) as settlement:
            self.db.save_campaign(campaign)
            settlement.transfer(campaign.vault, receipt.address, amount)
        return self._log_claim(receipt)

    def claim_slashed(
        self,
        address: EthereumAddress,
        amount: int,
        index: int,
        proof: Sequence[ProofElement],
    ) -> ClaimReceipt:
        """
        Immediate settlement at half value. The full declared amount is consumed
        from the allocation; odd amounts burn the extra unit.
        """
        now = self.clock.now_seconds()
        campaign = self._authorize(address, amount, index, proof, now)
        receive = amount // 2
        burn = amount - receive
        receipt = self._receipt(
            "slashed", address, amount, index, now, received=receive, burned=burn
        )
        campaign.total_burned += burn

        with self._settlement(campaign.campaign_id) as settlement:
            self.db.save_campaign(campaign)
            settlement.transfer(campaign.vault, receipt.address, receive)
            settlement.burn(campaign.vault, burn)
        return self._log_claim(receipt)

    def _ensure_no_open_position(self, beneficiary: EthereumAddress) -> None:
        existing = self.db.find_position(beneficiary)
        if existing is not None and not existing.fully_vested:
            raise AlreadyHasPosition(f"{existing.beneficiary} already has an open position")

    def claim_and_vest(
        self,
        address: EthereumAddress,
        amount: int,
        index: int,
        proof: Sequence[ProofElement],
    ) -> ClaimReceipt:
        """
        Moves the amount into the claimant's vesting escrow and opens a position
        on the global schedule starting now
        """
        now = self.clock.now_seconds()
        # claim errors take precedence over position and schedule checks
        claims.check_claim(self.campaign(), address, amount, index, proof, now)
        self._ensure_no_open_position(address)
        self.db.get_schedule(GLOBAL_SCHEDULE_ID)
        campaign = self._authorize(address, amount, index, proof, now)

        position = VestingPosition(
            beneficiary=address,
            total_amount=amount,
            start_time=now,
            schedule_id=GLOBAL_SCHEDULE_ID,
        )
        receipt = self._receipt("vest", address, amount, index, now, vested=amount)

        with self._settlement(campaign.campaign_id, position.beneficiary) as settlement:
            self.db.save_campaign(campaign)
            settlement.transfer(campaign.vault, position.escrow, amount)
            self.db.save_position(position)
        return self._log_claim(receipt)

    def claim_and_lock(
        self,
        address: EthereumAddress,
        amount: int,
        index: int,
        proof: Sequence[ProofElement],
        lock_duration: int,
    ) -> ClaimReceipt:
        """Pays the claimant then hands the amount to the lock registry"""
        if not self.config.lock_duration_allowed(lock_duration):
            raise LockDurationOutOfRange(
                f"Lock of {lock_duration}s outside "
                f"[{self.config.min_lock_duration}, {self.config.max_lock_duration}]"
            )
        now = self.clock.now_seconds()
        campaign = self._authorize(address, amount, index, proof, now)
        receipt = self._receipt(
            "lock", address, amount, index, now, received=amount, lock_duration=lock_duration
        )

        with self._settlement(campaign.campaign_id) as settlement:
            self.db.save_campaign(campaign)
            settlement.transfer(campaign.vault, receipt.address, amount)
            self.locks.create_lock(receipt.address, amount, lock_duration)
        return self._log_claim(receipt)

    def submit(self, request: ClaimRequest, variant: ClaimVariant = "full") -> ClaimReceipt:
        """Dispatches a claim request to the matching variant"""
        args = (request.address, request.amount, request.index, request.proof)
        if variant == "full":
            return self.claim(*args)
        elif variant == "slashed":
            return self.claim_slashed(*args)
        elif variant == "vest":
            return self.claim_and_vest(*args)
        elif variant == "lock":
            if request.lock_duration is None:
                raise LockDurationOutOfRange("Lock claims need a lock_duration")
            return self.claim_and_lock(*args, lock_duration=request.lock_duration)
        raise ValueError(f"Unknown claim variant: {variant}")

    # ---- vesting ----

    def _position_and_schedule(
        self, beneficiary: EthereumAddress
    ) -> tuple[VestingPosition, VestingSchedule]:
        position = self.db.get_position(beneficiary)
        return position, self.db.schedule_for(position)

    def releasable(self, beneficiary: EthereumAddress) -> int:
        position, schedule = self._position_and_schedule(beneficiary)
        return vesting.releasable(schedule, position, self.clock.now_seconds())

    def next_unlock_time(self, beneficiary: EthereumAddress) -> Timestamp:
        position, schedule = self._position_and_schedule(beneficiary)
        return vesting.next_unlock_time(schedule, position, self.clock.now_seconds())

    def position_status(self, beneficiary: EthereumAddress) -> PositionStatus:
        """Snapshot of a position at the current time. Changes nothing."""
        now = self.clock.now_seconds()
        position, schedule = self._position_and_schedule(beneficiary)
        unlocked = (
            vesting.unlocked_at(schedule, position, now)
            if now >= position.start_time
            else 0
        )
        return PositionStatus(
            beneficiary=position.beneficiary,
            total_amount=position.total_amount,
            released_amount=position.released_amount,
            unlocked=unlocked,
            releasable=vesting.releasable(schedule, position, now),
            start_time=position.start_time,
            next_unlock_time=vesting.next_unlock_time(schedule, position, now),
            fully_vested=position.fully_vested,
            timestamp=now,
        )

    def release(self, beneficiary: EthereumAddress) -> ReleaseReceipt:
        """Releases everything unlocked so far from the escrow to the beneficiary"""
        now = self.clock.now_seconds()
        position, schedule = self._position_and_schedule(beneficiary)
        delta = vesting.release(schedule, position, now)

        with self._settlement(beneficiary=position.beneficiary) as settlement:
            self.db.save_position(position)
            settlement.transfer(position.escrow, position.beneficiary, delta)
        logger.info(
            "Released %d to %s (%d/%d)",
            delta,
            position.beneficiary,
            position.released_amount,
            position.total_amount,
        )
        return ReleaseReceipt(
            beneficiary=position.beneficiary,
            amount=delta,
            released_amount=position.released_amount,
            total_amount=position.total_amount,
            next_unlock_time=vesting.next_unlock_time(schedule, position, now),
            timestamp=now,
        )
