from typing import Sequence

from distributor.errors import (
    AllocationExceeded,
    AlreadyClaimed,
    Ended,
    IndexOutOfRange,
    InvalidProof,
)
from distributor.merkle import ProofElement, verify_claim
from distributor.models import AirdropCampaign, EthereumAddress, Timestamp
from distributor.safe_math import add_u64


def is_claimed(campaign: AirdropCampaign, index: int) -> bool:
    if index < 0 or index >= campaign.max_index:
        raise IndexOutOfRange(f"Index {index} is outside [0, {campaign.max_index})")
    return campaign.claimed.is_set(index)


def check_claim(
    campaign: AirdropCampaign,
    address: EthereumAddress,
    amount: int,
    index: int,
    proof: Sequence[ProofElement],
    now: Timestamp,
) -> None:
    """
    Run every precondition of a claim without touching the campaign.
    Raises the first failing `ClaimError` in a fixed order:
    Ended, IndexOutOfRange, AlreadyClaimed, AllocationExceeded, InvalidProof
    """
    if campaign.has_ended(now):
        raise Ended(f"Campaign {campaign.campaign_id} ended at {campaign.end_time}")

    if index < 0 or index >= campaign.max_index:
        raise IndexOutOfRange(f"Index {index} is outside [0, {campaign.max_index})")

    if campaign.claimed.is_set(index):
        raise AlreadyClaimed(f"Index {index} has already been claimed")

    if amount > campaign.unclaimed:
        raise AllocationExceeded(
            f"Claim of {amount} exceeds remaining allocation {campaign.unclaimed}"
        )

    if not verify_claim(campaign.root_bytes, address, amount, index, proof):
        raise InvalidProof(f"Proof does not match root for index {index}")


def try_claim(
    campaign: AirdropCampaign,
    address: EthereumAddress,
    amount: int,
    index: int,
    proof: Sequence[ProofElement],
    now: Timestamp,
) -> AirdropCampaign:
    """
    Authorise and consume a claim on `campaign`.

    All checks run before the single mutation, so a refused claim leaves the
    campaign exactly as it was. On success the index is marked and
    `total_claimed` grows by the declared amount. Returns the same campaign.
    """
    check_claim(campaign, address, amount, index, proof, now)

    total_claimed = add_u64(campaign.total_claimed, amount, "total_claimed")
    campaign.claimed.set(index)
    campaign.total_claimed = total_claimed
    return campaign
