from typing import Optional

import eth_utils as eth
from pydantic import BaseModel, field_validator

from distributor.errors import BadConfigException
from distributor.merkle import LEAF_ENCODING_VERSION
from distributor.models.types import (
    ClaimVariant,
    EthereumAddress,
    HexHash,
    Timestamp,
)


class ClaimRequest(BaseModel):
    """
    Everything a claimant submits
    :param `index`: position of the leaf in the tree, also the bitmap slot it consumes
    :param `proof`: sibling hashes from leaf to root, 0x hex encoded
    :param `lock_duration`: only used by lock claims
    """

    address: EthereumAddress
    amount: int
    index: int
    proof: list[HexHash]
    lock_duration: Optional[int] = None

    @field_validator("address")
    @classmethod
    def checksum_address(cls, input: str):
        return eth.to_checksum_address(input)


class ClaimsRecipient(BaseModel):
    """
    Entry for one recipient in a published claims file
    """

    amount: int
    index: int
    proof: list[HexHash]


class ClaimsFile(BaseModel):
    """
    Output of the offline tree builder. Recipients are keyed by checksum address.
    """

    root: HexHash
    leafEncodingVersion: int
    totalAllocation: int
    recipients: dict[EthereumAddress, ClaimsRecipient]

    @field_validator("leafEncodingVersion")
    @classmethod
    def supported_encoding(cls, version: int) -> int:
        if version != LEAF_ENCODING_VERSION:
            raise BadConfigException(f"Unsupported leaf encoding version: {version}")
        return version

    @field_validator("recipients")
    @classmethod
    def checksum_recipients(cls, recipients: dict) -> dict:
        return {eth.to_checksum_address(k): v for k, v in recipients.items()}

    @property
    def max_index(self) -> int:
        if not self.recipients:
            return 0
        return max(r.index for r in self.recipients.values()) + 1


class ClaimReceipt(BaseModel):
    """
    Outcome of a successful claim
    :param `amount`: the declared amount consumed from the campaign
    :param `received`: what reached the claimant immediately (or the lock)
    :param `burned`: what was destroyed, non zero only for slashed claims
    :param `vested`: what went into a vesting position
    """

    campaign_id: str
    variant: ClaimVariant
    address: EthereumAddress
    index: int
    amount: int
    received: int = 0
    burned: int = 0
    vested: int = 0
    lock_duration: Optional[int] = None
    timestamp: Timestamp


class ReleaseReceipt(BaseModel):
    beneficiary: EthereumAddress
    amount: int
    released_amount: int
    total_amount: int
    next_unlock_time: Timestamp
    timestamp: Timestamp
