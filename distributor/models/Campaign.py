from __future__ import annotations
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from distributor.models.types import HexHash, Timestamp, U64_MAX
from distributor.merkle import to_hash, to_hex

WORD_BITS = 256


class ClaimedBitmap(BaseModel):
    """
    One bit per claim index, stored as sparse 256 bit words.

    Only words that hold at least one claimed index exist, so a campaign with a
    huge `max_index` and few claims stays small while lookups remain O(1).
    Bits are only ever set, never cleared.
    :param `size`: number of indices covered, equal to the campaign `max_index`
    :param `words`: word index -> 256 bit word
    """

    size: int
    words: dict[int, int] = {}

    @field_validator("size")
    @classmethod
    def size_in_range(cls, size: int) -> int:
        if size < 0 or size > U64_MAX:
            raise ValueError(f"Bitmap size out of range: {size}")
        return size

    @staticmethod
    def _locate(index: int) -> tuple[int, int]:
        return index // WORD_BITS, index % WORD_BITS

    def _check_index(self, index: int) -> None:
        if index < 0 or index >= self.size:
            raise IndexError(f"Index {index} outside bitmap of size {self.size}")

    def is_set(self, index: int) -> bool:
        self._check_index(index)
        word, bit = self._locate(index)
        return bool((self.words.get(word, 0) >> bit) & 1)

    def set(self, index: int) -> None:
        self._check_index(index)
        word, bit = self._locate(index)
        self.words[word] = self.words.get(word, 0) | (1 << bit)

    def count(self) -> int:
        return sum(bin(w).count("1") for w in self.words.values())


class AirdropCampaign(BaseModel):
    """
    Commitment to the recipient set plus the counters that guard it
    :param `root`: merkle root over every (address, amount, index) leaf
    :param `total_claimed`: sum of declared claim amounts, including anything later burned
    :param `total_burned`: portion of `total_claimed` destroyed by slashed claims
    :param `total_withdrawn`: unclaimed allocation pulled out by an emergency withdrawal
    :param `end_time`: claims strictly after this instant are refused
    """

    campaign_id: str
    root: HexHash
    total_allocation: int
    total_claimed: int = 0
    total_burned: int = 0
    total_withdrawn: int = 0
    start_time: Timestamp = 0
    end_time: Timestamp
    max_index: int
    claimed: Optional[ClaimedBitmap] = None

    @field_validator("root")
    @classmethod
    def normalise_root(cls, root: str) -> str:
        return to_hex(to_hash(root))

    @field_validator(
        "total_allocation",
        "total_claimed",
        "total_burned",
        "total_withdrawn",
        "start_time",
        "end_time",
        "max_index",
    )
    @classmethod
    def fits_u64(cls, value: int) -> int:
        if value < 0 or value > U64_MAX:
            raise ValueError(f"Value out of u64 range: {value}")
        return value

    @model_validator(mode="after")
    def check_invariants(self) -> AirdropCampaign:
        if self.claimed is None:
            self.claimed = ClaimedBitmap(size=self.max_index)
        if self.claimed.size != self.max_index:
            raise ValueError("Claimed bitmap size must equal max_index")
        if self.total_claimed > self.total_allocation:
            raise ValueError("total_claimed exceeds total_allocation")
        if self.total_burned > self.total_claimed:
            raise ValueError("total_burned exceeds total_claimed")
        if self.total_claimed + self.total_withdrawn > self.total_allocation:
            raise ValueError("claimed and withdrawn exceed total_allocation")
        return self

    @property
    def root_bytes(self) -> bytes:
        return to_hash(self.root)

    @property
    def unclaimed(self) -> int:
        """What the vault still holds"""
        return self.total_allocation - self.total_claimed - self.total_withdrawn

    @property
    def claims_made(self) -> int:
        return self.claimed.count()

    def has_ended(self, now: Timestamp) -> bool:
        return now > self.end_time

    @property
    def vault(self) -> str:
        """Ledger account that holds the unclaimed allocation"""
        return f"campaign:{self.campaign_id}"
