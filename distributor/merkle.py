"""
Leaf encoding and proof verification for the claim tree.

Wire contract shared with the offline tree builder (version 1):

- leaf   = keccak256(address[20] || amount[8, big endian] || index[8, big endian])
- parent = keccak256(left || right)
- at each level the position of the current node comes from the parity of its
  index: even nodes sit on the left, odd nodes on the right. Hashes are never
  sorted.

Changing any field width or the ordering breaks every published proof, so it
must come with a new LEAF_ENCODING_VERSION.
"""
from typing import Sequence, Union

import eth_utils as eth

from distributor.errors import ArithmeticOverflowError
from distributor.safe_math import check_u64

LEAF_ENCODING_VERSION = 1
HASH_LENGTH = 32

EthereumAddress = str
HexHash = str
ProofElement = Union[bytes, HexHash]


def encode_address(address: EthereumAddress) -> bytes:
    if not eth.is_address(address):
        raise ValueError(f"Not a valid address: {address}")
    return eth.to_canonical_address(address)


def encode_u64(value: int, name: str) -> bytes:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    return check_u64(value, name).to_bytes(8, "big")


def encode_leaf(address: EthereumAddress, amount: int, index: int) -> bytes:
    """Fixed width packing, so no two triples share an encoding"""
    return (
        encode_address(address)
        + encode_u64(amount, "amount")
        + encode_u64(index, "index")
    )


def compute_leaf(address: EthereumAddress, amount: int, index: int) -> bytes:
    return eth.keccak(encode_leaf(address, amount, index))


def hash_pair(left: bytes, right: bytes) -> bytes:
    return eth.keccak(left + right)


def to_hash(value: ProofElement) -> bytes:
    """
    Accepts raw bytes or a 0x prefixed hex string and returns 32 raw bytes.
    Raises ValueError for anything that is not exactly one hash long.
    """
    raw = value if isinstance(value, bytes) else eth.decode_hex(value)
    if len(raw) != HASH_LENGTH:
        raise ValueError(f"Expected a {HASH_LENGTH} byte hash, got {len(raw)} bytes")
    return raw


def to_hex(value: bytes) -> HexHash:
    return eth.encode_hex(value)


def verify(root: ProofElement, leaf: bytes, proof: Sequence[ProofElement], index: int) -> bool:
    """
    Fold `proof` into `leaf` and compare with `root`.

    The side of each sibling is taken from the parity of `index`, so a proof
    generated for one index will not verify at another one even though every
    hash in it is genuine.
    """
    if index < 0:
        return False
    try:
        current = to_hash(leaf)
        expected = to_hash(root)
        siblings = [to_hash(p) for p in proof]
    except ValueError:
        return False

    for sibling in siblings:
        if index % 2 == 0:
            current = hash_pair(current, sibling)
        else:
            current = hash_pair(sibling, current)
        index //= 2

    return current == expected


def verify_claim(
    root: ProofElement,
    address: EthereumAddress,
    amount: int,
    index: int,
    proof: Sequence[ProofElement],
) -> bool:
    try:
        leaf = compute_leaf(address, amount, index)
    except (ValueError, TypeError, ArithmeticOverflowError):
        return False
    return verify(root, leaf, proof, index)
