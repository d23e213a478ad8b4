from typing import Literal

from distributor.safe_math import U64_MAX, U128_MAX

# type aliases for clarity
EthereumAddress = str
HexHash = str
Timestamp = int
Duration = int
BasisPoints = int

BASIS_POINTS = 10_000

ClaimVariant = Literal["full", "slashed", "vest", "lock"]
