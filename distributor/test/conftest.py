from dataclasses import dataclass
from pathlib import Path

import pytest

from distributor.config import load_conf
from distributor.distributor import Distributor
from distributor.ledger import BalanceLedger, FixedClock, LockRegistryDB
from distributor.merkle import compute_leaf, hash_pair, to_hex
from distributor.models import DistributorConfig, LedgerDB

STUBS = Path(__file__).parent / "stubs"

_addresses = [
    "0x9bc33f6155eFAcc290c3C50E9B5b24b668562732",
    "0xfDe38ad4bBbeC867e6cb4Bb31FbFB2074c959A83",
    "0x8BB4C0b502f869af3B25166930507a6E8c3038D4",
    "0x7Ac54A0406FA2B465E0D57C66597BE83A4b149fC",
    "0xdeA708968f8dd520f5e2F0aB6785F28c98521ca8",
]

_amounts = [1000, 1001, 999, 500, 7]

ZERO_HASH = bytes(32)


@dataclass
class Tree:
    """
    Minimal offline tree builder for fixtures. Pads each level to an even
    length with the zero hash and places nodes by index parity.
    """

    leaves: list[bytes]

    @property
    def levels(self) -> list[list[bytes]]:
        levels = [list(self.leaves)]
        while len(levels[-1]) > 1:
            level = levels[-1]
            if len(level) % 2:
                level = level + [ZERO_HASH]
                levels[-1] = level
            levels.append(
                [hash_pair(level[i], level[i + 1]) for i in range(0, len(level), 2)]
            )
        return levels

    @property
    def root(self) -> str:
        return to_hex(self.levels[-1][0])

    def proof(self, index: int) -> list[str]:
        proof = []
        for level in self.levels[:-1]:
            proof.append(to_hex(level[index ^ 1]))
            index //= 2
        return proof


@dataclass
class Recipient:
    address: str
    amount: int
    index: int
    proof: list[str]

    @property
    def args(self):
        return self.address, self.amount, self.index, self.proof


def build_tree(entries: list[tuple[str, int]]) -> Tree:
    return Tree([compute_leaf(a, amt, i) for i, (a, amt) in enumerate(entries)])


@pytest.fixture()
def ADDRESSES() -> list[str]:
    return list(_addresses)


@pytest.fixture
def tree() -> Tree:
    return build_tree(list(zip(_addresses, _amounts)))


@pytest.fixture
def recipients(tree: Tree) -> list[Recipient]:
    return [
        Recipient(address, amount, i, tree.proof(i))
        for i, (address, amount) in enumerate(zip(_addresses, _amounts))
    ]


@pytest.fixture
def config() -> DistributorConfig:
    return load_conf(str(STUBS / "config" / "distributor-conf.json"))


@pytest.fixture
def db() -> LedgerDB:
    return LedgerDB()


@pytest.fixture
def clock(config: DistributorConfig) -> FixedClock:
    return FixedClock(config.start_time)


@pytest.fixture
def ledger(db: LedgerDB) -> BalanceLedger:
    return BalanceLedger(db)


@pytest.fixture
def locks(db: LedgerDB) -> LockRegistryDB:
    return LockRegistryDB(db)


@pytest.fixture
def distributor(db, ledger, locks, clock, config, tree) -> Distributor:
    d = Distributor(db, ledger, locks, clock, config)
    d.create_campaign(tree.root, sum(_amounts), len(_amounts))
    d.set_global_schedule()
    return d


@pytest.fixture
def fail_once(monkeypatch):
    """Makes `obj.name` raise RuntimeError on its next call, then behave normally"""

    def _fail_once(obj, name: str):
        original = getattr(obj, name)
        calls = []

        def wrapped(*args, **kwargs):
            calls.append(args)
            if len(calls) == 1:
                raise RuntimeError(f"{name} unavailable")
            return original(*args, **kwargs)

        monkeypatch.setattr(obj, name, wrapped)
        return calls

    return _fail_once
