"""
External collaborators the distributor moves value through.

The core never inspects balances itself; it only calls the `TokenLedger`,
`LockRegistry` and `Clock` interfaces. The TinyDB backed implementations here
are what the CLI and the tests run against, a host ledger can substitute its own.
"""
import time
from dataclasses import dataclass, field
from typing import Callable, Protocol

from tinydb import TinyDB, where

from distributor.errors import AssetAlreadyConsumedError, InsufficientBalanceError
from distributor.safe_math import add_u64, check_u64, sub_u64


@dataclass
class Asset:
    """
    Tokens in flight between a withdraw/mint and a deposit/burn.
    An asset must be consumed exactly once.
    """

    amount: int
    consumed: bool = field(default=False, compare=False)

    def consume(self) -> int:
        if self.consumed:
            raise AssetAlreadyConsumedError(f"Asset of {self.amount} already consumed")
        self.consumed = True
        return self.amount


class TokenLedger(Protocol):
    def withdraw(self, account: str, amount: int) -> Asset:
        ...

    def deposit(self, account: str, asset: Asset) -> None:
        ...

    def mint(self, amount: int) -> Asset:
        ...

    def burn(self, asset: Asset) -> None:
        ...


class LockRegistry(Protocol):
    def create_lock(self, owner: str, amount: int, duration: int) -> None:
        ...


class Clock(Protocol):
    def now_seconds(self) -> int:
        ...


class SystemClock:
    def now_seconds(self) -> int:
        return int(time.time())


@dataclass
class FixedClock:
    """Clock that only moves when told to"""

    now: int = 0

    def now_seconds(self) -> int:
        return self.now

    def set(self, now: int) -> None:
        self.now = now

    def advance(self, seconds: int) -> None:
        self.now += seconds


class BalanceLedger:
    """Account balances kept in the `balances` table of a TinyDB"""

    def __init__(self, db: TinyDB):
        self.db = db

    @property
    def _balances(self):
        return self.db.table("balances")

    @property
    def _supply(self):
        return self.db.table("supply")

    def balance_of(self, account: str) -> int:
        doc = self._balances.get(where("account") == account)
        return 0 if doc is None else int(doc["balance"])

    def _set_balance(self, account: str, balance: int) -> None:
        self._balances.upsert(
            {"account": account, "balance": check_u64(balance, "balance")},
            where("account") == account,
        )

    def _supply_stat(self, name: str) -> int:
        doc = self._supply.get(where("name") == name)
        return 0 if doc is None else int(doc["amount"])

    def _add_supply_stat(self, name: str, amount: int) -> None:
        total = add_u64(self._supply_stat(name), amount, name)
        self._supply.upsert({"name": name, "amount": total}, where("name") == name)

    @property
    def total_minted(self) -> int:
        return self._supply_stat("minted")

    @property
    def total_burned(self) -> int:
        return self._supply_stat("burned")

    def withdraw(self, account: str, amount: int) -> Asset:
        balance = self.balance_of(account)
        if amount > balance:
            raise InsufficientBalanceError(
                f"{account} holds {balance}, cannot withdraw {amount}"
            )
        self._set_balance(account, sub_u64(balance, amount))
        return Asset(amount)

    def deposit(self, account: str, asset: Asset) -> None:
        new_balance = add_u64(self.balance_of(account), asset.amount, "balance")
        asset.consume()
        self._set_balance(account, new_balance)

    def mint(self, amount: int) -> Asset:
        self._add_supply_stat("minted", check_u64(amount, "mint"))
        return Asset(amount)

    def burn(self, asset: Asset) -> None:
        amount = asset.consume()
        self._add_supply_stat("burned", amount)


class LockRegistryDB:
    """Records each lock handed off by a lock claim in the `locks` table"""

    def __init__(self, db: TinyDB):
        self.db = db

    def create_lock(self, owner: str, amount: int, duration: int) -> None:
        self.db.table("locks").insert(
            {"owner": owner, "amount": amount, "duration": duration}
        )

    def locks_for(self, owner: str) -> list[dict]:
        return [dict(d) for d in self.db.table("locks").search(where("owner") == owner)]


class Settlement:
    """
    Token movements made on behalf of one operation.
    Each movement records its inverse; `rollback` replays them newest first.
    A burn is reversed by minting the same amount back to where it came from.
    """

    def __init__(self, ledger: TokenLedger):
        self.ledger = ledger
        self._undo: list[Callable[[], None]] = []

    def _move(self, source: str, destination: str, amount: int) -> None:
        asset = self.ledger.withdraw(source, amount)
        try:
            self.ledger.deposit(destination, asset)
        except Exception:
            if not asset.consumed:
                self.ledger.deposit(source, asset)
            raise

    def transfer(self, source: str, destination: str, amount: int) -> None:
        if amount == 0:
            return
        self._move(source, destination, amount)
        self._undo.append(lambda: self._move(destination, source, amount))

    def mint(self, destination: str, amount: int) -> None:
        asset = self.ledger.mint(amount)
        try:
            self.ledger.deposit(destination, asset)
        except Exception:
            if not asset.consumed:
                self.ledger.burn(asset)
            raise
        self._undo.append(
            lambda: self.ledger.burn(self.ledger.withdraw(destination, amount))
        )

    def burn(self, source: str, amount: int) -> None:
        if amount == 0:
            return
        asset = self.ledger.withdraw(source, amount)
        try:
            self.ledger.burn(asset)
        except Exception:
            if not asset.consumed:
                self.ledger.deposit(source, asset)
            raise
        self._undo.append(lambda: self.ledger.deposit(source, self.ledger.mint(amount)))

    def rollback(self) -> None:
        while self._undo:
            self._undo.pop()()
