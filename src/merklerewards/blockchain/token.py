"""
merklerewards/blockchain/token.py

Token ledger interface consumed by the claim engine.

The engine only needs to know the total supply (checked once at
construction), balances, and a delegated transfer from the rewards holder
to a beneficiary. Anything that provides these methods can be plugged in;
InMemoryToken is the reference implementation used for local runs and
tests.

Architecture:
    TokenLedger (abstract)
    └── InMemoryToken (ERC20-style balances and allowances in memory)
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Tuple

from .merkle import HexLike, normalize_address
from ..config import MSG_EXCEEDS_ALLOWANCE, MSG_EXCEEDS_BALANCE
from ..errors import TransferFailed

logger = logging.getLogger("merklerewards.blockchain.token")

_MISSING = object()


# ============================================================================
# ABSTRACT TOKEN LEDGER
# ============================================================================

class TokenLedger(ABC):
    """
    Abstract token ledger with transfer/approve semantics.

    Implementations either return False or raise to refuse a transfer;
    the engine treats both as fatal for the claim in progress.
    """

    @abstractmethod
    def total_supply(self) -> int:
        pass

    @abstractmethod
    def balance_of(self, account: HexLike) -> int:
        pass

    @abstractmethod
    def transfer_from(
        self,
        holder: HexLike,
        recipient: HexLike,
        amount: int,
        spender: HexLike,
    ) -> bool:
        """
        Move `amount` from `holder` to `recipient` on behalf of `spender`.

        Args:
            holder: Account whose tokens are moved
            recipient: Account receiving the tokens
            amount: Token units to move
            spender: Account the holder approved to move its tokens

        Returns:
            True if the transfer happened
        """
        pass


# ============================================================================
# IN-MEMORY TOKEN
# ============================================================================

class InMemoryToken(TokenLedger):
    """
    ERC20-style token kept in memory.

    Supports snapshot()/restore()/release() savepoints so a claim engine can
    roll back transfers made by an operation that fails part way through.
    Savepoints nest; only the balances and allowances written while one is
    open are journaled.

    Usage:
        token = InMemoryToken()
        token.mint(holder, 1_000)
        token.approve(holder, engine.address, 1_000)
    """

    def __init__(self, symbol: str = "T"):
        self.symbol = symbol
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}
        self._total_supply = 0
        self._journal: List[tuple] = []
        self._open_snapshots = 0

    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, account: HexLike) -> int:
        return self._balances.get(normalize_address(account), 0)

    def allowance(self, owner: HexLike, spender: HexLike) -> int:
        return self._allowances.get(
            (normalize_address(owner), normalize_address(spender)), 0
        )

    def mint(self, account: HexLike, amount: int) -> None:
        if amount < 0:
            raise ValueError("Mint amount must be non-negative")
        key = normalize_address(account)
        self._write(self._balances, key, self._balances.get(key, 0) + amount)
        if self._open_snapshots:
            self._journal.append((None, "_total_supply", self._total_supply))
        self._total_supply += amount
        logger.debug(f"Minted {amount} {self.symbol} to {key}")

    def approve(self, owner: HexLike, spender: HexLike, amount: int) -> bool:
        if amount < 0:
            raise ValueError("Allowance must be non-negative")
        self._write(
            self._allowances,
            (normalize_address(owner), normalize_address(spender)),
            amount,
        )
        return True

    def transfer(self, sender: HexLike, recipient: HexLike, amount: int) -> bool:
        self._move(normalize_address(sender), normalize_address(recipient), amount)
        return True

    def transfer_from(
        self,
        holder: HexLike,
        recipient: HexLike,
        amount: int,
        spender: HexLike,
    ) -> bool:
        holder_key = normalize_address(holder)
        allowance_key = (holder_key, normalize_address(spender))
        allowed = self._allowances.get(allowance_key, 0)
        if allowed < amount:
            raise TransferFailed(MSG_EXCEEDS_ALLOWANCE)
        self._move(holder_key, normalize_address(recipient), amount)
        self._write(self._allowances, allowance_key, allowed - amount)
        return True

    def _move(self, sender: str, recipient: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("Transfer amount must be non-negative")
        balance = self._balances.get(sender, 0)
        if balance < amount:
            raise TransferFailed(MSG_EXCEEDS_BALANCE)
        self._write(self._balances, sender, balance - amount)
        self._write(self._balances, recipient, self._balances.get(recipient, 0) + amount)
        logger.debug(f"Moved {amount} {self.symbol}: {sender} -> {recipient}")

    # =========== JOURNAL ===========

    def _write(self, table: dict, key: Any, value: int) -> None:
        if self._open_snapshots:
            self._journal.append((table, key, table.get(key, _MISSING)))
        table[key] = value

    def snapshot(self) -> int:
        """Open a savepoint and return its journal mark."""
        self._open_snapshots += 1
        return len(self._journal)

    def restore(self, mark: int) -> None:
        """Undo every write made since `mark` and close the savepoint."""
        while len(self._journal) > mark:
            table, key, old = self._journal.pop()
            if table is None:
                setattr(self, key, old)
            elif old is _MISSING:
                table.pop(key, None)
            else:
                table[key] = old
        self._close_snapshot()

    def release(self, mark: int) -> None:
        """Close the savepoint keeping its writes."""
        self._close_snapshot()

    def _close_snapshot(self) -> None:
        self._open_snapshots -= 1
        if self._open_snapshots == 0:
            self._journal.clear()
