"""
merklerewards/protocol/ledger.py

Cumulative claim bookkeeping.

Each distribution re-encodes every account's lifetime entitlement, so the
ledger keeps a single number per account: the highest cumulative amount
already paid. What is newly owed is the difference between the amount in
the current tree and that number.

A redeployed engine does not migrate history. Instead it holds a read-only
LegacyLedger onto its predecessor and falls through to it for accounts it
has no record of. The predecessor may itself have a predecessor, so the
lookup walks the whole deployment chain.

Usage:
    ledger = CumulativeClaimLedger(legacy=LegacyLedger(old_engine))
    already = ledger.effective_claimed(account)
    delta = ledger.record_claim(account, cumulative_amount)
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from ..blockchain.merkle import HexLike, normalize_address, normalize_hash
from ..config import ZERO_ROOT
from ..errors import NothingToClaim

logger = logging.getLogger("merklerewards.protocol.ledger")

_MISSING = object()


# ============================================================================
# LEGACY LEDGER
# ============================================================================

class LegacyLedger:
    """
    Read-only view onto a predecessor engine.

    Every lookup is forwarded to the predecessor; nothing is cached, so
    each call is a fresh authoritative read.
    """

    def __init__(self, predecessor: Any):
        """
        Initialize LegacyLedger.

        Args:
            predecessor: Earlier engine exposing effective_claimed(account)
                and token_reference()
        """
        self._predecessor = predecessor

    @property
    def predecessor(self) -> Any:
        return self._predecessor

    def effective_claimed(self, account: HexLike) -> int:
        return self._predecessor.effective_claimed(account)

    def token_reference(self) -> Any:
        return self._predecessor.token_reference()


# ============================================================================
# CUMULATIVE CLAIM LEDGER
# ============================================================================

class CumulativeClaimLedger:
    """
    Current merkle root plus account -> cumulative amount claimed here.

    Records only ever grow. Once an account has a local record it is
    authoritative; the legacy chain is consulted only while the local
    record is unset.
    """

    def __init__(self, legacy: Optional[LegacyLedger] = None):
        self._legacy = legacy
        self._merkle_root: str = ZERO_ROOT
        self._claimed: Dict[str, int] = {}
        self._journal: List[tuple] = []
        self._open_snapshots = 0

    @property
    def legacy(self) -> Optional[LegacyLedger]:
        return self._legacy

    @property
    def merkle_root(self) -> str:
        return self._merkle_root

    def local_claimed(self, account: HexLike) -> int:
        """Cumulative amount claimed through this instance only."""
        return self._claimed.get(normalize_address(account), 0)

    def effective_claimed(self, account: HexLike) -> int:
        """
        Cumulative amount already paid to `account` across the chain.

        Returns the local record when one exists, otherwise whatever the
        predecessor reports (0 at the end of the chain).
        """
        local = self.local_claimed(account)
        if local > 0:
            return local
        if self._legacy is None:
            return 0
        legacy_amount = self._legacy.effective_claimed(account)
        logger.debug(f"No local record for {account}, legacy reports {legacy_amount}")
        return legacy_amount

    def payable(self, account: HexLike, cumulative_amount: int) -> int:
        """
        Amount newly owed for a claim of `cumulative_amount`.

        Raises:
            NothingToClaim: if nothing beyond the effective claimed amount
        """
        preclaimed = self.effective_claimed(account)
        if cumulative_amount <= preclaimed:
            raise NothingToClaim()
        return cumulative_amount - preclaimed

    def record_claim(
        self,
        account: HexLike,
        cumulative_amount: int,
        expected_delta: Optional[int] = None,
    ) -> int:
        """
        Store `cumulative_amount` as the account's record.

        The record is overwritten, not added to.

        Args:
            expected_delta: Delta computed when the claim was validated; the
                write is refused if the claimed amount moved since then

        Returns:
            The delta between the new record and the previous effective amount

        Raises:
            NothingToClaim: if cumulative_amount does not exceed the
                effective claimed amount, or the delta differs from
                expected_delta
        """
        delta = self.payable(account, cumulative_amount)
        if expected_delta is not None and delta != expected_delta:
            logger.warning(f"Claimed amount for {account} changed since validation: "
                           f"{delta} != {expected_delta}")
            raise NothingToClaim()
        key = normalize_address(account)
        if self._open_snapshots:
            self._journal.append(("claimed", key, self._claimed.get(key, _MISSING)))
        self._claimed[key] = cumulative_amount
        return delta

    def rotate_root(self, new_root: HexLike) -> Tuple[str, str]:
        """
        Replace the current root; claim records are untouched.

        Returns:
            (old_root, new_root) in canonical hex form
        """
        old_root = self._merkle_root
        root = normalize_hash(new_root)
        if self._open_snapshots:
            self._journal.append(("root", None, old_root))
        self._merkle_root = root
        return old_root, self._merkle_root

    # =========== JOURNAL ===========
    #
    # While a snapshot is open every write logs the previous value of the
    # key it touches. restore() undoes writes back to the snapshot's mark.

    def snapshot(self) -> int:
        """Open a savepoint and return its journal mark."""
        self._open_snapshots += 1
        return len(self._journal)

    def restore(self, mark: int) -> None:
        """Undo every write made since `mark` and close the savepoint."""
        while len(self._journal) > mark:
            kind, key, old = self._journal.pop()
            if kind == "root":
                self._merkle_root = old
            elif old is _MISSING:
                self._claimed.pop(key, None)
            else:
                self._claimed[key] = old
        self._close_snapshot()

    def release(self, mark: int) -> None:
        """Close the savepoint keeping its writes."""
        self._close_snapshot()

    def _close_snapshot(self) -> None:
        self._open_snapshots -= 1
        if self._open_snapshots == 0:
            self._journal.clear()
