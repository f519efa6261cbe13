"""
merklerewards/protocol/aggregator.py

Rewards aggregator: the public claim surface.

Combines two reward sources behind one call:
- Merkle rewards: cumulative entitlements committed to by a root that the
  owner rotates after each offline distribution run
- Live (application) rewards: accrued by an external application and
  withdrawn on demand

Every operation is all-or-nothing. Claims are planned first (root, proof
and delta are checked without touching any state), then executed inside a
transaction scope that opens a savepoint on the engine and every journaled
collaborator and restores it if anything raises, at any nesting depth
(a collaborator may call back into the engine). Notifications produced
inside a scope are only delivered once the outermost scope commits.

Usage:
    from merklerewards.protocol.aggregator import RewardsAggregator

    aggregator = RewardsAggregator(token, application, old_aggregator,
                                   rewards_holder, owner)
    aggregator.set_merkle_root(dist.merkle_root, caller=owner)
    aggregator.claim_merkle(account, beneficiary, amount, dist.merkle_root, proof)
"""

import logging
import secrets
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

from ..blockchain.merkle import (
    HexLike,
    hash_leaf,
    is_zero_address,
    normalize_address,
    normalize_hash,
    to_hex,
    verify_proof,
)
from ..config import (
    ADDRESS_LENGTH,
    MSG_APPLICATION_NOT_SET,
    MSG_HOLDER_NOT_SET,
    MSG_INCOMPATIBLE_LEGACY,
    MSG_TOKEN_NOT_SET,
    MSG_ZERO_OWNER,
    ZERO_ADDRESS,
    ZERO_ROOT,
)
from ..errors import (
    ConstructionIncompatible,
    InvalidAddress,
    InvalidProof,
    NothingToClaim,
    StaleRoot,
    TransferFailed,
    Unauthorized,
)
from .events import (
    MerkleClaimed,
    MerkleRootUpdated,
    OwnershipTransferred,
    RewardsHolderUpdated,
)
from .gateway import LiveRewardGateway
from .ledger import CumulativeClaimLedger, LegacyLedger

logger = logging.getLogger("merklerewards.protocol.aggregator")


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass
class MerkleClaim:
    """One entry of a batch claim, as read from a distribution file."""
    account: str
    beneficiary: str
    amount: int
    proof: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "account": self.account,
            "beneficiary": self.beneficiary,
            "amount": self.amount,
            "proof": list(self.proof),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MerkleClaim":
        return cls(
            account=data["account"],
            beneficiary=data["beneficiary"],
            amount=int(data["amount"]),
            proof=list(data.get("proof", [])),
        )


@dataclass
class PlannedClaim:
    """A validated merkle claim waiting to be executed."""
    account: str
    beneficiary: str
    cumulative_amount: int
    amount: int
    merkle_root: str


def _is_journaled(obj: Any) -> bool:
    return callable(getattr(obj, "snapshot", None)) and callable(getattr(obj, "restore", None))


def _is_empty_root(root: Optional[HexLike]) -> bool:
    if root is None or len(root) == 0:
        return True
    try:
        return normalize_hash(root) == ZERO_ROOT
    except ValueError:
        return False


# ============================================================================
# REWARDS AGGREGATOR
# ============================================================================

class RewardsAggregator:
    """
    Claim engine for cumulative merkle rewards and live application rewards.

    Holds the current merkle root, per-account cumulative claim records
    (falling through to a predecessor engine for accounts without one),
    the rewards holder tokens are drawn from, and a single owner that
    gates administration.
    """

    def __init__(
        self,
        token: Any,
        application: Any,
        legacy: Optional[Any],
        rewards_holder: HexLike,
        owner: HexLike,
        address: Optional[HexLike] = None,
    ):
        """
        Initialize RewardsAggregator.

        Args:
            token: Token ledger with total_supply/balance_of/transfer_from
            application: Live reward application (available/withdraw)
            legacy: Predecessor engine, or None for the first deployment
            rewards_holder: Account the payouts are drawn from
            owner: Account allowed to rotate the root and the holder
            address: Identity used as spender on the token (random if None)

        Raises:
            InvalidAddress: missing token/application or zero holder/owner
            ConstructionIncompatible: token has no supply, or the
                predecessor pays out a different token
        """
        if token is None:
            raise InvalidAddress(MSG_TOKEN_NOT_SET)
        if token.total_supply() <= 0:
            raise ConstructionIncompatible(MSG_TOKEN_NOT_SET)
        if rewards_holder is None or is_zero_address(rewards_holder):
            raise InvalidAddress(MSG_HOLDER_NOT_SET)
        if application is None:
            raise InvalidAddress(MSG_APPLICATION_NOT_SET)
        if legacy is not None and legacy.token_reference() is not token:
            raise ConstructionIncompatible(MSG_INCOMPATIBLE_LEGACY)
        if owner is None or is_zero_address(owner):
            raise InvalidAddress(MSG_ZERO_OWNER)

        self._token = token
        self._gateway = LiveRewardGateway([application])
        self._legacy = legacy
        self._ledger = CumulativeClaimLedger(
            LegacyLedger(legacy) if legacy is not None else None
        )
        self._rewards_holder = normalize_address(rewards_holder)
        self._owner = normalize_address(owner)
        if address is None:
            self.address = to_hex(secrets.token_bytes(ADDRESS_LENGTH))
        else:
            self.address = normalize_address(address)

        self.events: List[Any] = []
        self._listeners: List[Callable[[Any], None]] = []
        self._pending_events: List[Any] = []
        self._scope_depth = 0

    # =========== ACCESSORS ===========

    @property
    def token(self) -> Any:
        return self._token

    @property
    def application(self) -> Any:
        return self._gateway.applications[0]

    @property
    def gateway(self) -> LiveRewardGateway:
        return self._gateway

    @property
    def old_cumulative_merkle_drop(self) -> Optional[Any]:
        return self._legacy

    @property
    def rewards_holder(self) -> str:
        return self._rewards_holder

    @property
    def merkle_root(self) -> str:
        return self._ledger.merkle_root

    @property
    def owner(self) -> str:
        return self._owner

    def token_reference(self) -> Any:
        """Token this engine pays out; checked by successors at construction."""
        return self._token

    def cumulative_merkle_claimed(self, account: HexLike) -> int:
        """Cumulative amount already paid to `account` across the chain."""
        return self._ledger.effective_claimed(account)

    # Name used by successors walking the legacy chain
    effective_claimed = cumulative_merkle_claimed

    def verify_merkle_proof(
        self,
        proof: Sequence[HexLike],
        root: HexLike,
        leaf: HexLike,
    ) -> bool:
        return verify_proof(proof, root, leaf)

    # =========== EVENTS ===========

    def on_event(self, callback: Callable[[Any], None]) -> None:
        """Register callback for committed notifications."""
        self._listeners.append(callback)

    def _emit(self, event: Any) -> None:
        if self._scope_depth > 0:
            self._pending_events.append(event)
        else:
            self._deliver(event)

    def _deliver(self, event: Any) -> None:
        self.events.append(event)
        for callback in self._listeners:
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Event listener error for {type(event).__name__}: {e}")

    # =========== ADMINISTRATION ===========

    def _only_owner(self, caller: Optional[HexLike]) -> None:
        if caller is None or self._owner == ZERO_ADDRESS:
            raise Unauthorized()
        try:
            key = normalize_address(caller)
        except InvalidAddress:
            raise Unauthorized()
        if key != self._owner:
            logger.warning(f"Rejected administration call from {key}")
            raise Unauthorized()

    def set_merkle_root(self, new_root: HexLike, *, caller: Optional[HexLike]) -> None:
        """
        Rotate the active distribution root.

        Claim records are untouched; claims citing the previous root fail
        with StaleRoot from now on.

        Raises:
            Unauthorized: caller is not the owner
            ValueError: new_root is not a 32-byte hash
        """
        self._only_owner(caller)
        old_root, root = self._ledger.rotate_root(new_root)
        logger.info(f"Merkle root updated: {old_root} -> {root}")
        self._emit(MerkleRootUpdated(old_root=old_root, new_root=root))

    def set_rewards_holder(self, new_holder: HexLike, *, caller: Optional[HexLike]) -> None:
        """
        Draw future payouts from `new_holder`.

        Raises:
            Unauthorized: caller is not the owner
            InvalidAddress: new_holder is the zero address
        """
        self._only_owner(caller)
        if new_holder is None or is_zero_address(new_holder):
            raise InvalidAddress(MSG_HOLDER_NOT_SET)
        old_holder = self._rewards_holder
        self._rewards_holder = normalize_address(new_holder)
        logger.info(f"Rewards holder updated: {old_holder} -> {self._rewards_holder}")
        self._emit(RewardsHolderUpdated(old_holder=old_holder, new_holder=self._rewards_holder))

    def transfer_ownership(self, new_owner: HexLike, *, caller: Optional[HexLike]) -> None:
        self._only_owner(caller)
        if new_owner is None or is_zero_address(new_owner):
            raise InvalidAddress(MSG_ZERO_OWNER)
        previous = self._owner
        self._owner = normalize_address(new_owner)
        logger.info(f"Ownership transferred: {previous} -> {self._owner}")
        self._emit(OwnershipTransferred(previous_owner=previous, new_owner=self._owner))

    def renounce_ownership(self, *, caller: Optional[HexLike]) -> None:
        """Leave the engine without an owner; administration is then closed."""
        self._only_owner(caller)
        previous = self._owner
        self._owner = ZERO_ADDRESS
        logger.info(f"Ownership renounced by {previous}")
        self._emit(OwnershipTransferred(previous_owner=previous, new_owner=ZERO_ADDRESS))

    # =========== TRANSACTIONS ===========

    def snapshot(self) -> tuple:
        return (self._ledger.snapshot(), self._rewards_holder, self._owner)

    def restore(self, state: tuple) -> None:
        ledger_mark, holder, owner = state
        self._ledger.restore(ledger_mark)
        self._rewards_holder = holder
        self._owner = owner

    def release(self, state: tuple) -> None:
        self._ledger.release(state[0])

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        """
        All-or-nothing scope.

        Every scope, nested or not, is a savepoint over this engine, the
        token and the live applications (whichever offer snapshot/restore).
        On any exception the scope's own savepoints are restored and the
        notifications it buffered are dropped; an enclosing scope may catch
        the error and continue. Notifications are delivered only when the
        outermost scope commits.
        """
        participants = [self]
        for collaborator in (self._token,) + self._gateway.applications:
            if _is_journaled(collaborator):
                participants.append(collaborator)
        snapshots = [(p, p.snapshot()) for p in participants]

        outermost = self._scope_depth == 0
        if outermost:
            self._pending_events = []
        events_mark = len(self._pending_events)
        self._scope_depth += 1
        try:
            yield
        except Exception as e:
            for participant, state in reversed(snapshots):
                participant.restore(state)
            del self._pending_events[events_mark:]
            logger.error(f"Rolled back claim operation: {type(e).__name__}: {e}")
            raise
        else:
            for participant, state in snapshots:
                release = getattr(participant, "release", None)
                if callable(release):
                    release(state)
        finally:
            self._scope_depth -= 1

        if outermost:
            committed, self._pending_events = self._pending_events, []
            for event in committed:
                self._deliver(event)

    # =========== MERKLE CLAIMS ===========

    def _plan_merkle(
        self,
        account: HexLike,
        beneficiary: HexLike,
        cumulative_amount: int,
        expected_root: HexLike,
        proof: Optional[Sequence[HexLike]],
        staged: Optional[Dict[str, int]] = None,
    ) -> PlannedClaim:
        """
        Validate a merkle claim without changing any state.

        Args:
            staged: Cumulative amounts recorded by earlier entries of the
                same batch; updated in place with this claim

        Raises:
            StaleRoot, InvalidProof, NothingToClaim
        """
        try:
            root = normalize_hash(expected_root)
        except (ValueError, TypeError):
            raise StaleRoot()
        if root != self._ledger.merkle_root:
            logger.warning(f"Stale root {root} cited for {account}")
            raise StaleRoot()

        try:
            leaf = hash_leaf(account, beneficiary, cumulative_amount)
            account_key = normalize_address(account)
            beneficiary_key = normalize_address(beneficiary)
        except (ValueError, InvalidAddress):
            raise InvalidProof()
        if not verify_proof(list(proof or []), root, leaf):
            logger.warning(f"Invalid proof for {account_key} ({cumulative_amount})")
            raise InvalidProof()

        if staged is not None and account_key in staged:
            preclaimed = staged[account_key]
        else:
            preclaimed = self._ledger.effective_claimed(account_key)
        if cumulative_amount <= preclaimed:
            logger.warning(f"Nothing to claim for {account_key}: {cumulative_amount} <= {preclaimed}")
            raise NothingToClaim()

        if staged is not None:
            staged[account_key] = cumulative_amount
        return PlannedClaim(
            account=account_key,
            beneficiary=beneficiary_key,
            cumulative_amount=cumulative_amount,
            amount=cumulative_amount - preclaimed,
            merkle_root=root,
        )

    def _execute_merkle(self, plan: PlannedClaim) -> int:
        if plan.merkle_root != self._ledger.merkle_root:
            raise StaleRoot()
        self._ledger.record_claim(plan.account, plan.cumulative_amount, plan.amount)
        amount = plan.amount
        ok = self._token.transfer_from(
            self._rewards_holder, plan.beneficiary, amount, self.address
        )
        if not ok:
            raise TransferFailed()
        logger.info(f"Merkle claim: {amount} to {plan.beneficiary} for {plan.account}")
        self._emit(MerkleClaimed(
            account=plan.account,
            amount=amount,
            beneficiary=plan.beneficiary,
            merkle_root=plan.merkle_root,
        ))
        return amount

    def claim_merkle(
        self,
        account: HexLike,
        beneficiary: HexLike,
        cumulative_amount: int,
        expected_root: HexLike,
        proof: Sequence[HexLike],
    ) -> int:
        """
        Pay `account`'s newly owed merkle rewards to `beneficiary`.

        Args:
            account: Account whose entitlement is claimed
            beneficiary: Recipient committed to in the leaf
            cumulative_amount: Lifetime entitlement in the current tree
            expected_root: Root the caller's proof was built against
            proof: Sibling hashes from leaf to root

        Returns:
            Tokens transferred (cumulative_amount minus already claimed)

        Raises:
            StaleRoot: expected_root is not the active root
            InvalidProof: proof does not verify
            NothingToClaim: cumulative_amount already claimed
            TransferFailed: token ledger refused the payout
        """
        plan = self._plan_merkle(account, beneficiary, cumulative_amount, expected_root, proof)
        with self._transaction():
            return self._execute_merkle(plan)

    def _plan_batch(self, expected_root: HexLike, claims: Sequence[MerkleClaim]) -> List[PlannedClaim]:
        staged: Dict[str, int] = {}
        return [
            self._plan_merkle(c.account, c.beneficiary, c.amount, expected_root, c.proof, staged)
            for c in claims
        ]

    def batch_claim_merkle(self, expected_root: HexLike, claims: Sequence[MerkleClaim]) -> int:
        """
        Claim several merkle entitlements against one root, in order.

        Later entries for the same account see earlier ones. If any entry
        fails nothing is applied.

        Returns:
            Total tokens transferred
        """
        plans = self._plan_batch(expected_root, claims)
        with self._transaction():
            return sum(self._execute_merkle(plan) for plan in plans)

    # =========== LIVE (APPLICATION) CLAIMS ===========

    def can_claim_apps(self, account: HexLike) -> bool:
        return self._gateway.can_claim(account)

    def claim_apps(self, account: HexLike) -> None:
        """
        Trigger the application withdrawal for `account`.

        Availability is not checked here; the application decides amounts
        and does nothing when none is available.
        """
        with self._transaction():
            self._gateway.withdraw(account)

    def batch_claim_apps(self, accounts: Sequence[HexLike]) -> None:
        with self._transaction():
            for account in accounts:
                self._gateway.withdraw(account)

    def claim_apps_only(self, account: HexLike) -> None:
        self.claim_apps(account)

    def batch_claim_apps_only(self, accounts: Sequence[HexLike]) -> None:
        self.batch_claim_apps(accounts)

    # =========== COMBINED CLAIMS ===========

    @staticmethod
    def requests_merkle(
        cumulative_amount: int,
        expected_root: Optional[HexLike],
        proof: Optional[Sequence[HexLike]],
    ) -> bool:
        """
        Whether a combined claim carries a merkle part.

        A zero amount, an empty/zero root or an empty proof means the
        account has no merkle entitlement this round.
        """
        return bool(cumulative_amount) and not _is_empty_root(expected_root) and bool(proof)

    def claim(
        self,
        account: HexLike,
        beneficiary: HexLike,
        cumulative_amount: int = 0,
        expected_root: Optional[HexLike] = None,
        proof: Optional[Sequence[HexLike]] = None,
    ) -> int:
        """
        Claim merkle rewards (when requested) and live rewards (when available).

        Returns:
            Merkle tokens transferred (0 when the merkle part was skipped)
        """
        plan = None
        if self.requests_merkle(cumulative_amount, expected_root, proof):
            plan = self._plan_merkle(account, beneficiary, cumulative_amount, expected_root, proof)
        else:
            logger.debug(f"No merkle part in claim for {account}")

        with self._transaction():
            amount = self._execute_merkle(plan) if plan is not None else 0
            if self.can_claim_apps(account):
                self._gateway.withdraw(account)
        return amount

    def batch_claim(self, expected_root: Optional[HexLike], claims: Sequence[MerkleClaim]) -> int:
        """
        Combined claim for several accounts, in order, all-or-nothing.

        Returns:
            Total merkle tokens transferred
        """
        staged: Dict[str, int] = {}
        plans: List[Optional[PlannedClaim]] = []
        for c in claims:
            if self.requests_merkle(c.amount, expected_root, c.proof):
                plans.append(self._plan_merkle(
                    c.account, c.beneficiary, c.amount, expected_root, c.proof, staged
                ))
            else:
                plans.append(None)

        total = 0
        with self._transaction():
            for c, plan in zip(claims, plans):
                if plan is not None:
                    total += self._execute_merkle(plan)
                if self.can_claim_apps(c.account):
                    self._gateway.withdraw(c.account)
        return total
