"""
merklerewards/protocol/events.py

Notifications emitted by the claim engine.
"""

from dataclasses import dataclass, asdict


@dataclass(frozen=True)
class MerkleRootUpdated:
    """The active distribution root changed."""
    old_root: str
    new_root: str

    def to_dict(self) -> dict:
        return {"event": "MerkleRootUpdated", **asdict(self)}


@dataclass(frozen=True)
class RewardsHolderUpdated:
    """Tokens are now drawn from a different holder."""
    old_holder: str
    new_holder: str

    def to_dict(self) -> dict:
        return {"event": "RewardsHolderUpdated", **asdict(self)}


@dataclass(frozen=True)
class MerkleClaimed:
    """A merkle claim paid `amount` (the delta, not the cumulative total)."""
    account: str
    amount: int
    beneficiary: str
    merkle_root: str

    def to_dict(self) -> dict:
        return {"event": "MerkleClaimed", **asdict(self)}


@dataclass(frozen=True)
class OwnershipTransferred:
    previous_owner: str
    new_owner: str

    def to_dict(self) -> dict:
        return {"event": "OwnershipTransferred", **asdict(self)}
