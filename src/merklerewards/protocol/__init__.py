"""
merklerewards/protocol/

Claim accounting and the public claim surface.
"""

from .ledger import CumulativeClaimLedger, LegacyLedger
from .gateway import LiveRewardGateway, RewardApplication
from .events import (
    MerkleRootUpdated,
    RewardsHolderUpdated,
    MerkleClaimed,
    OwnershipTransferred,
)
from .aggregator import (
    RewardsAggregator,
    MerkleClaim,
    PlannedClaim,
)

__all__ = [
    "CumulativeClaimLedger",
    "LegacyLedger",
    "LiveRewardGateway",
    "RewardApplication",
    # Notifications
    "MerkleRootUpdated",
    "RewardsHolderUpdated",
    "MerkleClaimed",
    "OwnershipTransferred",
    # Claim surface
    "RewardsAggregator",
    "MerkleClaim",
    "PlannedClaim",
]
