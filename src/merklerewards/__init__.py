"""
merklerewards - Cumulative merkle reward claims for stake-holding participants

Rewards reach participants through two sources:
- Cumulative merkle distributions: an offline job re-encodes every
  account's lifetime entitlement in a new tree; the owner rotates the root
  and accounts claim the difference to what they were already paid
- Live application rewards: accrued by an external application and
  withdrawn on demand

Redeployed engines stay compatible with earlier ones by reading claim
history from their predecessor instead of migrating it.

Usage:
    from merklerewards import RewardsAggregator, load_distribution

    aggregator = RewardsAggregator(token, application, old_aggregator,
                                   rewards_holder, owner)
    dist = load_distribution("MerkleDist.json")
    aggregator.set_merkle_root(dist.merkle_root, caller=owner)
    aggregator.batch_claim(dist.merkle_root, dist.batch())
"""

from .protocol import (
    RewardsAggregator,
    MerkleClaim,
    CumulativeClaimLedger,
    LegacyLedger,
    LiveRewardGateway,
    RewardApplication,
    MerkleRootUpdated,
    RewardsHolderUpdated,
    MerkleClaimed,
    OwnershipTransferred,
)
from .blockchain import (
    TokenLedger,
    InMemoryToken,
    hash_leaf,
    verify_proof,
)
from .distribution import Distribution, load_distribution
from .config import RewardsConfig, ZERO_ADDRESS, ZERO_ROOT
from .errors import (
    RewardsError,
    StaleRoot,
    InvalidProof,
    NothingToClaim,
    InvalidAddress,
    ConstructionIncompatible,
    Unauthorized,
    TransferFailed,
)

__version__ = "0.1.0"

__all__ = [
    # Claim engine
    "RewardsAggregator",
    "MerkleClaim",
    "CumulativeClaimLedger",
    "LegacyLedger",
    "LiveRewardGateway",
    "RewardApplication",
    # Notifications
    "MerkleRootUpdated",
    "RewardsHolderUpdated",
    "MerkleClaimed",
    "OwnershipTransferred",
    # Chain primitives
    "TokenLedger",
    "InMemoryToken",
    "hash_leaf",
    "verify_proof",
    # Distribution files
    "Distribution",
    "load_distribution",
    # Configuration
    "RewardsConfig",
    "ZERO_ADDRESS",
    "ZERO_ROOT",
    # Errors
    "RewardsError",
    "StaleRoot",
    "InvalidProof",
    "NothingToClaim",
    "InvalidAddress",
    "ConstructionIncompatible",
    "Unauthorized",
    "TransferFailed",
]
