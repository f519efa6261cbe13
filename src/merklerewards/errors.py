"""
merklerewards/errors.py

Errors raised by the claim engine.

Every rejected operation surfaces one of these; none are retried
internally.
"""

from .config import (
    MSG_STALE_ROOT,
    MSG_INVALID_PROOF,
    MSG_NOTHING_TO_CLAIM,
    MSG_NOT_OWNER,
)


class RewardsError(Exception):
    """Base class for all claim engine errors."""
    default_message = ""

    def __init__(self, message: str = ""):
        super().__init__(message or self.default_message)


class StaleRoot(RewardsError):
    """Claim cites a root that is not the currently active one."""
    default_message = MSG_STALE_ROOT


class InvalidProof(RewardsError):
    """Merkle verification failed for the submitted claim."""
    default_message = MSG_INVALID_PROOF


class NothingToClaim(RewardsError):
    """Cumulative amount does not exceed what was already claimed."""
    default_message = MSG_NOTHING_TO_CLAIM


class InvalidAddress(RewardsError):
    """A required address is missing, malformed or the zero address."""
    default_message = "Invalid address"


class ConstructionIncompatible(RewardsError):
    """Collaborators handed to the constructor cannot be used together."""
    default_message = "Incompatible construction arguments"


class Unauthorized(RewardsError):
    """Caller is not the owner."""
    default_message = MSG_NOT_OWNER


class TransferFailed(RewardsError):
    """Token ledger refused the transfer."""
    default_message = "Token transfer failed"
