"""
merklerewards/config.py

Configuration constants and runtime settings for merklerewards.
"""

import os
import logging
from dataclasses import dataclass


logger = logging.getLogger("merklerewards.config")


# ============================================================================
# ENCODING CONSTANTS
# ============================================================================

ADDRESS_LENGTH = 20         # bytes, packed address width in leaves
HASH_LENGTH = 32            # bytes, keccak256 digest / merkle root
AMOUNT_LENGTH = 32          # bytes, uint256 big-endian in leaves
MAX_AMOUNT = 2 ** 256 - 1   # uint256 upper bound

# Null sentinels
ZERO_ADDRESS = "0x" + "00" * ADDRESS_LENGTH
ZERO_ROOT = "0x" + "00" * HASH_LENGTH


# ============================================================================
# ERROR MESSAGES
# ============================================================================
#
# Kept identical to the messages the deployed distribution contracts revert
# with, so operators can match logs against on-chain failures.

MSG_STALE_ROOT = "Merkle root was updated"
MSG_INVALID_PROOF = "Invalid proof"
MSG_NOTHING_TO_CLAIM = "Nothing to claim"
MSG_TOKEN_NOT_SET = "Token contract must be set"
MSG_HOLDER_NOT_SET = "Rewards Holder must be an address"
MSG_APPLICATION_NOT_SET = "Application must be an address"
MSG_INCOMPATIBLE_LEGACY = "Incompatible old Merkle Distribution contract"
MSG_NOT_OWNER = "Ownable: caller is not the owner"
MSG_ZERO_OWNER = "Ownable: new owner is the zero address"
MSG_EXCEEDS_ALLOWANCE = "Transfer amount exceeds allowance"
MSG_EXCEEDS_BALANCE = "Transfer amount exceeds balance"


# ============================================================================
# RUNTIME SETTINGS
# ============================================================================

DEFAULT_LOG_LEVEL = "WARNING"
DEFAULT_LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"

ENV_LOG_LEVEL = "MERKLEREWARDS_LOG_LEVEL"
ENV_LOG_FORMAT = "MERKLEREWARDS_LOG_FORMAT"

_VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class RewardsConfig:
    """Runtime settings for the command line and embedding applications."""
    log_level: str = DEFAULT_LOG_LEVEL
    log_format: str = DEFAULT_LOG_FORMAT

    def __post_init__(self):
        level = (self.log_level or "").upper().strip()
        if level not in _VALID_LEVELS:
            logger.warning(f"Invalid log level {self.log_level!r}, using {DEFAULT_LOG_LEVEL}")
            level = DEFAULT_LOG_LEVEL
        self.log_level = level

    @classmethod
    def from_env(cls) -> "RewardsConfig":
        """
        Build settings from environment variables.

        Reads MERKLEREWARDS_LOG_LEVEL and MERKLEREWARDS_LOG_FORMAT; unset
        variables keep their defaults.
        """
        return cls(
            log_level=os.environ.get(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL),
            log_format=os.environ.get(ENV_LOG_FORMAT, DEFAULT_LOG_FORMAT),
        )

    def apply(self) -> None:
        """Configure root logging with these settings."""
        logging.basicConfig(
            level=getattr(logging, self.log_level),
            format=self.log_format,
        )

    def to_dict(self) -> dict:
        return {
            "log_level": self.log_level,
            "log_format": self.log_format,
        }
