"""
merklerewards/protocol/gateway.py

Live reward gateway.

Live rewards are accrued and paid entirely by external applications; the
claim engine can only ask how much is available and trigger a withdrawal.
The gateway wraps an ordered list of such applications. The engine binds
exactly one, but the list keeps the shape open for more: applications are
always visited in listed order and their amounts are never combined.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Sequence, Tuple

from ..blockchain.merkle import HexLike

logger = logging.getLogger("merklerewards.protocol.gateway")


class RewardApplication(ABC):
    """Capability exposed by an external reward-producing application."""

    @abstractmethod
    def available_rewards(self, account: HexLike) -> int:
        pass

    @abstractmethod
    def withdraw_rewards(self, account: HexLike) -> None:
        """Pay out whatever is available; a no-op when nothing is."""
        pass


class LiveRewardGateway:
    """Pass-through to the bound live reward applications."""

    def __init__(self, applications: Sequence[Any]):
        if not applications:
            raise ValueError("At least one application is required")
        self._applications: Tuple[Any, ...] = tuple(applications)

    @property
    def applications(self) -> Tuple[Any, ...]:
        return self._applications

    def available(self, account: HexLike) -> Tuple[int, ...]:
        """Availability reported by each application, in listed order."""
        return tuple(app.available_rewards(account) for app in self._applications)

    def can_claim(self, account: HexLike) -> bool:
        """True if any application reports non-zero availability."""
        return any(amount > 0 for amount in self.available(account))

    def withdraw(self, account: HexLike) -> None:
        """Trigger withdrawal on every application, in listed order."""
        for app in self._applications:
            app.withdraw_rewards(account)
        logger.debug(f"Triggered live withdrawal for {account}")
