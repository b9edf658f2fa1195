"""Global enums — must match DB CHECK constraints exactly (lowercase values)."""

from enum import Enum


class MarketStatus(str, Enum):
    ACTIVE = "active"
    RESOLVED = "resolved"


class BetSide(str, Enum):
    """Side of a bet, also used as the resolution outcome."""
    YES = "yes"
    NO = "no"

    @property
    def opposite(self) -> "BetSide":
        return BetSide.NO if self is BetSide.YES else BetSide.YES
