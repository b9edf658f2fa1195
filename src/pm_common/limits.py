"""Platform limits gathered from settings into one immutable structure.

Services take a PlatformLimits in their constructor so tests can tighten or
relax limits without touching the environment.
"""

from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal

from config.settings import settings


@dataclass(frozen=True)
class PlatformLimits:
    min_bet: Decimal = Decimal("0.01")
    max_bet: Decimal = Decimal("10000")
    bet_rate_limit_window: timedelta = timedelta(seconds=2)
    cleanup_keep_markets: int = 10

    @classmethod
    def from_settings(cls) -> "PlatformLimits":
        return cls(
            min_bet=settings.BET_MIN_AMOUNT,
            max_bet=settings.BET_MAX_AMOUNT,
            bet_rate_limit_window=timedelta(seconds=settings.BET_RATE_LIMIT_SECONDS),
            cleanup_keep_markets=settings.CLEANUP_KEEP_MARKETS,
        )
