"""Domain models for pm_ledger — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass
class User:
    id: str
    balance: Decimal   # SOL, never negative


@dataclass
class Market:
    id: str
    title: str
    description: str | None
    category: str | None
    status: str               # MarketStatus value
    yes_pool: Decimal
    no_pool: Decimal
    total_pool: Decimal       # always yes_pool + no_pool
    end_date: datetime
    created_by: str
    outcome: str | None       # BetSide value once resolved
    resolved_at: datetime | None
    created_at: datetime

    def pool_for(self, side: str) -> Decimal:
        return self.yes_pool if side == "yes" else self.no_pool


@dataclass
class Bet:
    id: str
    market_id: str
    user_id: str
    side: str                 # BetSide value
    amount: Decimal
    created_at: datetime
    payout: Decimal | None = None        # winners only, set once at resolution
    settled_at: datetime | None = None   # set when the credit (winnings or refund) is claimed
