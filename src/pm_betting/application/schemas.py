"""Pydantic schemas for pm_betting API."""

from decimal import Decimal

from pydantic import BaseModel, Field

from src.pm_common.amounts import amount_to_display
from src.pm_ledger.domain.models import Bet, Market

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class PlaceBetRequest(BaseModel):
    """side and amount are validated by the service so that a bad value maps to
    InvalidInput / AmountOutOfRange instead of a generic 422."""

    market_id: str = Field(..., min_length=1, max_length=64)
    side: str
    amount: str | int | float


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class PoolsOut(BaseModel):
    yes_pool: Decimal
    no_pool: Decimal
    total_pool: Decimal

    @classmethod
    def from_market(cls, market: Market) -> "PoolsOut":
        return cls(
            yes_pool=market.yes_pool,
            no_pool=market.no_pool,
            total_pool=market.total_pool,
        )


class PlaceBetResponse(BaseModel):
    bet_id: str
    side: str
    amount: Decimal
    new_balance: Decimal
    new_balance_display: str
    market: PoolsOut
    message: str

    @classmethod
    def from_result(cls, bet: Bet, new_balance: Decimal, market: Market) -> "PlaceBetResponse":
        return cls(
            bet_id=bet.id,
            side=bet.side,
            amount=bet.amount,
            new_balance=new_balance,
            new_balance_display=amount_to_display(new_balance),
            market=PoolsOut.from_market(market),
            message=f"Bet of {amount_to_display(bet.amount)} placed on {bet.side.upper()}",
        )
