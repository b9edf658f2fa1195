"""Pydantic schemas for pm_settlement API."""

from decimal import Decimal

from pydantic import BaseModel

from src.pm_common.amounts import amount_to_display


class ResolveMarketRequest(BaseModel):
    # Validated by the service ('yes' / 'no') so a bad value maps to InvalidInput.
    outcome: str


class SettlementResponse(BaseModel):
    market_id: str
    outcome: str
    refunded: bool
    winners_count: int
    total_distributed: Decimal
    total_distributed_display: str
    total_pool: Decimal
    failed_credits: int
    message: str

    @classmethod
    def build(
        cls,
        market_id: str,
        outcome: str,
        refunded: bool,
        winners_count: int,
        total_distributed: Decimal,
        total_pool: Decimal,
        failed_credits: int,
    ) -> "SettlementResponse":
        if refunded:
            message = "No winning bets, every stake refunded"
        else:
            message = f"Market resolved {outcome.upper()}, {winners_count} winning bet(s) paid"
        if failed_credits:
            message += f"; {failed_credits} credit(s) pending reconciliation"
        return cls(
            market_id=market_id,
            outcome=outcome,
            refunded=refunded,
            winners_count=winners_count,
            total_distributed=total_distributed,
            total_distributed_display=amount_to_display(total_distributed),
            total_pool=total_pool,
            failed_credits=failed_credits,
            message=message,
        )
