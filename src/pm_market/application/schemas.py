"""Pydantic schemas for pm_market API."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from src.pm_common.amounts import amount_to_display
from src.pm_ledger.domain.models import Market

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class CreateMarketRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=2000)
    category: str | None = Field(None, max_length=64)
    end_date: datetime


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class MarketDetail(BaseModel):
    id: str
    title: str
    description: str | None
    category: str | None
    status: str
    yes_pool: Decimal
    no_pool: Decimal
    total_pool: Decimal
    total_pool_display: str
    end_date: str
    created_by: str
    outcome: str | None
    resolved_at: str | None
    created_at: str

    @classmethod
    def from_domain(cls, m: Market) -> "MarketDetail":
        return cls(
            id=m.id,
            title=m.title,
            description=m.description,
            category=m.category,
            status=m.status,
            yes_pool=m.yes_pool,
            no_pool=m.no_pool,
            total_pool=m.total_pool,
            total_pool_display=amount_to_display(m.total_pool),
            end_date=m.end_date.isoformat(),
            created_by=m.created_by,
            outcome=m.outcome,
            resolved_at=m.resolved_at.isoformat() if m.resolved_at else None,
            created_at=m.created_at.isoformat(),
        )


class CleanupResponse(BaseModel):
    kept: int
    deleted: int
    skipped: int
    deleted_ids: list[str]
    skipped_ids: list[str]
