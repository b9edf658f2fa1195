"""MarketService — market creation, detail read and per-creator cleanup.

The caller (router) passes the db session; the service owns commit/rollback
for the two writes (create, cleanup) and delegates SQL to the ledger store.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.amounts import ZERO
from src.pm_common.datetime_utils import ensure_utc, utc_now
from src.pm_common.enums import BetSide, MarketStatus
from src.pm_common.errors import InvalidInputError, MarketNotFoundError, StorageFailureError
from src.pm_common.limits import PlatformLimits
from src.pm_ledger.domain.models import Market
from src.pm_ledger.domain.repository import LedgerStoreProtocol
from src.pm_ledger.infrastructure.persistence import LedgerRepository
from src.pm_market.application.schemas import (
    CleanupResponse,
    CreateMarketRequest,
    MarketDetail,
)
from src.pm_settlement.domain.payout import plan_settlement

logger = logging.getLogger(__name__)


class MarketService:
    def __init__(
        self,
        repo: LedgerStoreProtocol | None = None,
        limits: PlatformLimits | None = None,
    ) -> None:
        self._repo: LedgerStoreProtocol = repo or LedgerRepository()
        self._limits = limits or PlatformLimits.from_settings()

    async def create_market(
        self, db: AsyncSession, caller_id: str, body: CreateMarketRequest
    ) -> MarketDetail:
        end_date = ensure_utc(body.end_date)
        if end_date <= utc_now():
            raise InvalidInputError("end_date must be in the future")

        try:
            market = await self._repo.create_market(
                db,
                created_by=caller_id,
                title=body.title.strip(),
                description=body.description,
                category=body.category,
                end_date=end_date,
            )
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Market creation failed: creator=%s", caller_id)
            raise StorageFailureError("market creation") from None

        logger.info("Market created: market=%s creator=%s ends=%s", market.id, caller_id, end_date)
        return MarketDetail.from_domain(market)

    async def get_market(self, db: AsyncSession, market_id: str) -> MarketDetail:
        market = await self._repo.get_market(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        return MarketDetail.from_domain(market)

    async def cleanup_markets(self, db: AsyncSession, caller_id: str) -> CleanupResponse:
        """Delete the caller's markets beyond the newest N, with their bets.

        Markets still owing bettors are skipped: active markets holding
        stakes, and resolved markets with credits left for reconciliation.
        """
        keep = self._limits.cleanup_keep_markets
        skipped: list[str] = []
        to_delete: list[str] = []
        try:
            markets = await self._repo.list_markets_by_creator(db, caller_id)
            for market in markets[keep:]:
                if await self._owes_bettors(db, market):
                    skipped.append(market.id)
                else:
                    to_delete.append(market.id)
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Market cleanup listing failed: creator=%s", caller_id)
            raise StorageFailureError("market cleanup") from None

        deleted: list[str] = []
        if to_delete:
            try:
                deleted = await self._repo.delete_markets(db, to_delete)
                await db.commit()
            except SQLAlchemyError:
                await db.rollback()
                logger.exception("Market cleanup failed: creator=%s", caller_id)
                raise StorageFailureError("market cleanup") from None
        # the delete re-checks the guard, so a market funded since listing survives
        skipped.extend(mid for mid in to_delete if mid not in deleted)

        logger.info(
            "Markets cleaned up: creator=%s kept=%d deleted=%d skipped=%d",
            caller_id,
            min(len(markets), keep),
            len(deleted),
            len(skipped),
        )
        return CleanupResponse(
            kept=min(len(markets), keep),
            deleted=len(deleted),
            skipped=len(skipped),
            deleted_ids=deleted,
            skipped_ids=skipped,
        )

    async def _owes_bettors(self, db: AsyncSession, market: Market) -> bool:
        if market.status == MarketStatus.ACTIVE:
            return market.total_pool > ZERO
        if market.outcome is None:
            return False
        bets = await self._repo.list_bets_for_market(db, market.id)
        plan = plan_settlement(bets, BetSide(market.outcome), market.yes_pool, market.no_pool)
        return any(entry.bet.settled_at is None for entry in plan.entries)
