"""SettlementService — one-shot market resolution and pari-mutuel distribution.

resolve_market:
  1. preconditions: exists -> not resolved -> caller is creator -> end date passed
  2. freeze: active -> resolved in one conditional UPDATE that returns the final
     pools; a concurrent resolver loses here with AlreadyResolved, and no bet
     can grow a pool afterwards
  3. plan payouts from the frozen pools and the bet list (pm_settlement.domain.payout)
  4. distribute: per bet, claim (settled_at, payout) then credit the balance

A credit that fails is logged, its claim released, and skipped; the market
stays resolved. reconcile_market re-drives exactly the unclaimed entries, so
a bettor is credited at most once however many times it runs.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_betting.domain.rules import parse_side
from src.pm_common.amounts import ZERO
from src.pm_common.datetime_utils import ensure_utc, utc_now
from src.pm_common.enums import BetSide, MarketStatus
from src.pm_common.errors import (
    MarketAlreadyResolvedError,
    MarketNotEndedError,
    MarketNotFoundError,
    MarketNotResolvedError,
    NotMarketCreatorError,
    StorageFailureError,
)
from src.pm_ledger.domain.models import Market
from src.pm_ledger.domain.repository import LedgerStoreProtocol
from src.pm_ledger.infrastructure.persistence import LedgerRepository
from src.pm_settlement.application.schemas import SettlementResponse
from src.pm_settlement.domain.payout import PayoutEntry, SettlementPlan, plan_settlement

logger = logging.getLogger(__name__)


@dataclass
class _DistributionReport:
    credited: int = 0
    total: Decimal = ZERO
    failed: int = 0


class SettlementService:
    def __init__(self, repo: LedgerStoreProtocol | None = None) -> None:
        self._repo: LedgerStoreProtocol = repo or LedgerRepository()

    async def resolve_market(
        self,
        db: AsyncSession,
        caller_id: str,
        market_id: str,
        outcome: object,
    ) -> SettlementResponse:
        result = parse_side(outcome)

        market = await self._load_market(db, market_id)
        if market.status == MarketStatus.RESOLVED:
            raise MarketAlreadyResolvedError(market_id)
        if market.created_by != caller_id:
            raise NotMarketCreatorError(market_id)
        now = utc_now()
        if ensure_utc(market.end_date) > now:
            raise MarketNotEndedError(market_id, ensure_utc(market.end_date))

        try:
            frozen = await self._repo.mark_resolved(db, market_id, result.value, now)
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Could not mark market resolved: market=%s", market_id)
            raise StorageFailureError("market resolution") from None
        if frozen is None:
            raise MarketAlreadyResolvedError(market_id)

        plan = await self._plan(db, frozen, result)
        report = await self._distribute(db, plan.entries, now)
        logger.info(
            "Market resolved: market=%s outcome=%s refund=%s credited=%d distributed=%s "
            "pool=%s failed=%d",
            market_id,
            result.value,
            plan.is_refund,
            report.credited,
            report.total,
            plan.total_pool,
            report.failed,
        )
        return self._response(market_id, plan, report)

    async def reconcile_market(
        self, db: AsyncSession, caller_id: str, market_id: str
    ) -> SettlementResponse:
        """Credit every entitled bet of a resolved market that is not settled yet."""
        market = await self._load_market(db, market_id)
        if market.created_by != caller_id:
            raise NotMarketCreatorError(market_id)
        if market.status != MarketStatus.RESOLVED or market.outcome is None:
            raise MarketNotResolvedError(market_id)

        plan = await self._plan(db, market, BetSide(market.outcome))
        pending = [e for e in plan.entries if e.bet.settled_at is None]
        report = await self._distribute(db, pending, utc_now())
        logger.info(
            "Market reconciled: market=%s pending=%d credited=%d failed=%d",
            market_id,
            len(pending),
            report.credited,
            report.failed,
        )
        return self._response(market_id, plan, report)

    # ------------------------------------------------------------------

    async def _load_market(self, db: AsyncSession, market_id: str) -> Market:
        market = await self._repo.get_market(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        return market

    async def _plan(self, db: AsyncSession, market: Market, outcome: BetSide) -> SettlementPlan:
        try:
            bets = await self._repo.list_bets_for_market(db, market.id)
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Could not load bets for settlement: market=%s", market.id)
            raise StorageFailureError("loading bets for settlement") from None
        return plan_settlement(bets, outcome, market.yes_pool, market.no_pool)

    async def _distribute(
        self, db: AsyncSession, entries: list[PayoutEntry], now: datetime
    ) -> _DistributionReport:
        report = _DistributionReport()
        for entry in entries:
            bet = entry.bet
            try:
                claimed = await self._repo.claim_settlement(db, bet.id, entry.payout, now)
                await db.commit()
            except SQLAlchemyError:
                await db.rollback()
                logger.error("Claim failed, bet skipped: bet=%s", bet.id, exc_info=True)
                report.failed += 1
                continue
            if claimed is None:
                # settled by an earlier run
                continue

            if await self._credit(db, entry):
                report.credited += 1
                report.total += entry.credit
                continue

            report.failed += 1
            await self._release(db, bet.id)
        return report

    async def _credit(self, db: AsyncSession, entry: PayoutEntry) -> bool:
        bet = entry.bet
        try:
            credited = await self._repo.credit_balance(db, bet.user_id, entry.credit)
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            logger.error(
                "Credit failed, bet skipped: bet=%s user=%s amount=%s",
                bet.id,
                bet.user_id,
                entry.credit,
                exc_info=True,
            )
            return False
        if credited is None:
            logger.error(
                "Credit matched no user, bet skipped: bet=%s user=%s amount=%s",
                bet.id,
                bet.user_id,
                entry.credit,
            )
            return False
        return True

    async def _release(self, db: AsyncSession, bet_id: str) -> None:
        try:
            released = await self._repo.release_settlement(db, bet_id)
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            released = None
        if released is None:
            logger.critical(
                "Could not release settlement claim, manual reconciliation required: bet=%s",
                bet_id,
            )

    @staticmethod
    def _response(
        market_id: str, plan: SettlementPlan, report: _DistributionReport
    ) -> SettlementResponse:
        return SettlementResponse.build(
            market_id=market_id,
            outcome=plan.outcome.value,
            refunded=plan.is_refund,
            winners_count=0 if plan.is_refund else report.credited,
            total_distributed=report.total,
            total_pool=plan.total_pool,
            failed_credits=report.failed,
        )
