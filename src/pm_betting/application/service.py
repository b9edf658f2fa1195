"""BettingService — validates and applies one bet as a compensated three-step saga.

Validation (no side effects, fail fast, in this order):
  side -> amount -> user funds -> market open -> per-market rate limit

Mutation, each step a single atomic row write committed on its own:
  1. debit user balance
  2. add stake to the market pool      (undo: credit balance)
  3. insert the bet record             (undo: remove stake, then credit balance)

The store guarantees per-row atomicity only, so a caller can never observe a
debited balance that is not backed by a pool increment and a bet row once
this method returns: either all three steps stand or every applied step has
been compensated (or logged CRITICAL for manual reconciliation).
"""

import logging
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_betting.application.schemas import PlaceBetResponse
from src.pm_betting.domain.rules import (
    check_bet_rate,
    check_funds,
    check_market_open,
    parse_bet_amount,
    parse_side,
)
from src.pm_common.compensation import CompensationLog
from src.pm_common.datetime_utils import utc_now
from src.pm_common.errors import (
    InsufficientFundsError,
    MarketClosedError,
    MarketNotFoundError,
    StorageFailureError,
    UserNotFoundError,
)
from src.pm_common.limits import PlatformLimits
from src.pm_ledger.domain.repository import LedgerStoreProtocol
from src.pm_ledger.infrastructure.persistence import LedgerRepository

logger = logging.getLogger(__name__)


class BettingService:
    def __init__(
        self,
        repo: LedgerStoreProtocol | None = None,
        limits: PlatformLimits | None = None,
    ) -> None:
        self._repo: LedgerStoreProtocol = repo or LedgerRepository()
        self._limits = limits or PlatformLimits.from_settings()

    async def place_bet(
        self,
        db: AsyncSession,
        user_id: str,
        market_id: str,
        side: object,
        amount: object,
    ) -> PlaceBetResponse:
        bet_side = parse_side(side)
        stake = parse_bet_amount(amount, self._limits)

        try:
            user = await self._repo.get_user(db, user_id)
            if user is None:
                raise UserNotFoundError(user_id)
            check_funds(user, stake)

            now = utc_now()
            market = await self._repo.get_market(db, market_id)
            if market is None:
                raise MarketNotFoundError(market_id)
            check_market_open(market, now)

            last_bet = await self._repo.get_most_recent_bet(db, user_id, market_id)
            check_bet_rate(last_bet, now, self._limits)
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Bet validation read failed: user=%s market=%s", user_id, market_id)
            raise StorageFailureError("bet validation") from None

        saga = CompensationLog(
            db, f"place_bet user={user_id} market={market_id} side={bet_side.value} amount={stake}"
        )

        # Step 1: debit. Guarded by balance >= amount, so a concurrent spend
        # shows up as insufficient funds with nothing to undo.
        try:
            debited = await self._repo.debit_balance(db, user_id, stake)
            if debited is None:
                await db.rollback()
                current = await self._repo.get_user(db, user_id)
                raise InsufficientFundsError(
                    required=stake, available=current.balance if current else Decimal("0")
                )
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Balance debit failed: user=%s market=%s", user_id, market_id)
            raise StorageFailureError("balance debit") from None
        saga.push(
            f"refund {stake} to user {user_id}",
            lambda: self._repo.credit_balance(db, user_id, stake),
        )

        # Step 2: pool increment. Guarded by status = 'active'.
        try:
            updated_market = await self._repo.add_to_pool(db, market_id, bet_side.value, stake)
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Pool update failed: market=%s", market_id)
            await saga.unwind()
            raise StorageFailureError("market pool update") from None
        if updated_market is None:
            logger.warning("Market closed during bet placement: market=%s", market_id)
            await saga.unwind()
            raise MarketClosedError(market_id)
        saga.push(
            f"remove {stake} from {bet_side.value} pool of market {market_id}",
            lambda: self._repo.remove_from_pool(db, market_id, bet_side.value, stake),
        )

        # Step 3: bet record.
        try:
            bet = await self._repo.insert_bet(
                db, user_id, market_id, bet_side.value, stake, utc_now()
            )
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Bet insert failed: user=%s market=%s", user_id, market_id)
            await saga.unwind()
            raise StorageFailureError("bet creation") from None

        logger.info(
            "Bet placed: bet=%s user=%s market=%s side=%s amount=%s pool=%s",
            bet.id,
            user_id,
            market_id,
            bet_side.value,
            stake,
            updated_market.total_pool,
        )
        return PlaceBetResponse.from_result(bet, debited.balance, updated_market)
