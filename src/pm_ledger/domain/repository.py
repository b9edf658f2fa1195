# src/pm_ledger/domain/repository.py
"""Ledger store Protocol — dependency inversion for testability.

Every mutating method is a single atomic SQL statement on one row (or one
set-based DELETE for cleanup). Methods never commit: the application service
owns the transaction boundary and commits after each saga step.

Conditional mutations return None when their WHERE clause matched nothing
(insufficient balance, market no longer active, bet already settled...).
"""

from datetime import datetime
from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_ledger.domain.models import Bet, Market, User


class LedgerStoreProtocol(Protocol):
    # --- users ---

    async def get_user(self, db: AsyncSession, user_id: str) -> User | None: ...

    async def debit_balance(
        self, db: AsyncSession, user_id: str, amount: Decimal
    ) -> User | None: ...

    async def credit_balance(
        self, db: AsyncSession, user_id: str, amount: Decimal
    ) -> User | None: ...

    # --- markets ---

    async def get_market(self, db: AsyncSession, market_id: str) -> Market | None: ...

    async def create_market(
        self,
        db: AsyncSession,
        created_by: str,
        title: str,
        description: str | None,
        category: str | None,
        end_date: datetime,
    ) -> Market: ...

    async def add_to_pool(
        self, db: AsyncSession, market_id: str, side: str, amount: Decimal
    ) -> Market | None: ...

    async def remove_from_pool(
        self, db: AsyncSession, market_id: str, side: str, amount: Decimal
    ) -> Market | None: ...

    async def mark_resolved(
        self, db: AsyncSession, market_id: str, outcome: str, resolved_at: datetime
    ) -> Market | None: ...

    async def list_markets_by_creator(
        self, db: AsyncSession, user_id: str
    ) -> list[Market]: ...

    async def delete_markets(
        self, db: AsyncSession, market_ids: list[str]
    ) -> list[str]: ...

    # --- bets ---

    async def get_most_recent_bet(
        self, db: AsyncSession, user_id: str, market_id: str
    ) -> Bet | None: ...

    async def insert_bet(
        self,
        db: AsyncSession,
        user_id: str,
        market_id: str,
        side: str,
        amount: Decimal,
        created_at: datetime,
    ) -> Bet: ...

    async def list_bets_for_market(self, db: AsyncSession, market_id: str) -> list[Bet]: ...

    async def claim_settlement(
        self,
        db: AsyncSession,
        bet_id: str,
        payout: Decimal | None,
        settled_at: datetime,
    ) -> Bet | None: ...

    async def release_settlement(self, db: AsyncSession, bet_id: str) -> Bet | None: ...
