"""Unit-test fixtures: an in-memory ledger store and a mock session.

InMemoryLedgerStore implements LedgerStoreProtocol with the same guards as
the SQL in LedgerRepository, so service tests can check balances and pools
end to end. Storage failures are injected per method with ``fail()``.
"""

import uuid
from dataclasses import replace
from datetime import datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from src.pm_common.amounts import ZERO
from src.pm_common.datetime_utils import utc_now
from src.pm_common.limits import PlatformLimits
from src.pm_ledger.domain.models import Bet, Market, User


class InMemoryLedgerStore:
    def __init__(self) -> None:
        self.users: dict[str, User] = {}
        self.markets: dict[str, Market] = {}
        self.bets: dict[str, Bet] = {}
        self._failures: dict[str, int] = {}
        self.calls: list[str] = []

    # --- test helpers ---

    def add_user(self, user_id: str, balance: str | Decimal) -> User:
        self.users[user_id] = User(id=user_id, balance=Decimal(balance))
        return self.users[user_id]

    def add_market(
        self,
        market_id: str = "mkt-1",
        created_by: str = "creator",
        end_date: datetime | None = None,
        yes_pool: str = "0",
        no_pool: str = "0",
        status: str = "active",
        created_at: datetime | None = None,
    ) -> Market:
        yes, no = Decimal(yes_pool), Decimal(no_pool)
        self.markets[market_id] = Market(
            id=market_id,
            title=f"Market {market_id}",
            description=None,
            category=None,
            status=status,
            yes_pool=yes,
            no_pool=no,
            total_pool=yes + no,
            end_date=end_date or utc_now() + timedelta(hours=1),
            created_by=created_by,
            outcome=None,
            resolved_at=None,
            created_at=created_at or utc_now(),
        )
        return self.markets[market_id]

    def add_bet(
        self,
        user_id: str,
        market_id: str,
        side: str,
        amount: str,
        created_at: datetime | None = None,
    ) -> Bet:
        bet = Bet(
            id=uuid.uuid4().hex,
            market_id=market_id,
            user_id=user_id,
            side=side,
            amount=Decimal(amount),
            created_at=created_at or utc_now(),
        )
        self.bets[bet.id] = bet
        return bet

    def fail(self, method: str, times: int = 1) -> None:
        """Make the next ``times`` calls to ``method`` raise a storage error."""
        self._failures[method] = times

    def _maybe_fail(self, method: str) -> None:
        self.calls.append(method)
        remaining = self._failures.get(method, 0)
        if remaining:
            self._failures[method] = remaining - 1
            raise OperationalError("injected", {}, Exception("connection lost"))

    # --- users ---

    async def get_user(self, db, user_id):
        self._maybe_fail("get_user")
        user = self.users.get(user_id)
        return replace(user) if user else None

    async def debit_balance(self, db, user_id, amount):
        self._maybe_fail("debit_balance")
        user = self.users.get(user_id)
        if user is None or user.balance < amount:
            return None
        user.balance -= amount
        return replace(user)

    async def credit_balance(self, db, user_id, amount):
        self._maybe_fail("credit_balance")
        user = self.users.get(user_id)
        if user is None:
            return None
        user.balance += amount
        return replace(user)

    # --- markets ---

    async def get_market(self, db, market_id):
        self._maybe_fail("get_market")
        market = self.markets.get(market_id)
        return replace(market) if market else None

    async def create_market(self, db, created_by, title, description, category, end_date):
        self._maybe_fail("create_market")
        market = self.add_market(uuid.uuid4().hex, created_by=created_by, end_date=end_date)
        market.title = title
        market.description = description
        market.category = category
        return replace(market)

    def _shift_pool(self, market: Market, side: str, delta: Decimal) -> None:
        if side == "yes":
            market.yes_pool += delta
        else:
            market.no_pool += delta
        market.total_pool += delta

    async def add_to_pool(self, db, market_id, side, amount):
        self._maybe_fail("add_to_pool")
        market = self.markets.get(market_id)
        if market is None or market.status != "active":
            return None
        self._shift_pool(market, side, amount)
        return replace(market)

    async def remove_from_pool(self, db, market_id, side, amount):
        self._maybe_fail("remove_from_pool")
        market = self.markets.get(market_id)
        if market is None or market.status != "active" or market.pool_for(side) < amount:
            return None
        self._shift_pool(market, side, -amount)
        return replace(market)

    async def mark_resolved(self, db, market_id, outcome, resolved_at):
        self._maybe_fail("mark_resolved")
        market = self.markets.get(market_id)
        if market is None or market.status != "active":
            return None
        market.status = "resolved"
        market.outcome = outcome
        market.resolved_at = resolved_at
        return replace(market)

    async def list_markets_by_creator(self, db, user_id):
        self._maybe_fail("list_markets_by_creator")
        mine = [replace(m) for m in self.markets.values() if m.created_by == user_id]
        return sorted(mine, key=lambda m: (m.created_at, m.id), reverse=True)

    async def delete_markets(self, db, market_ids):
        self._maybe_fail("delete_markets")
        deletable = [
            mid for mid in market_ids if mid in self.markets and self._deletable(self.markets[mid])
        ]
        self.bets = {k: b for k, b in self.bets.items() if b.market_id not in deletable}
        for mid in deletable:
            del self.markets[mid]
        return deletable

    def _deletable(self, market: Market) -> bool:
        if market.status == "active":
            return market.total_pool == ZERO
        owed_pool = {"yes": market.yes_pool, "no": market.no_pool}.get(market.outcome)
        return not any(
            b.settled_at is None and (b.side == market.outcome or owed_pool == ZERO)
            for b in self.bets.values()
            if b.market_id == market.id
        )

    # --- bets ---

    async def get_most_recent_bet(self, db, user_id, market_id):
        self._maybe_fail("get_most_recent_bet")
        mine = [b for b in self.bets.values() if b.user_id == user_id and b.market_id == market_id]
        if not mine:
            return None
        return replace(max(mine, key=lambda b: b.created_at))

    async def insert_bet(self, db, user_id, market_id, side, amount, created_at):
        self._maybe_fail("insert_bet")
        return replace(self.add_bet(user_id, market_id, side, str(amount), created_at))

    async def list_bets_for_market(self, db, market_id):
        self._maybe_fail("list_bets_for_market")
        mine = [replace(b) for b in self.bets.values() if b.market_id == market_id]
        return sorted(mine, key=lambda b: (b.created_at, b.id))

    async def claim_settlement(self, db, bet_id, payout, settled_at):
        self._maybe_fail("claim_settlement")
        bet = self.bets.get(bet_id)
        if bet is None or bet.settled_at is not None:
            return None
        bet.payout = payout
        bet.settled_at = settled_at
        return replace(bet)

    async def release_settlement(self, db, bet_id):
        self._maybe_fail("release_settlement")
        bet = self.bets.get(bet_id)
        if bet is None or bet.settled_at is None:
            return None
        bet.payout = None
        bet.settled_at = None
        return replace(bet)


@pytest.fixture
def store() -> InMemoryLedgerStore:
    return InMemoryLedgerStore()


@pytest.fixture
def db() -> MagicMock:
    session = MagicMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    return session


@pytest.fixture
def limits() -> PlatformLimits:
    return PlatformLimits(
        min_bet=Decimal("0.01"),
        max_bet=Decimal("10000"),
        bet_rate_limit_window=timedelta(seconds=2),
        cleanup_keep_markets=10,
    )
