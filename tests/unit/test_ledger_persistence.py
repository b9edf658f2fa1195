"""Unit tests for LedgerRepository using MagicMock AsyncSession."""

from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.pm_common.errors import InternalError
from src.pm_ledger.infrastructure.persistence import LedgerRepository


def _make_market_row(**kwargs):
    row = MagicMock()
    row.id = kwargs.get("id", "mkt-1")
    row.title = "Test Market"
    row.description = None
    row.category = "crypto"
    row.status = kwargs.get("status", "active")
    row.yes_pool = Decimal(kwargs.get("yes_pool", "0"))
    row.no_pool = Decimal(kwargs.get("no_pool", "0"))
    row.total_pool = row.yes_pool + row.no_pool
    row.end_date = datetime(2030, 1, 1, tzinfo=UTC)
    row.created_by = "creator"
    row.outcome = None
    row.resolved_at = None
    row.created_at = datetime(2029, 1, 1, tzinfo=UTC)
    return row


def _make_bet_row(**kwargs):
    row = MagicMock()
    row.id = kwargs.get("id", "bet-1")
    row.market_id = "mkt-1"
    row.user_id = "u1"
    row.side = "yes"
    row.amount = Decimal("5")
    row.payout = kwargs.get("payout")
    row.created_at = datetime(2029, 6, 1, tzinfo=UTC)
    row.settled_at = kwargs.get("settled_at")
    return row


def _db_returning(row=None, rows=None):
    result = MagicMock()
    result.fetchone.return_value = row
    result.fetchall.return_value = rows or []
    db = MagicMock()
    db.execute = AsyncMock(return_value=result)
    return db


def _params(db, call: int = 0) -> dict:
    return db.execute.call_args_list[call].args[1]


def _sql(db, call: int = 0) -> str:
    return str(db.execute.call_args_list[call].args[0])


@pytest.fixture
def repo() -> LedgerRepository:
    return LedgerRepository()


class TestUsers:
    @pytest.mark.asyncio
    async def test_debit_is_guarded_by_balance(self, repo) -> None:
        row = MagicMock(id="u1", balance=Decimal("5"))
        db = _db_returning(row)
        user = await repo.debit_balance(db, "u1", Decimal("5"))
        assert user.balance == Decimal("5")
        assert "balance >= :amount" in _sql(db)
        assert _params(db) == {"user_id": "u1", "amount": Decimal("5")}

    @pytest.mark.asyncio
    async def test_debit_guard_miss_returns_none(self, repo) -> None:
        assert await repo.debit_balance(_db_returning(None), "u1", Decimal("5")) is None

    @pytest.mark.asyncio
    async def test_credit_increments_in_sql(self, repo) -> None:
        db = _db_returning(MagicMock(id="u1", balance=Decimal("7")))
        await repo.credit_balance(db, "u1", Decimal("2"))
        assert "balance = balance + :amount" in _sql(db)


class TestMarkets:
    @pytest.mark.asyncio
    async def test_add_to_pool_routes_delta_to_side(self, repo) -> None:
        db = _db_returning(_make_market_row(no_pool="3"))
        market = await repo.add_to_pool(db, "mkt-1", "no", Decimal("3"))
        assert market.no_pool == Decimal("3")
        assert _params(db) == {
            "market_id": "mkt-1",
            "yes_delta": Decimal("0"),
            "no_delta": Decimal("3"),
        }
        assert "status = 'active'" in _sql(db)

    @pytest.mark.asyncio
    async def test_mark_resolved_only_from_active(self, repo) -> None:
        db = _db_returning(None)
        at = datetime(2030, 1, 2, tzinfo=UTC)
        assert await repo.mark_resolved(db, "mkt-1", "yes", at) is None
        assert "WHERE id = :market_id AND status = 'active'" in _sql(db)

    @pytest.mark.asyncio
    async def test_create_market_maps_row(self, repo) -> None:
        db = _db_returning(_make_market_row(id="new-id"))
        market = await repo.create_market(
            db, "creator", "Title", None, None, datetime(2030, 1, 1, tzinfo=UTC)
        )
        assert market.id == "new-id"
        assert market.status == "active"

    @pytest.mark.asyncio
    async def test_create_market_without_row_is_internal_error(self, repo) -> None:
        with pytest.raises(InternalError):
            await repo.create_market(
                _db_returning(None), "c", "T", None, None, datetime(2030, 1, 1, tzinfo=UTC)
            )

    @pytest.mark.asyncio
    async def test_list_by_creator_newest_first(self, repo) -> None:
        db = _db_returning(rows=[_make_market_row(id="b"), _make_market_row(id="a")])
        markets = await repo.list_markets_by_creator(db, "creator")
        assert [m.id for m in markets] == ["b", "a"]
        assert "ORDER BY created_at DESC" in _sql(db)

    @pytest.mark.asyncio
    async def test_delete_markets_removes_bets_first(self, repo) -> None:
        db = _db_returning(rows=[MagicMock(id="m1"), MagicMock(id="m2")])
        deleted = await repo.delete_markets(db, ["m1", "m2", "m3"])
        assert deleted == ["m1", "m2"]
        assert "DELETE FROM bets" in _sql(db, 0)
        assert "DELETE FROM markets" in _sql(db, 1)
        assert "total_pool = 0" in _sql(db, 1)
        assert "RETURNING id" in _sql(db, 1)

    @pytest.mark.asyncio
    async def test_delete_keeps_markets_with_unsettled_credits(self, repo) -> None:
        db = _db_returning()
        await repo.delete_markets(db, ["m1"])
        for call in (0, 1):
            sql = _sql(db, call)
            assert "NOT EXISTS" in sql
            assert "settled_at IS NULL" in sql
            assert "pending.side = markets.outcome" in sql

    @pytest.mark.asyncio
    async def test_delete_nothing_skips_sql(self, repo) -> None:
        db = _db_returning()
        assert await repo.delete_markets(db, []) == []
        db.execute.assert_not_awaited()


class TestBets:
    @pytest.mark.asyncio
    async def test_claim_only_unsettled(self, repo) -> None:
        at = datetime(2030, 1, 2, tzinfo=UTC)
        db = _db_returning(_make_bet_row(payout=Decimal("10"), settled_at=at))
        bet = await repo.claim_settlement(db, "bet-1", Decimal("10"), at)
        assert bet.payout == Decimal("10")
        assert "settled_at IS NULL" in _sql(db)

    @pytest.mark.asyncio
    async def test_claim_refund_passes_null_payout(self, repo) -> None:
        db = _db_returning(None)
        await repo.claim_settlement(db, "bet-1", None, datetime(2030, 1, 2, tzinfo=UTC))
        assert _params(db)["payout"] is None
        assert "CAST(:payout AS NUMERIC)" in _sql(db)

    @pytest.mark.asyncio
    async def test_most_recent_bet(self, repo) -> None:
        db = _db_returning(_make_bet_row())
        bet = await repo.get_most_recent_bet(db, "u1", "mkt-1")
        assert bet.id == "bet-1"
        assert "ORDER BY created_at DESC" in _sql(db)
