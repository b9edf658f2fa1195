"""LedgerRepository — concrete implementation of LedgerStoreProtocol.

All queries use raw text() SQL (no ORM). Every balance and pool mutation is a
single atomic UPDATE ... RETURNING that applies the delta inside PostgreSQL,
so concurrent bets on the same market never lose increments.
A result of 0 rows means the guard in the WHERE clause was violated.

Transaction ownership: the CALLER (application service) commits or rolls back.
asyncpg NULL parameter pattern: CAST(:param AS TYPE) required for None values.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.errors import InternalError
from src.pm_ledger.domain.models import Bet, Market, User

# ---------------------------------------------------------------------------
# SQL: users
# ---------------------------------------------------------------------------

_GET_USER_SQL = text("SELECT id, balance FROM users WHERE id = :user_id")

_DEBIT_BALANCE_SQL = text("""
    UPDATE users
    SET balance = balance - :amount
    WHERE id = :user_id AND balance >= :amount
    RETURNING id, balance
""")

_CREDIT_BALANCE_SQL = text("""
    UPDATE users
    SET balance = balance + :amount
    WHERE id = :user_id
    RETURNING id, balance
""")

# ---------------------------------------------------------------------------
# SQL: markets
# ---------------------------------------------------------------------------

_MARKET_COLUMNS = """
    id, title, description, category, status,
    yes_pool, no_pool, total_pool,
    end_date, created_by, outcome, resolved_at, created_at
"""

_GET_MARKET_SQL = text(f"SELECT {_MARKET_COLUMNS} FROM markets WHERE id = :market_id")

_CREATE_MARKET_SQL = text(f"""
    INSERT INTO markets (title, description, category, end_date, created_by)
    VALUES (:title, CAST(:description AS TEXT), CAST(:category AS TEXT), :end_date, :created_by)
    RETURNING {_MARKET_COLUMNS}
""")

_ADD_TO_POOL_SQL = text(f"""
    UPDATE markets
    SET yes_pool   = yes_pool   + :yes_delta,
        no_pool    = no_pool    + :no_delta,
        total_pool = total_pool + :yes_delta + :no_delta
    WHERE id = :market_id AND status = 'active'
    RETURNING {_MARKET_COLUMNS}
""")

_REMOVE_FROM_POOL_SQL = text(f"""
    UPDATE markets
    SET yes_pool   = yes_pool   - :yes_delta,
        no_pool    = no_pool    - :no_delta,
        total_pool = total_pool - :yes_delta - :no_delta
    WHERE id = :market_id
      AND status = 'active'
      AND yes_pool >= :yes_delta
      AND no_pool >= :no_delta
    RETURNING {_MARKET_COLUMNS}
""")

_MARK_RESOLVED_SQL = text(f"""
    UPDATE markets
    SET status = 'resolved',
        outcome = :outcome,
        resolved_at = :resolved_at
    WHERE id = :market_id AND status = 'active'
    RETURNING {_MARKET_COLUMNS}
""")

_LIST_MARKETS_BY_CREATOR_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    WHERE created_by = :user_id
    ORDER BY created_at DESC, id DESC
""")

# A market is deletable unless it still holds something owed to bettors:
# stakes on an active market, or a resolved market's unsettled winning bet
# (any unsettled bet when nobody backed the outcome, i.e. a refund).
_DELETABLE_MARKET = """
    id = ANY(:market_ids)
    AND (status <> 'active' OR total_pool = 0)
    AND NOT EXISTS (
        SELECT 1 FROM bets pending
        WHERE pending.market_id = markets.id
          AND pending.settled_at IS NULL
          AND (
              markets.status = 'active'
              OR pending.side = markets.outcome
              OR (markets.outcome = 'yes' AND markets.yes_pool = 0)
              OR (markets.outcome = 'no' AND markets.no_pool = 0)
          )
    )
"""

_DELETE_BETS_OF_MARKETS_SQL = text(f"""
    DELETE FROM bets
    WHERE market_id IN (SELECT id FROM markets WHERE {_DELETABLE_MARKET})
""")

_DELETE_MARKETS_SQL = text(f"DELETE FROM markets WHERE {_DELETABLE_MARKET} RETURNING id")

# ---------------------------------------------------------------------------
# SQL: bets
# ---------------------------------------------------------------------------

_BET_COLUMNS = "id, market_id, user_id, side, amount, payout, created_at, settled_at"

_MOST_RECENT_BET_SQL = text(f"""
    SELECT {_BET_COLUMNS}
    FROM bets
    WHERE user_id = :user_id AND market_id = :market_id
    ORDER BY created_at DESC
    LIMIT 1
""")

_INSERT_BET_SQL = text(f"""
    INSERT INTO bets (market_id, user_id, side, amount, created_at)
    VALUES (:market_id, :user_id, :side, :amount, :created_at)
    RETURNING {_BET_COLUMNS}
""")

_LIST_BETS_SQL = text(f"""
    SELECT {_BET_COLUMNS}
    FROM bets
    WHERE market_id = :market_id
    ORDER BY created_at, id
""")

_CLAIM_SETTLEMENT_SQL = text(f"""
    UPDATE bets
    SET payout = CAST(:payout AS NUMERIC),
        settled_at = :settled_at
    WHERE id = :bet_id AND settled_at IS NULL
    RETURNING {_BET_COLUMNS}
""")

_RELEASE_SETTLEMENT_SQL = text(f"""
    UPDATE bets
    SET payout = NULL,
        settled_at = NULL
    WHERE id = :bet_id AND settled_at IS NOT NULL
    RETURNING {_BET_COLUMNS}
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_user(row: object) -> User:
    return User(
        id=str(row.id),  # type: ignore[attr-defined]
        balance=row.balance,  # type: ignore[attr-defined]
    )


def _row_to_market(row: object) -> Market:
    return Market(
        id=str(row.id),  # type: ignore[attr-defined]
        title=row.title,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        category=row.category,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        yes_pool=row.yes_pool,  # type: ignore[attr-defined]
        no_pool=row.no_pool,  # type: ignore[attr-defined]
        total_pool=row.total_pool,  # type: ignore[attr-defined]
        end_date=row.end_date,  # type: ignore[attr-defined]
        created_by=str(row.created_by),  # type: ignore[attr-defined]
        outcome=row.outcome,  # type: ignore[attr-defined]
        resolved_at=row.resolved_at,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


def _row_to_bet(row: object) -> Bet:
    return Bet(
        id=str(row.id),  # type: ignore[attr-defined]
        market_id=str(row.market_id),  # type: ignore[attr-defined]
        user_id=str(row.user_id),  # type: ignore[attr-defined]
        side=row.side,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        payout=row.payout,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        settled_at=row.settled_at,  # type: ignore[attr-defined]
    )


def _pool_deltas(side: str, amount: Decimal) -> dict[str, Decimal]:
    zero = Decimal("0")
    return {
        "yes_delta": amount if side == "yes" else zero,
        "no_delta": amount if side == "no" else zero,
    }


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class LedgerRepository:
    """Concrete repository — every mutation atomic at the SQL level."""

    # --- users ---

    async def get_user(self, db: AsyncSession, user_id: str) -> User | None:
        result = await db.execute(_GET_USER_SQL, {"user_id": user_id})
        row = result.fetchone()
        return _row_to_user(row) if row else None

    async def debit_balance(
        self, db: AsyncSession, user_id: str, amount: Decimal
    ) -> User | None:
        result = await db.execute(_DEBIT_BALANCE_SQL, {"user_id": user_id, "amount": amount})
        row = result.fetchone()
        return _row_to_user(row) if row else None

    async def credit_balance(
        self, db: AsyncSession, user_id: str, amount: Decimal
    ) -> User | None:
        result = await db.execute(_CREDIT_BALANCE_SQL, {"user_id": user_id, "amount": amount})
        row = result.fetchone()
        return _row_to_user(row) if row else None

    # --- markets ---

    async def get_market(self, db: AsyncSession, market_id: str) -> Market | None:
        result = await db.execute(_GET_MARKET_SQL, {"market_id": market_id})
        row = result.fetchone()
        return _row_to_market(row) if row else None

    async def create_market(
        self,
        db: AsyncSession,
        created_by: str,
        title: str,
        description: str | None,
        category: str | None,
        end_date: datetime,
    ) -> Market:
        result = await db.execute(
            _CREATE_MARKET_SQL,
            {
                "title": title,
                "description": description,
                "category": category,
                "end_date": end_date,
                "created_by": created_by,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Market insert returned no rows")
        return _row_to_market(row)

    async def add_to_pool(
        self, db: AsyncSession, market_id: str, side: str, amount: Decimal
    ) -> Market | None:
        result = await db.execute(
            _ADD_TO_POOL_SQL, {"market_id": market_id, **_pool_deltas(side, amount)}
        )
        row = result.fetchone()
        return _row_to_market(row) if row else None

    async def remove_from_pool(
        self, db: AsyncSession, market_id: str, side: str, amount: Decimal
    ) -> Market | None:
        result = await db.execute(
            _REMOVE_FROM_POOL_SQL, {"market_id": market_id, **_pool_deltas(side, amount)}
        )
        row = result.fetchone()
        return _row_to_market(row) if row else None

    async def mark_resolved(
        self, db: AsyncSession, market_id: str, outcome: str, resolved_at: datetime
    ) -> Market | None:
        result = await db.execute(
            _MARK_RESOLVED_SQL,
            {"market_id": market_id, "outcome": outcome, "resolved_at": resolved_at},
        )
        row = result.fetchone()
        return _row_to_market(row) if row else None

    async def list_markets_by_creator(
        self, db: AsyncSession, user_id: str
    ) -> list[Market]:
        result = await db.execute(_LIST_MARKETS_BY_CREATOR_SQL, {"user_id": user_id})
        return [_row_to_market(row) for row in result.fetchall()]

    async def delete_markets(self, db: AsyncSession, market_ids: list[str]) -> list[str]:
        if not market_ids:
            return []
        await db.execute(_DELETE_BETS_OF_MARKETS_SQL, {"market_ids": market_ids})
        result = await db.execute(_DELETE_MARKETS_SQL, {"market_ids": market_ids})
        return [str(row.id) for row in result.fetchall()]

    # --- bets ---

    async def get_most_recent_bet(
        self, db: AsyncSession, user_id: str, market_id: str
    ) -> Bet | None:
        result = await db.execute(
            _MOST_RECENT_BET_SQL, {"user_id": user_id, "market_id": market_id}
        )
        row = result.fetchone()
        return _row_to_bet(row) if row else None

    async def insert_bet(
        self,
        db: AsyncSession,
        user_id: str,
        market_id: str,
        side: str,
        amount: Decimal,
        created_at: datetime,
    ) -> Bet:
        result = await db.execute(
            _INSERT_BET_SQL,
            {
                "market_id": market_id,
                "user_id": user_id,
                "side": side,
                "amount": amount,
                "created_at": created_at,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Bet insert returned no rows")
        return _row_to_bet(row)

    async def list_bets_for_market(self, db: AsyncSession, market_id: str) -> list[Bet]:
        result = await db.execute(_LIST_BETS_SQL, {"market_id": market_id})
        return [_row_to_bet(row) for row in result.fetchall()]

    async def claim_settlement(
        self,
        db: AsyncSession,
        bet_id: str,
        payout: Decimal | None,
        settled_at: datetime,
    ) -> Bet | None:
        result = await db.execute(
            _CLAIM_SETTLEMENT_SQL,
            {"bet_id": bet_id, "payout": payout, "settled_at": settled_at},
        )
        row = result.fetchone()
        return _row_to_bet(row) if row else None

    async def release_settlement(self, db: AsyncSession, bet_id: str) -> Bet | None:
        result = await db.execute(_RELEASE_SETTLEMENT_SQL, {"bet_id": bet_id})
        row = result.fetchone()
        return _row_to_bet(row) if row else None
