"""004: create bets table

Revision ID: 004
Revises: 003
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE bets (
            id              VARCHAR(64)     PRIMARY KEY DEFAULT gen_random_uuid()::text,
            market_id       VARCHAR(64)     NOT NULL REFERENCES markets (id),
            user_id         VARCHAR(64)     NOT NULL REFERENCES users (id),
            side            VARCHAR(3)      NOT NULL,
            amount          NUMERIC(20, 9)  NOT NULL,
            payout          NUMERIC(20, 9),
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            settled_at      TIMESTAMPTZ,
            CONSTRAINT ck_bets_side         CHECK (side IN ('yes', 'no')),
            CONSTRAINT ck_bets_amount_gt_0  CHECK (amount > 0),
            CONSTRAINT ck_bets_payout_gte_0 CHECK (payout IS NULL OR payout >= 0),
            CONSTRAINT ck_bets_payout_settled CHECK (payout IS NULL OR settled_at IS NOT NULL)
        );
    """)
    op.execute("CREATE INDEX idx_bets_market ON bets (market_id);")
    # rate-limit lookup: most recent bet per (user, market)
    op.execute("CREATE INDEX idx_bets_user_market_recent ON bets (user_id, market_id, created_at DESC);")
    op.execute("COMMENT ON TABLE bets IS 'Stakes; payout set once for winners, settled_at marks a claimed credit';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS bets CASCADE;")
