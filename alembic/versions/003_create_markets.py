"""003: create markets table

Revision ID: 003
Revises: 002
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE markets (
            id              VARCHAR(64)     PRIMARY KEY DEFAULT gen_random_uuid()::text,
            title           VARCHAR(200)    NOT NULL,
            description     TEXT,
            category        VARCHAR(64),
            status          VARCHAR(10)     NOT NULL DEFAULT 'active',
            yes_pool        NUMERIC(20, 9)  NOT NULL DEFAULT 0,
            no_pool         NUMERIC(20, 9)  NOT NULL DEFAULT 0,
            total_pool      NUMERIC(20, 9)  NOT NULL DEFAULT 0,
            end_date        TIMESTAMPTZ     NOT NULL,
            created_by      VARCHAR(64)     NOT NULL REFERENCES users (id),
            outcome         VARCHAR(3),
            resolved_at     TIMESTAMPTZ,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_markets_yes_pool_gte_0    CHECK (yes_pool >= 0),
            CONSTRAINT ck_markets_no_pool_gte_0     CHECK (no_pool >= 0),
            CONSTRAINT ck_markets_total_pool        CHECK (total_pool = yes_pool + no_pool),
            CONSTRAINT ck_markets_status            CHECK (status IN ('active', 'resolved')),
            CONSTRAINT ck_markets_outcome           CHECK (outcome IS NULL OR outcome IN ('yes', 'no')),
            CONSTRAINT ck_markets_resolution CHECK (
                (status = 'active' AND outcome IS NULL AND resolved_at IS NULL)
                OR (status = 'resolved' AND outcome IS NOT NULL AND resolved_at IS NOT NULL)
            )
        );
    """)
    op.execute("CREATE INDEX idx_markets_status ON markets (status);")
    op.execute("CREATE INDEX idx_markets_creator ON markets (created_by, created_at DESC);")
    op.execute("""
        CREATE TRIGGER trg_markets_updated_at
            BEFORE UPDATE ON markets
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("COMMENT ON TABLE markets IS 'Pari-mutuel yes/no markets — pools frozen once resolved';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS markets CASCADE;")
