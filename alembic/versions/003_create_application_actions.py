"""create the append-only application action log

Revision ID: 003_create_application_actions
Revises: 002_create_applications
Create Date: 2026-10-19

"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "003_create_application_actions"
down_revision = "002_create_applications"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "application_actions",
        sa.Column("id", sa.BigInteger(), sa.Identity(always=False), primary_key=True, nullable=False),
        sa.Column("application_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("effective_action", sa.String(length=50), nullable=True),
        sa.Column("previous_status", sa.String(length=50), nullable=True),
        sa.Column("new_status", sa.String(length=50), nullable=True),
        sa.Column("actor_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("actor_role", sa.String(length=50), nullable=False),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("error_code", sa.String(length=50), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
    )
    # Audit trail reads: WHERE application_id = ? ORDER BY created_at, id
    op.create_index(
        "idx_application_actions_application_created_at",
        "application_actions",
        ["application_id", "created_at", "id"],
        unique=False,
    )

    # The log is append-only.
    op.execute(
        """
        CREATE OR REPLACE FUNCTION application_actions_immutable()
        RETURNS trigger AS $$
        BEGIN
            RAISE EXCEPTION 'application_actions is append-only';
        END;
        $$ LANGUAGE plpgsql;
        """
    )
    op.execute(
        """
        CREATE TRIGGER trg_application_actions_immutable
        BEFORE UPDATE OR DELETE ON application_actions
        FOR EACH ROW EXECUTE FUNCTION application_actions_immutable();
        """
    )


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS trg_application_actions_immutable ON application_actions")
    op.execute("DROP FUNCTION IF EXISTS application_actions_immutable()")
    op.drop_index("idx_application_actions_application_created_at", table_name="application_actions")
    op.drop_table("application_actions")
