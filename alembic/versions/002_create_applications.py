"""create applications

Revision ID: 002_create_applications
Revises: 001_create_users_and_settings
Create Date: 2026-10-19

"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "002_create_applications"
down_revision = "001_create_users_and_settings"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "applications",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("application_number", sa.String(length=40), nullable=False),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("owner_mobile", sa.String(length=20), nullable=True),
        sa.Column("property_name", sa.String(length=255), nullable=False),
        sa.Column("district", sa.String(length=100), nullable=False),
        sa.Column("category", sa.String(length=20), server_default=sa.text("'silver'"), nullable=False),
        sa.Column("total_rooms", sa.Integer(), server_default=sa.text("1"), nullable=False),
        sa.Column("kind", sa.String(length=40), server_default=sa.text("'new_registration'"), nullable=False),
        sa.Column("status", sa.String(length=50), server_default=sa.text("'draft'"), nullable=False),
        sa.Column("parent_application_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("room_delta", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("documents", postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column("revert_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("correction_submission_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("last_reverted_by", sa.String(length=50), nullable=True),
        sa.Column("last_reverted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_resubmitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("da_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("dtdo_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("reviewer_remarks", sa.Text(), nullable=True),
        sa.Column("inspection_date", sa.Date(), nullable=True),
        sa.Column("inspection_report", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("payment_status", sa.String(length=20), server_default=sa.text("'unpaid'"), nullable=False),
        sa.Column("payment_transaction_id", sa.String(length=100), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("certificate_number", sa.String(length=60), nullable=True),
        sa.Column("certificate_issued_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("certificate_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("superseded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("superseded_by_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.UniqueConstraint("application_number", name="uq_applications_application_number"),
        sa.CheckConstraint(
            "status IN ('draft', 'submitted', 'under_scrutiny', 'reverted_to_applicant', 'resubmitted', "
            "'forwarded_to_dtdo', 'dtdo_review', 'reverted_by_dtdo', 'objection_raised', 'inspection_scheduled', "
            "'inspection_under_review', 'inspection_completed', 'payment_pending', 'verified_for_payment', "
            "'approved', 'rejected', 'superseded')",
            name="ck_applications_status",
        ),
        sa.CheckConstraint(
            "kind IN ('new_registration', 'existing_rc_onboarding', 'renewal', 'amendment', 'add_rooms', 'delete_rooms')",
            name="ck_applications_kind",
        ),
        sa.CheckConstraint("category IN ('diamond', 'gold', 'silver')", name="ck_applications_category"),
        sa.CheckConstraint(
            "payment_status IN ('unpaid', 'paid', 'verified', 'refunded')",
            name="ck_applications_payment_status",
        ),
        sa.CheckConstraint("revert_count >= 0", name="ck_applications_revert_count_non_negative"),
        sa.CheckConstraint(
            "correction_submission_count >= 0",
            name="ck_applications_correction_submission_count_non_negative",
        ),
    )

    op.create_index("ix_applications_owner_id", "applications", ["owner_id"], unique=False)
    op.create_index("ix_applications_status", "applications", ["status"], unique=False)
    op.create_index("ix_applications_parent_application_id", "applications", ["parent_application_id"], unique=False)
    # Owner dashboards: WHERE owner_id = ? AND status <> 'superseded' ORDER BY created_at DESC
    op.create_index(
        "idx_applications_owner_status_created_at",
        "applications",
        ["owner_id", "status", sa.text("created_at DESC")],
        unique=False,
    )
    # One in-flight registration per owner + property; drafts and closed cases do not count.
    op.create_index(
        "uq_applications_open_registration",
        "applications",
        ["owner_id", sa.text("lower(property_name)")],
        unique=True,
        postgresql_where=sa.text(
            "kind IN ('existing_rc_onboarding', 'new_registration') "
            "AND NOT status IN ('approved', 'draft', 'rejected', 'superseded')"
        ),
    )

    op.create_table(
        "application_number_counters",
        sa.Column("scope", sa.String(length=40), primary_key=True, nullable=False),
        sa.Column("last_serial", sa.Integer(), server_default=sa.text("0"), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("application_number_counters")
    op.drop_index("uq_applications_open_registration", table_name="applications")
    op.drop_index("idx_applications_owner_status_created_at", table_name="applications")
    op.drop_index("ix_applications_parent_application_id", table_name="applications")
    op.drop_index("ix_applications_status", table_name="applications")
    op.drop_index("ix_applications_owner_id", table_name="applications")
    op.drop_table("applications")
