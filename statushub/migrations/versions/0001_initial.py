from __future__ import annotations
"""statushub/migrations/versions/0001_initial.py
~~~~~~~~~~~~~~~~~~~~~~~~
Schéma initial : snapshots, pending, journal d'envoi, préférences, stacks.
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "service_status_snapshots",
        sa.Column("service_slug", sa.String(64), primary_key=True),
        sa.Column("status", sa.String(32), server_default="OPERATIONAL", nullable=False),
        sa.Column("incident_title", sa.Text(), nullable=True),
        sa.Column("incidents_json", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("snapshot_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("NOW()"), nullable=False),
    )

    op.create_table(
        "pending_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("service_slug", sa.String(64), nullable=False),
        sa.Column("event_type", sa.String(64), nullable=False),
        sa.Column("event_data", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("NOW()"), nullable=False),
    )
    op.create_index(
        "ix_pending_events_user_service", "pending_events", ["user_id", "service_slug", "created_at"]
    )

    op.create_table(
        "email_alert_log",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("service_slug", sa.String(64), nullable=False),
        sa.Column("old_status", sa.String(32), nullable=True),
        sa.Column("new_status", sa.String(32), nullable=True),
        sa.Column("event_type", sa.String(64), nullable=False),
        sa.Column("sent_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("NOW()"), nullable=False),
    )
    op.create_index("ix_email_alert_log_user_sent", "email_alert_log", ["user_id", "sent_at"])
    op.create_index(
        "ix_email_alert_log_user_service_sent", "email_alert_log", ["user_id", "service_slug", "sent_at"]
    )

    op.create_table(
        "notification_preferences",
        sa.Column("user_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("email_enabled", sa.Boolean(), server_default=sa.text("FALSE"), nullable=False),
        sa.Column("email_address", sa.String(320), nullable=True),
        sa.Column("severity_threshold", sa.String(512), server_default="all", nullable=True),
    )

    op.create_table(
        "user_stacks",
        sa.Column("user_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("services", postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column("plan", sa.String(16), server_default="free", nullable=False),
    )


def downgrade() -> None:
    op.drop_table("user_stacks")
    op.drop_table("notification_preferences")
    op.drop_index("ix_email_alert_log_user_service_sent", table_name="email_alert_log")
    op.drop_index("ix_email_alert_log_user_sent", table_name="email_alert_log")
    op.drop_table("email_alert_log")
    op.drop_index("ix_pending_events_user_service", table_name="pending_events")
    op.drop_table("pending_events")
    op.drop_table("service_status_snapshots")
