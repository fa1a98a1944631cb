"""Initial schema — identity accounts and sessions

Revision ID: 0001
Revises:
Create Date: 2026-10-18
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── Schemas ──────────────────────────────────────────────────────────────
    op.execute("CREATE SCHEMA IF NOT EXISTS identity")

    # ── identity.accounts ────────────────────────────────────────────────────
    op.create_table(
        "accounts",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.Text, nullable=False),
        sa.Column("password_hash", sa.Text, nullable=True),
        sa.Column("delegated_identity_ref", sa.Text, nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default=sa.text("'active'")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("status IN ('active','disabled','deleted')", name="ck_accounts_status"),
        sa.CheckConstraint(
            "password_hash IS NOT NULL OR delegated_identity_ref IS NOT NULL",
            name="ck_accounts_has_credential",
        ),
        schema="identity",
    )
    op.create_index("ux_accounts_email_live", "accounts", ["email"], unique=True, schema="identity",
                    postgresql_where=sa.text("status <> 'deleted'"))
    op.create_index("ux_accounts_delegated_ref_live", "accounts", ["delegated_identity_ref"], unique=True,
                    schema="identity",
                    postgresql_where=sa.text("status <> 'deleted' AND delegated_identity_ref IS NOT NULL"))

    # ── identity.sessions ────────────────────────────────────────────────────
    op.create_table(
        "sessions",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("account_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_agent", sa.Text, nullable=True),
        sa.Column("ip_address", postgresql.INET, nullable=True),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["account_id"], ["identity.accounts.id"], ondelete="CASCADE"),
        schema="identity",
    )
    op.create_index("ix_sessions_account_expires", "sessions", ["account_id", "expires_at"],
                    schema="identity", postgresql_where=sa.text("revoked_at IS NULL"))
    # Expired-row cleanup scans by expiry
    op.create_index("ix_sessions_expires", "sessions", ["expires_at"], schema="identity")


def downgrade() -> None:
    op.drop_table("sessions", schema="identity")
    op.drop_table("accounts", schema="identity")
    op.execute("DROP SCHEMA IF EXISTS identity")
