"""Add account profile fields; store session ip_address as text

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-18
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "0002"
down_revision: Union[str, None] = "0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column("accounts", sa.Column("display_name", sa.Text, nullable=True), schema="identity")
    op.add_column("accounts", sa.Column("profile_picture_url", sa.Text, nullable=True), schema="identity")
    op.add_column(
        "accounts",
        sa.Column("preferences", postgresql.JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        schema="identity",
    )
    # Proxies and test transports report peers that are not IP literals
    op.alter_column(
        "sessions", "ip_address",
        type_=sa.Text, existing_type=postgresql.INET, existing_nullable=True,
        postgresql_using="ip_address::text", schema="identity",
    )


def downgrade() -> None:
    op.execute(
        "UPDATE identity.sessions SET ip_address = NULL "
        "WHERE ip_address IS NOT NULL AND ip_address !~ '^[0-9A-Fa-f:.]+(/[0-9]+)?$'"
    )
    op.alter_column(
        "sessions", "ip_address",
        type_=postgresql.INET, existing_type=sa.Text, existing_nullable=True,
        postgresql_using="ip_address::inet", schema="identity",
    )
    op.drop_column("accounts", "preferences", schema="identity")
    op.drop_column("accounts", "profile_picture_url", schema="identity")
    op.drop_column("accounts", "display_name", schema="identity")
