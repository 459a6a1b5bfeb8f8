"""add push_subscriptions table for Web Push delivery

Revision ID: 202510080001
Revises: 202510010001
Create Date: 2025-10-08 00:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "202510080001"
down_revision = "202510010001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "push_subscriptions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("endpoint", sa.String(length=2000), nullable=False, unique=True),
        sa.Column("auth_key", sa.String(length=255), nullable=True),
        sa.Column("p256dh_key", sa.String(length=255), nullable=True),
        sa.Column("expiration_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("user_agent", sa.String(length=500), nullable=True),
        sa.Column("preference", sa.String(length=20), nullable=False, server_default="accepted"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_notified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_error", sa.String(length=500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_push_subscriptions_is_active", "push_subscriptions", ["is_active"])


def downgrade() -> None:
    op.drop_index("ix_push_subscriptions_is_active", table_name="push_subscriptions")
    op.drop_table("push_subscriptions")
