"""newsroom schema: members, publications, highlights, notifications

Revision ID: 202510010001
Revises:
Create Date: 2025-10-01 00:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "202510010001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "members",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("cpf", sa.String(length=11), nullable=False, unique=True),
        sa.Column("birth_date", sa.Date(), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("password_changed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="journalist"),
        sa.Column("team_member", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("publication_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("avatar_light", sa.String(length=1000), nullable=False, server_default="/assets/img/avatar-light.svg"),
        sa.Column("avatar_dark", sa.String(length=1000), nullable=False, server_default="/assets/img/avatar-dark.svg"),
        sa.Column("phone", sa.String(length=40), nullable=True),
        sa.Column("city", sa.String(length=120), nullable=True),
        sa.Column("about", sa.String(length=200), nullable=True),
        sa.Column("what_they_do", sa.Text(), nullable=True),
        sa.Column("instagram", sa.String(length=255), nullable=True),
        sa.Column("linkedin", sa.String(length=255), nullable=True),
        sa.Column("twitter", sa.String(length=255), nullable=True),
        sa.Column("social_email", sa.String(length=320), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("role IN ('admin', 'journalist')", name="ck_members_role"),
    )
    op.create_index("ix_members_id", "members", ["id"])
    op.create_index("ix_members_cpf", "members", ["cpf"])
    op.create_index("ix_members_is_active", "members", ["is_active"])

    op.create_table(
        "publications",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(length=300), nullable=False),
        sa.Column(
            "author_id",
            sa.Integer(),
            sa.ForeignKey("members.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("category", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("image", sa.String(length=2000), nullable=True),
        sa.Column("image_credit", sa.String(length=300), nullable=True),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="draft"),
        sa.Column("views", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("unique_views", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_highlighted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("slug", sa.String(length=300), nullable=True),
        sa.Column("deletion_reason", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('draft', 'review', 'published', 'excluded')", name="ck_publications_status"
        ),
    )
    op.create_index("ix_publications_id", "publications", ["id"])
    op.create_index("ix_publications_author_id", "publications", ["author_id"])
    op.create_index("ix_publications_date", "publications", ["date"])
    op.create_index("ix_publications_status", "publications", ["status"])
    op.create_index("ix_publications_slug", "publications", ["slug"])
    op.create_index("ix_publications_status_date", "publications", ["status", "date"])

    op.create_table(
        "highlights",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("card_number", sa.Integer(), nullable=False, unique=True),
        sa.Column(
            "publication_id",
            sa.Integer(),
            sa.ForeignKey("publications.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("card_number BETWEEN 1 AND 3", name="ck_highlights_card_number"),
    )
    op.create_index("ix_highlights_publication_id", "highlights", ["publication_id"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "to_user_id",
            sa.Integer(),
            sa.ForeignKey("members.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("to_role", sa.String(length=20), nullable=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("url", sa.String(length=1000), nullable=True),
        sa.Column("meta", sa.JSON(), nullable=True),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_notifications_id", "notifications", ["id"])
    op.create_index("ix_notifications_to_user_id", "notifications", ["to_user_id"])
    op.create_index("ix_notifications_to_role", "notifications", ["to_role"])
    op.create_index("ix_notifications_created_at", "notifications", ["created_at"])


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("highlights")
    op.drop_table("publications")
    op.drop_table("members")
