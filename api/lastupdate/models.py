from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.types import JSON
from sqlalchemy.orm import relationship

from .db import Base


def utcnow() -> datetime:
    """Naive UTC timestamp, the format every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


ROLE_ADMIN = "admin"
ROLE_JOURNALIST = "journalist"
ROLES = (ROLE_ADMIN, ROLE_JOURNALIST)

STATUS_DRAFT = "draft"
STATUS_REVIEW = "review"
STATUS_PUBLISHED = "published"
STATUS_EXCLUDED = "excluded"
PUBLICATION_STATUSES = (STATUS_DRAFT, STATUS_REVIEW, STATUS_PUBLISHED, STATUS_EXCLUDED)

HIGHLIGHT_CARDS = (1, 2, 3)

DEFAULT_AVATAR_LIGHT = "/assets/img/avatar-light.svg"
DEFAULT_AVATAR_DARK = "/assets/img/avatar-dark.svg"


# ============================================================================
# NEWSROOM
# ============================================================================


class Member(Base):
    """Journalist or admin account with credentials and public profile."""

    __tablename__ = "members"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    name = Column(String(200), nullable=False)
    email = Column(String(320), unique=True, nullable=False)
    cpf = Column(String(11), unique=True, nullable=False, index=True)  # digits only
    birth_date = Column(Date, nullable=False)

    # Auth
    password_hash = Column(String(255), nullable=False)
    password_changed = Column(Boolean, nullable=False, default=False)
    role = Column(String(20), nullable=False, default=ROLE_JOURNALIST)

    # Newsroom bookkeeping
    team_member = Column(Boolean, nullable=False, default=True)
    publication_count = Column(Integer, nullable=False, default=0)  # published only

    # Profile
    avatar_light = Column(String(1000), nullable=False, default=DEFAULT_AVATAR_LIGHT)
    avatar_dark = Column(String(1000), nullable=False, default=DEFAULT_AVATAR_DARK)
    phone = Column(String(40), nullable=True)
    city = Column(String(120), nullable=True)
    about = Column(String(200), nullable=True)
    what_they_do = Column(Text, nullable=True)
    instagram = Column(String(255), nullable=True)
    linkedin = Column(String(255), nullable=True)
    twitter = Column(String(255), nullable=True)
    social_email = Column(String(320), nullable=True)

    # Lifecycle
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    publications = relationship("Publication", back_populates="author", passive_deletes=True)

    __table_args__ = (
        CheckConstraint("role IN ('admin', 'journalist')", name="ck_members_role"),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


class Publication(Base):
    """News article moving through the draft/review/published/excluded lifecycle."""

    __tablename__ = "publications"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    title = Column(String(300), nullable=False)
    author_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    category = Column(String(200), nullable=False)  # "main/sub"
    description = Column(Text, nullable=True)
    image = Column(String(2000), nullable=True)
    image_credit = Column(String(300), nullable=True)
    content = Column(Text, nullable=True)  # HTML

    status = Column(String(20), nullable=False, default=STATUS_DRAFT, index=True)
    views = Column(Integer, nullable=False, default=0)
    unique_views = Column(Integer, nullable=False, default=0)
    is_highlighted = Column(Boolean, nullable=False, default=False)
    slug = Column(String(300), nullable=True, index=True)
    deletion_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    author = relationship("Member", back_populates="publications")
    highlight = relationship("Highlight", back_populates="publication", uselist=False, passive_deletes=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'review', 'published', 'excluded')", name="ck_publications_status"
        ),
        Index("ix_publications_status_date", status, date),
    )

    @property
    def author_name(self) -> str | None:
        return self.author.name if self.author else None

    @property
    def author_avatar(self) -> str | None:
        return self.author.avatar_light if self.author else None


class Highlight(Base):
    """Pins a publication to one of the home page cards."""

    __tablename__ = "highlights"

    id = Column(Integer, primary_key=True, autoincrement=True)
    card_number = Column(Integer, unique=True, nullable=False)
    publication_id = Column(
        Integer, ForeignKey("publications.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    publication = relationship("Publication", back_populates="highlight")

    __table_args__ = (
        CheckConstraint("card_number BETWEEN 1 AND 3", name="ck_highlights_card_number"),
    )


# ============================================================================
# NOTIFICATIONS
# ============================================================================


class Notification(Base):
    """In-app notification addressed to a single member or to a whole role."""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    to_user_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=True, index=True)
    to_role = Column(String(20), nullable=True, index=True)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    url = Column(String(1000), nullable=True)
    meta = Column(JSON, nullable=True)
    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), index=True
    )
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), onupdate=utcnow
    )


class PushSubscription(Base):
    """Browser Web Push endpoint plus delivery bookkeeping."""

    __tablename__ = "push_subscriptions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    endpoint = Column(String(2000), unique=True, nullable=False)
    auth_key = Column(String(255), nullable=True)
    p256dh_key = Column(String(255), nullable=True)
    expiration_time = Column(DateTime(timezone=True), nullable=True)
    user_agent = Column(String(500), nullable=True)
    preference = Column(String(20), nullable=False, default="accepted")
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    last_notified_at = Column(DateTime(timezone=True), nullable=True)
    last_error = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), onupdate=utcnow
    )
