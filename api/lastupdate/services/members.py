"""
Member Service.

Registration, profile maintenance, soft deletion and the cached
``publication_count`` of newsroom members.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import media, models, schemas
from ..settings import SEED_ADMIN_CPF
from .errors import ConflictError, ForbiddenError, InvalidDataError, NotFoundError
from .passwords import default_password_for, hash_password, password_candidates, verify_password

logger = logging.getLogger(__name__)

ROLE_ALIASES = {
    "admin": models.ROLE_ADMIN,
    "administrador": models.ROLE_ADMIN,
    "administrator": models.ROLE_ADMIN,
    "journalist": models.ROLE_JOURNALIST,
    "jornalista": models.ROLE_JOURNALIST,
}

PROFILE_FIELDS = (
    "name",
    "phone",
    "city",
    "about",
    "what_they_do",
    "instagram",
    "linkedin",
    "twitter",
    "social_email",
)

MIN_PASSWORD_LENGTH = 6


# ============================================================================
# INPUT NORMALIZATION
# ============================================================================


def normalize_cpf(raw: str | None) -> str:
    """Strip punctuation from a CPF and require exactly 11 digits."""
    digits = re.sub(r"\D", "", raw or "")
    if len(digits) != 11:
        raise InvalidDataError("CPF must have 11 digits")
    return digits


def parse_birth_date(raw: str | date | None) -> date:
    """Accept ``YYYY-MM-DD`` or ``DD/MM/YYYY``."""
    if isinstance(raw, date):
        return raw
    value = (raw or "").strip()
    for fmt in ("%Y-%m-%d", "%d/%m/%Y"):
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    raise InvalidDataError("Birth date must be YYYY-MM-DD or DD/MM/YYYY")


def normalize_role(raw: str | None) -> str:
    role = ROLE_ALIASES.get((raw or "").strip().lower())
    if not role:
        raise InvalidDataError(f"Unknown role: {raw}")
    return role


def normalize_email(raw: str | None) -> str:
    email = (raw or "").strip().lower()
    if "@" not in email or email.startswith("@") or email.endswith("@"):
        raise InvalidDataError("Invalid email address")
    return email


def _clean(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


# ============================================================================
# MEMBERS
# ============================================================================


class MemberService:
    """Service for newsroom member accounts."""

    @staticmethod
    def authenticate(db: Session, cpf: str | None, password: str | None) -> models.Member | None:
        """
        Resolve login credentials to an active member.

        Raises InvalidDataError when the CPF or password is malformed; returns
        None when the credentials simply do not match.
        """
        cpf_digits = normalize_cpf(cpf)
        if not password:
            raise InvalidDataError("Password is required")

        member = (
            db.query(models.Member)
            .filter(models.Member.cpf == cpf_digits, models.Member.is_active.is_(True))
            .first()
        )
        if not member:
            return None

        for candidate in password_candidates(password):
            if verify_password(candidate, member.password_hash):
                return member
        return None

    @staticmethod
    def get(db: Session, member_id: int, *, active_only: bool = True) -> models.Member:
        query = db.query(models.Member).filter(models.Member.id == member_id)
        if active_only:
            query = query.filter(models.Member.is_active.is_(True))
        member = query.first()
        if not member:
            raise NotFoundError("Member not found")
        return member

    @staticmethod
    def list_active(db: Session) -> list[models.Member]:
        """Active members by name, without the bootstrap admin account."""
        query = db.query(models.Member).filter(models.Member.is_active.is_(True))
        if SEED_ADMIN_CPF:
            query = query.filter(models.Member.cpf != re.sub(r"\D", "", SEED_ADMIN_CPF))
        return query.order_by(func.lower(models.Member.name)).all()

    @staticmethod
    def list_team(db: Session, include_inactive: bool = False) -> list[models.Member]:
        query = db.query(models.Member).filter(models.Member.team_member.is_(True))
        if not include_inactive:
            query = query.filter(models.Member.is_active.is_(True))
        return query.order_by(func.lower(models.Member.name)).all()

    @staticmethod
    def list_journalists(db: Session, include_inactive: bool = True) -> list[models.Member]:
        """Members that ever signed a story, most prolific first."""
        query = db.query(models.Member).filter(
            db.query(models.Publication.id)
            .filter(models.Publication.author_id == models.Member.id)
            .exists()
        )
        if not include_inactive:
            query = query.filter(models.Member.is_active.is_(True))
        return query.order_by(models.Member.publication_count.desc(), func.lower(models.Member.name)).all()

    @staticmethod
    def exclusion_count(db: Session, member_id: int) -> int:
        return (
            db.query(func.count(models.Publication.id))
            .filter(
                models.Publication.author_id == member_id,
                models.Publication.status == models.STATUS_EXCLUDED,
            )
            .scalar()
            or 0
        )

    @staticmethod
    def details(db: Session, member: models.Member) -> schemas.MemberDetails:
        latest = (
            db.query(models.Publication)
            .filter(
                models.Publication.author_id == member.id,
                models.Publication.status == models.STATUS_PUBLISHED,
            )
            .order_by(models.Publication.date.desc(), models.Publication.id.desc())
            .limit(3)
            .all()
        )
        return schemas.MemberDetails(
            member=schemas.Member.model_validate(member),
            stats=schemas.MemberStats(
                publications=member.publication_count,
                exclusions=MemberService.exclusion_count(db, member.id),
            ),
            latest_publications=[schemas.PublicationSummary.model_validate(p) for p in latest],
        )

    @staticmethod
    def recompute_publication_count(db: Session, member_id: int | None) -> int:
        """Re-count a member's published stories into ``publication_count``."""
        if member_id is None:
            return 0
        count = (
            db.query(func.count(models.Publication.id))
            .filter(
                models.Publication.author_id == member_id,
                models.Publication.status == models.STATUS_PUBLISHED,
            )
            .scalar()
            or 0
        )
        db.query(models.Member).filter(models.Member.id == member_id).update(
            {models.Member.publication_count: count}, synchronize_session="fetch"
        )
        return count

    @staticmethod
    def _ensure_unique(db: Session, *, cpf: str | None = None, email: str | None = None, exclude_id: int | None = None) -> None:
        if cpf:
            query = db.query(models.Member).filter(models.Member.cpf == cpf)
            if exclude_id is not None:
                query = query.filter(models.Member.id != exclude_id)
            existing = query.first()
            if existing:
                if not existing.is_active:
                    raise ConflictError(
                        "A deleted member already uses this CPF",
                        deleted=True,
                        member_id=existing.id,
                        name=existing.name,
                    )
                raise ConflictError("CPF already registered")
        if email:
            query = db.query(models.Member).filter(func.lower(models.Member.email) == email)
            if exclude_id is not None:
                query = query.filter(models.Member.id != exclude_id)
            if query.first():
                raise ConflictError("Email already registered")

    @staticmethod
    def _commit(db: Session) -> None:
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("CPF or email already registered")

    @staticmethod
    def create(db: Session, payload: schemas.MemberCreate) -> models.Member:
        cpf = normalize_cpf(payload.cpf)
        email = normalize_email(payload.email)
        birth_date = parse_birth_date(payload.birth_date)
        role = normalize_role(payload.role)
        MemberService._ensure_unique(db, cpf=cpf, email=email)

        member = models.Member(
            cpf=cpf,
            email=email,
            birth_date=birth_date,
            role=role,
            team_member=payload.team_member,
            password_hash=hash_password(default_password_for(birth_date)),
            password_changed=False,
        )
        for field in PROFILE_FIELDS:
            setattr(member, field, _clean(getattr(payload, field)))
        if not member.name:
            raise InvalidDataError("Name is required", code="MISSING_FIELDS")

        db.add(member)
        MemberService._commit(db)
        db.refresh(member)
        logger.info(f"Created member {member.id} ({member.role})")
        return member

    @staticmethod
    def update(db: Session, member: models.Member, payload: schemas.MemberUpdate) -> models.Member:
        data = payload.model_dump(exclude_unset=True)

        if "cpf" in data and data["cpf"] is not None:
            cpf = normalize_cpf(data["cpf"])
            MemberService._ensure_unique(db, cpf=cpf, exclude_id=member.id)
            member.cpf = cpf
        if "email" in data and data["email"] is not None:
            email = normalize_email(data["email"])
            MemberService._ensure_unique(db, email=email, exclude_id=member.id)
            member.email = email
        if data.get("role") is not None:
            member.role = normalize_role(data["role"])
        if data.get("team_member") is not None:
            member.team_member = data["team_member"]

        for field in PROFILE_FIELDS:
            if field in data:
                value = _clean(data[field])
                if field == "name" and not value:
                    raise InvalidDataError("Name cannot be empty")
                setattr(member, field, value)

        birth_date_changed = False
        if data.get("birth_date") is not None:
            new_birth_date = parse_birth_date(data["birth_date"])
            birth_date_changed = new_birth_date != member.birth_date
            member.birth_date = new_birth_date

        if data.get("password"):
            member.password_hash = hash_password(data["password"])
            member.password_changed = True
        elif data.get("reset_password") or birth_date_changed:
            member.password_hash = hash_password(default_password_for(member.birth_date))
            member.password_changed = False

        MemberService._commit(db)
        db.refresh(member)
        logger.info(f"Updated member {member.id}")
        return member

    @staticmethod
    def set_text(db: Session, member: models.Member, field: str, value: str | None) -> models.Member:
        if field not in ("about", "what_they_do"):
            raise InvalidDataError(f"Field {field} is not editable here")
        value = _clean(value)
        if field == "about" and value and len(value) > 200:
            raise InvalidDataError("About must be at most 200 characters")
        setattr(member, field, value)
        db.commit()
        db.refresh(member)
        return member

    @staticmethod
    def set_team(db: Session, member: models.Member, team_member: bool) -> models.Member:
        member.team_member = team_member
        db.commit()
        db.refresh(member)
        return member

    @staticmethod
    def soft_delete(db: Session, member: models.Member) -> None:
        """Deactivate a member, take them off the team and drop a custom avatar."""
        custom_avatars = {member.avatar_light, member.avatar_dark} - {
            models.DEFAULT_AVATAR_LIGHT,
            models.DEFAULT_AVATAR_DARK,
        }
        member.is_active = False
        member.team_member = False
        member.deleted_at = models.utcnow()
        member.avatar_light = models.DEFAULT_AVATAR_LIGHT
        member.avatar_dark = models.DEFAULT_AVATAR_DARK
        db.commit()

        for url in custom_avatars:
            media.try_delete_member_avatar(member.id, url)
        logger.info(f"Soft-deleted member {member.id}")

    @staticmethod
    def restore(db: Session, member_id: int) -> models.Member:
        member = MemberService.get(db, member_id, active_only=False)
        member.is_active = True
        member.team_member = True
        member.deleted_at = None
        db.commit()
        db.refresh(member)
        logger.info(f"Restored member {member.id}")
        return member


# ============================================================================
# SELF-SERVICE PROFILE
# ============================================================================


class ProfileService:
    """Changes a member makes to their own account."""

    @staticmethod
    def update(db: Session, member: models.Member, payload: schemas.ProfileUpdate) -> models.Member:
        data = payload.model_dump(exclude_unset=True)

        if data.get("email") is not None:
            email = normalize_email(data["email"])
            MemberService._ensure_unique(db, email=email, exclude_id=member.id)
            member.email = email

        for field in PROFILE_FIELDS:
            if field in data:
                value = _clean(data[field])
                if field == "name" and not value:
                    raise InvalidDataError("Name cannot be empty")
                setattr(member, field, value)

        if data.get("avatar_data_url"):
            try:
                mime_type, content = media.decode_data_url(data["avatar_data_url"])
            except ValueError as e:
                raise InvalidDataError(str(e))
            stale = ProfileService.set_avatar(db, member, content, mime_type, commit=False)
        elif data.get("avatar_url"):
            url = data["avatar_url"].strip()
            if media.is_avatar_url(url) and media.member_avatar_path(member.id, url) is None:
                raise ForbiddenError("Avatar file belongs to another member")
            stale = ProfileService._replace_avatar(member, url)
        else:
            stale = []

        MemberService._commit(db)
        ProfileService._delete_avatars(member.id, stale)
        db.refresh(member)
        return member

    @staticmethod
    def _replace_avatar(member: models.Member, url: str) -> list[str]:
        """Point both avatars at ``url``; returns the previous URLs to clean up after commit."""
        previous = {member.avatar_light, member.avatar_dark} - {url}
        member.avatar_light = url
        member.avatar_dark = url
        return sorted(u for u in previous if u)

    @staticmethod
    def _delete_avatars(member_id: int, urls: list[str]) -> None:
        for url in urls:
            media.try_delete_member_avatar(member_id, url)

    @staticmethod
    def set_avatar(db: Session, member: models.Member, content: bytes, mime_type: str, commit: bool = True) -> list[str]:
        """
        Store a new avatar for ``member``.

        With ``commit=False`` the caller commits and then removes the returned
        stale URLs through ``_delete_avatars``.
        """
        try:
            url = media.save_avatar(member.id, content, mime_type)
        except ValueError as e:
            raise InvalidDataError(str(e))
        stale = ProfileService._replace_avatar(member, url)
        if commit:
            db.commit()
            ProfileService._delete_avatars(member.id, stale)
            db.refresh(member)
            return []
        return stale

    @staticmethod
    def change_password(db: Session, member: models.Member, payload: schemas.PasswordChange) -> None:
        if not any(verify_password(c, member.password_hash) for c in password_candidates(payload.current_password)):
            raise InvalidDataError("Current password is incorrect", code="INVALID_CREDENTIALS")
        if len(payload.new_password) < MIN_PASSWORD_LENGTH:
            raise InvalidDataError(f"New password must have at least {MIN_PASSWORD_LENGTH} characters")
        if payload.new_password != payload.confirm_password:
            raise InvalidDataError("Password confirmation does not match")

        member.password_hash = hash_password(payload.new_password)
        member.password_changed = True
        db.commit()
        logger.info(f"Member {member.id} changed their password")
