"""Password hashing and the birth-date default password convention."""

from __future__ import annotations

import re
from datetime import date

from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    if not plain_password or not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def default_password_for(birth_date: date) -> str:
    """New members log in with their birth date as DDMMYYYY until they change it."""
    return birth_date.strftime("%d%m%Y")


def password_candidates(password: str) -> list[str]:
    """
    The password as typed, plus its digits-only form.

    Members type their birth date as 01/02/1990 as often as 01021990.
    """
    candidates = [password]
    digits = re.sub(r"\D", "", password)
    if digits and digits != password:
        candidates.append(digits)
    return candidates
