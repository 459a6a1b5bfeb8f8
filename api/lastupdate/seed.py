from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from . import models
from .db import SessionLocal
from .services.errors import ServiceError
from .services.members import normalize_cpf, parse_birth_date
from .services.passwords import default_password_for, hash_password
from .settings import SEED_ADMIN_BIRTH_DATE, SEED_ADMIN_CPF, SEED_ADMIN_EMAIL, SEED_ADMIN_NAME

logger = logging.getLogger(__name__)


def ensure_seed_data() -> None:
    """
    Create the bootstrap admin from SEED_ADMIN_* when no member has that CPF.

    The account's password is its birth date (DDMMYYYY). Does nothing when the
    variables are not set.
    """
    if not (SEED_ADMIN_CPF and SEED_ADMIN_EMAIL and SEED_ADMIN_BIRTH_DATE):
        logger.info("ensure_seed_data: SEED_ADMIN_* not configured, skipping.")
        return

    try:
        cpf = normalize_cpf(SEED_ADMIN_CPF)
        birth_date = parse_birth_date(SEED_ADMIN_BIRTH_DATE)
    except ServiceError as e:
        logger.error(f"ensure_seed_data: invalid seed admin settings: {e.message}")
        return

    db = SessionLocal()
    try:
        if db.query(models.Member.id).filter(models.Member.cpf == cpf).first():
            logger.info("ensure_seed_data: Seed admin already exists.")
            return

        admin = models.Member(
            name=SEED_ADMIN_NAME,
            email=SEED_ADMIN_EMAIL.strip().lower(),
            cpf=cpf,
            birth_date=birth_date,
            password_hash=hash_password(default_password_for(birth_date)),
            role=models.ROLE_ADMIN,
            team_member=False,
        )
        db.add(admin)
        db.commit()
        logger.info(f"ensure_seed_data: Created seed admin {admin.id}.")
    except IntegrityError:
        db.rollback()
        logger.warning("ensure_seed_data: Seed admin email already taken by another member.")
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level="INFO")
    ensure_seed_data()
