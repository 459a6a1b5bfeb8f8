"""Login, logout and session introspection."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import (
    clear_session_cookie,
    create_access_token,
    extract_token,
    get_current_member,
    oauth2_scheme,
    set_session_cookie,
    token_expires_at,
)
from ..deps import get_db
from ..services.members import MemberService

router = APIRouter(prefix="/api/auth", tags=["Authentication"])
logger = logging.getLogger(__name__)


@router.post("/login", response_model=schemas.SessionResponse)
def login(
    payload: schemas.LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
) -> schemas.SessionResponse:
    """
    Log in with CPF and password.

    The session token is returned in the body and also set as the httponly
    ``tlu_session`` cookie used by the site.
    """
    member = MemberService.authenticate(db, payload.cpf, payload.password)
    if member is None:
        logger.info("Failed login attempt")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "INVALID_CREDENTIALS", "message": "Invalid CPF or password"},
        )

    token = create_access_token(member)
    set_session_cookie(response, token)
    logger.info(f"Member {member.id} logged in")
    return schemas.SessionResponse(
        member=schemas.Member.model_validate(member),
        token=token,
        session_expires_at=token_expires_at(token),
    )


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout() -> Response:
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    clear_session_cookie(response)
    return response


@router.get("/me", response_model=schemas.SessionResponse)
def get_me(
    request: Request,
    current_member: models.Member = Depends(get_current_member),
    credentials=Depends(oauth2_scheme),
) -> schemas.SessionResponse:
    """Current member and when their session expires."""
    token = extract_token(request, credentials)
    return schemas.SessionResponse(
        member=schemas.Member.model_validate(current_member),
        session_expires_at=token_expires_at(token) if token else None,
    )
