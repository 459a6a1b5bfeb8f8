"""Web Push configuration and browser subscriptions."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from .. import schemas
from ..deps import get_db
from ..services.push_notifications import PushNotificationService
from ..services.push_subscriptions import PushSubscriptionService

router = APIRouter(prefix="/api/push", tags=["Push"])
logger = logging.getLogger(__name__)


@router.get("/config", response_model=schemas.PushConfig)
def get_push_config() -> schemas.PushConfig:
    """VAPID public key for ``pushManager.subscribe``; disabled when keys are missing."""
    return schemas.PushConfig(**PushNotificationService.client_config())


@router.post(
    "/subscriptions",
    response_model=schemas.PushSubscribeResponse,
    status_code=status.HTTP_201_CREATED,
    responses={204: {"description": "Permission denied; endpoint deactivated"}},
)
def subscribe(
    payload: schemas.PushSubscribeRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Store a browser subscription.

    A ``denied`` preference deactivates the endpoint and returns 204.
    """
    if payload.preference == "denied":
        PushSubscriptionService.deactivate_endpoint(db, payload.subscription.endpoint, preference="denied")
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    subscription = PushSubscriptionService.upsert(
        db,
        payload.subscription,
        payload.preference,
        user_agent=request.headers.get("user-agent"),
    )
    return schemas.PushSubscribeResponse(id=subscription.id, preference=subscription.preference)


@router.delete("/subscriptions")
def unsubscribe(
    payload: schemas.PushUnsubscribeRequest,
    db: Session = Depends(get_db),
) -> Response:
    """Deactivate an endpoint. Unknown endpoints answer 200 with ``ok: false``."""
    if PushSubscriptionService.deactivate_endpoint(db, payload.endpoint):
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return JSONResponse({"ok": False}, status_code=status.HTTP_200_OK)
