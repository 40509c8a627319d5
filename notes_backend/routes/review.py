# notes_backend/routes/review.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ..auth import get_current_user, require_bearer
from ..config import settings
from ..deps import get_clock, get_mailer, get_store
from ..errors import ValidationFailure
from ..schemas import ReviewApiResponse, ReviewSubmitBody
from ..services.mailer import Mailer
from ..services.notion_store import NotionStore
from ..services.review import email_pending_reviews, select_pending, submit_reviews

logger = logging.getLogger("notes.review")

router = APIRouter(prefix="/api/review", tags=["review"])


@router.get("/pending")
def pending_reviews(
    _user: Dict[str, Any] = Depends(get_current_user),
    store: NotionStore = Depends(get_store),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    result = select_pending(store, clock())
    body = result.model_dump(mode="json", by_alias=True, exclude_none=True)
    if result.error:
        body = {**body, "error": "Failed to fetch pending reviews", "details": result.error}
        return JSONResponse(body, status_code=500)
    return body


@router.post("/submit", response_model=ReviewApiResponse, response_model_by_alias=True)
def submit(
    payload: Any = Body(default=None),
    _user: Dict[str, Any] = Depends(get_current_user),
    store: NotionStore = Depends(get_store),
) -> ReviewApiResponse:
    if not isinstance(payload, dict) or not isinstance(payload.get("reviews"), list):
        raise ValidationFailure("Invalid request: reviews array is required")
    try:
        body = ReviewSubmitBody.model_validate(payload)
    except ValidationError as e:
        raise ValidationFailure("Invalid request: reviews array is required",
                                details=e.errors(include_url=False))

    logger.info(f"Processing {len(body.reviews)} review submissions")
    return submit_reviews(store, body.reviews)


@router.post("/email", dependencies=[Depends(require_bearer("SYNC_API_KEY", allow_query=True))])
def email_digest(
    store: NotionStore = Depends(get_store),
    mailer: Mailer = Depends(get_mailer),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    settings.require("REVIEW_EMAIL_TO")
    return email_pending_reviews(store, mailer, clock(), settings.REVIEW_EMAIL_TO, settings.APP_URL)
