# notes_backend/routes/ingest.py
from __future__ import annotations

import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError

from ..auth import verify_signature
from ..deps import get_store, get_summarizer
from ..errors import ValidationFailure
from ..schemas import IngestBody, IngestResult
from ..services.ingest import ingest_note
from ..services.notion_store import NotionStore
from ..services.summarize import Summarizer

logger = logging.getLogger("notes.ingest")

router = APIRouter(prefix="/api", tags=["ingest"])


@router.post("/ingest", response_model=IngestResult)
async def ingest(
    request: Request,
    x_signature: Optional[str] = Header(default=None),
    store: NotionStore = Depends(get_store),
    summarizer: Summarizer = Depends(get_summarizer),
) -> IngestResult:
    # signature covers the exact bytes sent
    raw = await request.body()
    verify_signature(raw, x_signature)

    try:
        body = IngestBody.model_validate(json.loads(raw or b"{}"))
    except ValueError as e:
        # json.JSONDecodeError and pydantic's ValidationError are both ValueErrors
        details = e.errors(include_url=False) if isinstance(e, ValidationError) else str(e)
        raise ValidationFailure("bad payload", details=details)

    logger.info("Ingesting %s note (document_id=%s)", body.source, body.document_id)
    return await run_in_threadpool(ingest_note, body, store, summarizer)
