# notes_backend/routes/upload.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError
from starlette.datastructures import UploadFile

from ..auth import get_current_user
from ..deps import get_clock, get_store, get_summarizer
from ..errors import ValidationFailure
from ..schemas import NoteJSON, UploadSubmitBody
from ..services.notion_store import NotionStore
from ..services.summarize import Summarizer
from ..services.uploads import UploadedFile, build_preview
from ..utils.io import upload_text

logger = logging.getLogger("notes.upload")

router = APIRouter(prefix="/api/upload", tags=["upload"])


async def _read_files(request: Request) -> List[UploadedFile]:
    form = await request.form()
    files: List[UploadedFile] = []
    for key, value in form.multi_items():
        if not key.startswith("file_") or not isinstance(value, UploadFile):
            continue
        idx = key[len("file_"):]
        kind = form.get(f"type_{idx}")
        kind = kind if kind in ("transcript", "written") else "written"
        data = await value.read()
        files.append(UploadedFile(type=kind, name=value.filename or key, content=upload_text(value.filename, data)))
    return files


@router.post("/preview")
async def preview(
    request: Request,
    _user: Dict[str, Any] = Depends(get_current_user),
    summarizer: Summarizer = Depends(get_summarizer),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """Merge every uploaded file into one draft note; nothing is written yet."""
    files = await _read_files(request)
    if not files:
        raise HTTPException(status_code=400, detail="No files")
    logger.info(f"Building preview from {len(files)} uploaded files")
    draft = await run_in_threadpool(build_preview, files, summarizer, clock().date())
    return {"preview": draft}


@router.post("/submit")
def submit(
    body: UploadSubmitBody,
    _user: Dict[str, Any] = Depends(get_current_user),
    store: NotionStore = Depends(get_store),
):
    if not body.preview:
        raise HTTPException(status_code=400, detail="Missing preview")
    try:
        note = NoteJSON.model_validate(body.preview)
    except ValidationError as e:
        raise ValidationFailure("bad payload", details=e.errors(include_url=False))
    result = store.create_note_page(note)
    return {"ok": True, "result": result}
