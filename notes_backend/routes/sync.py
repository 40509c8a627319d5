# notes_backend/routes/sync.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List

from fastapi import APIRouter, Depends

from ..auth import require_bearer
from ..config import settings
from ..deps import get_clock, get_drive, get_folders, get_mailer, get_store, get_summarizer
from ..errors import NotesError
from ..services.document_processor import FolderConfig, process_new_documents, verify_folders
from ..services.google_drive import DriveSource
from ..services.mailer import Mailer
from ..services.notion_store import NotionStore
from ..services.review import email_pending_reviews
from ..services.summarize import Summarizer

logger = logging.getLogger("notes.sync")

router = APIRouter(prefix="/api", tags=["sync"])


def run_sync(folders: List[FolderConfig], drive: DriveSource,
             store: NotionStore, summarizer: Summarizer) -> Dict[str, Any]:
    logger.info("Starting Google Drive sync...")
    verify_folders(folders, drive)
    results = process_new_documents(folders, drive, store, summarizer)
    processed = sum(1 for r in results if r["success"] and not r.get("skipped"))
    skipped = sum(1 for r in results if r.get("skipped"))
    failed = sum(1 for r in results if not r["success"])
    logger.info(f"Sync complete: {processed} processed, {skipped} skipped, {failed} failed")
    return {
        "success": True,
        "message": f"Processed {processed} new documents",
        "processed": processed,
        "skipped": skipped,
        "failed": failed,
        "results": results,
    }


@router.post("/sync-drive", dependencies=[Depends(require_bearer("SYNC_API_KEY"))])
def sync_drive(
    folders: List[FolderConfig] = Depends(get_folders),
    drive: DriveSource = Depends(get_drive),
    store: NotionStore = Depends(get_store),
    summarizer: Summarizer = Depends(get_summarizer),
):
    return run_sync(folders, drive, store, summarizer)


# schedulers that can only issue GET requests
@router.get("/sync-drive", dependencies=[Depends(require_bearer("SYNC_API_KEY"))])
def sync_drive_get(
    folders: List[FolderConfig] = Depends(get_folders),
    drive: DriveSource = Depends(get_drive),
    store: NotionStore = Depends(get_store),
    summarizer: Summarizer = Depends(get_summarizer),
):
    return run_sync(folders, drive, store, summarizer)


@router.get("/cron", dependencies=[Depends(require_bearer("CRON_SECRET"))])
def cron(
    folders: List[FolderConfig] = Depends(get_folders),
    drive: DriveSource = Depends(get_drive),
    store: NotionStore = Depends(get_store),
    summarizer: Summarizer = Depends(get_summarizer),
    mailer: Mailer = Depends(get_mailer),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """Daily job: Drive sync, then the review digest. A failed digest does not fail the run."""
    sync = run_sync(folders, drive, store, summarizer)

    email: Dict[str, Any]
    try:
        settings.require("REVIEW_EMAIL_TO")
        email = email_pending_reviews(store, mailer, clock(), settings.REVIEW_EMAIL_TO, settings.APP_URL)
    except NotesError as e:
        logger.error(f"Review email failed: {e.message} {e.details or ''}".rstrip())
        email = {"sent": False, "error": e.message, "details": e.details}

    return {"success": True, "timestamp": clock().isoformat(), "sync": sync, "email": email}
