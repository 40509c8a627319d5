# notes_backend/routes/notes.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from ..auth import get_current_user
from ..deps import get_store
from ..services.notion_store import NoteRecord, NotionStore
from ..services.review_windows import parse_key_takeaways

logger = logging.getLogger("notes.notion")

router = APIRouter(prefix="/api", tags=["notes"])


def note_item(record: NoteRecord) -> Dict[str, Any]:
    return {
        "id": record.id,
        "url": record.url,
        "title": record.title,
        "date": record.date,
        "submissionDate": record.submission_date,
        "reviewNextDay": record.reviewed_next_day,
        "reviewWeekLater": record.reviewed_week_later,
        "source": record.source,
        "tldr": record.tldr,
        "summary": record.summary,
        "people": record.people,
        "keyTakeaways": record.key_takeaways_text or "\n".join(parse_key_takeaways(record.llm_json, record.id)),
        "actionItems": record.action_items,
    }


@router.get("/notes")
def list_notes(
    limit: int = Query(100),
    debug: bool = Query(False),
    _user: Dict[str, Any] = Depends(get_current_user),
    store: NotionStore = Depends(get_store),
):
    """All titled notes, newest submission first. `limit<=0` returns everything."""
    raw = store.all_notes()
    if debug:
        logger.info(f"Fetched {len(raw)} notes from Notion")
    notes = [note_item(NoteRecord.from_page(p)) for p in raw]
    final = notes[:limit] if limit > 0 else notes

    metadata: Dict[str, Any] = {
        "total": len(final),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if debug:
        metadata["debug"] = {
            "rawCount": len(raw),
            "processedCount": len(notes),
            "limitApplied": limit if limit > 0 else "none",
            "notesWithAutoSubmissionDate": sum(
                1 for p in raw
                if not ((p.get("properties") or {}).get("Submission Date") or {}).get("date")
            ),
        }

    return JSONResponse(
        {"notes": final, "metadata": metadata},
        headers={
            "Cache-Control": "no-cache, no-store, must-revalidate",
            "X-Total-Count": str(len(final)),
        },
    )
