# notes_backend/services/ingest.py
from __future__ import annotations

import logging

from ..schemas import IngestBody, IngestResult
from .notion_store import NotionStore
from .summarize import Summarizer

logger = logging.getLogger("notes.ingest")


def ingest_note(body: IngestBody, store: NotionStore, summarizer: Summarizer) -> IngestResult:
    """Summarize one note and write it to Notion, unless its document was already ingested."""
    if body.document_id:
        existing = store.find_by_document_id(body.document_id)
        if existing:
            logger.info("Skipping %s, already ingested at %s", body.document_id, existing)
            return IngestResult(duplicate=True, url=existing)

    note = summarizer.summarize_single_source(
        body.content.text,
        source=body.source,
        transcript_raw=body.content.transcript_raw,
        default_date_iso=body.meeting_context.default_date_iso,
        known_people=body.meeting_context.known_people,
    )
    created = store.create_note_page(note, body.document_id)
    return IngestResult(page_id=created["page_id"], url=created["url"])
