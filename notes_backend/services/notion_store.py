# notes_backend/services/notion_store.py
"""
Notion-backed record store for note pages.

All reads go through the database's first data source (Notion API 2025-09-03);
pages are created under the database itself. Property names are the fixed
schema of the notes database.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List, Optional

from ..errors import LookupFailure, UpstreamError
from ..schemas import NoteJSON
from .review_windows import (
    DateRange,
    ReviewState,
    ReviewWindows,
    date_within,
    format_action_items,
    format_due_dates,
    pending_filter,
)

logger = logging.getLogger("notes.notion")

RICH_TEXT_LIMIT = 2000  # Notion caps a single text object at 2000 chars
PAGE_SIZE = 100

TITLE_NOT_EMPTY = {"property": "Title", "title": {"is_not_empty": True}}
NEWEST_FIRST = [{"property": "Submission Date", "direction": "descending"}]


# -------------------- property builders --------------------
def rich_text(content: str) -> Dict[str, Any]:
    content = content or ""
    chunks = [content[i:i + RICH_TEXT_LIMIT] for i in range(0, len(content), RICH_TEXT_LIMIT)] or [""]
    return {"rich_text": [{"type": "text", "text": {"content": c}} for c in chunks]}


def _text_items(content: str) -> List[Dict[str, Any]]:
    return rich_text(content)["rich_text"]


def heading(text: str) -> Dict[str, Any]:
    return {"type": "heading_2", "heading_2": {"rich_text": _text_items(text)}}


def paragraph(text: str) -> Dict[str, Any]:
    return {"type": "paragraph", "paragraph": {"rich_text": _text_items(text)}}


def bullet(text: str) -> Dict[str, Any]:
    return {"type": "bulleted_list_item", "bulleted_list_item": {"rich_text": _text_items(text)}}


# -------------------- property readers --------------------
def plain_text(prop: Optional[Dict[str, Any]]) -> str:
    if not prop:
        return ""
    items = prop.get("title") or prop.get("rich_text")
    if items:
        return "".join(
            (it.get("plain_text") if it.get("plain_text") is not None else (it.get("text") or {}).get("content", ""))
            for it in items
        )
    if prop.get("select"):
        return prop["select"].get("name", "")
    return ""


def date_start(prop: Optional[Dict[str, Any]]) -> str:
    if not prop:
        return ""
    if prop.get("date"):
        return prop["date"].get("start") or ""
    if prop.get("created_time"):
        return prop["created_time"]
    return ""


def checkbox(prop: Optional[Dict[str, Any]]) -> bool:
    return bool((prop or {}).get("checkbox"))


def page_url(page: Dict[str, Any]) -> str:
    return page.get("url") or f"https://notion.so/{page['id'].replace('-', '')}"


@dataclass
class NoteRecord:
    id: str
    url: str
    title: str
    date: str
    submission_date: str
    type: str = ""
    source: str = ""
    people: List[str] = field(default_factory=list)
    tldr: str = ""
    summary: str = ""
    action_items: str = ""
    due_dates: str = ""
    llm_json: str = ""
    key_takeaways_text: str = ""
    reviewed_next_day: bool = False
    reviewed_week_later: bool = False
    last_review_date: Optional[str] = None
    review_notes: str = ""
    document_source_id: Optional[str] = None

    @classmethod
    def from_page(cls, page: Dict[str, Any]) -> "NoteRecord":
        props = page.get("properties") or {}
        submitted = date_start(props.get("Submission Date")) or page.get("created_time", "")
        return cls(
            id=page["id"],
            url=page_url(page),
            title=plain_text(props.get("Title")) or "Untitled Note",
            date=date_start(props.get("Date")) or submitted,
            submission_date=submitted,
            type=plain_text(props.get("Type")),
            source=plain_text(props.get("Source")),
            people=[p.get("name", "") for p in (props.get("People") or {}).get("multi_select") or []],
            tldr=plain_text(props.get("TLDR")),
            summary=plain_text(props.get("Summary")),
            action_items=plain_text(props.get("Action Items")),
            due_dates=plain_text(props.get("Due Dates")),
            llm_json=plain_text(props.get("LLM JSON")),
            key_takeaways_text=plain_text(props.get("Key Takeaways")),
            reviewed_next_day=checkbox(props.get("Reviewed Next Day")),
            reviewed_week_later=checkbox(props.get("Reviewed Week Later")),
            last_review_date=date_start(props.get("Last Review Date")) or None,
            review_notes=plain_text(props.get("Review Notes")),
            document_source_id=plain_text(props.get("Document ID")) or None,
        )

    @property
    def review_state(self) -> ReviewState:
        return ReviewState.from_flags(self.reviewed_next_day, self.reviewed_week_later)


# -------------------- store --------------------
class NotionStore:
    def __init__(self, client: Any, database_id: str, clock: Callable[[], datetime]):
        self.client = client
        self.database_id = database_id
        self.clock = clock
        self._data_source_id: Optional[str] = None

    # ---- data source ----
    def data_source_id(self) -> str:
        if self._data_source_id:
            return self._data_source_id
        try:
            database = self.client.databases.retrieve(database_id=self.database_id)
        except Exception as e:
            raise LookupFailure(f"Notion database unreachable: {e}") from e
        sources = database.get("data_sources") or []
        if not sources or not sources[0].get("id"):
            raise LookupFailure("No data source found in database")
        self._data_source_id = sources[0]["id"]
        logger.info("Using data source %s", self._data_source_id)
        return self._data_source_id

    def query(self, *, filter: Optional[Dict[str, Any]] = None, sorts: Optional[list] = None,
              page_size: int = PAGE_SIZE, start_cursor: Optional[str] = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {"page_size": page_size}
        if filter:
            body["filter"] = filter
        if sorts:
            body["sorts"] = sorts
        if start_cursor:
            body["start_cursor"] = start_cursor
        path = f"data_sources/{self.data_source_id()}/query"
        try:
            return self.client.request(path=path, method="POST", body=body)
        except Exception as e:
            raise LookupFailure(f"Notion query failed: {e}") from e

    def iter_pages(self, *, filter: Optional[Dict[str, Any]] = None,
                   sorts: Optional[list] = None) -> Iterator[Dict[str, Any]]:
        cursor: Optional[str] = None
        while True:
            resp = self.query(filter=filter, sorts=sorts, start_cursor=cursor)
            yield from resp.get("results", [])
            if not resp.get("has_more") or not resp.get("next_cursor"):
                break
            cursor = resp["next_cursor"]

    # ---- reads ----
    def pending_reviews(self, review_type: str, windows: ReviewWindows) -> List[NoteRecord]:
        pages = self.iter_pages(filter=pending_filter(review_type, windows), sorts=NEWEST_FIRST)
        return [NoteRecord.from_page(p) for p in pages]

    def notes_between(self, rng: DateRange, page_size: int = PAGE_SIZE) -> List[NoteRecord]:
        flt = {"and": [date_within("Submission Date", rng), TITLE_NOT_EMPTY]}
        resp = self.query(filter=flt, sorts=NEWEST_FIRST, page_size=page_size)
        if resp.get("has_more"):
            logger.info("Notes between %s and %s truncated to the newest %d", rng.start, rng.end, page_size)
        return [NoteRecord.from_page(p) for p in resp.get("results", [])]

    def all_notes(self) -> List[Dict[str, Any]]:
        return list(self.iter_pages(filter=TITLE_NOT_EMPTY, sorts=NEWEST_FIRST))

    def get_note(self, page_id: str) -> NoteRecord:
        try:
            page = self.client.pages.retrieve(page_id=page_id)
        except Exception as e:
            raise UpstreamError(f"Could not load page {page_id}: {e}") from e
        return NoteRecord.from_page(page)

    def find_by_document_id(self, document_id: str) -> Optional[str]:
        """
        URL of the page already created for `document_id`, else None.
        Any failure is treated as "not found" so ingestion is never blocked.
        """
        try:
            flt = {"property": "Document ID", "rich_text": {"equals": document_id}}
            resp = self.query(filter=flt)
            for page in resp.get("results", []):
                props = page.get("properties") or {}
                if plain_text(props.get("Document ID")) == document_id:
                    logger.info("Found existing page for %s: %s", document_id, page_url(page))
                    return page_url(page)
        except Exception as e:
            logger.error("Document ID check failed for %s, proceeding: %s", document_id, e)
            return None
        logger.info("No existing page for %s", document_id)
        return None

    # ---- writes ----
    def note_properties(self, note: NoteJSON, document_id: Optional[str] = None) -> Dict[str, Any]:
        now = self.clock()
        items = [ai.model_dump() for ai in note.action_items]
        meta = {
            "title": note.title,
            "type": note.type,
            "source": note.source,
            "people": note.people,
            "actionCount": len(items),
            "keyTakeawayCount": len(note.key_takeaways),
            "key_takeaways": note.key_takeaways,
            "hasTranscript": bool(note.full_text and note.full_text.transcript_summary),
            "contentHash": note.content_hash[:8] + "...",
            "processedAt": now.isoformat(),
        }
        props: Dict[str, Any] = {
            "Title": {"title": _text_items(note.title)},
            "Date": {"date": {"start": note.date_iso}},
            "Submission Date": {"date": {"start": now.isoformat(timespec="milliseconds")}},
            "Type": {"select": {"name": note.type}},
            "People": {"multi_select": [{"name": p} for p in note.people]},
            "Source": {"select": {"name": note.source}},
            "TLDR": rich_text(note.tldr),
            "Summary": rich_text(note.summary),
            "Action Items": rich_text(format_action_items(items)),
            "Due Dates": rich_text(format_due_dates(items)),
            "LLM JSON": rich_text(json.dumps(meta, indent=2)),
            "Reviewed Next Day": {"checkbox": False},
            "Reviewed Week Later": {"checkbox": False},
        }
        if document_id:
            props["Document ID"] = rich_text(document_id)
        return props

    @staticmethod
    def note_blocks(note: NoteJSON) -> List[Dict[str, Any]]:
        blocks = [heading("TL;DR"), paragraph(note.tldr), heading("Key Takeaways")]
        blocks += [bullet(k) for k in note.key_takeaways] or [paragraph("-")]
        blocks.append(heading("Action Items"))
        blocks += [
            bullet(f"{ai.owner}: {ai.task}" + (f" (due {ai.due})" if ai.due else ""))
            for ai in note.action_items
        ] or [paragraph("-")]
        full = note.full_text
        blocks += [heading("Body"), paragraph((full.body if full else None) or "-")]
        if full and full.transcript_summary:
            blocks += [heading("Transcript Summary"), paragraph(full.transcript_summary)]
        return blocks

    def create_note_page(self, note: NoteJSON, document_id: Optional[str] = None) -> Dict[str, str]:
        try:
            page = self.client.pages.create(
                parent={"database_id": self.database_id},
                properties=self.note_properties(note, document_id),
                children=self.note_blocks(note),
            )
        except Exception as e:
            raise UpstreamError(f"Notion page create failed: {e}") from e
        logger.info("Created Notion page %s (%s)", page["id"], note.title)
        return {"page_id": page["id"], "url": page_url(page)}

    def mark_reviewed(self, page_id: str, state: ReviewState, edits: str = "") -> None:
        next_day, week_later = state.flags
        props: Dict[str, Any] = {
            "Reviewed Next Day": {"checkbox": next_day},
            "Reviewed Week Later": {"checkbox": week_later},
            "Last Review Date": {"date": {"start": self.clock().isoformat(timespec="milliseconds")}},
        }
        if edits and edits.strip():
            props["Review Notes"] = rich_text(edits.strip())
        # pages are never archived by reviews
        self.client.pages.update(page_id=page_id, properties=props)
