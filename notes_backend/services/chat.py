# notes_backend/services/chat.py
from __future__ import annotations

import logging
from datetime import date, datetime, time
from typing import Dict, List, Optional

from ..config import settings
from ..errors import UpstreamError, ValidationFailure
from ..schemas import ChatResponse, ChatWindow, Citation
from .notion_store import NoteRecord, NotionStore
from .review_windows import DateRange, trailing_range
from .summarize import Summarizer, one_line
from .summarize_prompts import CHAT_SYSTEM, CONVERSATION_TITLE_USER

logger = logging.getLogger("notes.chat")

CITATION_LIMIT = 10
TITLE_KEEP_CHARS = 20


def _parse_day(value: str) -> date:
    try:
        return date.fromisoformat(value[:10])
    except ValueError as e:
        raise ValidationFailure(f"Invalid date: {value!r}") from e


def parse_window(now: datetime, preset: Optional[str] = None,
                 start: Optional[str] = None, end: Optional[str] = None) -> DateRange:
    """
    Date window for chat context: `preset` is a day count ("30", "60", "90");
    "custom" or no preset uses `start`/`end`. Bounds snap to whole local days.
    """
    if preset and preset != "custom":
        try:
            days = int(preset)
        except ValueError as e:
            raise ValidationFailure(f"Invalid preset: {preset!r}") from e
        return trailing_range(now, days)

    end_day = _parse_day(end) if end else now.date()
    start_day = _parse_day(start) if start else now.date()
    if start_day > end_day:
        raise ValidationFailure("start must not be after end")
    return DateRange(
        start=datetime.combine(start_day, time.min, tzinfo=now.tzinfo),
        end=datetime.combine(end_day, time(23, 59, 59, 999000), tzinfo=now.tzinfo),
    )


def context_block(note: NoteRecord) -> str:
    return (
        f"Title: {note.title}\nDate: {note.date}\nSubmitted: {note.submission_date}\n"
        f"TLDR: {note.tldr}\nSummary: {note.summary}\nLink: {note.url}"
    )


def build_context(notes: List[NoteRecord], max_chars: Optional[int] = None) -> str:
    """Newest notes first, stopping before the character budget is exceeded."""
    budget = max_chars or settings.CHAT_MAX_CHARS
    blocks: List[str] = []
    used = 0
    for note in notes:
        block = context_block(note)
        if blocks and used + len(block) > budget:
            logger.info("Chat context truncated at %d of %d notes", len(blocks), len(notes))
            break
        blocks.append(block[:budget])
        used += len(block)
    return "\n\n---\n\n".join(blocks)


def answer_question(question: str, rng: DateRange, store: NotionStore, summarizer: Summarizer) -> ChatResponse:
    notes = store.notes_between(rng)
    prompt = (
        f"User question: {question}\n\n"
        f"Notes context ({len(notes)} documents, {rng.start.date()} to {rng.end.date()}):\n\n"
        f"{build_context(notes)}"
    )
    answer = summarizer.complete_text([
        {"role": "system", "content": CHAT_SYSTEM},
        {"role": "user", "content": prompt},
    ])
    citations = [Citation(title=n.title, url=n.url) for n in notes[:CITATION_LIMIT]]
    return ChatResponse(answer=answer, citations=citations, count=len(notes),
                        window=ChatWindow(start=rng.start, end=rng.end))


def conversation_reply(history: List[Dict[str, str]], now: datetime,
                       store: NotionStore, summarizer: Summarizer) -> str:
    """Reply to the latest user message using recent notes as system context."""
    notes_context = ""
    if any(m["role"] == "user" for m in history):
        try:
            days = settings.CHAT_WINDOW_DAYS
            notes = store.notes_between(trailing_range(now, days), page_size=50)
            notes_context = (
                f"\n\nRelevant notes context ({len(notes)} documents, last {days} days):\n\n"
                f"{build_context(notes)}"
            )
        except Exception as e:
            logger.error("Failed to fetch Notion context: %s", e)

    system = {"role": "system", "content": CHAT_SYSTEM + notes_context}
    return summarizer.complete_text([system, *history])


def conversation_title(title: str, summarizer: Summarizer) -> str:
    """Short titles are kept; longer ones are condensed to a few words by the model."""
    title = title.strip() or "New conversation"
    if len(title) <= TITLE_KEEP_CHARS:
        return title
    try:
        short = summarizer.complete_text(
            [{"role": "user", "content": CONVERSATION_TITLE_USER.format(message=title)}],
            model=settings.MODEL_NAME,
            temperature=0.7,
        )
    except UpstreamError as e:
        logger.warning("Title generation failed, using message prefix: %s", e.details or e)
        return one_line(title)
    return short.strip().strip('"') or one_line(title)
