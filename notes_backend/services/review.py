# notes_backend/services/review.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List

from pydantic import ValidationError

from ..errors import UpstreamError
from ..schemas import (
    ActionItem,
    PendingReviewsResponse,
    RangeOut,
    ReviewApiResponse,
    ReviewCounts,
    ReviewDebug,
    ReviewNote,
    ReviewResult,
    ReviewSubmission,
)
from .mailer import Mailer, render_review_digest
from .notion_store import NoteRecord, NotionStore
from .review_windows import (
    NEXT_DAY,
    WEEK_LATER,
    advance,
    parse_action_items,
    parse_key_takeaways,
    review_windows,
)

logger = logging.getLogger("notes.review")


def _sort_key(note: ReviewNote) -> float:
    try:
        return datetime.fromisoformat(note.submission_date.replace("Z", "+00:00")).timestamp()
    except ValueError:
        return float("-inf")


def to_review_note(record: NoteRecord, review_type: str) -> ReviewNote:
    return ReviewNote(
        id=record.id,
        title=record.title,
        tldr=record.tldr,
        summary=record.summary,
        key_takeaways=parse_key_takeaways(record.llm_json, record.id),
        action_items=[ActionItem(**ai) for ai in parse_action_items(record.action_items)],
        date=record.date,
        submission_date=record.submission_date,
        notion_url=record.url,
        review_type=review_type,
    )


def _review_notes(records: List[NoteRecord], review_type: str) -> List[ReviewNote]:
    notes: List[ReviewNote] = []
    for record in records:
        try:
            notes.append(to_review_note(record, review_type))
        except ValidationError as e:
            logger.warning("Skipping malformed note %s: %s", record.id, e)
    return notes


def select_pending(store: NotionStore, now: datetime) -> PendingReviewsResponse:
    """
    Notes due today: submitted yesterday and not yet reviewed, or submitted a
    week ago with only the next-day review done. Never raises; a failed lookup
    comes back as an empty result carrying `error`.
    """
    windows = review_windows(now)
    logger.info("Today: %s", now.isoformat())
    logger.info("Yesterday range: %s to %s", windows.yesterday.start, windows.yesterday.end)
    logger.info("Week ago range: %s to %s", windows.week_ago.start, windows.week_ago.end)

    try:
        next_day = store.pending_reviews(NEXT_DAY, windows)
        logger.info(f"Found {len(next_day)} next-day reviews")
        week_later = store.pending_reviews(WEEK_LATER, windows)
        logger.info(f"Found {len(week_later)} week-later reviews")
    except Exception as e:
        logger.error("Error fetching pending reviews: %s", e)
        return PendingReviewsResponse(review_date=now.isoformat(), error=str(e))

    due_next_day = _review_notes(next_day, NEXT_DAY)
    due_week_later = _review_notes(week_later, WEEK_LATER)
    notes = sorted(due_next_day + due_week_later, key=_sort_key, reverse=True)

    return PendingReviewsResponse(
        notes=notes,
        review_date=now.isoformat(),
        counts=ReviewCounts(next_day=len(due_next_day), week_later=len(due_week_later), total=len(notes)),
        debug=ReviewDebug(
            yesterday_range=RangeOut(**windows.yesterday.as_dict()),
            week_ago_range=RangeOut(**windows.week_ago.as_dict()),
        ),
    )


def submit_reviews(store: NotionStore, reviews: List[ReviewSubmission]) -> ReviewApiResponse:
    """Apply each review on its own; one failing record never rolls back the others."""
    results: List[ReviewResult] = []
    successful_ids: List[str] = []

    for review in reviews:
        try:
            record = store.get_note(review.id)
            new_state = advance(record.review_state, review.review_type)
            store.mark_reviewed(review.id, new_state, review.edits)
        except Exception as e:
            logger.error(f"Failed to update review for {review.id}: {e}")
            results.append(ReviewResult(id=review.id, success=False, review_type=review.review_type, error=str(e)))
            continue
        successful_ids.append(review.id)
        results.append(ReviewResult(id=review.id, success=True, review_type=review.review_type))
        logger.info(f"Updated review for {review.id} ({review.review_type})")

    ok = len(successful_ids)
    failed = len(results) - ok
    message = (
        f"Submitted {ok} of {len(results)} reviews ({failed} failed)"
        if failed
        else f"Successfully submitted all {ok} reviews"
    )
    logger.info(f"Review submission complete: {ok}/{len(results)} successful")
    return ReviewApiResponse(
        success=ok > 0,
        reviewed_count=ok,
        total_count=len(results),
        successful_ids=successful_ids,
        failure_count=failed,
        results=results,
        message=message,
    )


def email_pending_reviews(store: NotionStore, mailer: Mailer, now: datetime,
                          to: str, link_base: str) -> Dict[str, Any]:
    """Send the daily digest. A failed lookup still sends an (empty) digest and reports it."""
    pending = select_pending(store, now)
    digest = render_review_digest(pending.notes, link_base)
    result = mailer.send(to, digest["subject"], text=digest["text"], html_body=digest["html"])
    if not result.get("ok"):
        raise UpstreamError("Failed to send review email", details=result.get("error"))
    return {
        "sent": True,
        "to": to,
        "total": digest["total"],
        "nextDayCount": digest["next_day"],
        "weekLaterCount": digest["week_later"],
        "pendingOk": pending.error is None,
        "pendingError": pending.error,
    }
