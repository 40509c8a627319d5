# notes_backend/services/review_windows.py
"""
Review scheduling rules.

A note is reviewed twice: the calendar day after it was submitted ("next-day")
and seven calendar days after ("week-later"). Windows are whole local calendar
days, computed on dates rather than epoch offsets so DST shifts never move a
boundary.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from enum import Enum
from typing import Any, Dict, List, Optional

from ..errors import InvalidReviewState, ReviewTransitionError

logger = logging.getLogger("notes.review")

NEXT_DAY = "next-day"
WEEK_LATER = "week-later"

NEXT_DAY_OFFSET = 1
WEEK_LATER_OFFSET = 7

_END_OF_DAY = time(23, 59, 59, 999000)


# -------------------- Windows --------------------
@dataclass(frozen=True)
class DateRange:
    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant <= self.end

    def as_dict(self) -> Dict[str, str]:
        return {"start": self.start.isoformat(timespec="milliseconds"),
                "end": self.end.isoformat(timespec="milliseconds")}


def day_range(day: date, tz: tzinfo) -> DateRange:
    return DateRange(
        start=datetime.combine(day, time.min, tzinfo=tz),
        end=datetime.combine(day, _END_OF_DAY, tzinfo=tz),
    )


@dataclass(frozen=True)
class ReviewWindows:
    today: date
    yesterday: DateRange
    week_ago: DateRange

    def for_type(self, review_type: str) -> DateRange:
        if review_type == NEXT_DAY:
            return self.yesterday
        if review_type == WEEK_LATER:
            return self.week_ago
        raise ValueError(f"unknown review type: {review_type!r}")


def review_windows(now: datetime) -> ReviewWindows:
    """Calendar-day windows for notes submitted yesterday and a week ago."""
    if now.tzinfo is None:
        raise ValueError("review_windows needs a timezone-aware datetime")
    today = now.date()
    return ReviewWindows(
        today=today,
        yesterday=day_range(today - timedelta(days=NEXT_DAY_OFFSET), now.tzinfo),
        week_ago=day_range(today - timedelta(days=WEEK_LATER_OFFSET), now.tzinfo),
    )


def trailing_range(now: datetime, days: int) -> DateRange:
    """From local midnight `days` days ago through the end of today."""
    today = now.date()
    return DateRange(
        start=datetime.combine(today - timedelta(days=days), time.min, tzinfo=now.tzinfo),
        end=datetime.combine(today, _END_OF_DAY, tzinfo=now.tzinfo),
    )


# -------------------- Notion filter predicates --------------------
def date_within(prop: str, rng: DateRange) -> Dict[str, Any]:
    # inclusive on both ends
    return {
        "property": prop,
        "date": {
            "on_or_after": rng.start.isoformat(timespec="milliseconds"),
            "on_or_before": rng.end.isoformat(timespec="milliseconds"),
        },
    }


def checkbox_is(prop: str, value: bool) -> Dict[str, Any]:
    return {"property": prop, "checkbox": {"equals": value}}


def pending_filter(review_type: str, windows: ReviewWindows) -> Dict[str, Any]:
    rng = windows.for_type(review_type)
    clauses = [date_within("Submission Date", rng)]
    if review_type == NEXT_DAY:
        clauses.append(checkbox_is("Reviewed Next Day", False))
    else:
        clauses.append(checkbox_is("Reviewed Next Day", True))
        clauses.append(checkbox_is("Reviewed Week Later", False))
    return {"and": clauses}


# -------------------- Review state --------------------
class ReviewState(str, Enum):
    PENDING_NEXT_DAY = "pending-next-day"
    NEXT_DAY_DONE = "next-day-done"
    WEEK_LATER_DONE = "week-later-done"

    @classmethod
    def from_flags(cls, reviewed_next_day: bool, reviewed_week_later: bool) -> "ReviewState":
        if reviewed_week_later and not reviewed_next_day:
            raise InvalidReviewState("week-later review recorded without a next-day review")
        if reviewed_week_later:
            return cls.WEEK_LATER_DONE
        if reviewed_next_day:
            return cls.NEXT_DAY_DONE
        return cls.PENDING_NEXT_DAY

    @property
    def flags(self) -> tuple[bool, bool]:
        return (self is not ReviewState.PENDING_NEXT_DAY, self is ReviewState.WEEK_LATER_DONE)


def advance(state: ReviewState, review_type: str) -> ReviewState:
    """Apply a completed review. Repeating a finished review is a no-op."""
    if review_type == NEXT_DAY:
        if state is ReviewState.PENDING_NEXT_DAY:
            return ReviewState.NEXT_DAY_DONE
        return state
    if review_type == WEEK_LATER:
        if state is ReviewState.PENDING_NEXT_DAY:
            raise ReviewTransitionError("next-day review must be completed before the week-later review")
        return ReviewState.WEEK_LATER_DONE
    raise ReviewTransitionError(f"unknown review type: {review_type!r}")


def due_review(state: ReviewState, submitted: date, today: date) -> Optional[str]:
    """Which review, if any, is due today for a note submitted on `submitted`."""
    age = (today - submitted).days
    if age == NEXT_DAY_OFFSET and state is ReviewState.PENDING_NEXT_DAY:
        return NEXT_DAY
    if age == WEEK_LATER_OFFSET and state is ReviewState.NEXT_DAY_DONE:
        return WEEK_LATER
    return None


# -------------------- Text blobs --------------------
_ACTION_LINE = re.compile(r"•\s*(.+?):\s*(.+?)(?:\s*\(due\s+(.+?)\))?$")
_BARE_BULLET = re.compile(r"•\s*(.+)")


def format_action_items(items: List[Dict[str, Any]]) -> str:
    lines = [
        f"• {ai['owner']}: {ai['task']}" + (f" (due {ai['due']})" if ai.get("due") else "")
        for ai in items
    ]
    return "\n".join(lines) or "-"


def format_due_dates(items: List[Dict[str, Any]]) -> str:
    lines = [f"• {ai['owner']}: {ai['task']} — {ai['due']}" for ai in items if ai.get("due")]
    return "\n".join(lines) or "-"


def parse_action_items(blob: Optional[str]) -> List[Dict[str, Any]]:
    """
    Parse the "• Owner: Task (due Date)" blob written by the record writer.
    Bullets without an owner get owner "Unassigned"; other lines are dropped.
    """
    if not blob or blob.strip() == "-":
        return []
    out: List[Dict[str, Any]] = []
    for line in blob.splitlines():
        s = line.strip()
        if not s.startswith("•"):
            continue
        m = _ACTION_LINE.match(s)
        if m:
            due = (m.group(3) or "").strip() or None
            owner = m.group(1).strip() or "Unassigned"
            out.append({"owner": owner, "task": m.group(2).strip(), "due": due})
            continue
        bare = _BARE_BULLET.match(s)
        if bare and bare.group(1).strip():
            out.append({"owner": "Unassigned", "task": bare.group(1).strip(), "due": None})
    return out


def parse_key_takeaways(llm_json: Optional[str], page_id: str = "") -> List[str]:
    if not llm_json:
        return []
    try:
        data = json.loads(llm_json)
    except ValueError:
        logger.warning("Failed to parse LLM JSON for page %s", page_id)
        return []
    if not isinstance(data, dict):
        return []
    items = data.get("key_takeaways") or data.get("keyTakeaways") or []
    return [str(i) for i in items] if isinstance(items, list) else []
