# notes_backend/services/uploads.py
from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List

from .summarize import Summarizer, content_hash, one_line

SEPARATOR = "\n\n---\n\n"
FALLBACK_TLDR_CHARS = 280
FALLBACK_SUMMARY_CHARS = 2000


@dataclass
class UploadedFile:
    type: str  # "transcript" | "written"
    name: str
    content: str


def merge_context(files: List[UploadedFile]) -> tuple[str, str]:
    """Transcripts first, then written notes. Returns (merged, written_only)."""
    transcripts = [f"Transcript ({f.name})\n\n{f.content}" for f in files if f.type == "transcript"]
    written = [f"Written ({f.name})\n\n{f.content}" for f in files if f.type != "transcript"]
    return SEPARATOR.join(transcripts + written), SEPARATOR.join(written)


def build_preview(files: List[UploadedFile], summarizer: Summarizer, today: date) -> Dict[str, Any]:
    merged, written = merge_context(files)
    parsed = summarizer.merge_uploads(merged)

    full_written = parsed.get("full_written")
    if not isinstance(full_written, str) or not full_written:
        full_written = written

    def _list(key: str) -> list:
        value = parsed.get(key)
        return value if isinstance(value, list) else []

    title = (parsed.get("title") or files[0].name or "Untitled Note")[:90]
    # empty model fields fall back to the uploaded text
    raw_text = "\n\n".join(f.content.strip() for f in files if f.content.strip())
    tldr = parsed.get("tldr") or one_line(raw_text, FALLBACK_TLDR_CHARS) or title
    summary = parsed.get("summary") or raw_text[:FALLBACK_SUMMARY_CHARS] or title

    return {
        "title": title,
        "date_iso": today.isoformat(),
        "type": "Meeting",
        "people": _list("people"),
        "source": "Manual",
        "tldr": tldr,
        "summary": summary,
        "key_takeaways": _list("key_takeaways"),
        "action_items": [
            {"owner": str(ai.get("owner") or "").strip() or "Unassigned", "task": ai.get("task") or "", "due": ai.get("due") or None}
            for ai in _list("action_items")
            if isinstance(ai, dict) and ai.get("task")
        ],
        "full_text": {"body": full_written},
        "content_hash": content_hash(json.dumps({"files": [f.name for f in files]})),
    }
