# notes_backend/services/summarize.py
from __future__ import annotations

import hashlib
import json
import logging
import re
import time
from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from ..config import settings
from ..errors import ConfigurationError, UpstreamError
from ..schemas import NoteJSON
from .summarize_prompts import MERGE_UPLOADS_SYSTEM, MERGE_UPLOADS_USER, SINGLE_SOURCE_SYSTEM

logger = logging.getLogger("notes.summarize")

_MULTI_WS = re.compile(r"\s{2,}")
MAX_INPUT_CHARS = 100_000
NOTE_TYPES = ("Meeting", "Idea", "Learning", "Other")


def content_hash(text: str) -> str:
    return hashlib.sha256((text or "").encode("utf-8")).hexdigest()


def _as_text(value: Any, sep: str) -> Any:
    # models sometimes return lists where a single string is asked for
    if isinstance(value, list):
        return sep.join(str(v) for v in value)
    return value


def normalize_note_json(data: Dict[str, Any], *, source: str, default_date: str, text: str) -> Dict[str, Any]:
    out = dict(data or {})
    out["summary"] = _as_text(out.get("summary"), "\n\n")
    out["tldr"] = _as_text(out.get("tldr"), " ")
    full = out.get("full_text")
    if not isinstance(full, dict):
        full = {}
    if full.get("transcript_summary") is None:
        full.pop("transcript_summary", None)
    out["full_text"] = full
    title = (out.get("title") or "").strip()
    if len(title) > 90:
        title = title[:89].rsplit(" ", 1)[0].rstrip(",;:") + "…"
    out["title"] = title
    out["content_hash"] = content_hash(text)
    out["source"] = source
    if out.get("type") not in NOTE_TYPES:
        out["type"] = "Other"
    if not out.get("date_iso"):
        out["date_iso"] = default_date
    out["action_items"] = [
        {"owner": (str(ai.get("owner") or "").strip() or "Unassigned"), "task": ai.get("task") or "", "due": ai.get("due") or None}
        for ai in (out.get("action_items") or [])
        if isinstance(ai, dict) and ai.get("task")
    ]
    return out


class Summarizer:
    """OpenAI-backed summarization into the note shape the record writer expects."""

    def __init__(self, client: Any = None, model: Optional[str] = None, retries: Optional[int] = None):
        self._client = client
        self.model = model or settings.MODEL_NAME
        self.retries = retries if retries is not None else settings.SUM_RETRIES

    @property
    def client(self):
        if self._client is None:
            if not settings.OPENAI_API_KEY:
                raise ConfigurationError("OPENAI_API_KEY not configured")
            from openai import OpenAI
            self._client = OpenAI(api_key=settings.OPENAI_API_KEY).with_options(timeout=settings.SUM_TIMEOUT_S)
        return self._client

    # -------------------- OpenAI path --------------------
    def _json_call(self, system: str, user: str) -> Dict[str, Any]:
        try:
            logger.info(f"[OpenAI] model={self.model} max_tokens={settings.MAX_TOKENS} temp={settings.TEMPERATURE}")
            resp = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                temperature=settings.TEMPERATURE,
                max_tokens=settings.MAX_TOKENS,
                response_format={"type": "json_object"},
            )
            content = resp.choices[0].message.content or "{}"
            return json.loads(content)
        except ConfigurationError:
            raise
        except Exception as e:
            logger.error(f"[OpenAI] error: {e}")
            raise UpstreamError("openai_error", details=str(e)) from e

    def _json_call_with_retries(self, system: str, user: str) -> Dict[str, Any]:
        attempts = max(1, self.retries)
        delay = 0.7
        last_err: Optional[UpstreamError] = None
        for attempt in range(1, attempts + 1):
            try:
                return self._json_call(system, user)
            except UpstreamError as e:
                last_err = e
                logger.warning(f"[summarize] attempt {attempt}/{attempts} failed: {e.details}")
                if attempt < attempts:
                    time.sleep(delay)
                    delay = min(delay * 2, 6.0)
        assert last_err is not None
        raise last_err

    # -------------------- Public APIs --------------------
    def summarize_single_source(
        self,
        text: str,
        *,
        source: str,
        transcript_raw: Optional[str] = None,
        default_date_iso: Optional[str] = None,
        known_people: Optional[List[str]] = None,
    ) -> NoteJSON:
        default_date = default_date_iso or date.today().isoformat()
        user = json.dumps({
            "default_date_iso": default_date,
            "known_people": known_people or [],
            "source": source,
            "text": (text or "")[:MAX_INPUT_CHARS],
            "transcript_raw": transcript_raw[:MAX_INPUT_CHARS] if transcript_raw else None,
        })
        data = self._json_call_with_retries(SINGLE_SOURCE_SYSTEM, user)
        normalized = normalize_note_json(data, source=source, default_date=default_date, text=text)
        try:
            return NoteJSON.model_validate(normalized)
        except ValidationError as e:
            logger.error("[summarize] model output failed validation: %s", e)
            raise UpstreamError("LLM output failed validation", details=str(e)) from e

    def merge_uploads(self, merged: str) -> Dict[str, Any]:
        """Single summarization over several uploaded files; returns the raw fields."""
        user = MERGE_UPLOADS_USER.format(merged=merged[:MAX_INPUT_CHARS])
        try:
            return self._json_call_with_retries(MERGE_UPLOADS_SYSTEM, user)
        except UpstreamError as e:
            # JSON the model could not produce is treated as an empty draft
            if isinstance(e.__cause__, ValueError):
                return {}
            raise

    def complete_text(self, messages: List[Dict[str, str]], *, model: Optional[str] = None,
                      temperature: float = 0.3) -> str:
        try:
            resp = self.client.chat.completions.create(
                model=model or settings.CHAT_MODEL,
                messages=messages,
                temperature=temperature,
            )
        except ConfigurationError:
            raise
        except Exception as e:
            logger.error(f"[OpenAI] chat error: {e}")
            raise UpstreamError("openai_error", details=str(e)) from e
        return (resp.choices[0].message.content or "").strip()


def one_line(text: str, max_chars: int = 50) -> str:
    s = _MULTI_WS.sub(" ", (text or "").strip())
    return s[:max_chars]
