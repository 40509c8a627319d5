# tests/conftest.py
import os
import tempfile
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest

# environment must be in place before notes_backend.config is imported
_TMP = tempfile.mkdtemp(prefix="notes-tests-")
os.environ.update({
    "DATABASE_URL": f"sqlite:///{os.path.join(_TMP, 'test.db')}",
    "TIMEZONE": "UTC",
    "NOTION_TOKEN": "secret_test",
    "NOTION_DB_ID": "db-1",
    "INGEST_SHARED_SECRET": "ingest-secret",
    "SYNC_API_KEY": "sync-key",
    "CRON_SECRET": "cron-secret",
    "SESSION_JWT_SECRET": "jwt-secret",
    "REVIEW_EMAIL_TO": "me@example.com",
    "APP_URL": "https://notes.example.com",
    "GMAIL_APP_PASSWORD": "app-password",
})

from fastapi.testclient import TestClient  # noqa: E402
from jose import jwt  # noqa: E402

from notes_backend import deps  # noqa: E402
from notes_backend.errors import UpstreamError  # noqa: E402
from notes_backend.main import app  # noqa: E402
from notes_backend.schemas import NoteJSON  # noqa: E402
from notes_backend.services.document_processor import FolderConfig  # noqa: E402
from notes_backend.services.notion_store import NotionStore  # noqa: E402
from notes_backend.services.summarize import content_hash  # noqa: E402

NOW = datetime(2024, 3, 15, 10, 0, tzinfo=timezone.utc)


# -------------------- fake Notion --------------------
def _parse_instant(value: str) -> datetime:
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def _text(prop: Dict[str, Any]) -> str:
    items = prop.get("title") or prop.get("rich_text") or []
    return "".join((it.get("text") or {}).get("content", "") for it in items)


def matches(page: Dict[str, Any], flt: Optional[Dict[str, Any]]) -> bool:
    """Evaluates the subset of Notion filters the store sends."""
    if not flt:
        return True
    if "and" in flt:
        return all(matches(page, f) for f in flt["and"])
    if "or" in flt:
        return any(matches(page, f) for f in flt["or"])

    prop = page["properties"].get(flt["property"]) or {}
    if "date" in flt:
        start = (prop.get("date") or {}).get("start")
        if not start:
            return False
        value = _parse_instant(start)
        cond = flt["date"]
        if "on_or_after" in cond and value < _parse_instant(cond["on_or_after"]):
            return False
        if "on_or_before" in cond and value > _parse_instant(cond["on_or_before"]):
            return False
        return True
    if "checkbox" in flt:
        return bool(prop.get("checkbox")) == flt["checkbox"]["equals"]
    if "title" in flt:
        return bool(_text(prop)) if flt["title"].get("is_not_empty") else True
    if "rich_text" in flt:
        return _text(prop) == flt["rich_text"]["equals"]
    raise AssertionError(f"unsupported filter {flt}")


class _Databases:
    def __init__(self, notion: "FakeNotion"):
        self.notion = notion

    def retrieve(self, database_id: str) -> Dict[str, Any]:
        self.notion.retrieves += 1
        return {"id": database_id, "data_sources": [{"id": ds} for ds in self.notion.data_sources]}


class _Pages:
    def __init__(self, notion: "FakeNotion"):
        self.notion = notion

    def create(self, parent: Dict[str, Any], properties: Dict[str, Any], children=None) -> Dict[str, Any]:
        page_id = str(uuid.uuid4())
        page = {
            "id": page_id,
            "url": f"https://www.notion.so/{page_id.replace('-', '')}",
            "created_time": NOW.isoformat(),
            "parent": parent,
            "properties": properties,
            "children": children or [],
        }
        self.notion.records[page_id] = page
        return page

    def retrieve(self, page_id: str) -> Dict[str, Any]:
        if page_id not in self.notion.records:
            raise KeyError(f"Could not find page with ID: {page_id}")
        return self.notion.records[page_id]

    def update(self, page_id: str, properties: Dict[str, Any]) -> Dict[str, Any]:
        if page_id in self.notion.fail_updates:
            raise RuntimeError("Notion update rejected")
        page = self.retrieve(page_id)
        page["properties"].update(properties)
        self.notion.updates.append((page_id, properties))
        return page


class FakeNotion:
    """In-memory stand-in for notion_client.Client."""

    def __init__(self):
        self.records: Dict[str, Dict[str, Any]] = {}
        self.data_sources: List[str] = ["ds-1"]
        self.fail_queries = False
        self.fail_updates: set = set()
        self.retrieves = 0
        self.queries: List[Dict[str, Any]] = []
        self.updates: List[Any] = []
        self.databases = _Databases(self)
        self.pages = _Pages(self)

    def add(self, page: Dict[str, Any]) -> str:
        self.records[page["id"]] = page
        return page["id"]

    def request(self, path: str, method: str, body: Dict[str, Any]) -> Dict[str, Any]:
        assert method == "POST" and path.endswith("/query")
        self.queries.append(body)
        if self.fail_queries:
            raise RuntimeError("Notion is down")
        results = [p for p in self.records.values() if matches(p, body.get("filter"))]
        for s in reversed(body.get("sorts") or []):
            results.sort(
                key=lambda p: ((p["properties"].get(s["property"]) or {}).get("date") or {}).get("start") or "",
                reverse=s["direction"] == "descending",
            )
        start = int(body.get("start_cursor") or 0)
        size = body.get("page_size", 100)
        more = start + size < len(results)
        return {"results": results[start:start + size], "has_more": more,
                "next_cursor": str(start + size) if more else None}


def note_page(title: str, submitted: datetime, *, next_day: bool = False, week_later: bool = False,
              document_id: Optional[str] = None, action_items: str = "", llm_json: str = "") -> Dict[str, Any]:
    page_id = str(uuid.uuid4())
    props: Dict[str, Any] = {
        "Title": {"title": [{"type": "text", "text": {"content": title}}]},
        "Date": {"date": {"start": submitted.date().isoformat()}},
        "Submission Date": {"date": {"start": submitted.isoformat(timespec="milliseconds")}},
        "TLDR": {"rich_text": [{"type": "text", "text": {"content": f"{title} tldr"}}]},
        "Summary": {"rich_text": [{"type": "text", "text": {"content": f"{title} summary"}}]},
        "Action Items": {"rich_text": [{"type": "text", "text": {"content": action_items}}]},
        "LLM JSON": {"rich_text": [{"type": "text", "text": {"content": llm_json}}]},
        "Reviewed Next Day": {"checkbox": next_day},
        "Reviewed Week Later": {"checkbox": week_later},
    }
    if document_id:
        props["Document ID"] = {"rich_text": [{"type": "text", "text": {"content": document_id}}]}
    return {"id": page_id, "url": f"https://www.notion.so/{page_id.replace('-', '')}",
            "created_time": submitted.isoformat(), "properties": props}


# -------------------- other fakes --------------------
def sample_note(title: str = "Roadmap sync", source: str = "Otter") -> NoteJSON:
    return NoteJSON(
        title=title,
        date_iso="2024-03-15",
        type="Meeting",
        people=["Ana", "Ben"],
        source=source,
        tldr="Agreed on Q2 roadmap.",
        summary="The team reviewed the Q2 roadmap and agreed on priorities.",
        action_items=[{"owner": "Ana", "task": "Draft plan", "due": "2024-03-20"}],
        key_takeaways=["Ship search first"],
        content_hash=content_hash(title),
    )


class FakeSummarizer:
    def __init__(self):
        self.single_calls: List[Dict[str, Any]] = []
        self.merge_calls: List[str] = []
        self.chat_calls: List[List[Dict[str, str]]] = []
        self.reply = "<p>Answer</p>"
        self.merge_result: Dict[str, Any] = {
            "title": "Merged upload",
            "tldr": "Short",
            "summary": "Longer summary",
            "action_items": [{"owner": "Ana", "task": "Follow up"}],
            "key_takeaways": ["One"],
            "people": ["Ana"],
            "full_written": "written body",
        }
        self.fail_chat = False

    def summarize_single_source(self, text, *, source, transcript_raw=None,
                                default_date_iso=None, known_people=None) -> NoteJSON:
        self.single_calls.append({"text": text, "source": source, "default_date_iso": default_date_iso})
        note = sample_note(title=(text or "Untitled")[:40], source=source)
        if default_date_iso:
            note.date_iso = default_date_iso
        return note

    def merge_uploads(self, merged: str) -> Dict[str, Any]:
        self.merge_calls.append(merged)
        return dict(self.merge_result)

    def complete_text(self, messages, *, model=None, temperature=0.3) -> str:
        self.chat_calls.append(messages)
        if self.fail_chat:
            raise UpstreamError("openai_error", details="boom")
        return self.reply


class FakeDrive:
    def __init__(self):
        self.folders: Dict[str, List[Dict[str, Any]]] = {}
        self.docs: Dict[str, str] = {}
        self.broken_docs: set = set()

    def verify_folder_access(self, folder_id: str) -> Dict[str, Any]:
        if folder_id not in self.folders:
            return {"success": False, "error": "File not found"}
        return {"success": True, "folder_name": folder_id}

    def files_in_folder(self, folder_id: str) -> List[Dict[str, Any]]:
        return list(self.folders.get(folder_id, []))

    def document_text(self, document_id: str) -> Dict[str, str]:
        if document_id in self.broken_docs:
            raise UpstreamError(f"Docs fetch failed for {document_id}", details="403")
        return {"text": self.docs.get(document_id, ""), "title": document_id, "document_id": document_id}


class FakeMailer:
    def __init__(self, ok: bool = True):
        self.ok = ok
        self.sent: List[Dict[str, Any]] = []

    def send(self, to, subject, text=None, html_body=None, sender=None) -> Dict[str, Any]:
        self.sent.append({"to": to, "subject": subject, "text": text, "html": html_body})
        return {"ok": True} if self.ok else {"ok": False, "error": "SMTP auth failed"}


# -------------------- fixtures --------------------
@pytest.fixture
def notion() -> FakeNotion:
    return FakeNotion()


@pytest.fixture
def store(notion) -> NotionStore:
    return NotionStore(notion, "db-1", lambda: NOW)


@pytest.fixture
def summarizer() -> FakeSummarizer:
    return FakeSummarizer()


@pytest.fixture
def drive() -> FakeDrive:
    return FakeDrive()


@pytest.fixture
def mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture
def folders() -> List[FolderConfig]:
    return [FolderConfig(folder_id="folder-otter", source="Otter", name="Otter")]


def session_token(sub: str = "user-1", secret: str = "jwt-secret") -> str:
    return jwt.encode({"sub": sub, "email": f"{sub}@example.com"}, secret, algorithm="HS256")


@pytest.fixture
def client(store, summarizer, drive, mailer, folders):
    app.dependency_overrides[deps.get_store] = lambda: store
    app.dependency_overrides[deps.get_summarizer] = lambda: summarizer
    app.dependency_overrides[deps.get_drive] = lambda: drive
    app.dependency_overrides[deps.get_mailer] = lambda: mailer
    app.dependency_overrides[deps.get_folders] = lambda: folders
    app.dependency_overrides[deps.get_clock] = lambda: (lambda: NOW)
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def authed(client):
    client.cookies.set("session", session_token())
    return client
