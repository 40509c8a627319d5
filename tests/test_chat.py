# tests/test_chat.py
from datetime import datetime, timedelta, timezone

import pytest

from conftest import NOW, FakeSummarizer, note_page, session_token
from notes_backend.errors import ValidationFailure
from notes_backend.models import utcnow
from notes_backend.services.chat import build_context, conversation_title, parse_window
from notes_backend.services.notion_store import NoteRecord


def test_parse_window_preset():
    rng = parse_window(NOW, "60")
    assert rng.start == datetime(2024, 1, 15, tzinfo=timezone.utc)
    assert rng.end.date() == NOW.date()


def test_parse_window_custom():
    rng = parse_window(NOW, "custom", "2024-02-01", "2024-02-29")
    assert rng.start == datetime(2024, 2, 1, tzinfo=timezone.utc)
    assert rng.end == datetime(2024, 2, 29, 23, 59, 59, 999000, tzinfo=timezone.utc)


@pytest.mark.parametrize("args", [("abc",), (None, "2024-03-10", "2024-03-01"), (None, "yesterday")])
def test_parse_window_rejects_bad_input(args):
    with pytest.raises(ValidationFailure):
        parse_window(NOW, *args)


def test_build_context_respects_budget():
    notes = [NoteRecord.from_page(note_page(f"Note {i}", NOW - timedelta(hours=i))) for i in range(5)]
    one = build_context(notes[:1], max_chars=100_000)
    ctx = build_context(notes, max_chars=len(one) * 2 + 10)
    assert ctx.count("Title: ") == 2
    assert ctx.startswith("Title: Note 0")


def test_conversation_title():
    s = FakeSummarizer()
    assert conversation_title("Short one", s) == "Short one"
    assert s.chat_calls == []

    s.reply = '"Q2 Roadmap Planning"'
    assert conversation_title("What did we decide about the roadmap for Q2?", s) == "Q2 Roadmap Planning"

    s.fail_chat = True
    long = "x" * 80
    assert conversation_title(long, s) == "x" * 50


def test_chat_route(authed, notion, summarizer):
    recent = note_page("Recent", NOW - timedelta(days=2))
    notion.add(recent)
    notion.add(note_page("Too old", NOW - timedelta(days=45)))

    r = authed.post("/api/chat?preset=30", json={"question": "What happened?"})

    assert r.status_code == 200
    body = r.json()
    assert body["answer"] == "<p>Answer</p>"
    assert body["count"] == 1
    assert body["citations"] == [{"title": "Recent", "url": recent["url"]}]
    prompt = summarizer.chat_calls[0][1]["content"]
    assert "What happened?" in prompt and "Title: Recent" in prompt and "Too old" not in prompt


def test_chat_route_validation(authed):
    assert authed.post("/api/chat", json={"question": ""}).status_code == 400
    assert authed.post("/api/chat?preset=soon", json={"question": "hi"}).status_code == 400


def test_conversation_flow(authed, notion, summarizer):
    notion.add(note_page("Recent", NOW - timedelta(days=2)))

    conv = authed.post("/api/chat/conversations", json={"title": "Hello"}).json()["conversation"]
    assert conv["title"] == "Hello"
    assert conv["user_id"] == "user-1"

    r = authed.post("/api/chat/messages", json={"conversation_id": conv["id"], "content": "Summarize my week"})
    assert r.status_code == 200
    assert r.json() == {"reply": "<p>Answer</p>"}

    sent = summarizer.chat_calls[-1]
    assert sent[0]["role"] == "system" and "Title: Recent" in sent[0]["content"]
    assert sent[-1] == {"role": "user", "content": "Summarize my week"}

    msgs = authed.get(f"/api/chat/messages?conversation_id={conv['id']}").json()["messages"]
    assert [(m["role"], m["content"]) for m in msgs] == [
        ("user", "Summarize my week"), ("assistant", "<p>Answer</p>"),
    ]

    listed = authed.get("/api/chat/conversations").json()["conversations"]
    assert conv["id"] in [c["id"] for c in listed]


def test_reply_proceeds_without_context(authed, notion, summarizer):
    notion.fail_queries = True
    conv = authed.post("/api/chat/conversations", json={}).json()["conversation"]
    r = authed.post("/api/chat/messages", json={"conversation_id": conv["id"], "content": "hi"})
    assert r.status_code == 200
    assert "Relevant notes context" not in summarizer.chat_calls[-1][0]["content"]


def test_messages_are_private(authed, client):
    conv = authed.post("/api/chat/conversations", json={"title": "Mine"}).json()["conversation"]
    client.cookies.set("session", session_token("someone-else"))
    assert client.get(f"/api/chat/messages?conversation_id={conv['id']}").status_code == 404
    assert client.get("/api/chat/messages").status_code == 400
    assert conv["id"] not in [c["id"] for c in client.get("/api/chat/conversations").json()["conversations"]]


def test_timestamps_are_naive_utc():
    before = datetime.now(timezone.utc).replace(tzinfo=None)
    stamp = utcnow()
    assert stamp.tzinfo is None
    assert abs((stamp - before).total_seconds()) < 5
