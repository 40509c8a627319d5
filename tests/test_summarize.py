# tests/test_summarize.py
import json
from types import SimpleNamespace

import pytest

from notes_backend.errors import UpstreamError
from notes_backend.services import summarize as summarize_mod
from notes_backend.services.summarize import Summarizer, normalize_note_json, one_line

SAMPLE = {
    "title": "Upload limits",
    "date_iso": "2025-10-17",
    "type": "Meeting",
    "people": ["Shiva", "Arul"],
    "tldr": ["We cap uploads.", "PDF parsing next."],
    "summary": ["Decided to cap uploads at 50 MB.", "Keep temperature low."],
    "action_items": [
        {"owner": "Shiva", "task": "Add PDF parsing", "due": "2025-10-18"},
        {"owner": None, "task": "Add progress bar"},
        {"owner": "Arul", "task": ""},
    ],
    "key_takeaways": ["50 MB cap"],
}


class FakeCompletions:
    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=reply))])


def fake_openai(*replies):
    completions = FakeCompletions(replies)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr(summarize_mod.time, "sleep", lambda s: None)


def test_normalize_flattens_lists_and_fills_defaults():
    out = normalize_note_json(SAMPLE, source="MyScript", default_date="2025-10-01", text="raw")
    assert out["tldr"] == "We cap uploads. PDF parsing next."
    assert out["summary"].split("\n\n") == SAMPLE["summary"]
    assert out["source"] == "MyScript"
    assert out["action_items"] == [
        {"owner": "Shiva", "task": "Add PDF parsing", "due": "2025-10-18"},
        {"owner": "Unassigned", "task": "Add progress bar", "due": None},
    ]
    assert len(out["content_hash"]) == 64


def test_normalize_truncates_long_titles_and_unknown_types():
    out = normalize_note_json({"title": "word " * 30, "type": "Memo"}, source="Otter",
                              default_date="2025-10-01", text="t")
    assert len(out["title"]) <= 90 and out["title"].endswith("…")
    assert out["type"] == "Other"
    assert out["date_iso"] == "2025-10-01"


def test_summarize_single_source():
    client, completions = fake_openai(json.dumps(SAMPLE))
    note = Summarizer(client=client).summarize_single_source(
        "raw text", source="Otter", default_date_iso="2025-10-01", known_people=["Shiva"],
    )
    assert note.title == "Upload limits"
    assert note.source == "Otter"
    assert note.key_takeaways == ["50 MB cap"]
    call = completions.calls[0]
    assert call["response_format"] == {"type": "json_object"}
    assert json.loads(call["messages"][1]["content"])["known_people"] == ["Shiva"]


def test_retries_then_succeeds():
    client, completions = fake_openai(RuntimeError("rate limited"), json.dumps(SAMPLE))
    note = Summarizer(client=client, retries=2).summarize_single_source("t", source="Otter")
    assert note.title == "Upload limits"
    assert len(completions.calls) == 2


def test_gives_up_after_retries():
    client, _ = fake_openai(RuntimeError("down"), RuntimeError("still down"))
    with pytest.raises(UpstreamError):
        Summarizer(client=client, retries=2).summarize_single_source("t", source="Otter")


def test_invalid_model_output_is_upstream_error():
    client, _ = fake_openai(json.dumps({"title": "x"}))
    with pytest.raises(UpstreamError) as err:
        Summarizer(client=client, retries=1).summarize_single_source("t", source="Otter")
    assert err.value.message == "LLM output failed validation"


def test_merge_uploads_tolerates_bad_json():
    client, _ = fake_openai("not json")
    assert Summarizer(client=client, retries=1).merge_uploads("text") == {}


def test_complete_text_strips():
    client, completions = fake_openai("  <p>hi</p>\n")
    assert Summarizer(client=client).complete_text([{"role": "user", "content": "q"}]) == "<p>hi</p>"
    assert completions.calls[0]["model"] == "gpt-4o"


def test_one_line():
    assert one_line("  a   b\n\n c ", max_chars=4) == "a b "


def test_normalize_blank_owner_becomes_unassigned():
    raw = {"title": "Sync", "action_items": [{"owner": "  ", "task": "Book room"}]}
    out = normalize_note_json(raw, source="Otter", default_date="2025-10-01", text="t")
    assert out["action_items"] == [{"owner": "Unassigned", "task": "Book room", "due": None}]
