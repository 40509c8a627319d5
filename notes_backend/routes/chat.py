# notes_backend/routes/chat.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..db import get_db
from ..deps import get_clock, get_store, get_summarizer
from ..repos import chat as repo
from ..schemas import (
    ChatRequest,
    ChatResponse,
    ConversationCreate,
    ConversationOut,
    MessageOut,
    MessageRequest,
)
from ..services.chat import answer_question, conversation_reply, conversation_title, parse_window
from ..services.notion_store import NotionStore
from ..services.summarize import Summarizer

logger = logging.getLogger("notes.chat")

router = APIRouter(prefix="/api/chat", tags=["chat"])


@router.post("", response_model=ChatResponse)
def chat(
    payload: ChatRequest,
    preset: Optional[str] = Query(None),
    start: Optional[str] = Query(None),
    end: Optional[str] = Query(None),
    _user: Dict[str, Any] = Depends(get_current_user),
    store: NotionStore = Depends(get_store),
    summarizer: Summarizer = Depends(get_summarizer),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> ChatResponse:
    """One-shot question over the notes submitted inside the chosen window."""
    rng = parse_window(clock(), preset, start, end)
    return answer_question(payload.question, rng, store, summarizer)


# -------------------- conversations --------------------
@router.get("/conversations")
def list_conversations(
    user: Dict[str, Any] = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    rows = repo.list_conversations(db, user["sub"])
    return {"conversations": [ConversationOut.model_validate(r) for r in rows]}


@router.post("/conversations")
def create_conversation(
    body: ConversationCreate,
    user: Dict[str, Any] = Depends(get_current_user),
    db: Session = Depends(get_db),
    summarizer: Summarizer = Depends(get_summarizer),
):
    title = conversation_title(body.title, summarizer)
    conv = repo.create_conversation(db, user["sub"], title)
    logger.info(f"Created conversation {conv.id} for {user['sub']}")
    return {"conversation": ConversationOut.model_validate(conv)}


# -------------------- messages --------------------
def _own_conversation(db: Session, user: Dict[str, Any], conversation_id: int):
    conv = repo.get_conversation(db, user["sub"], conversation_id)
    if not conv:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return conv


@router.get("/messages")
def get_messages(
    conversation_id: Optional[int] = Query(None),
    user: Dict[str, Any] = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if conversation_id is None:
        raise HTTPException(status_code=400, detail="conversation_id required")
    _own_conversation(db, user, conversation_id)
    return {"messages": [MessageOut.model_validate(m) for m in repo.list_messages(db, conversation_id)]}


@router.post("/messages")
def send_message(
    body: MessageRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    db: Session = Depends(get_db),
    store: NotionStore = Depends(get_store),
    summarizer: Summarizer = Depends(get_summarizer),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    conv = _own_conversation(db, user, body.conversation_id)
    repo.add_message(db, conv.id, "user", body.content)

    history = [{"role": m.role, "content": m.content} for m in repo.list_messages(db, conv.id)]
    reply = conversation_reply(history, clock(), store, summarizer)

    repo.add_message(db, conv.id, "assistant", reply)
    repo.touch_conversation(db, conv)
    return {"reply": reply}
