# notes_backend/repos/chat.py
from typing import List, Optional

from sqlalchemy.orm import Session

from ..models import Conversation, Message, utcnow


def list_conversations(db: Session, user_id: str, limit: int = 50) -> List[Conversation]:
    return (
        db.query(Conversation)
        .filter(Conversation.user_id == user_id)
        .order_by(Conversation.updated_at.desc(), Conversation.id.desc())
        .limit(limit)
        .all()
    )


def create_conversation(db: Session, user_id: str, title: str) -> Conversation:
    now = utcnow()
    conv = Conversation(user_id=user_id, title=title, created_at=now, updated_at=now)
    try:
        db.add(conv); db.commit(); db.refresh(conv)
    except Exception:
        db.rollback()
        raise
    return conv


def get_conversation(db: Session, user_id: str, conversation_id: int) -> Optional[Conversation]:
    return (
        db.query(Conversation)
        .filter(Conversation.id == conversation_id, Conversation.user_id == user_id)
        .first()
    )


def list_messages(db: Session, conversation_id: int) -> List[Message]:
    return (
        db.query(Message)
        .filter(Message.conversation_id == conversation_id)
        .order_by(Message.created_at.asc(), Message.id.asc())
        .all()
    )


def add_message(db: Session, conversation_id: int, role: str, content: str) -> Message:
    msg = Message(conversation_id=conversation_id, role=role, content=content, created_at=utcnow())
    try:
        db.add(msg); db.commit(); db.refresh(msg)
    except Exception:
        db.rollback()
        raise
    return msg


def touch_conversation(db: Session, conv: Conversation) -> None:
    conv.updated_at = utcnow()
    db.add(conv); db.commit()
