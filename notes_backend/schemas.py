# notes_backend/schemas.py
from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

NoteSource = Literal["Otter", "MyScript", "Manual"]
NoteType = Literal["Meeting", "Idea", "Learning", "Other"]
ReviewType = Literal["next-day", "week-later"]


class CamelModel(BaseModel):
    # JSON contract is camelCase; Python side stays snake_case
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------- Notes (LLM output / record writer input) ----------
class ActionItem(BaseModel):
    owner: str = Field(min_length=1)
    task: str = Field(min_length=1)
    due: Optional[str] = None


class FullText(BaseModel):
    body: Optional[str] = None
    transcript_summary: Optional[str] = None


class NoteJSON(BaseModel):
    title: str = Field(min_length=1, max_length=90)
    date_iso: str = Field(min_length=4)
    type: NoteType
    people: List[str] = Field(default_factory=list)
    source: NoteSource
    tldr: str = Field(min_length=1)
    summary: str = Field(min_length=1)
    action_items: List[ActionItem] = Field(default_factory=list)
    key_takeaways: List[str] = Field(default_factory=list)
    full_text: Optional[FullText] = None
    content_hash: str = Field(min_length=16)


# ---------- Ingestion ----------
class MeetingContext(BaseModel):
    default_date_iso: Optional[str] = None
    known_people: List[str] = Field(default_factory=list)


class IngestContent(BaseModel):
    text: str
    transcript_raw: Optional[str] = None


class IngestBody(BaseModel):
    meeting_context: MeetingContext = Field(default_factory=MeetingContext)
    content: IngestContent
    source: NoteSource
    document_id: Optional[str] = None


class IngestResult(BaseModel):
    ok: bool = True
    duplicate: bool = False
    page_id: Optional[str] = None
    url: Optional[str] = None


# ---------- Reviews ----------
class ReviewNote(CamelModel):
    id: str
    title: str
    tldr: str = ""
    summary: str = ""
    key_takeaways: List[str] = Field(default_factory=list)
    action_items: List[ActionItem] = Field(default_factory=list)
    date: str = ""
    submission_date: str = ""
    notion_url: str = ""
    review_type: ReviewType
    reviewed: bool = False
    edits: str = ""


class ReviewCounts(CamelModel):
    next_day: int = 0
    week_later: int = 0
    total: int = 0


class RangeOut(BaseModel):
    start: str
    end: str


class ReviewDebug(CamelModel):
    yesterday_range: RangeOut
    week_ago_range: RangeOut


class PendingReviewsResponse(CamelModel):
    notes: List[ReviewNote] = Field(default_factory=list)
    review_date: str
    counts: ReviewCounts = Field(default_factory=ReviewCounts)
    debug: Optional[ReviewDebug] = None
    error: Optional[str] = None


class ReviewSubmission(CamelModel):
    id: str = Field(validation_alias=AliasChoices("id", "recordId", "record_id"))
    review_type: ReviewType
    edits: str = ""
    reviewed: Optional[bool] = None


class ReviewSubmitBody(BaseModel):
    reviews: List[ReviewSubmission]


class ReviewResult(CamelModel):
    id: str
    success: bool
    review_type: Optional[str] = None
    error: Optional[str] = None


class ReviewApiResponse(CamelModel):
    success: bool
    reviewed_count: int
    total_count: int
    successful_ids: List[str]
    failure_count: int
    results: List[ReviewResult]
    message: str


# ---------- Chat ----------
class ChatRequest(BaseModel):
    question: str = Field(min_length=1)


class Citation(BaseModel):
    title: str
    url: str


class ChatWindow(BaseModel):
    start: datetime
    end: datetime


class ChatResponse(BaseModel):
    answer: str
    citations: List[Citation]
    count: int
    window: ChatWindow


class ConversationCreate(BaseModel):
    title: str = "New conversation"


class ConversationOut(BaseModel):
    id: int
    user_id: str
    title: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class MessageRequest(BaseModel):
    conversation_id: int
    content: str = Field(min_length=1)


class MessageOut(BaseModel):
    id: int
    conversation_id: int
    role: Literal["system", "user", "assistant"]
    content: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# ---------- Uploads ----------
class UploadSubmitBody(BaseModel):
    preview: Optional[dict[str, Any]] = None
