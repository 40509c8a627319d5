# notes_backend/deps.py
"""
FastAPI dependency providers for the external clients.

Routes never build clients themselves; tests swap any of these through
`app.dependency_overrides`.
"""
from datetime import datetime
from typing import Callable, List
from zoneinfo import ZoneInfo

from fastapi import Depends
from notion_client import Client

from .config import settings
from .services.document_processor import FolderConfig, folders_from_json
from .services.google_drive import DriveSource
from .services.mailer import Mailer
from .services.notion_store import NotionStore
from .services.summarize import Summarizer


def get_clock() -> Callable[[], datetime]:
    tz = ZoneInfo(settings.TIMEZONE)
    return lambda: datetime.now(tz)


def get_store(clock: Callable[[], datetime] = Depends(get_clock)) -> NotionStore:
    settings.require("NOTION_TOKEN", "NOTION_DB_ID")
    client = Client(auth=settings.NOTION_TOKEN, notion_version=settings.NOTION_VERSION)
    return NotionStore(client, settings.NOTION_DB_ID, clock)


def get_summarizer() -> Summarizer:
    return Summarizer()


def get_drive() -> DriveSource:
    return DriveSource()


def get_mailer() -> Mailer:
    return Mailer()


def get_folders() -> List[FolderConfig]:
    return folders_from_json(settings.DRIVE_FOLDERS)
