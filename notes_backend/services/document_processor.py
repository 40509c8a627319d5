# notes_backend/services/document_processor.py
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional

from ..errors import ConfigurationError, UpstreamError
from .google_drive import DriveSource
from .notion_store import NotionStore
from .summarize import Summarizer

logger = logging.getLogger("notes.sync")


@dataclass(frozen=True)
class FolderConfig:
    folder_id: str
    source: str
    name: str

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "FolderConfig":
        try:
            return cls(folder_id=raw["folder_id"], source=raw["source"], name=raw.get("name") or raw["folder_id"])
        except (KeyError, TypeError) as e:
            raise ConfigurationError(f"Bad DRIVE_FOLDERS entry: {raw!r}") from e


def folders_from_json(raw: Optional[str]) -> List[FolderConfig]:
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise ConfigurationError(f"DRIVE_FOLDERS is not valid JSON: {e}") from e
    if not isinstance(data, list):
        raise ConfigurationError("DRIVE_FOLDERS must be a JSON list")
    return [FolderConfig.from_dict(f) for f in data]


def verify_folders(folders: List[FolderConfig], drive: DriveSource) -> None:
    for folder in folders:
        access = drive.verify_folder_access(folder.folder_id)
        if not access["success"]:
            raise UpstreamError(f"Cannot access folder {folder.name}: {access['error']}")


def process_new_documents(
    folders: List[FolderConfig],
    drive: DriveSource,
    store: NotionStore,
    summarizer: Summarizer,
) -> List[Dict[str, Any]]:
    """Ingest every folder document that has no Notion page yet. One file failing never stops the rest."""
    results: List[Dict[str, Any]] = []
    for folder in folders:
        logger.info(f"Checking folder: {folder.name}")
        try:
            files = drive.files_in_folder(folder.folder_id)
        except UpstreamError as e:
            logger.error(f"Error accessing folder {folder.name}: {e.details or e}")
            results.append({"folder": folder.name, "file": None, "success": False, "error": str(e)})
            continue

        for f in files:
            file_id = f.get("id")
            if not file_id:
                continue
            name = f.get("name") or "Untitled"
            try:
                existing = store.find_by_document_id(file_id)
                if existing:
                    results.append({"folder": folder.name, "file": name, "success": True,
                                    "skipped": True, "notionUrl": existing})
                    continue

                logger.info(f"Processing new file: {name}")
                doc = drive.document_text(file_id)
                created_day = (f.get("createdTime") or "")[:10] or date.today().isoformat()
                note = summarizer.summarize_single_source(
                    doc["text"], source=folder.source, default_date_iso=created_day,
                )
                created = store.create_note_page(note, file_id)
                results.append({"folder": folder.name, "file": name, "success": True,
                                "notionUrl": created["url"]})
                logger.info(f"Processed: {name} -> Notion: {created['url']}")
            except ConfigurationError:
                raise
            except Exception as e:
                logger.error(f"Error processing file {name}: {e}")
                results.append({"folder": folder.name, "file": name, "success": False, "error": str(e)})
    return results
