# notes_backend/services/google_drive.py
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List

from ..config import settings
from ..errors import ConfigurationError, UpstreamError

logger = logging.getLogger("notes.drive")

SCOPES = [
    "https://www.googleapis.com/auth/drive.readonly",
    "https://www.googleapis.com/auth/documents.readonly",
]
FOLDER_MIME = "application/vnd.google-apps.folder"
DOC_MIME = "application/vnd.google-apps.document"


def _credentials():
    from google.oauth2 import service_account

    if settings.GOOGLE_CREDENTIALS:
        try:
            info = json.loads(settings.GOOGLE_CREDENTIALS)
        except ValueError as e:
            raise ConfigurationError("GOOGLE_CREDENTIALS is not valid JSON", details=str(e)) from e
        return service_account.Credentials.from_service_account_info(info, scopes=SCOPES)

    path = Path(settings.GOOGLE_CREDENTIALS_FILE)
    if not path.exists():
        raise ConfigurationError(
            "Google credentials not configured",
            details="Set GOOGLE_CREDENTIALS or add google-credentials.json to the project root",
        )
    return service_account.Credentials.from_service_account_file(str(path), scopes=SCOPES)


def extract_document_text(doc: Dict[str, Any]) -> str:
    """Plain text of a Docs API document: paragraphs, then tables as tab-separated rows."""

    def element_text(el: Dict[str, Any]) -> str:
        if el.get("paragraph"):
            return "".join((e.get("textRun") or {}).get("content", "") for e in el["paragraph"].get("elements", []))
        if el.get("table"):
            rows = []
            for row in el["table"].get("tableRows", []):
                cells = [
                    "".join(element_text(c) for c in cell.get("content", []))
                    for cell in row.get("tableCells", [])
                ]
                rows.append("\t".join(cells))
            return "\n".join(rows)
        return ""

    content = (doc.get("body") or {}).get("content") or []
    return "".join(element_text(el) for el in content).strip()


class DriveSource:
    def __init__(self, drive: Any = None, docs: Any = None):
        self._drive = drive
        self._docs = docs

    def _build(self, name: str, version: str):
        from googleapiclient.discovery import build
        return build(name, version, credentials=_credentials(), cache_discovery=False)

    @property
    def drive(self):
        if self._drive is None:
            self._drive = self._build("drive", "v3")
        return self._drive

    @property
    def docs(self):
        if self._docs is None:
            self._docs = self._build("docs", "v1")
        return self._docs

    def verify_folder_access(self, folder_id: str) -> Dict[str, Any]:
        try:
            meta = self.drive.files().get(fileId=folder_id, fields="id, name, mimeType").execute()
        except ConfigurationError:
            raise
        except Exception as e:
            return {"success": False, "error": str(e)}
        if meta.get("mimeType") != FOLDER_MIME:
            return {"success": False, "error": "ID does not point to a folder"}
        return {"success": True, "folder_name": meta.get("name")}

    def files_in_folder(self, folder_id: str) -> List[Dict[str, Any]]:
        q = f"'{folder_id}' in parents and mimeType='{DOC_MIME}' and trashed=false"
        files: List[Dict[str, Any]] = []
        page_token = None
        try:
            while True:
                resp = self.drive.files().list(
                    q=q,
                    fields="nextPageToken, files(id, name, createdTime, modifiedTime)",
                    orderBy="createdTime desc",
                    pageToken=page_token,
                ).execute()
                files.extend(resp.get("files", []))
                page_token = resp.get("nextPageToken")
                if not page_token:
                    break
        except ConfigurationError:
            raise
        except Exception as e:
            raise UpstreamError(f"Drive list failed for folder {folder_id}", details=str(e)) from e
        return files

    def document_text(self, document_id: str) -> Dict[str, str]:
        try:
            doc = self.docs.documents().get(documentId=document_id).execute()
        except ConfigurationError:
            raise
        except Exception as e:
            raise UpstreamError(f"Docs fetch failed for {document_id}", details=str(e)) from e
        return {
            "text": extract_document_text(doc),
            "title": doc.get("title") or "Untitled",
            "document_id": document_id,
        }
