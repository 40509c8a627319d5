# notes_backend/utils/io.py
import io
import logging
from pathlib import Path

logger = logging.getLogger("notes.io")


def _strip_cues(raw: str) -> str:
    # WebVTT / SubRip: drop headers, cue numbers and timestamp lines
    lines = []
    for line in raw.splitlines():
        s = line.strip()
        if s.startswith(("WEBVTT", "Kind:", "Language:")):
            continue
        if "-->" in s:
            continue
        if s.isdigit():
            continue
        lines.append(line)
    return "\n".join(lines)


def _pdf_text(data: bytes) -> str:
    from pypdf import PdfReader
    reader = PdfReader(io.BytesIO(data))
    return "\n".join((page.extract_text() or "") for page in reader.pages).strip()


def _docx_text(data: bytes) -> str:
    from docx import Document
    doc = Document(io.BytesIO(data))
    return "\n".join(para.text for para in doc.paragraphs)


def upload_text(filename: str | None, data: bytes) -> str:
    """Best-effort text extraction for an uploaded file, picked by extension."""
    suffix = Path(filename or "").suffix.lower()
    try:
        if suffix in (".vtt", ".srt"):
            return _strip_cues(data.decode("utf-8", errors="ignore"))
        if suffix == ".pdf":
            return _pdf_text(data)
        if suffix == ".docx":
            return _docx_text(data)
    except Exception as e:
        logger.warning("Could not extract %s as %s, reading raw bytes: %s", filename, suffix, e)
    return data.decode("utf-8", errors="ignore").replace("\x00", "")
