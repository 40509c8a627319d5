# notes_backend/config.py
import os
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

from .errors import ConfigurationError

# load notes_backend/.env first, then any .env found upwards
load_dotenv(Path(__file__).with_name(".env"))
load_dotenv(find_dotenv(".env", usecwd=True))


class Settings:
    # Notion
    NOTION_TOKEN: str | None = os.getenv("NOTION_TOKEN")
    NOTION_DB_ID: str | None = os.getenv("NOTION_DB_ID")
    NOTION_VERSION: str = os.getenv("NOTION_VERSION", "2025-09-03")

    # OpenAI
    OPENAI_API_KEY: str | None = os.getenv("OPENAI_API_KEY")
    MODEL_NAME: str = os.getenv("MODEL_NAME", "gpt-4o-mini")
    CHAT_MODEL: str = os.getenv("CHAT_MODEL", "gpt-4o")
    MAX_TOKENS: int = int(os.getenv("MAX_TOKENS", "2000"))
    TEMPERATURE: float = float(os.getenv("TEMPERATURE", "0.2"))
    SUM_RETRIES: int = int(os.getenv("SUM_RETRIES", "2"))
    SUM_TIMEOUT_S: int = int(os.getenv("SUM_TIMEOUT_S", "60"))  # per request budget

    # shared secrets
    INGEST_SHARED_SECRET: str | None = os.getenv("INGEST_SHARED_SECRET")
    SYNC_API_KEY: str | None = os.getenv("SYNC_API_KEY")
    CRON_SECRET: str | None = os.getenv("CRON_SECRET")
    SESSION_JWT_SECRET: str | None = os.getenv("SESSION_JWT_SECRET")
    SESSION_COOKIE: str = os.getenv("SESSION_COOKIE", "session")

    # Google Drive / Docs (service account)
    GOOGLE_CREDENTIALS: str | None = os.getenv("GOOGLE_CREDENTIALS")
    GOOGLE_CREDENTIALS_FILE: str = os.getenv("GOOGLE_CREDENTIALS_FILE", "google-credentials.json")
    DRIVE_FOLDERS: str | None = os.getenv("DRIVE_FOLDERS")  # JSON list, parsed per request

    # review email
    GMAIL_USER: str | None = os.getenv("GMAIL_USER")
    GMAIL_APP_PASSWORD: str | None = os.getenv("GMAIL_APP_PASSWORD")
    REVIEW_EMAIL_TO: str | None = os.getenv("REVIEW_EMAIL_TO")
    REVIEW_EMAIL_FROM: str | None = os.getenv("REVIEW_EMAIL_FROM")
    SMTP_HOST: str = os.getenv("SMTP_HOST", "smtp.gmail.com")
    SMTP_PORT: int = int(os.getenv("SMTP_PORT", "465"))

    # app
    APP_URL: str = os.getenv("APP_URL", "http://localhost:8000").rstrip("/")
    TIMEZONE: str = os.getenv("TIMEZONE", "UTC")
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./notes.db")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS: list[str] = [
        o.strip()
        for o in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
        if o.strip()
    ]

    # chat
    CHAT_MAX_CHARS: int = int(os.getenv("CHAT_MAX_CHARS", "60000"))
    CHAT_WINDOW_DAYS: int = int(os.getenv("CHAT_WINDOW_DAYS", "30"))

    def require(self, *names: str) -> None:
        """Fail fast when a handler needs secrets that are not configured."""
        missing = [n for n in names if not getattr(self, n, None)]
        if missing:
            raise ConfigurationError(f"{', '.join(missing)} not configured")


settings = Settings()
