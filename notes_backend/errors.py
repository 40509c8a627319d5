# notes_backend/errors.py
from typing import Any


class NotesError(Exception):
    """Base for errors the API turns into a JSON error body."""

    status_code = 500
    label = "Internal error"

    def __init__(self, message: str, *, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ConfigurationError(NotesError):
    label = "Configuration error"


class UpstreamError(NotesError):
    """Notion, Google, OpenAI or SMTP failed or rejected the call."""

    label = "Upstream error"


class LookupFailure(UpstreamError):
    label = "Lookup failed"


class ValidationFailure(NotesError):
    status_code = 400
    label = "bad payload"


class InvalidReviewState(ValueError):
    pass


class ReviewTransitionError(ValueError):
    pass
