# notes_backend/auth.py
import hashlib
import hmac
import logging
from typing import Any, Callable, Dict, Optional

from fastapi import HTTPException, Request, status
from jose import JWTError, jwt

from .config import settings

logger = logging.getLogger("notes.auth")

ALGO = "HS256"


def get_current_user(request: Request) -> Dict[str, Any]:
    """
    Claims of the session cookie issued by the auth provider.
    401 when the cookie is missing, expired or signed with another key.
    """
    settings.require("SESSION_JWT_SECRET")
    token = request.cookies.get(settings.SESSION_COOKIE)
    if not token:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Not authenticated")
    try:
        claims = jwt.decode(token, settings.SESSION_JWT_SECRET, algorithms=[ALGO],
                            options={"verify_aud": False})
    except JWTError:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid or expired token")
    if not claims.get("sub"):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid or expired token")
    return claims


def _bearer(request: Request) -> Optional[str]:
    auth = request.headers.get("authorization") or ""
    if auth.lower().startswith("bearer "):
        return auth[7:].strip() or None
    return None


def require_bearer(secret_name: str, allow_query: bool = False) -> Callable[[Request], None]:
    """Dependency comparing `Authorization: Bearer <token>` (or `?api_key=`) with a configured secret."""

    def _check(request: Request) -> None:
        settings.require(secret_name)
        expected = getattr(settings, secret_name)
        supplied = _bearer(request)
        if supplied is None and allow_query:
            supplied = request.query_params.get("api_key")
        if not supplied or not hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8")):
            logger.warning("Rejected %s %s: bad credentials", request.method, request.url.path)
            raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Unauthorized")

    return _check


def sign(raw: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), raw, hashlib.sha256).hexdigest()


def verify_signature(raw: bytes, signature: Optional[str]) -> None:
    settings.require("INGEST_SHARED_SECRET")
    expected = sign(raw, settings.INGEST_SHARED_SECRET).encode("utf-8")
    if not signature or not hmac.compare_digest(expected, signature.encode("utf-8")):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "bad signature")
