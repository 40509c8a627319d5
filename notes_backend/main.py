# notes_backend/main.py
from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("notes")

# --- DB / errors ---
from .db import init_db
from .errors import NotesError

# --- Routers ---
from .routes.chat import router as chat_router
from .routes.ingest import router as ingest_router
from .routes.notes import router as notes_router
from .routes.review import router as review_router
from .routes.sync import router as sync_router
from .routes.upload import router as upload_router


# ========= App =========
app = FastAPI(title="Notes Middleware API", version="0.1.0")

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(ingest_router)
app.include_router(sync_router)
app.include_router(review_router)
app.include_router(notes_router)
app.include_router(chat_router)
app.include_router(upload_router)

# Create tables (dev). In prod, use Alembic.
init_db()


# ========= errors =========
@app.exception_handler(NotesError)
async def notes_error_handler(request: Request, exc: NotesError):
    logger.error(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    body = {"error": exc.message}
    if exc.details is not None:
        body["details"] = exc.details
    return JSONResponse(jsonable_encoder(body), status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"{request.method} {request.url.path} -> 400: bad payload")
    return JSONResponse(
        jsonable_encoder({"error": "bad payload", "details": exc.errors()}),
        status_code=400,
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"{request.method} {request.url.path} -> 500: {exc}")
    return JSONResponse({"error": "Internal server error", "details": str(exc)}, status_code=500)


# ========= debug =========
_debug = APIRouter()
@_debug.get("/__routes")
def routes_dump():
    # schema paths stay flat whatever the router nesting
    paths = app.openapi().get("paths", {})
    return sorted(f"{sorted(m.upper() for m in ops)} {path}" for path, ops in paths.items())
app.include_router(_debug)


# ========= health =========
@app.get("/api/health")
def health():
    return {"ok": True, "time": datetime.now(timezone.utc).isoformat()}


# ========= session =========
@app.post("/api/auth/logout")
def logout():
    resp = JSONResponse({"ok": True})
    resp.delete_cookie(settings.SESSION_COOKIE, path="/")
    return resp
