"""
FastAPI application for the Genius Classes backend.

Surfaces:
    - `/health`                      liveness
    - `/admin/gate*`, `/auth/*`      gate and admin sign-in (public)
    - `/api/me`, `/api/admin/*`      admin API (session required)
    - `/api/catalog/*`               public website data

Startup:
    `.env` is loaded outside pytest, the production guard runs, and the
    lifespan wires Supabase stores when configured. Without the lifespan (e.g.
    under `httpx.ASGITransport`) routes fall back to in-memory stores.

Run locally:
    uvicorn genius.web.main:app --reload
"""
from __future__ import annotations

import logging
import os
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


def _should_load_dotenv() -> bool:
    """Never load .env under pytest; otherwise honor GENIUS_ENABLE_DOTENV (default true)."""
    if "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return False
    flag = (os.getenv("GENIUS_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


from dotenv import load_dotenv

if _should_load_dotenv():
    load_dotenv()

from .auth_utils import SESSION_COOKIE_NAME
from .config import ensure_secure_config_on_startup
from .routes.admin import admin_router
from .routes.auth import auth_router, get_session_boundary
from .routes.catalog import catalog_router
from .storage_wiring import build_repositories, build_stores, set_repositories

ensure_secure_config_on_startup()

logger = logging.getLogger("genius.web")


@asynccontextmanager
async def lifespan(app: FastAPI):
    stores = await build_stores()
    repositories = build_repositories(stores.documents, stores.blobs)
    set_repositories(repositories)
    for repo in repositories.values():
        await repo.refresh()
    try:
        yield
    finally:
        await stores.aclose()
        set_repositories(None)


app = FastAPI(title="Genius Classes", description="Tutoring institute catalog backend", version="0.1.0", lifespan=lifespan)
app.include_router(auth_router)
app.include_router(admin_router)
app.include_router(catalog_router)


def _requires_session(path: str) -> bool:
    return path == "/api/me" or path.startswith("/api/admin/")


@app.middleware("http")
async def auth_enforcement(request: Request, call_next):
    path = request.url.path
    if not _requires_session(path):
        return await call_next(request)
    identity = None
    sid = request.cookies.get(SESSION_COOKIE_NAME)
    if sid:
        try:
            identity = get_session_boundary().current_identity(sid)
        except Exception as exc:
            logger.warning("Session lookup failed: %s", exc.__class__.__name__)
    if identity is None:
        return JSONResponse({"error": "unauthenticated"}, status_code=401, headers={"Cache-Control": "private, no-store"})
    request.state.identity = identity
    return await call_next(request)


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("Referrer-Policy", "same-origin")
    return response


@app.get("/health")
async def health():
    return {"status": "healthy"}


@app.get("/api/me")
async def get_me(request: Request):
    identity = request.state.identity
    rec = get_session_boundary().sessions.get(request.cookies.get(SESSION_COOKIE_NAME) or "")
    exp_iso = (
        datetime.fromtimestamp(rec.expires_at, tz=timezone.utc).isoformat(timespec="seconds")
        if rec and rec.expires_at
        else None
    )
    return JSONResponse(
        {"sub": identity.sub, "email": identity.email, "roles": list(identity.roles), "expires_at": exp_iso},
        headers={"Cache-Control": "private, no-store"},
    )


__all__ = ["app"]
