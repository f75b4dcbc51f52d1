"""
Gate and authentication routes (router-only module).

Flow:
    1. `POST /admin/gate` opens a gate visit at stage 1 and sets the gate cookie.
    2. `POST /admin/gate/{visit_id}/gesture` reports gestures; the response
       carries the stage and `show_login` once stage 3 is reached.
    3. `POST /auth/login` accepts credentials only for an unlocked visit and
       sets the session cookie on success.
    4. `POST /auth/logout` removes the server-side session.

Security:
    The gate only decides whether the login form is offered. Every admin API
    call is authorized by the session cookie alone (see `main.auth_enforcement`).
    Responses carry `Cache-Control: private, no-store`.
"""

from __future__ import annotations

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from genius.gate.machine import GateVisitStore
from genius.identity_access.oidc import load_oidc_config
from genius.identity_access.session import AuthError, SessionBoundary
from genius.identity_access.stores import SessionStore

from ..auth_utils import GATE_COOKIE_NAME, SESSION_COOKIE_NAME, clear_private_cookie, set_private_cookie
from ..config import get_environment, get_gate_visit_ttl_seconds, get_session_ttl_seconds

auth_router = APIRouter(tags=["Auth"])
logger = logging.getLogger("genius.web")

_PRIVATE = {"Cache-Control": "private, no-store"}

GATE_VISITS = GateVisitStore(ttl_seconds=get_gate_visit_ttl_seconds())
_SESSIONS: Optional[SessionBoundary] = None


def get_session_boundary() -> SessionBoundary:
    global _SESSIONS
    if _SESSIONS is None:
        _SESSIONS = SessionBoundary(
            cfg=load_oidc_config(),
            sessions=SessionStore(),
            session_ttl_seconds=get_session_ttl_seconds(),
        )
    return _SESSIONS


def set_session_boundary(boundary: Optional[SessionBoundary]) -> None:
    """Allow tests to swap the session boundary (None resets to the default)."""
    global _SESSIONS
    _SESSIONS = boundary


def set_gate_visits(store: GateVisitStore) -> None:
    global GATE_VISITS
    GATE_VISITS = store


def _private_json(payload: dict, *, status_code: int = 200) -> JSONResponse:
    return JSONResponse(content=payload, status_code=status_code, headers=dict(_PRIVATE))


class GesturePayload(BaseModel):
    type: Literal["press", "drag", "tap"]
    held_ms: float = Field(default=0, ge=0)
    start_y: float = 0
    end_y: float = 0


class LoginPayload(BaseModel):
    email: str = Field(default="", max_length=320)
    password: str = Field(default="", max_length=1024)
    visit_id: Optional[str] = None


@auth_router.post("/admin/gate")
async def open_gate(request: Request):
    """Start a fresh gate visit (always stage 1). Public."""
    visit_id, machine = GATE_VISITS.create()
    resp = _private_json({"visit_id": visit_id, "stage": machine.stage, "show_login": machine.show_login}, status_code=201)
    set_private_cookie(resp, GATE_COOKIE_NAME, visit_id)
    return resp


@auth_router.post("/admin/gate/{visit_id}/gesture")
async def gate_gesture(visit_id: str, payload: GesturePayload):
    """Apply one gesture to a visit.

    Behavior:
        - `press` advances when `held_ms` reached the hold threshold.
        - `drag` advances when the pointer moved up by more than the threshold.
        - `tap` never advances.
        - 404 for unknown or expired visits.
    """
    machine = GATE_VISITS.get(visit_id)
    if machine is None:
        return _private_json({"error": "not_found", "detail": "unknown_visit"}, status_code=404)
    if payload.type == "press":
        advanced = machine.hold(payload.held_ms)
    elif payload.type == "drag":
        advanced = machine.drag(payload.start_y, payload.end_y)
    else:
        advanced = machine.tap()
    return _private_json({"stage": machine.stage, "advanced": advanced, "show_login": machine.show_login})


@auth_router.post("/auth/login")
async def auth_login(request: Request, payload: LoginPayload):
    """Sign in with email/password after the gate has been passed.

    Behavior:
        - 403 `gate_locked` when the visit is missing or not at the final stage.
        - 401 with `invalid_credential` or `other` and a short message on failure.
        - 200 and a session cookie on success; the gate visit ends.
    """
    visit_id = request.cookies.get(GATE_COOKIE_NAME) or payload.visit_id
    if not GATE_VISITS.is_unlocked(visit_id):
        return _private_json({"error": "forbidden", "detail": "gate_locked"}, status_code=403)
    try:
        rec = await get_session_boundary().sign_in(payload.email, payload.password)
    except AuthError as exc:
        return _private_json(
            {"error": "unauthenticated", "detail": exc.code, "message": exc.user_message}, status_code=401
        )
    GATE_VISITS.end(visit_id or "")
    env = get_environment()
    resp = _private_json({"email": rec.email, "expires_at": rec.expires_at})
    set_private_cookie(
        resp, SESSION_COOKIE_NAME, rec.session_id, max_age=rec.ttl_seconds if env == "prod" else None
    )
    clear_private_cookie(resp, GATE_COOKIE_NAME)
    return resp


@auth_router.post("/auth/logout")
async def auth_logout(request: Request):
    """Remove the server-side session and expire the cookie. Public and idempotent."""
    sid = request.cookies.get(SESSION_COOKIE_NAME)
    try:
        get_session_boundary().sign_out(sid)
    except Exception as exc:
        logger.warning("Session delete failed during logout: %s", exc.__class__.__name__)
    resp = _private_json({"signed_out": True})
    clear_private_cookie(resp, SESSION_COOKIE_NAME)
    return resp


__all__ = ["auth_router", "GATE_VISITS", "get_session_boundary", "set_session_boundary", "set_gate_visits"]
