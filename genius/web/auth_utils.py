"""
Shared cookie helpers for the session and gate cookies.

Design:
    Both cookies are opaque ids pointing at server-side state. Flags are the
    same in every environment (dev = prod) so local testing exercises the
    production cookie policy.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Response

SESSION_COOKIE_NAME = "genius_session"
GATE_COOKIE_NAME = "genius_gate"


def cookie_opts() -> dict:
    """Return hardened cookie flags: secure, SameSite=Strict (no cross-site flows exist)."""
    return {"secure": True, "samesite": "strict"}


def set_private_cookie(
    response: Response, key: str, value: str, *, max_age: Optional[int] = None
) -> None:
    opts = cookie_opts()
    response.set_cookie(
        key=key,
        value=value,
        httponly=True,
        secure=opts["secure"],
        samesite=opts["samesite"],
        path="/",
        max_age=max_age,
    )


def clear_private_cookie(response: Response, key: str) -> None:
    opts = cookie_opts()
    response.set_cookie(
        key=key,
        value="",
        httponly=True,
        secure=opts["secure"],
        samesite=opts["samesite"],
        path="/",
        expires=0,
        max_age=0,
    )


__all__ = ["SESSION_COOKIE_NAME", "GATE_COOKIE_NAME", "cookie_opts", "set_private_cookie", "clear_private_cookie"]
