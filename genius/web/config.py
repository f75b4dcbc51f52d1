"""
Configuration getters and startup security checks for the Genius backend.

Why: A production deployment must not start with placeholder secrets or
plain-http identity/storage endpoints. Development stays permissive and runs
on in-memory stores when Supabase is not configured.

Permissions: The caller needs no special privileges. Functions only read
environment variables; the startup guard raises `SystemExit` on fatal
misconfiguration.
"""
from __future__ import annotations

import os

SESSION_TTL_SECONDS_DEFAULT = 3600
GATE_VISIT_TTL_SECONDS_DEFAULT = 900


def get_environment() -> str:
    return (os.getenv("GENIUS_ENV") or "dev").strip().lower()


def _is_prod_like(env: str) -> bool:
    return (env or "").lower() in {"prod", "production", "stage", "staging"}


def _positive_int_env(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def get_session_ttl_seconds() -> int:
    return _positive_int_env("SESSION_TTL_SECONDS", SESSION_TTL_SECONDS_DEFAULT)


def get_gate_visit_ttl_seconds() -> int:
    return _positive_int_env("GATE_VISIT_TTL_SECONDS", GATE_VISIT_TTL_SECONDS_DEFAULT)


def ensure_secure_config_on_startup() -> None:
    """Fail fast on insecure production configuration.

    Checks (prod/staging only):
    - SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set; the key must not
      be a known placeholder. In-memory stores are for development only.
    - SUPABASE_URL and KC_BASE_URL must use https.
    """
    if not _is_prod_like(get_environment()):
        return

    srole = (os.getenv("SUPABASE_SERVICE_ROLE_KEY") or "").strip()
    if not srole or srole.upper() == "DUMMY_DO_NOT_USE" or srole.upper().startswith("CHANGE_ME"):
        raise SystemExit(
            "Refusing to start: SUPABASE_SERVICE_ROLE_KEY is unset or a dummy placeholder in production."
        )
    if not (os.getenv("SUPABASE_URL") or "").strip():
        raise SystemExit("Refusing to start: SUPABASE_URL is required in production.")

    for var_name in ("SUPABASE_URL", "KC_BASE_URL"):
        value = (os.getenv(var_name) or "").strip().lower()
        if value.startswith("http://"):
            raise SystemExit(f"Refusing to start: {var_name} must use https in production (got http).")


__all__ = [
    "get_environment",
    "get_session_ttl_seconds",
    "get_gate_visit_ttl_seconds",
    "ensure_secure_config_on_startup",
]
