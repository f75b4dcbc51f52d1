"""
Startup guard tests.

Production/staging must refuse to start with a placeholder service role key,
without Supabase, or with plain-http storage or identity endpoints. Development
starts with nothing configured.
"""
from __future__ import annotations

import pytest

from genius.web import config as cfg


def _prod(monkeypatch: pytest.MonkeyPatch, **env: str) -> None:
    monkeypatch.setenv("GENIUS_ENV", "prod")
    monkeypatch.setenv("SUPABASE_URL", "https://project.supabase.co")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "service-role-secret")
    monkeypatch.setenv("KC_BASE_URL", "https://id.geniusclasses.in")
    for key, value in env.items():
        monkeypatch.setenv(key, value)


@pytest.mark.parametrize("key", ["DUMMY_DO_NOT_USE", "change_me_please", ""])
def test_prod_refuses_placeholder_service_key(monkeypatch: pytest.MonkeyPatch, key: str):
    _prod(monkeypatch, SUPABASE_SERVICE_ROLE_KEY=key)
    with pytest.raises(SystemExit):
        cfg.ensure_secure_config_on_startup()


def test_prod_requires_supabase_url(monkeypatch: pytest.MonkeyPatch):
    _prod(monkeypatch)
    monkeypatch.delenv("SUPABASE_URL")
    with pytest.raises(SystemExit):
        cfg.ensure_secure_config_on_startup()


@pytest.mark.parametrize("var", ["SUPABASE_URL", "KC_BASE_URL"])
def test_prod_refuses_plain_http(monkeypatch: pytest.MonkeyPatch, var: str):
    _prod(monkeypatch, **{var: "http://insecure.example"})
    with pytest.raises(SystemExit):
        cfg.ensure_secure_config_on_startup()


def test_staging_is_guarded_like_prod(monkeypatch: pytest.MonkeyPatch):
    _prod(monkeypatch, GENIUS_ENV="staging", SUPABASE_SERVICE_ROLE_KEY="DUMMY_DO_NOT_USE")
    with pytest.raises(SystemExit):
        cfg.ensure_secure_config_on_startup()


def test_prod_with_secure_config_starts(monkeypatch: pytest.MonkeyPatch):
    _prod(monkeypatch)
    cfg.ensure_secure_config_on_startup()


def test_dev_allows_missing_and_dummy_config(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "DUMMY_DO_NOT_USE")
    monkeypatch.setenv("KC_BASE_URL", "http://localhost:8080")
    cfg.ensure_secure_config_on_startup()


def test_ttl_getters_ignore_invalid_values(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("SESSION_TTL_SECONDS", "abc")
    monkeypatch.setenv("GATE_VISIT_TTL_SECONDS", "-5")
    assert cfg.get_session_ttl_seconds() == 3600
    assert cfg.get_gate_visit_ttl_seconds() == 900
    monkeypatch.setenv("SESSION_TTL_SECONDS", "600")
    assert cfg.get_session_ttl_seconds() == 600
