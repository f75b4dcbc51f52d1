"""
Keycloak realm endpoints for the admin sign-in.

Only the server-side Direct Grant and JWKS lookups are used; there is no
browser redirect flow, so no authorization endpoint or PKCE helpers live here.
"""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class OIDCConfig:
    base_url: str  # internal base URL (server-to-server), e.g., http://keycloak:8080
    realm: str  # e.g., genius
    client_id: str  # e.g., genius-admin

    @property
    def issuer(self) -> str:
        return f"{self.base_url}/realms/{self.realm}"

    @property
    def token_endpoint(self) -> str:
        return f"{self.issuer}/protocol/openid-connect/token"

    @property
    def jwks_endpoint(self) -> str:
        return f"{self.issuer}/protocol/openid-connect/certs"


def load_oidc_config() -> OIDCConfig:
    """Read KC_BASE_URL, KC_REALM and KC_CLIENT_ID with local-dev defaults."""
    return OIDCConfig(
        base_url=(os.getenv("KC_BASE_URL") or "http://localhost:8080").rstrip("/"),
        realm=os.getenv("KC_REALM") or "genius",
        client_id=os.getenv("KC_CLIENT_ID") or "genius-admin",
    )


__all__ = ["OIDCConfig", "load_oidc_config"]
