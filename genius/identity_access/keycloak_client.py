"""
Minimal Keycloak client for the admin Direct Grant sign-in.

The admin form posts email/password to our backend, which forwards them to the
realm's token endpoint. Keycloak answers `invalid_grant` for wrong credentials
and unknown users alike; every other failure (network, server error, realm
misconfiguration) is reported separately so the web layer can word its
message accordingly.

Security: Never log credentials. This client does not store or persist
any sensitive data; it simply forwards to Keycloak's token endpoint.
"""

from __future__ import annotations

from typing import Dict

import requests

from .oidc import OIDCConfig


class DirectGrantError(Exception):
    """Raised when the Direct Grant does not yield an ID token."""

    def __init__(self, code: str):
        super().__init__(code)
        self.code = code

    @property
    def invalid_credentials(self) -> bool:
        return self.code == "invalid_grant"


class AuthClient:
    """Authenticate against Keycloak using the Direct Grant.

    The method `direct_grant` performs a password grant against the configured
    realm and client. It returns a token dict on success and raises
    `DirectGrantError` on errors.
    """

    def __init__(self, cfg: OIDCConfig, *, timeout: float = 10.0) -> None:
        self.cfg = cfg
        self.timeout = timeout

    def direct_grant(self, *, email: str, password: str) -> Dict[str, str]:
        data = {
            "grant_type": "password",
            "client_id": self.cfg.client_id,
            "scope": "openid",
            "username": email,
            "password": password,
        }
        try:
            r = requests.post(self.cfg.token_endpoint, data=data, timeout=self.timeout)
        except requests.RequestException as exc:
            raise DirectGrantError("network_error") from exc
        if r.status_code in (400, 401):
            try:
                error = (r.json() or {}).get("error")
            except ValueError:
                error = None
            raise DirectGrantError("invalid_grant" if error == "invalid_grant" else "direct_grant_failed")
        if r.status_code != 200:
            raise DirectGrantError("direct_grant_failed")
        try:
            body = r.json()
        except ValueError as exc:
            raise DirectGrantError("direct_grant_failed") from exc
        # Expect id_token to be present for our session creation
        if not isinstance(body, dict) or "id_token" not in body:
            raise DirectGrantError("id_token_missing")
        return body


__all__ = ["AuthClient", "DirectGrantError"]
