"""
ID token verification for the admin sign-in.

Intent:
    The Direct Grant response is trusted only after its ID token passes
    signature, issuer, audience and lifetime checks against the realm's
    published signing keys.

Behavior:
    - Signing keys are cached per JWKS endpoint for `ttl_seconds`.
    - A token signed with a key id missing from the cache triggers one refetch
      (the realm may have rotated its keys); a second miss is `unknown_kid`.
    - Lifetime claims tolerate `LEEWAY_SECONDS` of clock skew.

Security:
    Error codes are stable strings; token contents never end up in messages.
"""
from __future__ import annotations

import time
from typing import Callable, Dict, List, Optional, Tuple

import requests
from jose import jwt
from jose.exceptions import ExpiredSignatureError, JOSEError, JWTClaimsError

from .oidc import OIDCConfig

LEEWAY_SECONDS = 5
JWKS_TTL_SECONDS = 300

KeySet = List[Dict[str, object]]


class IDTokenVerificationError(Exception):
    """Raised when the ID token fails verification."""

    def __init__(self, code: str):
        super().__init__(code)
        self.code = code


def fetch_signing_keys(url: str, timeout: float = 5) -> KeySet:
    """GET a JWKS document and return its `keys` list."""
    try:
        resp = requests.get(url, timeout=timeout)
    except requests.RequestException as exc:
        raise IDTokenVerificationError("jwks_fetch_failed") from exc
    if resp.status_code != 200:
        raise IDTokenVerificationError("jwks_fetch_failed")
    try:
        document = resp.json()
    except ValueError as exc:
        raise IDTokenVerificationError("jwks_invalid") from exc
    keys = document.get("keys") if isinstance(document, dict) else None
    if not isinstance(keys, list):
        raise IDTokenVerificationError("jwks_invalid")
    return [k for k in keys if isinstance(k, dict)]


class JWKSCache:
    def __init__(
        self,
        ttl_seconds: int = JWKS_TTL_SECONDS,
        *,
        fetcher: Callable[[str], KeySet] = fetch_signing_keys,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._fetch = fetcher
        self._clock = clock
        self._keys: Dict[str, Tuple[float, KeySet]] = {}

    def _load(self, url: str, *, force: bool = False) -> KeySet:
        cached = self._keys.get(url)
        now = self._clock()
        if cached and not force and cached[0] > now:
            return cached[1]
        keys = self._fetch(url)
        self._keys[url] = (now + self.ttl_seconds, keys)
        return keys

    def key_for(self, cfg: OIDCConfig, kid: str) -> Dict[str, object]:
        url = cfg.jwks_endpoint
        key = _match(self._load(url), kid)
        if key is None:
            key = _match(self._load(url, force=True), kid)
        if key is None:
            raise IDTokenVerificationError("unknown_kid")
        return key


def _match(keys: KeySet, kid: str) -> Optional[Dict[str, object]]:
    return next((k for k in keys if k.get("kid") == kid), None)


JWKS_CACHE = JWKSCache()


def verify_id_token(*, id_token: str, cfg: OIDCConfig, cache: Optional[JWKSCache] = None) -> Dict[str, object]:
    """Validate an ID token using the realm's keys and return its claims.

    Raises:
        IDTokenVerificationError: `invalid_id_token`, `missing_kid`,
        `unknown_kid`, `id_token_expired` or a JWKS fetch code.
    """
    try:
        kid = jwt.get_unverified_header(id_token).get("kid")
    except JOSEError as exc:
        raise IDTokenVerificationError("invalid_id_token") from exc
    if not kid:
        raise IDTokenVerificationError("missing_kid")
    key = (cache or JWKS_CACHE).key_for(cfg, str(kid))
    try:
        return jwt.decode(
            id_token,
            key,
            algorithms=[str(key.get("alg") or "RS256")],
            audience=cfg.client_id,
            issuer=cfg.issuer,
            options={"leeway": LEEWAY_SECONDS, "require_exp": True, "verify_at_hash": False},
        )
    except ExpiredSignatureError as exc:
        raise IDTokenVerificationError("id_token_expired") from exc
    except (JWTClaimsError, JOSEError) as exc:
        raise IDTokenVerificationError("invalid_id_token") from exc


__all__ = ["IDTokenVerificationError", "JWKSCache", "JWKS_CACHE", "fetch_signing_keys", "verify_id_token"]
