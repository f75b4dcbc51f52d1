"""
Session boundary: the only place that knows how an admin signs in.

Intent:
    Expose three operations to the web layer: resolve the identity behind a
    session id, sign in with email and password, sign out. The identity
    provider (Keycloak Direct Grant, run in a worker thread because `requests`
    blocks) and token verification stay behind this boundary.

Behavior:
    - Wrong password, unknown user and a malformed email all map to
      `AuthFailure.INVALID_CREDENTIAL`; a malformed email is rejected without
      contacting the provider.
    - Any other failure (network, provider error, token rejected) maps to
      `AuthFailure.OTHER`.
    - Every signed-in identity may administer the catalog; roles are carried
      but not checked.

Security:
    Never log credentials or tokens. Only exception class names and stable
    codes are logged.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

import anyio

from .keycloak_client import AuthClient, DirectGrantError
from .oidc import OIDCConfig
from .stores import SessionRecord, SessionStore
from .tokens import IDTokenVerificationError, verify_id_token

logger = logging.getLogger("genius.identity_access")

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class AuthFailure(str, Enum):
    INVALID_CREDENTIAL = "invalid_credential"
    OTHER = "other"


_AUTH_MESSAGES = {
    AuthFailure.INVALID_CREDENTIAL: "Invalid email or password",
    AuthFailure.OTHER: "Login failed. Please try again.",
}


class AuthError(Exception):
    def __init__(self, failure: AuthFailure):
        super().__init__(failure.value)
        self.failure = failure
        self.code = failure.value

    @property
    def user_message(self) -> str:
        return _AUTH_MESSAGES[self.failure]


@dataclass(frozen=True)
class Identity:
    sub: str
    email: str
    roles: Tuple[str, ...] = ()


Verifier = Callable[..., Dict[str, object]]


def _roles_from_claims(claims: Dict[str, object]) -> List[str]:
    access = claims.get("realm_access") or {}
    roles = access.get("roles") if isinstance(access, dict) else None
    return [str(r) for r in roles] if isinstance(roles, list) else []


class SessionBoundary:
    def __init__(
        self,
        *,
        cfg: OIDCConfig,
        sessions: SessionStore,
        auth_client: Optional[AuthClient] = None,
        verifier: Verifier = verify_id_token,
        session_ttl_seconds: int = 3600,
    ):
        self.cfg = cfg
        self.sessions = sessions
        self.auth_client = auth_client or AuthClient(cfg)
        self._verify = verifier
        self.session_ttl_seconds = session_ttl_seconds

    def current_identity(self, session_id: Optional[str]) -> Optional[Identity]:
        if not session_id:
            return None
        rec = self.sessions.get(session_id)
        if rec is None:
            return None
        return Identity(sub=rec.sub, email=rec.email, roles=tuple(rec.roles))

    def _authenticate(self, email: str, password: str) -> Dict[str, object]:
        tokens = self.auth_client.direct_grant(email=email, password=password)
        return self._verify(id_token=str(tokens["id_token"]), cfg=self.cfg)

    async def sign_in(self, email: str, password: str) -> SessionRecord:
        """Authenticate and open a server-side session.

        Raises:
            AuthError: INVALID_CREDENTIAL or OTHER; never anything else.
        """
        email = (email or "").strip()
        if not _EMAIL_RE.match(email) or not password:
            raise AuthError(AuthFailure.INVALID_CREDENTIAL)
        try:
            claims = await anyio.to_thread.run_sync(self._authenticate, email, password)
        except DirectGrantError as exc:
            logger.warning("Direct grant failed: %s", exc.code)
            failure = AuthFailure.INVALID_CREDENTIAL if exc.invalid_credentials else AuthFailure.OTHER
            raise AuthError(failure) from exc
        except IDTokenVerificationError as exc:
            logger.warning("ID token verification failed: %s", exc.code)
            raise AuthError(AuthFailure.OTHER) from exc
        sub = str(claims.get("sub") or "")
        if not sub:
            raise AuthError(AuthFailure.OTHER)
        claimed_email = str(claims.get("email") or claims.get("preferred_username") or email)
        rec = self.sessions.create(
            sub=sub,
            email=claimed_email,
            roles=_roles_from_claims(claims),
            ttl_seconds=self.session_ttl_seconds,
        )
        logger.info("Admin session opened")
        return rec

    def sign_out(self, session_id: Optional[str]) -> None:
        if session_id:
            self.sessions.delete(session_id)


__all__ = ["AuthFailure", "AuthError", "Identity", "SessionBoundary"]
