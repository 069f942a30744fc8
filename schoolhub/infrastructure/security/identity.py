"""Identity providers: bearer token -> Identity.

FirebaseTokenVerifier checks Firebase ID tokens with google-auth (production).
JwtTokenVerifier checks HS256 tokens signed with SECRET_KEY (local development, tests).
"""

from __future__ import annotations

import asyncio
from typing import Any

from google.auth import exceptions as google_auth_exceptions
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token

from schoolhub.application.dtos.identity import Identity
from schoolhub.application.interfaces.services import ITokenVerifier
from schoolhub.domain.exceptions import AuthenticationException
from schoolhub.infrastructure.security.jwt import verify_token
from schoolhub.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


def identity_from_claims(claims: dict[str, Any], token: str) -> Identity:
    """Map provider claims to an Identity. An explicit full_name claim wins over name."""
    subject = claims.get("sub") or claims.get("user_id")
    if not subject:
        raise AuthenticationException("Token has no subject")
    return Identity(
        id=str(subject),
        email=claims.get("email"),
        full_name=claims.get("full_name") or claims.get("name"),
        id_token=token,
    )


class FirebaseTokenVerifier:
    """Verifies Firebase ID tokens against Google's public keys."""

    def __init__(self, project_id: str) -> None:
        self.project_id = project_id
        self._request = google_requests.Request()

    def _verify_sync(self, token: str) -> dict[str, Any]:
        return google_id_token.verify_firebase_token(
            token, self._request, audience=self.project_id
        )

    async def verify(self, token: str) -> Identity:
        try:
            claims = await asyncio.to_thread(self._verify_sync, token)
        except (ValueError, google_auth_exceptions.GoogleAuthError) as e:
            raise AuthenticationException(f"Invalid Firebase ID token: {e!s}") from e
        if not claims:
            raise AuthenticationException("Invalid Firebase ID token")
        return identity_from_claims(claims, token)


class JwtTokenVerifier:
    """Verifies HS256 development tokens (see scripts/issue_dev_token.py)."""

    async def verify(self, token: str) -> Identity:
        try:
            claims = verify_token(token)
        except ValueError as e:
            raise AuthenticationException(str(e)) from e
        return identity_from_claims(claims, token)


class BearerIdentityProvider:
    """Current caller from the request's bearer token (implements IIdentityProvider).

    No token means signed out. An invalid or expired token is also treated
    as signed out, so the caller is sent to sign in again. Verification
    runs once per request.
    """

    def __init__(self, token: str | None, verifier: ITokenVerifier) -> None:
        self.token = token
        self.verifier = verifier
        self._resolved = False
        self._identity: Identity | None = None

    async def get_current_identity(self) -> Identity | None:
        if self._resolved:
            return self._identity
        if self.token:
            try:
                self._identity = await self.verifier.verify(self.token)
            except AuthenticationException as e:
                logger.info("Rejected bearer token: %s", e.message)
                self._identity = None
        self._resolved = True
        return self._identity
