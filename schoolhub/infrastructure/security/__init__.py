"""Security: bearer token verification and development JWTs."""

from schoolhub.infrastructure.security.identity import (
    BearerIdentityProvider,
    FirebaseTokenVerifier,
    JwtTokenVerifier,
)
from schoolhub.infrastructure.security.jwt import create_access_token, verify_token

__all__ = [
    "BearerIdentityProvider",
    "FirebaseTokenVerifier",
    "JwtTokenVerifier",
    "create_access_token",
    "verify_token",
]
