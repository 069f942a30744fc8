"""HS256 identity tokens for the development auth backend (AUTH_BACKEND=jwt).

Tokens stand in for Firebase ID tokens locally and in tests: sub is the
identity id, email and full_name are optional profile claims, iss is the
app name. Secret, algorithm and lifetime come from schoolhub.core.config.
"""

from datetime import timedelta
from typing import Any, cast

from jose import JWTError, jwt

from schoolhub.core.config import get_settings
from schoolhub.shared.utils.datetime import utc_now

_PROFILE_CLAIMS = ("email", "full_name")


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """Sign an identity token.

    Args:
        data: Claims; sub is the identity id, email and full_name are optional.
        expires_delta: TTL; defaults to settings.access_token_expire_minutes.

    Returns:
        Encoded JWT string.
    """
    settings = get_settings()
    now = utc_now()
    ttl = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    claims = {k: v for k, v in data.items() if v is not None}
    claims.update(iss=settings.app_name, iat=now, exp=now + ttl)
    return cast(
        str,
        jwt.encode(claims, settings.secret_key.get_secret_value(), algorithm=settings.algorithm),
    )


def verify_token(token: str) -> dict[str, Any]:
    """Decode a token issued by create_access_token and return sub plus profile claims.

    Raises:
        ValueError: Bad signature, expired, wrong issuer, or sub/exp missing.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.secret_key.get_secret_value(),
            algorithms=[settings.algorithm],
            issuer=settings.app_name,
            options={"require_exp": True, "require_sub": True},
        )
    except JWTError as e:
        raise ValueError(f"Invalid token: {e!s}") from e
    subject = payload.get("sub")
    if not subject:
        raise ValueError("Token missing required claim: sub")
    claims = {"sub": subject}
    claims.update({k: payload[k] for k in _PROFILE_CLAIMS if payload.get(k)})
    return claims
