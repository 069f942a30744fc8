"""Issue an HS256 bearer token for local development (AUTH_BACKEND=jwt).

Usage:
    python -m scripts.issue_dev_token <identity_id> [email] [full_name]
The token is signed with SECRET_KEY and expires after ACCESS_TOKEN_EXPIRE_MINUTES.
"""

import sys

from schoolhub.core.config import get_settings
from schoolhub.infrastructure.security.jwt import create_access_token


def main() -> None:
    """Print a token whose sub is the given identity id."""
    if len(sys.argv) < 2:
        print(
            "Usage: python -m scripts.issue_dev_token <identity_id> [email] [full_name]",
            file=sys.stderr,
        )
        sys.exit(1)

    settings = get_settings()
    if settings.auth_backend != "jwt":
        print("AUTH_BACKEND must be 'jwt' to issue development tokens", file=sys.stderr)
        sys.exit(1)

    claims = {"sub": sys.argv[1]}
    if len(sys.argv) > 2:
        claims["email"] = sys.argv[2]
    if len(sys.argv) > 3:
        claims["full_name"] = " ".join(sys.argv[3:])
    print(create_access_token(claims))


if __name__ == "__main__":
    main()
