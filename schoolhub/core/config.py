"""Application configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. Cross-field requirements (auth backend secrets,
Firebase project) are validated at load time.
"""

from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment and .env.

    All settings are optional with defaults except those validated in
    validate_auth_and_store (secret_key for the jwt backend, a Firebase
    project for the firebase backend).
    """

    # App
    app_name: str = "schoolhub"
    app_version: str = "1.0.0"
    debug: bool = False

    # Auth: "firebase" (verify Firebase ID tokens) or "jwt" (HS256, local dev and tests)
    auth_backend: str = "firebase"
    secret_key: SecretStr = SecretStr("")
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 480  # 8 hours
    firebase_project_id: str | None = None

    # Store: Firestore REST. Use key (env) or path (file) for the service account.
    firebase_service_account_key: SecretStr | None = None
    firebase_service_account_path: str | None = None
    # When True and the caller presents a Firebase ID token, store reads/writes run
    # with that token so Firestore security rules apply per caller.
    user_scoped_store: bool = True

    # Realtime fan-out (Redis pub/sub)
    redis_enabled: bool = True
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: SecretStr | None = None
    realtime_fallback_poll_seconds: float = 5.0

    # Provisioning
    join_code_length: int = 6
    join_code_max_attempts: int = 5

    # Messaging
    conversation_page_size: int = 200
    message_max_length: int = 2000

    # HTTP
    allowed_origins: str = "http://localhost:3000"
    request_id_header: str = "X-Request-ID"
    rate_limit_enabled: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_auth_and_store(self) -> "Settings":
        """Validate auth backend and provisioning limits.

        - jwt: SECRET_KEY required.
        - firebase: FIREBASE_PROJECT_ID or a service account (which carries project_id) required.
        """
        if self.auth_backend == "jwt":
            if not self.secret_key.get_secret_value():
                raise ValueError(
                    "SECRET_KEY is required when auth_backend is 'jwt'. "
                    "Generate with: openssl rand -hex 32."
                )
        elif self.auth_backend == "firebase":
            has_key = (
                self.firebase_service_account_key
                and self.firebase_service_account_key.get_secret_value()
            )
            if (
                not self.firebase_project_id
                and not has_key
                and not self.firebase_service_account_path
            ):
                raise ValueError(
                    "When auth_backend is 'firebase', set FIREBASE_PROJECT_ID or provide "
                    "FIREBASE_SERVICE_ACCOUNT_KEY / FIREBASE_SERVICE_ACCOUNT_PATH."
                )
        else:
            raise ValueError(
                f"auth_backend must be 'firebase' or 'jwt', got: {self.auth_backend!r}"
            )
        if not 4 <= self.join_code_length <= 12:
            raise ValueError("join_code_length must be between 4 and 12")
        if self.join_code_max_attempts < 1:
            raise ValueError("join_code_max_attempts must be at least 1")
        if self.conversation_page_size < 1:
            raise ValueError("conversation_page_size must be at least 1")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings (single instance per process).

    Validation runs on first call, not at import time. In tests, call
    get_settings.cache_clear() before overriding env vars so the next
    get_settings() uses the new values.

    Returns:
        Loaded and validated Settings instance.
    """
    return Settings()
