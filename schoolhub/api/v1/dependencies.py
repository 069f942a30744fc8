"""Presentation-layer dependency injection (composition root).

Provides FastAPI Depends() for repositories and application services.
Everything is built from infrastructure implementations here; routes
depend only on these dependencies, not on infra directly. Dependencies
take HTTPConnection so the same graph serves HTTP routes and WebSockets.

Store access runs as the caller (Firestore security rules apply) when the
Firebase auth backend is used with USER_SCOPED_STORE; otherwise with the
service account.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends
from starlette.requests import HTTPConnection

from schoolhub.application.dtos.profile import ProfileResult, ResolvedProfile
from schoolhub.application.interfaces.repositories import (
    IMessageRepository,
    IProfileRepository,
    ISchoolCodeLookup,
    ISchoolRepository,
)
from schoolhub.application.interfaces.services import (
    IIdentityProvider,
    IRealtimeChannel,
    ITokenVerifier,
)
from schoolhub.application.services.message_service import MessageService
from schoolhub.application.services.onboarding_service import (
    OnboardingService,
    derive_onboarding_state,
    resolve_redirect,
)
from schoolhub.application.services.profile_resolver import ProfileResolver
from schoolhub.application.services.school_provisioning_service import (
    SchoolProvisioningService,
)
from schoolhub.application.use_cases.conversations import MessageSynchronizer
from schoolhub.core.config import get_settings
from schoolhub.domain.enums import OnboardingState
from schoolhub.domain.exceptions import (
    AuthenticationException,
    OnboardingRequiredException,
    StoreUnavailableException,
)
from schoolhub.infrastructure.firebase._rest_client import FirestoreRESTClient
from schoolhub.infrastructure.firebase.repositories import (
    FirestoreMessageRepository,
    FirestoreProfileRepository,
    FirestoreSchoolCodeLookup,
    FirestoreSchoolRepository,
)
from schoolhub.infrastructure.security.identity import (
    BearerIdentityProvider,
    FirebaseTokenVerifier,
    JwtTokenVerifier,
)


# ---- Identity ----


def get_bearer_token(conn: HTTPConnection) -> str | None:
    """Bearer token from the Authorization header; WebSockets may pass ?token= instead."""
    header = conn.headers.get("Authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    if conn.scope.get("type") == "websocket":
        return conn.query_params.get("token") or None
    return None


def get_token_verifier(conn: HTTPConnection) -> ITokenVerifier:
    """Verifier set in lifespan; built from settings when the app runs without lifespan."""
    verifier = getattr(conn.app.state, "token_verifier", None)
    if verifier is not None:
        return verifier
    settings = get_settings()
    if settings.auth_backend == "jwt":
        return JwtTokenVerifier()
    return FirebaseTokenVerifier(settings.firebase_project_id or "")


def get_identity_provider(
    token: Annotated[str | None, Depends(get_bearer_token)],
    verifier: Annotated[ITokenVerifier, Depends(get_token_verifier)],
) -> IIdentityProvider:
    return BearerIdentityProvider(token, verifier)


# ---- Store ----


def get_firestore(conn: HTTPConnection) -> FirestoreRESTClient:
    client = getattr(conn.app.state, "firestore", None)
    if client is None:
        raise StoreUnavailableException("store.connect", "Firestore is not configured")
    return client


async def get_store_client(
    client: Annotated[FirestoreRESTClient, Depends(get_firestore)],
    identity_provider: Annotated[IIdentityProvider, Depends(get_identity_provider)],
) -> FirestoreRESTClient:
    """Caller-scoped client when the caller presents a Firebase ID token, else the service client."""
    settings = get_settings()
    if settings.auth_backend == "firebase" and settings.user_scoped_store:
        identity = await identity_provider.get_current_identity()
        if identity is not None and identity.id_token:
            return client.as_user(identity.id_token)
    return client


def get_profile_repo(
    store: Annotated[FirestoreRESTClient, Depends(get_store_client)],
) -> IProfileRepository:
    return FirestoreProfileRepository(store)


def get_school_repo(
    store: Annotated[FirestoreRESTClient, Depends(get_store_client)],
) -> ISchoolRepository:
    return FirestoreSchoolRepository(store)


def get_message_repo(
    store: Annotated[FirestoreRESTClient, Depends(get_store_client)],
) -> IMessageRepository:
    return FirestoreMessageRepository(store)


def get_code_lookup(conn: HTTPConnection) -> ISchoolCodeLookup:
    """Privileged lookup on the service client (unavailable without a service account)."""
    return FirestoreSchoolCodeLookup(getattr(conn.app.state, "firestore", None))


def get_realtime_channel(conn: HTTPConnection) -> IRealtimeChannel | None:
    return getattr(conn.app.state, "realtime", None)


# ---- Services ----


def get_profile_resolver(
    identity_provider: Annotated[IIdentityProvider, Depends(get_identity_provider)],
    profile_repo: Annotated[IProfileRepository, Depends(get_profile_repo)],
) -> ProfileResolver:
    return ProfileResolver(identity_provider, profile_repo)


def get_provisioning_service(
    profile_repo: Annotated[IProfileRepository, Depends(get_profile_repo)],
    school_repo: Annotated[ISchoolRepository, Depends(get_school_repo)],
    code_lookup: Annotated[ISchoolCodeLookup, Depends(get_code_lookup)],
) -> SchoolProvisioningService:
    settings = get_settings()
    return SchoolProvisioningService(
        profile_repo,
        school_repo,
        code_lookup=code_lookup,
        join_code_length=settings.join_code_length,
        max_code_attempts=settings.join_code_max_attempts,
    )


def get_onboarding_service(
    resolver: Annotated[ProfileResolver, Depends(get_profile_resolver)],
    provisioning: Annotated[SchoolProvisioningService, Depends(get_provisioning_service)],
) -> OnboardingService:
    return OnboardingService(resolver, provisioning)


def get_message_service(
    message_repo: Annotated[IMessageRepository, Depends(get_message_repo)],
    profile_repo: Annotated[IProfileRepository, Depends(get_profile_repo)],
    channel: Annotated[IRealtimeChannel | None, Depends(get_realtime_channel)],
) -> MessageService:
    return MessageService(
        message_repo,
        profile_repo,
        channel=channel,
        max_length=get_settings().message_max_length,
    )


def get_message_synchronizer(
    message_service: Annotated[MessageService, Depends(get_message_service)],
    channel: Annotated[IRealtimeChannel | None, Depends(get_realtime_channel)],
) -> MessageSynchronizer:
    settings = get_settings()
    return MessageSynchronizer(
        message_service,
        channel,
        page_size=settings.conversation_page_size,
        poll_interval=settings.realtime_fallback_poll_seconds,
    )


# ---- Guards ----


def ensure_ready(resolved: ResolvedProfile) -> ProfileResult:
    """Return the profile if onboarding is complete.

    Raises:
        AuthenticationException: Signed out.
        OnboardingRequiredException: Onboarding not complete (state in details).
    """
    state = derive_onboarding_state(resolved.identity, resolved.profile)
    if state is OnboardingState.UNAUTHENTICATED:
        raise AuthenticationException("Sign in required")
    if state is not OnboardingState.READY or resolved.profile is None:
        raise OnboardingRequiredException(state.value, resolve_redirect(state))
    return resolved.profile


async def require_ready_profile(
    resolver: Annotated[ProfileResolver, Depends(get_profile_resolver)],
) -> ProfileResult:
    """Protected routes: re-resolve on every request and reject until onboarding is ready."""
    return ensure_ready(await resolver.resolve())
