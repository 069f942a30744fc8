"""Health check endpoints. No store calls; used for liveness and readiness probes."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from schoolhub.schemas.health import HealthResponse, ReadinessResponse

router = APIRouter()


@router.get("", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Return simple ok status for liveness."""
    return HealthResponse()


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={503: {"description": "Store not configured", "model": ReadinessResponse}},
)
def readiness_check(request: Request) -> ReadinessResponse | JSONResponse:
    """Return 200 when the store client is configured, else 503.

    A disconnected realtime channel does not fail readiness; conversations
    fall back to periodic reload.
    """
    state = request.app.state
    realtime = getattr(state, "realtime", None)
    body = ReadinessResponse(
        store=getattr(state, "firestore", None) is not None,
        realtime=realtime is not None and realtime.is_available(),
    )
    if body.store:
        return body
    body.status = "not_ready"
    return JSONResponse(status_code=503, content=body.model_dump())
