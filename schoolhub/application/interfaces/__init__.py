"""Application interfaces (ports): repository and service protocols.

Define contracts for infrastructure implementations (DIP).
No runtime imports from schoolhub.infrastructure or schoolhub.api.
"""

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
    RealtimeSubscription,
)

__all__ = [
    "IIdentityProvider",
    "IMessageRepository",
    "IProfileRepository",
    "IRealtimeChannel",
    "ISchoolCodeLookup",
    "ISchoolRepository",
    "ITokenVerifier",
    "RealtimeSubscription",
]
