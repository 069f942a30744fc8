"""DTOs for school provisioning use cases (no dependency on the store)."""

from dataclasses import dataclass
from datetime import datetime

from schoolhub.domain.enums import UserRole


@dataclass(frozen=True)
class SchoolResult:
    """School read-model (result of create_school, get_by_id)."""

    id: str
    name: str
    region: str
    join_code: str
    address: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class ProvisioningResult:
    """Outcome of create_school / join_school: the caller is linked and can be redirected."""

    school_id: str
    role: UserRole
    redirect_to: str
    join_code: str | None = None
