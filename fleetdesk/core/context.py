from dataclasses import dataclass, replace
from typing import Optional


@dataclass(frozen=True)
class SessionContext:
    """
    Explicit caller context passed to every access-layer call.

    ``access_token`` authenticates the caller against the platform, ``tenant_id`` is the
    company the caller's profile belongs to (``None`` until the profile is resolved).
    """
    access_token: Optional[str] = None
    user_id: Optional[str] = None
    tenant_id: Optional[str] = None
    role: Optional[str] = None
    email: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)

    @property
    def has_tenant(self) -> bool:
        return bool(self.tenant_id)

    def with_tenant(self, tenant_id: Optional[str]) -> "SessionContext":
        return replace(self, tenant_id=tenant_id)


ANONYMOUS = SessionContext()
