from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from agencyhub.models.roles import Capability, Role, can_perform


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated identity carried through a request.

    ``user_id`` and ``roles`` come from the access token.  The
    organization gate fills in ``organization_id`` and ``org_role`` from
    the stored user record once membership is confirmed.
    """

    user_id: str
    roles: frozenset[str]
    organization_id: UUID | None = None
    org_role: Role | None = None

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def is_platform_admin(self) -> bool:
        return "admin" in self.roles

    def can(self, capability: Capability) -> bool:
        if self.org_role is None:
            return False
        return can_perform(self.org_role, capability)
