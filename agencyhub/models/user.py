from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4

from agencyhub.models.roles import Role


@dataclass(frozen=True, slots=True)
class User:
    id: UUID
    email: str
    password_hash: str
    organization_id: UUID | None
    role: Role = Role.USER
    name: str = ""
    roles: tuple[str, ...] = ()  # platform roles, e.g. ("admin",)
    is_active: bool = True

    @staticmethod
    def new(
        *,
        email: str,
        password_hash: str,
        organization_id: UUID | None,
        role: Role = Role.USER,
        name: str = "",
        roles: tuple[str, ...] = (),
    ) -> User:
        return User(
            id=uuid4(),
            email=email.strip().lower(),
            password_hash=password_hash,
            organization_id=organization_id,
            role=role,
            name=name,
            roles=roles,
        )
