"""Organization roles and the capabilities each one grants.

Roles are a closed enum; the capability table below must cover every
member (``tests/services/test_permissions.py`` checks this).  The owner
holds every capability regardless of the table.
"""

from __future__ import annotations

from enum import StrEnum


class Role(StrEnum):
    OWNER = "owner"
    ADMIN = "admin"
    USER = "user"


class Capability(StrEnum):
    VIEW_CLIENTS = "view_clients"
    CREATE_CLIENTS = "create_clients"
    UPDATE_CLIENTS = "update_clients"
    DELETE_CLIENTS = "delete_clients"
    MANAGE_TEAM = "manage_team"
    MANAGE_BILLING = "manage_billing"
    MANAGE_INTEGRATIONS = "manage_integrations"
    GENERATE_STRATEGIES = "generate_strategies"
    VIEW_REPORTS = "view_reports"


ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.OWNER: frozenset(Capability),
    Role.ADMIN: frozenset(
        {
            Capability.VIEW_CLIENTS,
            Capability.CREATE_CLIENTS,
            Capability.UPDATE_CLIENTS,
            Capability.DELETE_CLIENTS,
            Capability.MANAGE_TEAM,
            Capability.MANAGE_INTEGRATIONS,
            Capability.GENERATE_STRATEGIES,
            Capability.VIEW_REPORTS,
        }
    ),
    Role.USER: frozenset(
        {
            Capability.VIEW_CLIENTS,
            Capability.GENERATE_STRATEGIES,
            Capability.VIEW_REPORTS,
        }
    ),
}


def can_perform(role: Role, capability: Capability) -> bool:
    return capability in ROLE_CAPABILITIES[role]
