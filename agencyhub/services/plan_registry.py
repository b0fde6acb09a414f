"""Subscription tier catalog.

Plans are read-only at request time; only the platform-admin endpoints in
``agencyhub.api.admin`` change them, and they are never deleted, only
deactivated, because organizations keep pointing at them.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal
from uuid import UUID

from agencyhub.core.errors import ConflictError, NotFoundError, ValidationError
from agencyhub.models.plan import UNLIMITED, Plan
from agencyhub.repos.plan_repo import PlanRepo

logger = logging.getLogger(__name__)

SEED_PLANS: tuple[dict, ...] = (
    {
        "code": "starter",
        "name": "Starter",
        "price": Decimal("99.90"),
        "description": "For freelancers getting started",
        "features": ("basic_reports", "email_support"),
        "max_users": 1,
        "max_clients": 5,
    },
    {
        "code": "professional",
        "name": "Professional",
        "price": Decimal("199.90"),
        "description": "For growing agencies",
        "features": ("advanced_reports", "priority_support", "integrations"),
        "max_users": 5,
        "max_clients": 25,
        "has_ai_strategies": True,
        "has_integrations": True,
        "has_advanced_reports": True,
    },
    {
        "code": "enterprise",
        "name": "Enterprise",
        "price": Decimal("399.90"),
        "description": "Unlimited clients and seats",
        "features": (
            "advanced_reports",
            "custom_reports",
            "support_24_7",
            "white_label",
            "api_access",
        ),
        "max_users": UNLIMITED,
        "max_clients": UNLIMITED,
        "has_ai_strategies": True,
        "has_integrations": True,
        "has_advanced_reports": True,
    },
)

# Fields an admin may change after creation.  ``code`` is the stable key
# external systems use and stays fixed.
_UPDATABLE = frozenset(
    {
        "name",
        "description",
        "price",
        "interval",
        "features",
        "max_users",
        "max_clients",
        "has_ai_strategies",
        "has_integrations",
        "has_advanced_reports",
        "stripe_price_id",
    }
)


def _validate(fields: dict) -> None:
    price = fields.get("price")
    if price is not None and Decimal(price) < 0:
        raise ValidationError("price must be >= 0")
    if "features" in fields and fields["features"] is not None:
        fields["features"] = tuple(fields["features"])


class PlanRegistry:
    def __init__(self, plans: PlanRepo) -> None:
        self._plans = plans

    def ensure_seeded(self) -> int:
        """Insert the default tiers that are missing.  Returns how many were added."""
        added = 0
        for seed in SEED_PLANS:
            if self._plans.get_by_code(seed["code"]) is None:
                self._plans.add(Plan.new(**seed))
                added += 1
        if added:
            logger.info("Seeded %d default plans", added)
        return added

    def list_plans(self, *, active_only: bool = True) -> list[Plan]:
        return self._plans.list(active_only=active_only)

    def get_plan(self, plan_id: UUID) -> Plan:
        plan = self._plans.get(plan_id)
        if plan is None:
            raise NotFoundError("Plan not found")
        return plan

    def get_by_code(self, code: str) -> Plan | None:
        return self._plans.get_by_code(code)

    def get_by_stripe_price(self, price_id: str) -> Plan | None:
        return self._plans.get_by_stripe_price(price_id)

    def create_plan(self, *, code: str, name: str, price: Decimal, **fields) -> Plan:
        unknown = set(fields) - _UPDATABLE
        if unknown:
            raise ValidationError(f"Unknown plan fields: {', '.join(sorted(unknown))}")
        fields["price"] = price
        _validate(fields)
        plan = Plan.new(code=code, name=name, **fields)
        try:
            self._plans.add(plan)
        except ValueError:
            raise ConflictError(f"Plan code already exists: {code}") from None
        logger.info("Created plan code=%s id=%s", plan.code, plan.id)
        return plan

    def update_plan(self, plan_id: UUID, **changes) -> Plan:
        unknown = set(changes) - _UPDATABLE
        if unknown:
            raise ValidationError(f"Unknown plan fields: {', '.join(sorted(unknown))}")
        _validate(changes)
        updated = replace(self.get_plan(plan_id), **changes)
        self._plans.save(updated)
        logger.info("Updated plan id=%s fields=%s", plan_id, sorted(changes))
        return updated

    def deactivate_plan(self, plan_id: UUID) -> Plan:
        plan = self.get_plan(plan_id)
        if not plan.is_active:
            return plan
        updated = replace(plan, is_active=False)
        self._plans.save(updated)
        logger.info("Deactivated plan id=%s code=%s", plan_id, plan.code)
        return updated
