from __future__ import annotations

import logging

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError

from agencyhub.core.errors import ConflictError
from agencyhub.models.organization import Organization
from agencyhub.models.roles import Role
from agencyhub.models.user import User
from agencyhub.repos.organization_repo import OrganizationRepo
from agencyhub.repos.plan_repo import PlanRepo
from agencyhub.repos.user_repo import UserRepo

logger = logging.getLogger(__name__)

_ph = PasswordHasher()

# Plan code new organizations start on
DEFAULT_PLAN_CODE = "starter"


def hash_password(plain_password: str) -> str:
    if not plain_password:
        raise ValueError("password must be non-empty")
    return _ph.hash(plain_password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    if not plain_password or not password_hash:
        return False
    try:
        return _ph.verify(password_hash, plain_password)
    except (VerifyMismatchError, VerificationError, InvalidHash):
        return False


def authenticate_user(repo: UserRepo, email: str, password: str) -> User | None:
    user = repo.get_by_email(email)
    if user is None or not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


def register_organization(
    *,
    org_repo: OrganizationRepo,
    user_repo: UserRepo,
    plan_repo: PlanRepo,
    organization_name: str,
    subdomain: str,
    email: str,
    password: str,
    name: str = "",
) -> tuple[Organization, User]:
    """Create a tenant and its owner in one step.

    Both uniqueness checks run before anything is written.  If the owner
    insert still loses an email race, the organization is removed again so
    its subdomain is not left claimed by a tenant nobody can log in to.
    """
    if org_repo.get_by_subdomain(subdomain) is not None:
        raise ConflictError("Subdomain already taken")
    if user_repo.get_by_email(email) is not None:
        raise ConflictError("Email already registered")

    plan = plan_repo.get_by_code(DEFAULT_PLAN_CODE)
    org = Organization.new(
        name=organization_name,
        subdomain=subdomain,
        plan_id=plan.id if plan else None,
    )
    owner = User.new(
        email=email,
        password_hash=hash_password(password),
        organization_id=org.id,
        role=Role.OWNER,
        name=name,
    )

    try:
        org_repo.add(org)
    except ValueError:
        raise ConflictError("Subdomain already taken") from None
    try:
        user_repo.add(owner)
    except ValueError:
        org_repo.remove(org.id)
        raise ConflictError("Email already registered") from None

    logger.info("Registered organization=%s owner=%s", org.id, owner.id)
    return org, owner
