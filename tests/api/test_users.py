from __future__ import annotations

from fastapi.testclient import TestClient

from agencyhub.models.roles import Role
from agencyhub.repos import store
from agencyhub.services import wiring
from tests.conftest import auth_headers, create_test_org, create_test_plan, create_test_user


def _invite(client: TestClient, inviter, email: str, role: str = "user"):
    return client.post(
        "/api/users",
        json={"email": email, "password": "welcome123", "role": role},
        headers=auth_headers(inviter),
    )


def test_owner_adds_member_within_cap(client: TestClient) -> None:
    org = create_test_org("team", plan="professional")
    owner = create_test_user(org)

    resp = _invite(client, owner, "designer@team.com", role="admin")

    assert resp.status_code == 201
    assert resp.json()["role"] == "admin"
    members = client.get("/api/users", headers=auth_headers(owner)).json()
    assert {m["email"] for m in members} == {owner.email, "designer@team.com"}


def test_seat_cap_returns_upgrade_hint(client: TestClient) -> None:
    org = create_test_org("solo", plan="starter")
    owner = create_test_user(org)

    resp = _invite(client, owner, "extra@solo.com")

    assert resp.status_code == 403
    assert resp.json()["upgrade"] is True
    assert store.user_repo.get_by_email("extra@solo.com") is None


def test_duplicate_email_is_409(client: TestClient) -> None:
    org = create_test_org("dup-team", plan="professional")
    owner = create_test_user(org)
    assert _invite(client, owner, "same@team.com").status_code == 201
    assert _invite(client, owner, "same@team.com").status_code == 409


def test_cannot_invite_owner(client: TestClient) -> None:
    org = create_test_org("owners", plan="professional")
    owner = create_test_user(org)
    assert _invite(client, owner, "boss@team.com", role="owner").status_code == 422


def test_plain_user_cannot_invite(client: TestClient) -> None:
    org = create_test_org("flat", plan="professional")
    member = create_test_user(org, role=Role.USER)
    assert _invite(client, member, "friend@flat.com").status_code == 403


def _patch(client: TestClient, actor, member_id, **body):
    return client.patch(f"/api/users/{member_id}", json=body, headers=auth_headers(actor))


def test_deactivating_member_frees_a_seat(client: TestClient) -> None:
    org = create_test_org("seats", plan=create_test_plan("duo", max_users=2))
    owner = create_test_user(org)
    member = create_test_user(org, role=Role.USER)
    assert _invite(client, owner, "third@seats.com").status_code == 403
    assert wiring.entitlements.can_add_user(org.id) is False

    resp = _patch(client, owner, member.id, is_active=False)

    assert resp.status_code == 200
    assert resp.json()["is_active"] is False
    assert wiring.entitlements.can_add_user(org.id) is True
    assert _invite(client, owner, "third@seats.com").status_code == 201


def test_deactivated_member_loses_access(client: TestClient) -> None:
    org = create_test_org("gone", plan="professional")
    owner = create_test_user(org)
    member = create_test_user(org, role=Role.USER)
    assert _patch(client, owner, member.id, is_active=False).status_code == 200

    assert client.get("/api/users", headers=auth_headers(member)).status_code == 401


def test_reactivation_respects_seat_cap(client: TestClient) -> None:
    org = create_test_org("return", plan=create_test_plan("duo", max_users=2))
    owner = create_test_user(org)
    member = create_test_user(org, role=Role.USER)
    assert _patch(client, owner, member.id, is_active=False).status_code == 200
    assert _invite(client, owner, "replacement@return.com").status_code == 201

    resp = _patch(client, owner, member.id, is_active=True)

    assert resp.status_code == 403
    assert resp.json()["upgrade"] is True
    stored = store.user_repo.get_by_id(member.id)
    assert stored is not None and not stored.is_active


def test_change_member_role(client: TestClient) -> None:
    org = create_test_org("promote", plan="professional")
    owner = create_test_user(org)
    member = create_test_user(org, role=Role.USER)

    resp = _patch(client, owner, member.id, role="admin")

    assert resp.status_code == 200
    assert resp.json()["role"] == "admin"
    stored = store.user_repo.get_by_id(member.id)
    assert stored is not None and stored.role == Role.ADMIN
    assert _invite(client, stored, "new@promote.com").status_code == 201


def test_owner_cannot_be_demoted_or_deactivated(client: TestClient) -> None:
    org = create_test_org("crown", plan="professional")
    owner = create_test_user(org)
    admin = create_test_user(org, role=Role.ADMIN)

    assert _patch(client, admin, owner.id, role="user").status_code == 422
    assert _patch(client, admin, owner.id, is_active=False).status_code == 422
    stored = store.user_repo.get_by_id(owner.id)
    assert stored is not None and stored.role == Role.OWNER and stored.is_active


def test_plain_user_cannot_update_members(client: TestClient) -> None:
    org = create_test_org("peers", plan="professional")
    create_test_user(org)
    member = create_test_user(org, role=Role.USER)
    other = create_test_user(org, role=Role.USER)

    assert _patch(client, member, other.id, is_active=False).status_code == 403


def test_member_of_other_org_is_404(client: TestClient) -> None:
    org = create_test_org("mine", plan="professional")
    owner = create_test_user(org)
    outsider = create_test_user(create_test_org("theirs", plan="professional"), role=Role.USER)

    resp = _patch(client, owner, outsider.id, is_active=False)

    assert resp.status_code == 404
    stored = store.user_repo.get_by_id(outsider.id)
    assert stored is not None and stored.is_active
