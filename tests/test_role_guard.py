from types import SimpleNamespace

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from rintrack.api import deps
from rintrack.core.errors import register_exception_handlers
from rintrack.core.response_envelope import register_response_envelope
from rintrack.core.roles import ADMIN_ONLY, MANAGER_ONLY, STAFF, Role, describe_roles, role_set
from rintrack.db.session import get_db
from rintrack.services.authz import AccessDecision, authorize

from conftest import FakeAsyncSession, FakeIdentityIssuer, make_user, user_store_handler


def _build_app(issuer: FakeIdentityIssuer, session: FakeAsyncSession) -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)
    register_response_envelope(app)

    @app.get("/managers")
    async def managers_only(user=Depends(deps.require_manager)):
        return {"email": user.email}

    @app.get("/staff")
    async def staff_only(user=Depends(deps.require_staff)):
        return {"email": user.email}

    async def _get_db():
        yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[deps.get_identity_issuer] = lambda: issuer
    return app


@pytest.fixture
def guarded():
    issuer = FakeIdentityIssuer()
    session = FakeAsyncSession()
    users: dict = {}
    session.on_execute(user_store_handler(users))
    client = TestClient(_build_app(issuer, session))

    def bearer(email: str, role: str | None = "borrower", **overrides) -> dict[str, str]:
        if role is not None:
            users[email] = make_user(email=email, role=role, **overrides)
        issuer.add_token(f"tok-{email}", email)
        return {"Authorization": f"Bearer tok-{email}"}

    return SimpleNamespace(client=client, issuer=issuer, session=session, users=users, bearer=bearer)


def test_missing_credential_is_401_without_store_access(guarded) -> None:
    resp = guarded.client.get("/managers")

    assert resp.status_code == 401
    assert resp.json()["message"] == "Unauthorized Access!"
    assert guarded.session.executed == []


def test_unverifiable_token_is_401_without_store_access(guarded) -> None:
    resp = guarded.client.get("/managers", headers={"Authorization": "Bearer nope"})

    assert resp.status_code == 401
    assert guarded.session.executed == []


def test_permitted_role_passes(guarded) -> None:
    resp = guarded.client.get("/managers", headers=guarded.bearer("m@example.com", "manager"))

    assert resp.status_code == 200
    assert resp.json()["data"] == {"email": "m@example.com"}


def test_wrong_role_is_403_with_role_details(guarded) -> None:
    resp = guarded.client.get("/managers", headers=guarded.bearer("b@example.com", "borrower"))

    assert resp.status_code == 403
    body = resp.json()
    assert body["code"] == "forbidden"
    assert body["message"] == "manager only actions!"
    assert body["role"] == "borrower"
    assert body["details"] == {"role": "borrower", "allowed_roles": ["manager"]}


def test_staff_guard_admits_admin_and_manager(guarded) -> None:
    admin = guarded.client.get("/staff", headers=guarded.bearer("a@example.com", "admin"))
    manager = guarded.client.get("/staff", headers=guarded.bearer("m@example.com", "manager"))
    borrower = guarded.client.get("/staff", headers=guarded.bearer("b@example.com", "borrower"))

    assert admin.status_code == 200
    assert manager.status_code == 200
    assert borrower.status_code == 403
    assert borrower.json()["message"] == "admin or manager only actions!"


def test_verified_subject_without_stored_identity_is_403(guarded) -> None:
    resp = guarded.client.get("/managers", headers=guarded.bearer("ghost@example.com", role=None))

    assert resp.status_code == 403
    assert resp.json()["role"] is None
    assert resp.json()["details"]["role"] is None


def test_suspended_identity_is_denied(guarded) -> None:
    headers = guarded.bearer("m@example.com", "manager", status="suspended")

    resp = guarded.client.get("/managers", headers=headers)

    assert resp.status_code == 403
    assert resp.json()["message"] == "Account suspended"


def test_role_is_read_fresh_on_every_request(guarded) -> None:
    headers = guarded.bearer("m@example.com", "manager")
    first = guarded.client.get("/managers", headers=headers)

    guarded.users["m@example.com"].role = "borrower"
    second = guarded.client.get("/managers", headers=headers)

    assert first.status_code == 200
    assert second.status_code == 403
    assert len(guarded.session.executed) == 2


def test_store_failure_is_500(guarded) -> None:
    headers = guarded.bearer("m@example.com", "manager")

    def _broken(_stmt):
        raise OperationalError("SELECT", {}, Exception("connection refused"))

    guarded.session.on_execute(_broken, first=True)
    resp = guarded.client.get("/managers", headers=headers)

    assert resp.status_code == 500
    assert resp.json()["code"] == "internal_server_error"


def test_issuer_outage_on_guarded_route_is_500(guarded) -> None:
    headers = guarded.bearer("m@example.com", "manager")
    guarded.issuer.unavailable = True

    resp = guarded.client.get("/managers", headers=headers)

    assert resp.status_code == 500
    assert guarded.session.executed == []


def test_authorize_decisions() -> None:
    active_manager = SimpleNamespace(role="manager", status="active")

    assert authorize(MANAGER_ONLY, active_manager) is AccessDecision.ALLOW
    assert authorize(ADMIN_ONLY, active_manager) is AccessDecision.DENY_ROLE
    assert authorize(STAFF, None) is AccessDecision.DENY_UNKNOWN
    assert authorize(STAFF, SimpleNamespace(role="root", status="active")) is AccessDecision.DENY_ROLE
    assert (
        authorize(STAFF, SimpleNamespace(role="admin", status="suspended"))
        is AccessDecision.DENY_SUSPENDED
    )


def test_role_set_requires_a_known_role() -> None:
    assert role_set(["Admin", "manager"]) == STAFF
    with pytest.raises(ValueError):
        role_set([])
    with pytest.raises(ValueError):
        role_set(["root"])


def test_describe_roles_is_stably_ordered() -> None:
    assert describe_roles({Role.MANAGER, Role.ADMIN}) == "admin or manager"
    assert repr(deps.require_staff) == "RoleGuard(admin or manager)"
