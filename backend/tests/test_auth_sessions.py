import os
import sys

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.api import deps
from app.api.auth import router as auth_router
from app.database import Base
from app.exceptions import InfrastructureError
from app.models.auth import SessionRow
from app.services.memory_session_store import MemorySessionStore


def _cookies(response) -> dict[str, str]:
    cookies = {}
    for header in response.headers.get_list("set-cookie"):
        token_part = header.split(";", 1)[0]
        name, value = token_part.split("=", 1)
        cookies[name] = value
    return cookies


def _build_test_client():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    app = FastAPI()
    app.include_router(auth_router)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[deps.get_db] = override_get_db
    return TestClient(app), TestingSessionLocal


def _login(client: TestClient, name: str):
    response = client.get("/auth", headers={"Name": name})
    assert response.status_code == 200
    return response


def test_login_returns_token_pair_as_json_and_cookies():
    client, _ = _build_test_client()

    response = _login(client, "alpha")
    data = response.json()
    cookies = _cookies(response)
    set_cookie = " ".join(response.headers.get_list("set-cookie"))

    assert data["user_name"] == "alpha"
    assert cookies["access_token"] == data["access_token"]
    assert cookies["refresh_token"] == data["refresh_token"]
    assert len(data["refresh_token"]) == 64
    assert "HttpOnly" in set_cookie
    assert "Max-Age=900" in set_cookie
    assert "Max-Age=604800" in set_cookie


def test_login_without_name_header_is_rejected():
    client, _ = _build_test_client()

    response = client.get("/auth")

    assert response.status_code == 400
    assert response.json()["detail"] == "Header 'Name' is missing"


def test_wrong_methods_are_not_allowed():
    client, _ = _build_test_client()

    assert client.post("/auth", headers={"Name": "alpha"}).status_code == 405
    assert client.get("/refresh", headers={"Name": "alpha", "Token": "x"}).status_code == 405


def test_second_login_keeps_a_single_session():
    client, testing_session_local = _build_test_client()

    first = _login(client, "beta").json()
    _login(client, "beta")

    db = testing_session_local()
    try:
        assert db.query(SessionRow).filter(SessionRow.name == "beta").count() == 1
    finally:
        db.close()

    stale = client.post(
        "/refresh",
        headers={"Name": "beta", "Token": first["refresh_token"]},
    )
    assert stale.status_code == 400


def test_refresh_rotates_session_and_rejects_replay():
    client, _ = _build_test_client()

    old_refresh = _login(client, "gamma").json()["refresh_token"]

    refresh_response = client.post(
        "/refresh",
        headers={"Name": "gamma", "Token": old_refresh},
    )
    assert refresh_response.status_code == 200
    data = refresh_response.json()
    assert data["user_name"] == "gamma"
    assert data["refresh_token"] != old_refresh
    assert _cookies(refresh_response)["refresh_token"] == data["refresh_token"]

    replay_response = client.post(
        "/refresh",
        headers={"Name": "gamma", "Token": old_refresh},
    )
    assert replay_response.status_code == 400
    assert replay_response.json()["detail"] == "Bad Request"

    next_response = client.post(
        "/refresh",
        headers={"Name": "gamma", "Token": data["refresh_token"]},
    )
    assert next_response.status_code == 200


def test_refresh_token_is_bound_to_its_user():
    client, _ = _build_test_client()

    delta_refresh = _login(client, "delta").json()["refresh_token"]
    _login(client, "epsilon")

    response = client.post(
        "/refresh",
        headers={"Name": "epsilon", "Token": delta_refresh},
    )
    assert response.status_code == 400


def test_refresh_without_headers_is_rejected():
    client, _ = _build_test_client()

    missing_token = client.post("/refresh", headers={"Name": "zeta"})
    assert missing_token.status_code == 400
    assert missing_token.json()["detail"] == "Header 'Token' is missing"

    missing_name = client.post("/refresh", headers={"Token": "abc"})
    assert missing_name.status_code == 400
    assert missing_name.json()["detail"] == "Header 'Name' is missing"


def test_refresh_for_unknown_user_is_rejected():
    client, _ = _build_test_client()

    response = client.post("/refresh", headers={"Name": "nobody", "Token": "00" * 32})

    assert response.status_code == 400


def test_store_failure_is_reported_as_internal_error():
    class BrokenStore(MemorySessionStore):
        def reset(self, user_name, token_hash, created_at):
            raise InfrastructureError("store.memory.reset", "disk full")

    client, _ = _build_test_client()
    client.app.dependency_overrides[deps.get_session_store] = lambda: BrokenStore()

    response = client.get("/auth", headers={"Name": "eta"})

    assert response.status_code == 500
    assert response.json()["detail"] == "Internal Server Error"
    assert "set-cookie" not in response.headers
