from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError

from vista_api import main
from vista_api.core import config
from vista_api.core.database import get_db
from vista_api.core.errors import NotFound
from tests.fixtures_data import auth_headers, build_session, make_user


def _build_failing_app() -> TestClient:
    app = FastAPI()
    app.add_exception_handler(IntegrityError, main.integrity_error_handler)
    app.add_exception_handler(NotFound, main.api_error_handler)
    app.add_exception_handler(Exception, main.unhandled_error_handler)

    @app.get("/boom")
    def boom():
        raise RuntimeError("database password is hunter2")

    @app.get("/duplicate")
    def duplicate():
        raise IntegrityError("INSERT INTO users", {}, Exception("UNIQUE constraint failed: users.email"))

    @app.get("/missing")
    def missing():
        raise NotFound("Thing not found", code="THING_NOT_FOUND")

    return TestClient(app, raise_server_exceptions=False)


def test_unhandled_error_hides_detail_in_production(monkeypatch):
    monkeypatch.setattr(config, "IS_PROD", True)
    client = _build_failing_app()

    response = client.get("/boom")

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Internal server error"}


def test_unhandled_error_shows_detail_outside_production(monkeypatch):
    monkeypatch.setattr(config, "IS_PROD", False)
    client = _build_failing_app()

    response = client.get("/boom")

    assert response.status_code == 500
    assert response.json()["error"] == "database password is hunter2"


def test_integrity_error_maps_to_duplicate_entry():
    client = _build_failing_app()

    response = client.get("/duplicate")

    assert response.status_code == 409
    assert response.json() == {"success": False, "message": "Duplicate entry", "error": "DUPLICATE_ENTRY"}


def test_api_error_keeps_its_code():
    client = _build_failing_app()

    response = client.get("/missing")

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Thing not found", "error": "THING_NOT_FOUND"}


def test_unknown_route_uses_envelope():
    client = TestClient(main.app)

    response = client.get("/api/v1/nowhere")

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Not Found", "error": "NOT_FOUND"}


def test_request_validation_lists_fields():
    db = build_session()
    main.app.dependency_overrides[get_db] = lambda: db
    admin = make_user(db, email="root@example.com", is_super_admin=True)
    client = TestClient(main.app)

    response = client.post(
        "/api/v1/admin/activities",
        json={"type": "Skydiving"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Validation failed"
    assert body["error"] == "VALIDATION_ERROR"
    fields = {item["field"] for item in body["errors"]}
    assert fields == {"title", "type"}
    type_error = next(item for item in body["errors"] if item["field"] == "type")
    assert type_error["message"].startswith("Invalid activity type")


def test_health_endpoints():
    client = TestClient(main.app)

    assert client.get("/").json() == {"status": "ok"}
    assert client.get("/health").json()["status"] == "ok"
