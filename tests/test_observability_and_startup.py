from __future__ import annotations

import json
import logging

import pytest
from fastapi.testclient import TestClient

from vista_api.core import config
from vista_api.core.database import get_db
from vista_api.core.logging_setup import JsonFormatter
from vista_api.core.metrics import InMemoryRequestMetrics, request_metrics
from vista_api.core.startup_checks import validate_environment
from vista_api.main import app
from vista_api.models.rbac import Permission, Role
from vista_api.services.rbac import ADMINISTRATOR_ROLE, seed_permission_catalogue
from tests.fixtures_data import HAPPY_PATH_ACTIVITY, auth_headers, build_session, make_user


def _build_client():
    db = build_session()
    app.dependency_overrides[get_db] = lambda: db
    return TestClient(app), db


def test_metrics_snapshot_per_account_type() -> None:
    metrics = InMemoryRequestMetrics()

    metrics.observe(endpoint="/api/v1/admin/events", method="GET", status_code=200, duration_ms=10, account_type="admin")
    metrics.observe(endpoint="/api/v1/admin/events", method="GET", status_code=403, duration_ms=30, account_type="admin")
    metrics.observe(endpoint="/api/v1/customer/list/{resource_name}", method="GET", status_code=200, duration_ms=20)

    per_type = metrics.snapshot_per_account_type()
    endpoints = metrics.snapshot()

    assert per_type["admin"]["total_requests"] == 2
    assert per_type["admin"]["error_count"] == 1
    assert per_type["admin"]["avg_duration_ms"] == 20.0
    assert per_type["anonymous"]["total_requests"] == 1
    assert endpoints["GET /api/v1/admin/events"]["total_requests"] == 2


def test_middleware_echoes_request_id_and_records_route_template() -> None:
    request_metrics.reset()
    client, db = _build_client()
    admin = make_user(db, email="ops@example.com", permissions=["metrics.read"])
    headers = auth_headers(admin)

    listing = client.get("/api/v1/customer/list/events", headers={"X-Request-ID": "req-123"})
    metrics = client.get("/internal/metrics", headers=headers)
    per_type = client.get("/internal/metrics/account-types", headers=headers)

    assert listing.headers["X-Request-ID"] == "req-123"
    assert "GET /api/v1/customer/list/{resource_name}" in metrics.json()["endpoints"]
    assert "anonymous" in per_type.json()["account_types"]


def test_internal_metrics_require_permission() -> None:
    client, db = _build_client()
    customer = make_user(db, email="traveller@example.com", account_type="customer")

    response = client.get("/internal/metrics", headers=auth_headers(customer))

    assert response.status_code == 403


def test_validate_environment_rejects_sqlite_in_production(monkeypatch) -> None:
    monkeypatch.setattr(config, "IS_PROD", True)
    monkeypatch.setattr(config, "DATABASE_URL", "sqlite:///./vista.db")

    with pytest.raises(RuntimeError, match="SQLite"):
        validate_environment()


def test_validate_environment_requires_distinct_secrets(monkeypatch) -> None:
    monkeypatch.setattr(config, "IS_PROD", True)
    monkeypatch.setattr(config, "DATABASE_URL", "postgresql://db/vista")
    monkeypatch.setattr(config, "JWT_SECRET_KEY", "same")
    monkeypatch.setattr(config, "JWT_REFRESH_SECRET_KEY", "same")

    with pytest.raises(RuntimeError, match="must differ"):
        validate_environment()

    monkeypatch.setattr(config, "JWT_REFRESH_SECRET_KEY", "")
    with pytest.raises(RuntimeError, match="JWT_REFRESH_SECRET_KEY"):
        validate_environment()


def test_validate_environment_is_silent_outside_production(monkeypatch) -> None:
    monkeypatch.setattr(config, "IS_PROD", False)
    monkeypatch.setattr(config, "JWT_SECRET_KEY", "")

    validate_environment()


def test_permission_catalogue_seed_is_idempotent() -> None:
    db = build_session()

    first = seed_permission_catalogue(db)
    second = seed_permission_catalogue(db)

    assert first > 0
    assert second == 0
    role = db.query(Role).filter(Role.name == ADMINISTRATOR_ROLE).one()
    assert role.is_system is True
    names = {permission.name for permission in role.permissions}
    assert {"activities.verify", "roles.delete", "metrics.read"} <= names
    assert "homestays.manage" not in names
    assert db.query(Permission).filter(Permission.name == "homestays.manage").one().user_type == "merchant"


def test_json_formatter_interpolates_arguments() -> None:
    record = logging.LogRecord(
        name="vista_api.routers.admin_content",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg="Guide storage cleanup failed id=%s",
        args=(7,),
        exc_info=None,
    )

    payload = json.loads(JsonFormatter("%(message)s").format(record))

    assert payload["message"] == "Guide storage cleanup failed id=7"
    assert payload["level"] == "WARNING"


def test_metrics_keep_caller_identity_on_failed_requests() -> None:
    request_metrics.reset()
    client, db = _build_client()
    editor = make_user(db, email="editor@example.com", permissions=["activities.create"])
    headers = auth_headers(editor)

    client.post("/api/v1/admin/activities", json=HAPPY_PATH_ACTIVITY, headers=headers)
    conflict = client.post("/api/v1/admin/activities", json=HAPPY_PATH_ACTIVITY, headers=headers)

    per_type = request_metrics.snapshot_per_account_type()
    assert conflict.status_code == 409
    assert per_type["admin"]["total_requests"] == 2
    assert per_type["admin"]["error_count"] == 1
    assert "anonymous" not in per_type
