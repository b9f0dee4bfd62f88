from fastapi.testclient import TestClient

from vista_api.core.database import get_db
from vista_api.main import app
from vista_api.models.homestay import Homestay
from vista_api.services import storage
from tests.fixtures_data import FakeStorage, auth_headers, build_session, make_user


def _build_client():
    db = build_session()
    app.dependency_overrides[get_db] = lambda: db
    return TestClient(app), db


def _create_homestay(client, headers, name="Ella Hideaway"):
    return client.post(
        "/api/v1/merchants/homestays",
        json={"name": name, "unit_type": "villa", "max_guests": 4, "city": "Ella"},
        headers=headers,
    )


def test_merchant_creates_pending_homestay_within_limit():
    client, db = _build_client()
    merchant = make_user(db, email="stay@example.com", account_type="merchant")
    headers = auth_headers(merchant)

    created = _create_homestay(client, headers)
    over_limit = _create_homestay(client, headers, name="Second Stay")

    assert created.status_code == 201
    data = created.json()["data"]
    assert data["slug"] == "ella-hideaway"
    assert data["approval_status"] == "pending"
    assert data["merchant_id"] == merchant.merchant_profile.id
    assert over_limit.status_code == 400
    assert over_limit.json()["error"] == "PROPERTY_LIMIT_REACHED"
    assert db.query(Homestay).count() == 1


def test_deleted_homestay_frees_a_slot():
    client, db = _build_client()
    merchant = make_user(db, email="stay@example.com", account_type="merchant")
    headers = auth_headers(merchant)
    homestay_id = _create_homestay(client, headers).json()["data"]["id"]

    deleted = client.delete(f"/api/v1/merchants/homestays/{homestay_id}", headers=headers)
    replacement = _create_homestay(client, headers, name="Second Stay")

    assert deleted.status_code == 200
    assert replacement.status_code == 201


def test_other_merchants_homestay_is_not_found():
    client, db = _build_client()
    owner = make_user(db, email="owner@example.com", account_type="merchant")
    intruder = make_user(db, email="intruder@example.com", account_type="merchant")
    homestay_id = _create_homestay(client, auth_headers(owner)).json()["data"]["id"]
    intruder_headers = auth_headers(intruder)

    read = client.get(f"/api/v1/merchants/homestays/{homestay_id}", headers=intruder_headers)
    update = client.put(f"/api/v1/merchants/homestays/{homestay_id}", json={"name": "Mine now"}, headers=intruder_headers)
    listed = client.get("/api/v1/merchants/homestays", headers=intruder_headers)

    assert read.status_code == 404
    assert update.status_code == 404
    assert listed.json()["data"] == []
    assert listed.json()["pagination"] == {"total": 0, "page": 1, "limit": 10, "totalPages": 0}


def test_merchant_homestays_have_no_verify_route():
    client, db = _build_client()
    merchant = make_user(db, email="stay@example.com", account_type="merchant")
    headers = auth_headers(merchant)
    homestay_id = _create_homestay(client, headers).json()["data"]["id"]

    response = client.patch(f"/api/v1/merchants/homestays/{homestay_id}/verify", headers=headers)

    assert response.status_code in (404, 405)


def test_admin_reviews_and_verifies_homestay():
    client, db = _build_client()
    merchant = make_user(db, email="stay@example.com", account_type="merchant")
    admin = make_user(db, email="ops@example.com", permissions=["homestays.read", "homestays.approve"])
    homestay_id = _create_homestay(client, auth_headers(merchant)).json()["data"]["id"]
    headers = auth_headers(admin)

    missing_reason = client.patch(
        f"/api/v1/admin/homestays/{homestay_id}/approval",
        json={"approval_status": "rejected"},
        headers=headers,
    )
    approved = client.patch(
        f"/api/v1/admin/homestays/{homestay_id}/approval",
        json={"approval_status": "approved"},
        headers=headers,
    )
    verified = client.patch(f"/api/v1/admin/homestays/{homestay_id}/verify", headers=headers)
    listed = client.get("/api/v1/admin/homestays?approval_status=approved", headers=headers)

    assert missing_reason.status_code == 400
    assert approved.status_code == 200
    assert approved.json()["data"]["approved_at"] is not None
    assert verified.json()["data"]["vista_verified"] is True
    assert [row["id"] for row in listed.json()["data"]] == [homestay_id]


def test_property_settings_are_one_per_homestay():
    client, db = _build_client()
    merchant = make_user(db, email="stay@example.com", account_type="merchant")
    headers = auth_headers(merchant)
    homestay_id = _create_homestay(client, headers).json()["data"]["id"]

    first = client.post(
        "/api/v1/merchants/property-settings",
        json={"homestay_id": homestay_id, "max_units": 3, "min_stay_duration": 2},
        headers=headers,
    )
    second = client.post(
        "/api/v1/merchants/property-settings",
        json={"homestay_id": homestay_id},
        headers=headers,
    )
    by_homestay = client.get(f"/api/v1/merchants/property-settings/homestay/{homestay_id}", headers=headers)

    assert first.status_code == 201
    assert first.json()["data"]["max_units"] == 3
    assert second.status_code == 400
    assert second.json()["message"] == "Property settings already exist"
    assert by_homestay.json()["data"]["min_stay_duration"] == 2


def test_property_settings_reject_inverted_stay_range():
    client, db = _build_client()
    merchant = make_user(db, email="stay@example.com", account_type="merchant")
    headers = auth_headers(merchant)
    homestay_id = _create_homestay(client, headers).json()["data"]["id"]
    settings_id = client.post(
        "/api/v1/merchants/property-settings",
        json={"homestay_id": homestay_id, "min_stay_duration": 3},
        headers=headers,
    ).json()["data"]["id"]

    response = client.put(
        f"/api/v1/merchants/property-settings/{settings_id}",
        json={"max_stay_duration": 2},
        headers=headers,
    )

    assert response.status_code == 400


def test_room_types_are_closed_to_homestay_only_merchants():
    client, db = _build_client()
    homestay_merchant = make_user(db, email="stay@example.com", account_type="merchant")
    hotel_merchant = make_user(
        db,
        email="hotel@example.com",
        account_type="merchant",
        business_type="hotel_and_appartment",
    )

    denied = client.post(
        "/api/v1/room-types",
        json={"name": "Deluxe Double"},
        headers=auth_headers(homestay_merchant),
    )
    allowed = client.post(
        "/api/v1/room-types",
        json={"name": "Deluxe Double"},
        headers=auth_headers(hotel_merchant),
    )

    assert denied.status_code == 403
    assert denied.json()["error"] == "BUSINESS_TYPE_FORBIDDEN"
    assert allowed.status_code == 201
    assert allowed.json()["data"]["slug"] == "deluxe-double"


def test_image_batch_ignores_storage_keys_sent_by_the_client(monkeypatch):
    client, db = _build_client()
    fake = FakeStorage()
    monkeypatch.setattr(storage, "_backend", fake)
    owner = make_user(db, email="owner@example.com", account_type="merchant")
    intruder = make_user(db, email="intruder@example.com", account_type="merchant")
    owner_headers = auth_headers(owner)
    intruder_headers = auth_headers(intruder)
    owner_stay = _create_homestay(client, owner_headers).json()["data"]["id"]
    intruder_stay = _create_homestay(client, intruder_headers, name="Other Stay").json()["data"]["id"]
    victim_key = client.post(
        f"/api/v1/merchants/homestays/{owner_stay}/images",
        files=[("images", ("room.jpg", b"\xff\xd8\xffroom", "image/jpeg"))],
        headers=owner_headers,
    ).json()["data"][0]["storage_key"]

    appended = client.put(
        f"/api/v1/merchants/homestays/{intruder_stay}/images",
        json={"images": [{"image_url": "http://x", "storage_key": victim_key}]},
        headers=intruder_headers,
    )
    image = appended.json()["data"][0]
    removed = client.delete(
        f"/api/v1/merchants/homestays/{intruder_stay}/images/{image['id']}",
        headers=intruder_headers,
    )

    assert appended.status_code == 200
    assert image["storage_key"] is None
    assert removed.status_code == 200
    assert victim_key in fake.objects
    assert fake.deleted == []


def test_restore_respects_property_limit():
    client, db = _build_client()
    merchant = make_user(db, email="stay@example.com", account_type="merchant")
    headers = auth_headers(merchant)
    first_id = _create_homestay(client, headers).json()["data"]["id"]
    client.delete(f"/api/v1/merchants/homestays/{first_id}", headers=headers)
    second = _create_homestay(client, headers, name="Second Stay")

    restored = client.patch(f"/api/v1/merchants/homestays/restore/{first_id}", headers=headers)

    assert second.status_code == 201
    assert restored.status_code == 400
    assert restored.json()["error"] == "PROPERTY_LIMIT_REACHED"
    assert db.query(Homestay).filter(Homestay.deleted_at.is_(None)).count() == 1


def test_merchant_routes_enforce_merchant_permissions():
    client, db = _build_client()
    no_access = make_user(db, email="bare@example.com", account_type="merchant", permissions=[])
    listings_only = make_user(
        db,
        email="listings@example.com",
        account_type="merchant",
        permissions=["homestays.manage"],
    )

    denied = client.get("/api/v1/merchants/homestays", headers=auth_headers(no_access))
    homestays = client.get("/api/v1/merchants/homestays", headers=auth_headers(listings_only))
    settings = client.get("/api/v1/merchants/property-settings", headers=auth_headers(listings_only))

    assert denied.status_code == 403
    assert denied.json()["error"] == "INSUFFICIENT_PERMISSIONS"
    assert homestays.status_code == 200
    assert settings.status_code == 403
    assert settings.json()["errors"] == [{"field": "permissions", "message": "property_settings.manage"}]


def test_homestay_update_refuses_null_counts():
    client, db = _build_client()
    merchant = make_user(db, email="stay@example.com", account_type="merchant")
    headers = auth_headers(merchant)
    homestay_id = _create_homestay(client, headers).json()["data"]["id"]

    response = client.put(
        f"/api/v1/merchants/homestays/{homestay_id}",
        json={"max_guests": None, "pets_allowed": None},
        headers=headers,
    )

    assert response.status_code == 400
    assert {item["field"] for item in response.json()["errors"]} == {"max_guests", "pets_allowed"}
    assert db.get(Homestay, homestay_id).max_guests == 4
