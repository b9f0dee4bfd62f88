from datetime import date, datetime

import pytest
from sqlalchemy.exc import IntegrityError

from vista_api.core.errors import Conflict, NotFound, ValidationFailed
from vista_api.models.content import Activity
from vista_api.services import catalog
from vista_api.services.slugs import build_slug, normalize_slug
from tests.fixtures_data import HAPPY_PATH_ACTIVITY, build_session


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Sunset Kayak Tour!!", "sunset-kayak-tour"),
        ("  Café   Colombo  ", "cafe-colombo"),
        ("Tea & Spice -- Walk", "tea-spice-walk"),
        ("", ""),
    ],
)
def test_normalize_slug(raw, expected):
    assert normalize_slug(raw) == expected


def test_build_slug_rejects_invalid_explicit_slug():
    with pytest.raises(ValidationFailed) as exc:
        build_slug("Anything", "Not A Slug")

    assert exc.value.errors[0]["field"] == "slug"


def test_build_slug_rejects_name_without_slug_characters():
    with pytest.raises(ValidationFailed):
        build_slug("!!!")


def test_create_derives_slug_from_display_field():
    db = build_session()

    activity = catalog.activities.create(db, dict(HAPPY_PATH_ACTIVITY))

    assert activity.slug == "sunset-kayak-tour"
    assert activity.is_active is True
    assert activity.deleted_at is None


def test_duplicate_live_slug_conflicts():
    db = build_session()
    catalog.activities.create(db, dict(HAPPY_PATH_ACTIVITY))

    with pytest.raises(Conflict) as exc:
        catalog.activities.create(db, {"title": "Sunset kayak tour"})

    assert exc.value.status_code == 409
    assert exc.value.code == "SLUG_CONFLICT"


def test_soft_deleted_slug_can_be_reused_and_blocks_restore():
    db = build_session()
    first = catalog.activities.create(db, dict(HAPPY_PATH_ACTIVITY))
    catalog.activities.soft_delete(db, first)

    second = catalog.activities.create(db, dict(HAPPY_PATH_ACTIVITY))
    assert second.slug == first.slug

    with pytest.raises(Conflict):
        catalog.activities.restore(db, first.id)

    db.refresh(first)
    assert first.deleted_at is not None


def test_soft_delete_hides_row_until_restored():
    db = build_session()
    activity = catalog.activities.create(db, dict(HAPPY_PATH_ACTIVITY))

    catalog.activities.soft_delete(db, activity)

    with pytest.raises(NotFound):
        catalog.activities.get(db, activity.id)
    assert catalog.activities.get(db, activity.id, include_deleted=True).id == activity.id
    rows, total = catalog.activities.list(db)
    assert rows == [] and total == 0

    restored = catalog.activities.restore(db, activity.id)

    assert restored.deleted_at is None
    assert catalog.activities.get(db, activity.id).slug == "sunset-kayak-tour"


def test_restore_live_row_is_rejected():
    db = build_session()
    activity = catalog.activities.create(db, dict(HAPPY_PATH_ACTIVITY))

    with pytest.raises(ValidationFailed) as exc:
        catalog.activities.restore(db, activity.id)

    assert exc.value.code == "NOT_DELETED"


def test_update_renames_slug_with_display_field():
    db = build_session()
    activity = catalog.activities.create(db, dict(HAPPY_PATH_ACTIVITY))

    updated = catalog.activities.update(db, activity, {"title": "Moonlight Kayak Tour"})

    assert updated.slug == "moonlight-kayak-tour"


def test_update_to_taken_slug_conflicts():
    db = build_session()
    catalog.activities.create(db, dict(HAPPY_PATH_ACTIVITY))
    other = catalog.activities.create(db, {"title": "Rainforest Hike"})

    with pytest.raises(Conflict):
        catalog.activities.update(db, other, {"slug": "sunset-kayak-tour"})

    db.rollback()
    assert db.query(Activity).filter(Activity.id == other.id).one().slug == "rainforest-hike"


def test_guide_licence_is_unique_among_live_rows():
    db = build_session()
    guide = catalog.guides.create(
        db,
        {"name": "Nimal Perera", "licence_id": "LIC-001", "expiry_date": date(2099, 12, 31)},
    )

    with pytest.raises(Conflict) as exc:
        catalog.guides.create(
            db,
            {"name": "Kamal Silva", "licence_id": "LIC-001", "expiry_date": date(2099, 12, 31)},
        )
    assert exc.value.code == "DUPLICATE_ENTRY"

    catalog.guides.soft_delete(db, guide)
    replacement = catalog.guides.create(
        db,
        {"name": "Kamal Silva", "licence_id": "LIC-001", "expiry_date": date(2099, 12, 31)},
    )
    assert replacement.licence_id == "LIC-001"


def test_toggle_active_flips_or_sets_explicit_value():
    db = build_session()
    activity = catalog.activities.create(db, dict(HAPPY_PATH_ACTIVITY))

    assert catalog.activities.toggle_active(db, activity).is_active is False
    assert catalog.activities.toggle_active(db, activity).is_active is True
    assert catalog.activities.toggle_active(db, activity, True).is_active is True


def test_verify_requires_verification_column():
    db = build_session()
    room_type = catalog.room_types.create(db, {"name": "Deluxe Double"})

    with pytest.raises(ValidationFailed):
        catalog.room_types.verify(db, room_type)


def test_list_filters_and_search():
    db = build_session()
    catalog.activities.create(db, dict(HAPPY_PATH_ACTIVITY))
    catalog.activities.create(db, {"title": "Temple Trail", "type": "Cultural", "city": "Kandy"})
    catalog.activities.create(db, {"title": "Tea Country Walk", "city": "Nuwara Eliya", "is_active": False})

    rows, total = catalog.activities.list(db, filters={"city": "kand"})
    assert total == 1 and rows[0].title == "Temple Trail"

    rows, total = catalog.activities.list(db, filters={"is_active": False})
    assert [row.title for row in rows] == ["Tea Country Walk"]

    rows, total = catalog.activities.list(db, search="mangroves")
    assert [row.title for row in rows] == ["Sunset Kayak Tour"]

    rows, total = catalog.activities.list(db, page=2, limit=2)
    assert total == 3 and len(rows) == 1


def test_database_rejects_a_second_live_row_with_the_same_slug():
    db = build_session()
    db.add(Activity(title="Old Trail", slug="trail", deleted_at=datetime(2024, 1, 1)))
    db.add(Activity(title="Trail", slug="trail"))
    db.commit()

    db.add(Activity(title="Trail Again", slug="trail"))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()

    assert db.query(Activity).filter(Activity.slug == "trail").count() == 2
