import pytest

from vista_api.core.errors import NotFound, StorageError
from vista_api.models.content import ActivityImage
from vista_api.services import catalog, storage
from vista_api.services.storage import UploadPayload
from tests.fixtures_data import HAPPY_PATH_ACTIVITY, FakeStorage, build_session


def _payload(name: str) -> UploadPayload:
    return UploadPayload(file_name=name, content_type="image/jpeg", data=b"\xff\xd8\xff" + name.encode())


def _setup(monkeypatch, fake=None):
    fake = fake or FakeStorage()
    monkeypatch.setattr(storage, "_backend", fake)
    db = build_session()
    activity = catalog.activities.create(db, dict(HAPPY_PATH_ACTIVITY))
    return db, activity, fake


def _featured(rows):
    return [row.id for row in rows if row.is_featured]


def test_add_uploads_files_and_appends_in_order(monkeypatch):
    db, activity, fake = _setup(monkeypatch)

    rows = catalog.activity_images.add(
        db,
        activity.id,
        [_payload("one.jpg"), _payload("two.JPG")],
        captions=["First", None],
    )

    assert [row.sort_order for row in rows] == [0, 1]
    assert [row.caption for row in rows] == ["First", None]
    assert all(row.storage_key.startswith(f"uploads/activities/{activity.id}/") for row in rows)
    assert rows[1].storage_key.endswith(".jpg")
    assert set(fake.objects) == {row.storage_key for row in rows}
    assert _featured(rows) == []

    more = catalog.activity_images.add(db, activity.id, [_payload("three.png")])
    assert [row.sort_order for row in more] == [0, 1, 2]


def test_set_featured_keeps_exactly_one_featured_image(monkeypatch):
    db, activity, _ = _setup(monkeypatch)
    rows = catalog.activity_images.add(db, activity.id, [_payload("a.jpg"), _payload("b.jpg"), _payload("c.jpg")])

    rows = catalog.activity_images.set_featured(db, activity.id, rows[1].id)
    assert len(_featured(rows)) == 1
    # featured image is listed first
    assert rows[0].is_featured is True
    second_id = rows[0].id

    target = next(row.id for row in rows if row.id != second_id)
    rows = catalog.activity_images.set_featured(db, activity.id, target)

    assert _featured(rows) == [target]


def test_set_featured_on_foreign_image_is_not_found(monkeypatch):
    db, activity, _ = _setup(monkeypatch)
    other = catalog.activities.create(db, {"title": "Temple Trail"})
    foreign = catalog.activity_images.add(db, other.id, [_payload("x.jpg")])[0]

    with pytest.raises(NotFound) as exc:
        catalog.activity_images.set_featured(db, activity.id, foreign.id)

    assert exc.value.code == "IMAGE_NOT_FOUND"


def test_update_edits_by_id_and_appends_new_items(monkeypatch):
    db, activity, _ = _setup(monkeypatch)
    existing = catalog.activity_images.add(db, activity.id, [_payload("a.jpg"), _payload("b.jpg")])

    rows = catalog.activity_images.update(
        db,
        activity.id,
        [
            {"id": existing[0].id, "caption": "Golden hour"},
            {"image_url": "https://cdn.example.com/extra.jpg", "is_featured": True},
        ],
    )

    assert len(rows) == 3
    appended = rows[0]
    assert appended.image_url == "https://cdn.example.com/extra.jpg"
    assert appended.is_featured is True
    assert appended.sort_order == 2
    assert _featured(rows) == [appended.id]
    assert next(row for row in rows if row.id == existing[0].id).caption == "Golden hour"


def test_update_is_all_or_nothing(monkeypatch):
    db, activity, _ = _setup(monkeypatch)
    catalog.activity_images.add(db, activity.id, [_payload("a.jpg")])

    with pytest.raises(NotFound):
        catalog.activity_images.update(
            db,
            activity.id,
            [
                {"image_url": "https://cdn.example.com/new.jpg"},
                {"id": 9999, "caption": "missing"},
            ],
        )

    assert db.query(ActivityImage).filter(ActivityImage.activity_id == activity.id).count() == 1


def test_delete_removes_row_and_stored_object(monkeypatch):
    db, activity, fake = _setup(monkeypatch)
    image = catalog.activity_images.add(db, activity.id, [_payload("a.jpg")])[0]
    key = image.storage_key

    catalog.activity_images.delete(db, activity.id, image.id)

    assert fake.deleted == [key]
    assert catalog.activity_images.list(db, activity.id) == []


def test_soft_delete_removes_every_stored_object(monkeypatch):
    db, activity, fake = _setup(monkeypatch)
    rows = catalog.activity_images.add(db, activity.id, [_payload("a.jpg"), _payload("b.jpg")])
    keys = {row.storage_key for row in rows}

    catalog.activities.soft_delete(db, activity)

    assert set(fake.deleted) == keys
    assert catalog.activity_images.list(db, activity.id) == []


class _FlakyStorage(FakeStorage):
    """Accepts the first upload, then fails."""

    def put(self, key, payload):
        if self.objects:
            raise StorageError("bucket unavailable")
        return super().put(key, payload)


def test_failed_upload_discards_already_stored_objects(monkeypatch):
    db, activity, fake = _setup(monkeypatch, _FlakyStorage())

    with pytest.raises(StorageError):
        catalog.activity_images.add(db, activity.id, [_payload("a.jpg"), _payload("b.jpg")])

    assert fake.objects == {}
    assert len(fake.deleted) == 1
    assert catalog.activity_images.list(db, activity.id) == []


def test_update_never_takes_storage_key_from_the_caller(monkeypatch):
    db, activity, fake = _setup(monkeypatch)
    other = catalog.activities.create(db, {"title": "Temple Trail"})
    victim_key = catalog.activity_images.add(db, other.id, [_payload("v.jpg")])[0].storage_key

    rows = catalog.activity_images.update(
        db,
        activity.id,
        [{"image_url": "https://cdn.example.com/x.jpg", "storage_key": victim_key, "file_name": "v.jpg"}],
    )
    assert rows[0].storage_key is None
    assert rows[0].file_name is None
    catalog.activity_images.delete(db, activity.id, rows[0].id)

    assert victim_key in fake.objects
    assert fake.deleted == []


def test_update_replacing_url_removes_the_old_object(monkeypatch):
    db, activity, fake = _setup(monkeypatch)
    image = catalog.activity_images.add(db, activity.id, [_payload("a.jpg")])[0]
    old_key = image.storage_key

    rows = catalog.activity_images.update(
        db,
        activity.id,
        [{"id": image.id, "image_url": "https://cdn.example.com/replacement.jpg"}],
    )

    assert rows[0].image_url == "https://cdn.example.com/replacement.jpg"
    assert rows[0].storage_key is None
    assert fake.deleted == [old_key]
    assert old_key not in fake.objects


def test_restore_after_soft_delete_comes_back_without_images(monkeypatch):
    db, activity, fake = _setup(monkeypatch)
    catalog.activity_images.add(db, activity.id, [_payload("a.jpg")])

    catalog.activities.soft_delete(db, activity)
    restored = catalog.activities.restore(db, activity.id)

    assert restored.deleted_at is None
    assert catalog.activity_images.list(db, activity.id) == []
    assert db.query(ActivityImage).filter(ActivityImage.activity_id == activity.id).count() == 0
    assert fake.objects == {}
