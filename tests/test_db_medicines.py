"""Tests for MedicineDB CRUD operations."""

from datetime import date

import pytest

from medshelf.db.medicines import MedicineDB
from medshelf.errors import InvalidRecord, StorageUnavailable
from medshelf.models import Medicine

REF = date(2024, 6, 15)


@pytest.fixture
def sample_medicines():
    return [
        Medicine(name="Amoxicillin", company="Sandoz", expiry_date="07/2024"),
        Medicine(name="Ibuprofen", company="Advil", expiry_date="09/2024"),
        Medicine(name="Cetirizine", expiry_date="05/2024", notes="allergy"),
        Medicine(name="Vitamin D"),
    ]


@pytest.fixture
def broken_store(tmp_path):
    """A store whose database path can never be opened."""
    blocker = tmp_path / "file"
    blocker.write_text("not a directory")
    db = MedicineDB(db_path=blocker / "test.db")
    yield db
    db.close()


def test_add_assigns_id_and_created_at(store):
    medicine = Medicine(name="Amoxicillin", expiry_date="07/2024")
    record_id = store.add(medicine)

    assert record_id
    assert medicine.id == record_id
    assert medicine.created_at


def test_add_then_get_by_id(store):
    record_id = store.add(
        Medicine(name="Amoxicillin", company="Sandoz", expiry_date="07/2024", notes="x")
    )
    found = store.get_by_id(record_id)

    assert found == Medicine(
        name="Amoxicillin",
        company="Sandoz",
        expiry_date="07/2024",
        notes="x",
        id=record_id,
        created_at=found.created_at,
    )
    assert found.created_at


def test_add_keeps_given_id(store):
    record_id = store.add(Medicine(name="Aspirin", id="legacy-1", created_at="2024-01-01"))
    assert record_id == "legacy-1"
    assert store.get_by_id("legacy-1").created_at == "2024-01-01"


def test_ids_are_unique(store, sample_medicines):
    ids = [store.add(m) for m in sample_medicines]
    assert len(set(ids)) == len(ids)


@pytest.mark.parametrize("name", ["", "   "])
def test_add_rejects_blank_name(store, name):
    with pytest.raises(InvalidRecord):
        store.add(Medicine(name=name))
    assert store.get_all() == []


def test_add_rejects_duplicate_id(store):
    store.add(Medicine(name="Aspirin", id="same"))
    with pytest.raises(InvalidRecord, match="duplicate"):
        store.add(Medicine(name="Other", id="same"))
    assert len(store.get_all()) == 1


def test_get_all_preserves_insertion_order(store, sample_medicines):
    for m in sample_medicines:
        store.add(m)
    names = [m.name for m in store.get_all()]
    assert names == ["Amoxicillin", "Ibuprofen", "Cetirizine", "Vitamin D"]


def test_get_all_empty(store):
    assert store.get_all() == []


def test_get_by_id_missing(store):
    assert store.get_by_id("nope") is None


def test_update_merges_fields(store):
    record_id = store.add(Medicine(name="Aspirin", company="Bayer", expiry_date="01/2025"))

    assert store.update(record_id, {"expiry_date": "03/2026", "notes": "new pack"}) is True

    updated = store.get_by_id(record_id)
    assert updated.expiry_date == "03/2026"
    assert updated.notes == "new pack"
    assert updated.company == "Bayer"
    assert updated.name == "Aspirin"


def test_update_accepts_camel_case_keys(store):
    record_id = store.add(Medicine(name="Aspirin"))
    store.update(record_id, {"expiryDate": "02/2027", "imageUri": "file:///a.jpg"})

    updated = store.get_by_id(record_id)
    assert updated.expiry_date == "02/2027"
    assert updated.image_uri == "file:///a.jpg"


def test_update_never_changes_id_or_created_at(store):
    record_id = store.add(Medicine(name="Aspirin"))
    created_at = store.get_by_id(record_id).created_at

    store.update(record_id, {"id": "hijack", "createdAt": "1970-01-01", "name": "Aspirin 500"})

    updated = store.get_by_id(record_id)
    assert updated.name == "Aspirin 500"
    assert updated.created_at == created_at
    assert store.get_by_id("hijack") is None


def test_update_missing_returns_false_and_leaves_collection(store, sample_medicines):
    for m in sample_medicines:
        store.add(m)
    before = store.get_all()

    assert store.update("nope", {"name": "X"}) is False
    assert store.get_all() == before


@pytest.mark.parametrize("fields", [{"name": ""}, {"dosage": "500mg"}])
def test_update_missing_wins_over_invalid_fields(store, fields):
    store.add(Medicine(name="Aspirin"))
    assert store.update("nope", fields) is False


def test_update_rejects_unknown_field(store):
    record_id = store.add(Medicine(name="Aspirin"))
    with pytest.raises(InvalidRecord, match="unknown"):
        store.update(record_id, {"dosage": "500mg"})


def test_update_rejects_blank_name(store):
    record_id = store.add(Medicine(name="Aspirin"))
    with pytest.raises(InvalidRecord):
        store.update(record_id, {"name": " "})
    assert store.get_by_id(record_id).name == "Aspirin"


def test_delete(store, sample_medicines):
    ids = [store.add(m) for m in sample_medicines]

    assert store.delete(ids[0]) is True
    assert store.get_by_id(ids[0]) is None
    assert len(store.get_all()) == 3


def test_delete_missing(store):
    assert store.delete("nope") is False


def test_clear(store, sample_medicines):
    for m in sample_medicines:
        store.add(m)
    store.clear()
    assert store.get_all() == []


def test_query_expiring(store, sample_medicines):
    for m in sample_medicines:
        store.add(m)

    items = store.query_expiring(60, reference=REF)
    assert [(i.medicine.name, i.days_until_expiry) for i in items] == [("Amoxicillin", 16)]

    items = store.query_expiring(90, reference=REF)
    assert [(i.medicine.name, i.days_until_expiry) for i in items] == [
        ("Amoxicillin", 16),
        ("Ibuprofen", 78),
    ]


def test_query_expired(store, sample_medicines):
    for m in sample_medicines:
        store.add(m)

    items = store.query_expired(reference=REF)
    assert len(items) == 1
    assert items[0].medicine.name == "Cetirizine"
    assert items[0].days_until_expiry == -45
    assert items[0].to_dict()["daysUntilExpiry"] == -45


def test_reads_degrade_to_empty(broken_store):
    assert broken_store.get_all() == []
    assert broken_store.get_by_id("x") is None
    assert broken_store.query_expired(reference=REF) == []
    assert broken_store.query_expiring(60, reference=REF) == []


def test_writes_raise_storage_unavailable(broken_store):
    with pytest.raises(StorageUnavailable):
        broken_store.add(Medicine(name="Aspirin"))
    with pytest.raises(StorageUnavailable):
        broken_store.update("x", {"name": "y"})
    with pytest.raises(StorageUnavailable):
        broken_store.delete("x")
    with pytest.raises(StorageUnavailable):
        broken_store.clear()


def test_export_uses_camel_case(store):
    record_id = store.add(Medicine(name="Aspirin", expiry_date="01/2025", image_uri="a.jpg"))
    exported = store.export_records()

    assert exported == [
        {
            "id": record_id,
            "name": "Aspirin",
            "company": "",
            "expiryDate": "01/2025",
            "notes": "",
            "imageUri": "a.jpg",
            "createdAt": exported[0]["createdAt"],
        }
    ]


def test_import_keeps_ids_and_accepts_added_at(store):
    ids = store.import_records([
        {"id": "1700000000000", "name": "Paracetamol", "expiryDate": "05/2026", "addedAt": 1700000000000},
        {"name": "Loratadine", "company": "Claritin"},
    ])

    assert ids[0] == "1700000000000"
    first = store.get_by_id("1700000000000")
    assert first.expiry_date == "05/2026"
    assert first.created_at == "1700000000000"
    assert store.get_by_id(ids[1]).company == "Claritin"


def test_import_is_all_or_nothing(store):
    with pytest.raises(InvalidRecord):
        store.import_records([{"name": "Good"}, {"name": ""}])
    assert store.get_all() == []
