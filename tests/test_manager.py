import json

import pytest

from apartment_booking.core.apartments import ApartmentRegistry
from apartment_booking.core.dates import intervals_overlap
from apartment_booking.core.errors import (ConflictError, InvalidDate, InvalidReservation, NotFoundError,
                                           PersistenceError)
from apartment_booking.core.manager import ReservationManager, with_created, with_updated, without
from apartment_booking.core.models import FALLBACK_COLOR, DEFAULT_RESERVATIONS, Reservation
from apartment_booking.core.storage import JsonFileBlobStore

from .conftest import FlakyBlobStore, make_draft


def _assert_no_overlaps(reservations):
    for a in reservations:
        for b in reservations:
            if a.id != b.id and a.apartment == b.apartment:
                assert not intervals_overlap(a.start_date, a.end_date, b.start_date, b.end_date)


def _persisted(blob_store, key="reservations"):
    return [Reservation.from_dict(d) for d in json.loads(blob_store.read(key))]


def test_first_use_seeds_defaults_and_persists(manager, blob_store):
    reservations = manager.list_reservations()
    assert reservations == DEFAULT_RESERVATIONS
    assert _persisted(blob_store) == DEFAULT_RESERVATIONS
    assert not manager.degraded


def test_existing_data_is_loaded_verbatim():
    stored = [Reservation("x1", "Wohnung D", "Herr Roth", "2025-06-01", "2025-06-08", color="#EF4444")]
    store = FlakyBlobStore({"reservations": json.dumps([r.to_dict() for r in stored])})
    manager = ReservationManager(store, ApartmentRegistry(store))
    assert manager.list_reservations() == stored


def test_create_then_get_round_trip(manager):
    draft = make_draft(notes="Spätanreise")
    created = manager.create(draft)

    assert created.id
    assert created.color == "#3B82F6"
    fetched = manager.get(created.id)
    assert fetched == created
    assert (fetched.apartment, fetched.client_name, fetched.start_date, fetched.end_date, fetched.notes) == (
        draft.apartment, draft.client_name, draft.start_date, draft.end_date, draft.notes)


def test_create_persists_whole_collection(manager, blob_store):
    created = manager.create(make_draft())
    assert _persisted(blob_store) == manager.list_reservations()
    assert created in _persisted(blob_store)


def test_create_assigns_unique_ids(manager):
    first = manager.create(make_draft(start="2025-03-01", end="2025-03-05"))
    second = manager.create(make_draft(start="2025-03-10", end="2025-03-12"))
    assert first.id != second.id


def test_create_unknown_apartment_uses_fallback_color(manager):
    created = manager.create(make_draft(apartment="Gartenhaus"))
    assert created.color == FALLBACK_COLOR


def test_create_touching_boundary_is_rejected(manager):
    # Wohnung A ist vom 15. bis 20. Januar belegt
    with pytest.raises(ConflictError) as excinfo:
        manager.create(make_draft(start="2025-01-20", end="2025-01-22"))
    assert excinfo.value.conflicting_id == "1"
    assert len(manager.list_reservations()) == len(DEFAULT_RESERVATIONS)


def test_create_day_after_is_accepted(manager):
    created = manager.create(make_draft(start="2025-01-21", end="2025-01-22"))
    assert manager.get(created.id) is not None


def test_create_with_invalid_date_raises_without_mutation(manager, blob_store):
    manager.list_reservations()
    writes_before = list(blob_store.writes)
    with pytest.raises(InvalidDate):
        manager.create(make_draft(start="2025-02-30"))
    assert blob_store.writes == writes_before


def test_update_without_changes_never_conflicts(manager):
    for res in manager.list_reservations():
        assert manager.update(res.id, {}) == res


def test_update_merges_changes(manager):
    updated = manager.update("1", {"client_name": "Familie Schulz", "notes": "Hund dabei"})
    assert updated.client_name == "Familie Schulz"
    assert updated.notes == "Hund dabei"
    assert updated.start_date == "2025-01-15"
    assert manager.get("1") == updated


def test_update_unknown_id_raises_not_found(manager):
    with pytest.raises(NotFoundError):
        manager.update("gibt-es-nicht", {"notes": "x"})


def test_update_into_conflict_is_rejected(manager):
    before = manager.list_reservations()
    with pytest.raises(ConflictError) as excinfo:
        manager.update("2", {"apartment": "Wohnung A"})
    assert excinfo.value.conflicting_id == "1"
    assert manager.list_reservations() == before


def test_update_changing_apartment_resolves_color(manager):
    updated = manager.update("1", {"apartment": "Wohnung E"})
    assert updated.color == "#8B5CF6"


def test_update_keeps_color_when_apartment_unchanged(manager):
    updated = manager.update("1", {"start_date": "2025-01-14"})
    assert updated.color == "#3B82F6"


def test_update_rejects_id_and_unknown_fields(manager):
    with pytest.raises(InvalidReservation) as excinfo:
        manager.update("1", {"id": "neu", "color": "#000000"})
    assert set(excinfo.value.errors) == {"color", "id"}
    assert manager.get("1").id == "1"


def test_delete_removes_and_persists(manager, blob_store):
    assert manager.delete("2") is True
    assert manager.get("2") is None
    assert all(r.id != "2" for r in _persisted(blob_store))


def test_delete_missing_id_is_noop(manager, blob_store):
    before = manager.list_reservations()
    writes_before = list(blob_store.writes)
    assert manager.delete("gibt-es-nicht") is False
    assert manager.list_reservations() == before
    assert blob_store.writes == writes_before


def test_no_overlaps_after_mixed_mutations(manager):
    manager.create(make_draft(start="2025-02-01", end="2025-02-10"))
    for start, end in [("2025-02-10", "2025-02-12"), ("2025-01-30", "2025-02-01"), ("2025-02-11", "2025-02-13")]:
        try:
            manager.create(make_draft(start=start, end=end))
        except ConflictError:
            pass
    try:
        manager.update("3", {"apartment": "Wohnung B"})
    except ConflictError:
        pass
    _assert_no_overlaps(manager.list_reservations())


def test_write_failure_leaves_collection_unchanged(manager, blob_store):
    before = manager.list_reservations()
    blob_store.fail_writes = True

    with pytest.raises(PersistenceError):
        manager.create(make_draft())
    with pytest.raises(PersistenceError):
        manager.update("1", {"notes": "neu"})
    with pytest.raises(PersistenceError):
        manager.delete("1")

    assert manager.list_reservations() == before
    blob_store.fail_writes = False
    assert _persisted(blob_store) == before


def test_returned_objects_do_not_alias_internal_state(manager):
    res = manager.get("1")
    res.client_name = "Manipuliert"
    assert manager.get("1").client_name == "Familie Martin"


def test_corrupt_blob_falls_back_to_defaults_in_memory():
    store = FlakyBlobStore({"reservations": "{kaputt"})
    manager = ReservationManager(store, ApartmentRegistry(store))

    assert manager.list_reservations() == DEFAULT_RESERVATIONS
    assert manager.degraded
    assert store.read("reservations") == "{kaputt"


def test_entry_with_missing_field_counts_as_corrupt():
    store = FlakyBlobStore({"reservations": json.dumps([{"id": "1", "apartment": "Wohnung A"}])})
    manager = ReservationManager(store, ApartmentRegistry(store))
    assert manager.list_reservations() == DEFAULT_RESERVATIONS
    assert manager.degraded


def test_load_error_is_reported_once():
    store = FlakyBlobStore({"reservations": "[1, 2"})
    manager = ReservationManager(store, ApartmentRegistry(store))
    error = manager.consume_load_error()
    assert isinstance(error, PersistenceError)
    assert manager.consume_load_error() is None


def test_create_after_corrupt_load_persists_and_keeps_corrupt_copy():
    store = FlakyBlobStore({"reservations": "{kaputt"})
    manager = ReservationManager(store, ApartmentRegistry(store))
    manager.list_reservations()

    created = manager.create(make_draft())

    assert store.read("reservations.corrupt") == "{kaputt"
    persisted = _persisted(store)
    assert created in persisted
    assert len(persisted) == len(DEFAULT_RESERVATIONS) + 1
    assert not manager.degraded


def test_mutation_retries_load_when_blob_was_repaired():
    store = FlakyBlobStore({"reservations": "{kaputt"})
    manager = ReservationManager(store, ApartmentRegistry(store))
    manager.list_reservations()

    repaired = [Reservation("r1", "Wohnung C", "Frau Vogel", "2025-05-01", "2025-05-04", color="#F59E0B")]
    store.write("reservations", json.dumps([r.to_dict() for r in repaired]))

    manager.create(make_draft())
    ids = [r.id for r in manager.list_reservations()]
    assert ids[0] == "r1"
    assert len(ids) == 2
    assert store.read("reservations.corrupt") is None


def test_read_failure_degrades_and_mutation_fails_until_readable():
    store = FlakyBlobStore()
    store.fail_reads = True
    manager = ReservationManager(store, ApartmentRegistry(store))

    assert manager.list_reservations() == DEFAULT_RESERVATIONS
    assert manager.degraded
    with pytest.raises(PersistenceError):
        manager.create(make_draft())

    store.fail_reads = False
    created = manager.create(make_draft())
    assert manager.get(created.id) == created
    assert not manager.degraded


def test_seed_write_failure_is_not_fatal():
    store = FlakyBlobStore()
    store.fail_writes = True
    manager = ReservationManager(store, ApartmentRegistry(store))
    assert manager.list_reservations() == DEFAULT_RESERVATIONS
    assert manager.degraded

    store.fail_writes = False
    manager.create(make_draft())
    assert len(_persisted(store)) == len(DEFAULT_RESERVATIONS) + 1


def test_pure_collection_helpers():
    a = Reservation("a", "Wohnung A", "A", "2025-01-01", "2025-01-02")
    b = Reservation("b", "Wohnung A", "B", "2025-01-03", "2025-01-04")
    assert with_created([a], b) == [a, b]
    assert with_updated([a, b], b.copy(client_name="B2"))[1].client_name == "B2"
    assert without([a, b], "a") == [b]
    assert without([a, b], "zzz") == [a, b]


def test_undecodable_file_falls_back_to_defaults(tmp_path):
    (tmp_path / "reservations.json").write_bytes(b'[\xff\xfe]')
    store = JsonFileBlobStore(str(tmp_path))
    manager = ReservationManager(store, ApartmentRegistry(store))

    assert manager.list_reservations() == DEFAULT_RESERVATIONS
    assert manager.degraded
    assert isinstance(manager.consume_load_error(), PersistenceError)


def test_stored_entry_with_unparseable_date_counts_as_corrupt():
    entry = DEFAULT_RESERVATIONS[0].to_dict()
    entry["startDate"] = "15.01.2025"
    store = FlakyBlobStore({"reservations": json.dumps([entry])})
    manager = ReservationManager(store, ApartmentRegistry(store))
    assert manager.list_reservations() == DEFAULT_RESERVATIONS
    assert manager.degraded


def test_create_and_update_reject_non_text_fields(manager, blob_store):
    manager.list_reservations()
    writes_before = list(blob_store.writes)

    with pytest.raises(InvalidReservation) as excinfo:
        manager.create(make_draft(notes=5))
    assert set(excinfo.value.errors) == {"notes"}
    with pytest.raises(InvalidReservation) as excinfo:
        manager.update("1", {"client_name": 42})
    assert set(excinfo.value.errors) == {"clientName"}

    assert blob_store.writes == writes_before
    assert manager.get("1").client_name == "Familie Martin"
