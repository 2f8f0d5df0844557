import pytest

from apartment_booking.core.apartments import ApartmentRegistry
from apartment_booking.core.controller import CalendarController
from apartment_booking.core.errors import PersistenceError
from apartment_booking.core.manager import ReservationManager
from apartment_booking.core.models import Reservation
from apartment_booking.core.storage import MemoryBlobStore


class FlakyBlobStore(MemoryBlobStore):
    """Speicher, dessen Schreib- oder Lesezugriffe gezielt fehlschlagen."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.fail_writes = False
        self.fail_reads = False
        self.writes = []

    def read(self, key):
        if self.fail_reads:
            raise PersistenceError(key, "Lesefehler (Test)")
        return super().read(key)

    def write(self, key, text):
        if self.fail_writes:
            raise PersistenceError(key, "Schreibfehler (Test)")
        self.writes.append(key)
        super().write(key, text)


def make_draft(apartment="Wohnung A", start="2025-03-01", end="2025-03-05", client="Frau Keller", notes=None):
    return Reservation.draft(apartment, client, start, end, notes=notes)


@pytest.fixture
def blob_store():
    return FlakyBlobStore()


@pytest.fixture
def apartments(blob_store):
    return ApartmentRegistry(blob_store)


@pytest.fixture
def manager(blob_store, apartments):
    return ReservationManager(blob_store, apartments)


@pytest.fixture
def controller(manager, apartments):
    return CalendarController(manager, apartments)
