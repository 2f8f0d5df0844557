import logging
import uuid

from .. import config
from .conflicts import find_conflict
from .errors import ConflictError, InvalidReservation, NotFoundError, PersistenceError
from .models import Reservation, default_reservations
from .storage import decode_collection, encode_collection

logger = logging.getLogger(__name__)


def new_reservation_id():
    return str(uuid.uuid4())


# Reine Funktionen: berechnen die nächste Sammlung, ohne etwas zu speichern

def with_created(reservations, reservation):
    return list(reservations) + [reservation]


def with_updated(reservations, reservation):
    return [reservation if r.id == reservation.id else r for r in reservations]


def without(reservations, reservation_id):
    return [r for r in reservations if r.id != reservation_id]


class ReservationManager:
    """Einziger Schreiber der Reservierungen.

    Jede Mutation berechnet zuerst die neue Sammlung, speichert sie komplett
    und übernimmt sie erst danach in den Speicher. Schlägt das Schreiben fehl,
    bleibt die bisherige Sammlung unverändert.
    """

    def __init__(self, blob_store, apartments, key=config.RESERVATIONS_KEY):
        self.blob_store = blob_store
        self.apartments = apartments
        self.key = key
        self.degraded = False
        self.load_error = None
        self._load_error_reported = False
        self._reservations = None

    # --- Laden ---

    def _ensure_loaded(self):
        if self._reservations is None:
            self._reservations = self._load()
        return self._reservations

    def reload(self):
        logger.info("Lade Reservierungen neu...")
        self._reservations = None
        self.degraded = False
        self.load_error = None
        self._load_error_reported = False
        return self.list_reservations()

    def _load(self):
        try:
            text = self.blob_store.read(self.key)
        except PersistenceError as e:
            logger.error(f"Reservierungen konnten nicht gelesen werden: {e}. Starte mit Standarddaten.")
            self._mark_degraded(e)
            return default_reservations()

        if text is None:
            reservations = default_reservations()
            logger.warning(f"Keine gespeicherten Reservierungen gefunden. Lege {len(reservations)} Beispiele an.")
            try:
                self.blob_store.write(self.key, encode_collection(reservations))
            except PersistenceError as e:
                logger.error(f"Beispielreservierungen konnten nicht gespeichert werden: {e}")
                self._mark_degraded(e)
            return reservations

        try:
            reservations = decode_collection(self.key, text, Reservation.from_dict)
        except PersistenceError as e:
            logger.critical(f"Gespeicherte Reservierungen sind korrupt: {e}. Verwende Standarddaten nur im Speicher.")
            self._mark_degraded(e)
            return default_reservations()

        logger.info(f"{len(reservations)} Reservierungen geladen.")
        return reservations

    def _mark_degraded(self, error):
        self.degraded = True
        self.load_error = error
        self._load_error_reported = False

    def consume_load_error(self):
        """Liefert den Ladefehler genau einmal, danach ``None``."""
        self._ensure_loaded()
        if self.load_error is None or self._load_error_reported:
            return None
        self._load_error_reported = True
        return self.load_error

    def _prepare_mutation(self):
        self._ensure_loaded()
        if not self.degraded:
            return

        # Erneuter Leseversuch vor der ersten Mutation im eingeschränkten Modus
        text = self.blob_store.read(self.key)
        if text is None:
            return
        try:
            reservations = decode_collection(self.key, text, Reservation.from_dict)
        except PersistenceError:
            self._preserve_corrupt(text)
            return
        logger.info(f"Reservierungen nach erneutem Lesen wiederhergestellt ({len(reservations)} Einträge).")
        self._reservations = reservations
        self.degraded = False

    def _preserve_corrupt(self, text):
        corrupt_key = f"{self.key}.corrupt"
        self.blob_store.write(corrupt_key, text)
        logger.warning(f"Korrupte Reservierungsdaten gesichert unter '{corrupt_key}', sie werden jetzt überschrieben.")

    def _commit(self, reservations):
        self.blob_store.write(self.key, encode_collection(reservations))
        self._reservations = reservations
        if self.degraded:
            logger.info("Reservierungen erfolgreich gespeichert, eingeschränkter Modus beendet.")
            self.degraded = False

    # --- Abfragen ---

    def list_reservations(self):
        return [r.copy() for r in self._ensure_loaded()]

    def _find(self, reservation_id):
        for res in self._ensure_loaded():
            if res.id == reservation_id:
                return res
        return None

    def get(self, reservation_id):
        res = self._find(reservation_id)
        return res.copy() if res is not None else None

    def find_conflict(self, candidate, exclude_id=None):
        return find_conflict(candidate, self._ensure_loaded(), exclude_id)

    def has_conflict(self, candidate, exclude_id=None):
        return self.find_conflict(candidate, exclude_id) is not None

    # --- Mutationen ---

    def create(self, draft):
        type_errors = draft.type_errors()
        if type_errors:
            raise InvalidReservation(type_errors)

        self._prepare_mutation()
        reservations = self._ensure_loaded()
        conflicting = find_conflict(draft, reservations)
        if conflicting is not None:
            logger.info(f"Neue Reservierung für {draft.apartment} kollidiert mit {conflicting.id}.")
            raise ConflictError(draft, conflicting)

        new_reservation = draft.copy(id=new_reservation_id(),
                                     color=self.apartments.resolve_color(draft.apartment))
        self._commit(with_created(reservations, new_reservation))
        logger.info(f"Reservierung {new_reservation.id} für '{new_reservation.client_name}' "
                    f"in {new_reservation.apartment} angelegt.")
        return new_reservation.copy()

    def update(self, reservation_id, changes):
        unknown = set(changes) - set(Reservation.FIELD_NAMES)
        if unknown:
            raise InvalidReservation({field: "Feld kann nicht geändert werden." for field in sorted(unknown)})

        self._prepare_mutation()
        existing = self._find(reservation_id)
        if existing is None:
            raise NotFoundError(reservation_id)

        merged = existing.copy(**changes)
        type_errors = merged.type_errors()
        if type_errors:
            raise InvalidReservation(type_errors)
        conflicting = find_conflict(merged, self._ensure_loaded(), exclude_id=reservation_id)
        if conflicting is not None:
            logger.info(f"Änderung an {reservation_id} kollidiert mit {conflicting.id}.")
            raise ConflictError(merged, conflicting)

        if merged.apartment != existing.apartment:
            merged.color = self.apartments.resolve_color(merged.apartment)

        self._commit(with_updated(self._ensure_loaded(), merged))
        logger.info(f"Reservierung {reservation_id} aktualisiert.")
        return merged.copy()

    def delete(self, reservation_id):
        self._prepare_mutation()
        if self._find(reservation_id) is None:
            logger.debug(f"Reservierung {reservation_id} existiert nicht, nichts zu löschen.")
            return False
        self._commit(without(self._ensure_loaded(), reservation_id))
        logger.info(f"Reservierung {reservation_id} gelöscht.")
        return True
