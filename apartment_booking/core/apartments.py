import logging

from .. import config
from .errors import PersistenceError
from .models import FALLBACK_COLOR, Apartment, default_apartments
from .storage import decode_collection, encode_collection

logger = logging.getLogger(__name__)


class ApartmentRegistry:
    def __init__(self, blob_store, key=config.APARTMENTS_KEY):
        self.blob_store = blob_store
        self.key = key
        self._apartments = None
        self.load_error = None

    def _ensure_loaded(self):
        if self._apartments is None:
            self._apartments = self._load()
        return self._apartments

    def _load(self):
        try:
            text = self.blob_store.read(self.key)
        except PersistenceError as e:
            logger.error(f"Wohnungen konnten nicht gelesen werden: {e}. Verwende Standardwerte.")
            self.load_error = e
            return default_apartments()

        if text is None:
            apartments = default_apartments()
            logger.info(f"Keine gespeicherten Wohnungen gefunden, lege {len(apartments)} Standardwohnungen an.")
            try:
                self.blob_store.write(self.key, encode_collection(apartments))
            except PersistenceError as e:
                logger.error(f"Standardwohnungen konnten nicht gespeichert werden: {e}")
                self.load_error = e
            return apartments

        try:
            return decode_collection(self.key, text, Apartment.from_dict)
        except PersistenceError as e:
            # Korrupte Daten bleiben unangetastet
            logger.error(f"Gespeicherte Wohnungen sind korrupt: {e}. Verwende Standardwerte nur im Speicher.")
            self.load_error = e
            return default_apartments()

    def list_apartments(self):
        return list(self._ensure_loaded())

    def first(self):
        apartments = self._ensure_loaded()
        return apartments[0] if apartments else None

    def get_by_name(self, name):
        for apartment in self._ensure_loaded():
            if apartment.name == name:
                return apartment
        return None

    def resolve_color(self, apartment_name):
        apartment = self.get_by_name(apartment_name)
        if apartment is None:
            logger.debug(f"Unbekannte Wohnung '{apartment_name}', verwende Ersatzfarbe.")
            return FALLBACK_COLOR
        return apartment.color
