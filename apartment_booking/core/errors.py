class BookingError(Exception):
    pass


class InvalidDate(BookingError, ValueError):
    def __init__(self, value):
        self.value = value
        super().__init__(f"Ungültiges Datum: {value!r} (erwartet YYYY-MM-DD)")


class InvalidReservation(BookingError, ValueError):
    """Eingaben aus dem Editor sind unvollständig oder widersprüchlich.

    ``errors`` bildet Feldname -> Meldung ab, damit das Formular die Fehler
    direkt am Feld anzeigen kann.
    """

    def __init__(self, errors):
        self.errors = dict(errors)
        super().__init__("; ".join(f"{field}: {msg}" for field, msg in self.errors.items()))


class ConflictError(BookingError):
    def __init__(self, candidate, conflicting):
        self.candidate = candidate
        self.conflicting = conflicting
        self.conflicting_id = conflicting.id
        super().__init__(
            f"Dieser Zeitraum ist für {conflicting.apartment} bereits belegt "
            f"({conflicting.client_name}, {conflicting.start_date} bis {conflicting.end_date})."
        )


class NotFoundError(BookingError, LookupError):
    def __init__(self, reservation_id):
        self.reservation_id = reservation_id
        super().__init__(f"Reservierung {reservation_id} nicht gefunden.")


class PersistenceError(BookingError):
    def __init__(self, key, message):
        self.key = key
        super().__init__(f"Speicherfehler ({key}): {message}")
