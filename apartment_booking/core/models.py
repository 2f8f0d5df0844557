from .dates import parse_day

FALLBACK_COLOR = "#6B7280"


class Apartment:
    def __init__(self, apartment_id, name, color):
        self.id = apartment_id
        self.name = name
        self.color = color

    def __repr__(self):
        return f"<Apartment '{self.name}' (ID: {self.id}, Farbe: {self.color})>"

    def __eq__(self, other):
        if not isinstance(other, Apartment):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ValueError(f"Wohnung muss ein Objekt sein, nicht {type(data).__name__}")
        for field in ('id', 'name', 'color'):
            if not isinstance(data.get(field), str):
                raise ValueError(f"Wohnung ohne gültiges Feld '{field}': {data}")
        return cls(apartment_id=data['id'], name=data['name'], color=data['color'])

    def to_dict(self):
        return {"id": self.id, "name": self.name, "color": self.color}


class Reservation:
    # Attributname -> Feldname im gespeicherten JSON
    FIELD_NAMES = {
        'apartment': 'apartment',
        'client_name': 'clientName',
        'start_date': 'startDate',
        'end_date': 'endDate',
        'notes': 'notes',
    }

    def __init__(self, reservation_id, apartment, client_name, start_date, end_date, notes=None, color=None):
        self.id = reservation_id
        self.apartment = apartment
        self.client_name = client_name
        self.start_date = start_date
        self.end_date = end_date
        self.notes = notes
        self.color = color

    def __repr__(self):
        return (f"<Reservation {self.id} '{self.client_name}' "
                f"{self.apartment} {self.start_date}..{self.end_date}>")

    def __eq__(self, other):
        if not isinstance(other, Reservation):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    @property
    def is_draft(self):
        return self.id is None

    def copy(self, **changes):
        values = {
            'reservation_id': self.id,
            'apartment': self.apartment,
            'client_name': self.client_name,
            'start_date': self.start_date,
            'end_date': self.end_date,
            'notes': self.notes,
            'color': self.color,
        }
        if 'id' in changes:
            changes['reservation_id'] = changes.pop('id')
        values.update(changes)
        return Reservation(**values)

    @classmethod
    def draft(cls, apartment, client_name, start_date, end_date, notes=None):
        return cls(None, apartment, client_name, start_date, end_date, notes=notes)

    def type_errors(self):
        """Felder (JSON-Namen), deren Wert kein Text ist. Fehlende Notizen sind erlaubt."""
        errors = {}
        for attr, key in self.FIELD_NAMES.items():
            value = getattr(self, attr)
            if attr == 'notes' and value is None:
                continue
            if not isinstance(value, str):
                errors[key] = "Muss ein Text sein."
        return errors

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ValueError(f"Reservierung muss ein Objekt sein, nicht {type(data).__name__}")
        if not isinstance(data.get('id'), str):
            raise ValueError(f"Reservierung ohne gültiges Feld 'id': {data}")
        res = cls(
            reservation_id=data['id'],
            apartment=data.get('apartment'),
            client_name=data.get('clientName'),
            start_date=data.get('startDate'),
            end_date=data.get('endDate'),
            notes=data.get('notes'),
            color=data.get('color'),
        )
        errors = res.type_errors()
        if errors:
            raise ValueError(f"Reservierung mit ungültigen Feldern {sorted(errors)}: {data}")
        # InvalidDate ist ein ValueError
        parse_day(res.start_date)
        parse_day(res.end_date)
        return res

    @classmethod
    def draft_from_dict(cls, data):
        """Baut einen Entwurf (ohne ID) aus einem Editor-Payload mit JSON-Feldnamen."""
        return cls.draft(
            apartment=data.get('apartment'),
            client_name=data.get('clientName', ''),
            start_date=data.get('startDate'),
            end_date=data.get('endDate'),
            notes=data.get('notes') or None,
        )

    @classmethod
    def changes_from_dict(cls, data):
        return {attr: data[key] for attr, key in cls.FIELD_NAMES.items() if key in data}

    def to_dict(self):
        result = {
            "id": self.id,
            "apartment": self.apartment,
            "clientName": self.client_name,
            "startDate": self.start_date,
            "endDate": self.end_date,
        }
        if self.notes is not None:
            result["notes"] = self.notes
        result["color"] = self.color
        return result


DEFAULT_APARTMENTS = [
    Apartment('1', 'Wohnung A', '#3B82F6'),
    Apartment('2', 'Wohnung B', '#10B981'),
    Apartment('3', 'Wohnung C', '#F59E0B'),
    Apartment('4', 'Wohnung D', '#EF4444'),
    Apartment('5', 'Wohnung E', '#8B5CF6'),
]

DEFAULT_RESERVATIONS = [
    Reservation('1', 'Wohnung A', 'Familie Martin', '2025-01-15', '2025-01-20',
                notes='Anreise am Abend', color='#3B82F6'),
    Reservation('2', 'Wohnung B', 'Herr Dubois', '2025-01-18', '2025-01-25',
                notes='Geschäftsreise', color='#10B981'),
    Reservation('3', 'Wohnung C', 'Familie Weber', '2025-01-22', '2025-01-28',
                notes='Winterurlaub', color='#F59E0B'),
]


def default_apartments():
    return [Apartment(a.id, a.name, a.color) for a in DEFAULT_APARTMENTS]


def default_reservations():
    return [r.copy() for r in DEFAULT_RESERVATIONS]
