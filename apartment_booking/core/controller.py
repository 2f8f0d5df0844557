import logging
from collections import namedtuple

from .dates import parse_day
from .drag import DragMachine
from .errors import ConflictError, InvalidDate, InvalidReservation, NotFoundError, PersistenceError
from .selection import SelectionMachine

logger = logging.getLogger(__name__)

EXPORT_REGION_ID = "calendar-container"

# mode: 'create' oder 'edit'; values: Formularinhalt mit JSON-Feldnamen
Editor = namedtuple('Editor', ['mode', 'reservation_id', 'values', 'errors'])


def validate_draft(draft, apartments):
    # Gespeichert werden nur Text-Felder
    errors = draft.type_errors()
    if not draft.apartment:
        errors['apartment'] = "Bitte eine Wohnung auswählen."
    elif 'apartment' not in errors and apartments.get_by_name(draft.apartment) is None:
        errors['apartment'] = f"Unbekannte Wohnung: {draft.apartment}"

    if not draft.client_name or ('clientName' not in errors and not draft.client_name.strip()):
        errors['clientName'] = "Der Name des Gastes ist erforderlich."

    start = end = None
    if not draft.start_date:
        errors['startDate'] = "Anreisedatum erforderlich."
    elif 'startDate' not in errors:
        try:
            start = parse_day(draft.start_date)
        except InvalidDate as e:
            errors['startDate'] = str(e)
    if not draft.end_date:
        errors['endDate'] = "Abreisedatum erforderlich."
    elif 'endDate' not in errors:
        try:
            end = parse_day(draft.end_date)
        except InvalidDate as e:
            errors['endDate'] = str(e)

    if start is not None and end is not None and start >= end:
        errors['endDate'] = "Die Abreise muss nach der Anreise liegen."

    if errors:
        raise InvalidReservation(errors)


class CalendarController:
    """Besitzt Auswahl, Drag und Editor eines Kalenders.

    Die Darstellung schickt nur Ereignisse hierher und liest ``snapshot()``.
    """

    def __init__(self, manager, apartments):
        self.manager = manager
        self.apartments = apartments
        self.selection = SelectionMachine()
        self.drag = DragMachine()
        self.editor = None
        self.notice = None

    def _get_or_fail(self, reservation_id):
        res = self.manager.get(reservation_id)
        if res is None:
            raise NotFoundError(reservation_id)
        return res

    # --- Kalender-Gesten ---

    def day_clicked(self, day):
        if self.drag.is_active:
            logger.debug(f"Klick auf {day} während Drag ignoriert.")
            return None
        selected = self.selection.pick(day)
        if selected is not None:
            start, end = selected
            self.open_create_editor(start, end)
        return selected

    def cancel_selection(self):
        self.selection.cancel()

    def reservation_pressed(self, reservation_id):
        self.drag.press(self._get_or_fail(reservation_id))

    def pointer_moved_to_day(self, day):
        self.drag.move(day)

    def pointer_released(self):
        self.drag.release()

    def commit_drag(self):
        try:
            return self.drag.commit(self.manager)
        except ConflictError as e:
            self.notice = f"Konflikt erkannt: {e}"
            raise
        except PersistenceError as e:
            self.notice = f"Speichern fehlgeschlagen: {e}"
            raise

    def cancel_drag(self):
        self.drag.cancel()

    def reservation_double_clicked(self, reservation_id):
        if self.drag.is_active:
            return None
        res = self._get_or_fail(reservation_id)
        self.editor = Editor(
            mode='edit',
            reservation_id=res.id,
            values={k: v for k, v in res.to_dict().items() if k not in ('id', 'color')},
            errors={},
        )
        return self.editor

    # --- Editor ---

    def open_create_editor(self, start_date=None, end_date=None):
        first = self.apartments.first()
        self.editor = Editor(
            mode='create',
            reservation_id=None,
            values={
                'apartment': first.name if first is not None else '',
                'clientName': '',
                'startDate': start_date or '',
                'endDate': end_date or '',
                'notes': '',
            },
            errors={},
        )
        return self.editor

    def close_editor(self):
        self.editor = None

    def _editor_failed(self, error):
        if isinstance(error, InvalidReservation):
            errors = error.errors
        else:
            errors = {'general': str(error)}
        if self.editor is not None:
            self.editor = self.editor._replace(errors=errors)
        if isinstance(error, PersistenceError):
            self.notice = f"Speichern fehlgeschlagen: {error}"

    def submit_create(self, draft):
        try:
            validate_draft(draft, self.apartments)
            created = self.manager.create(draft)
        except (InvalidReservation, ConflictError, PersistenceError) as e:
            self._editor_failed(e)
            raise
        self.close_editor()
        return created

    def submit_edit(self, reservation_id, changes):
        try:
            existing = self._get_or_fail(reservation_id)
            merged = existing.copy(**{k: v for k, v in changes.items() if k in existing.FIELD_NAMES})
            validate_draft(merged, self.apartments)
            updated = self.manager.update(reservation_id, changes)
        except (NotFoundError, InvalidReservation, ConflictError, PersistenceError) as e:
            self._editor_failed(e)
            raise
        self.close_editor()
        return updated

    def submit_delete(self, reservation_id):
        try:
            deleted = self.manager.delete(reservation_id)
        except PersistenceError as e:
            self._editor_failed(e)
            raise
        # Ein Drag auf die gelöschte Reservierung ist hinfällig
        if not self.drag.is_idle and self.drag.state.origin.id == reservation_id:
            self.drag.cancel()
        self.close_editor()
        return deleted

    # --- Darstellung ---

    def consume_notice(self):
        load_error = self.manager.consume_load_error()
        if load_error is not None and self.notice is None:
            self.notice = f"Gespeicherte Daten konnten nicht geladen werden, es werden Standarddaten angezeigt. ({load_error})"
        notice, self.notice = self.notice, None
        return notice

    def displayed_reservations(self):
        return [self.drag.preview_for(r.id) or r for r in self.manager.list_reservations()]

    def snapshot(self):
        editor = None
        if self.editor is not None:
            editor = {
                "mode": self.editor.mode,
                "reservationId": self.editor.reservation_id,
                "values": self.editor.values,
                "errors": self.editor.errors,
            }
        return {
            "reservations": [r.to_dict() for r in self.displayed_reservations()],
            "apartments": [a.to_dict() for a in self.apartments.list_apartments()],
            "selection": self.selection.to_dict(),
            "drag": self.drag.to_dict(),
            "editor": editor,
            "notice": self.consume_notice(),
            "degraded": self.manager.degraded or self.apartments.load_error is not None,
            "exportRegionId": EXPORT_REGION_ID,
        }
