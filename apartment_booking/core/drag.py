import logging
from collections import namedtuple

from .dates import add_days, days_between, format_day
from .errors import ConflictError

logger = logging.getLogger(__name__)

Idle = namedtuple('Idle', [])
Armed = namedtuple('Armed', ['reservation', 'origin'])
Previewing = namedtuple('Previewing', ['reservation', 'origin', 'proposed_start', 'proposed_end', 'tracking'])

IDLE = Idle()


class DragMachine:
    """Verschieben einer Reservierung per Drücken, Ziehen und Loslassen.

    Die gespeicherte Reservierung bleibt bis ``commit`` unverändert. Loslassen
    beendet nur die Mausverfolgung, der Vorschlag bleibt stehen, bis er
    gespeichert oder verworfen wird. Ein neues Drücken während eines aktiven
    Vorgangs verwirft den alten Vorschlag.
    """

    def __init__(self):
        self.state = IDLE

    @property
    def is_active(self):
        return isinstance(self.state, Previewing)

    @property
    def is_idle(self):
        return isinstance(self.state, Idle)

    def press(self, reservation):
        if not self.is_idle:
            logger.info(f"Neuer Drag auf {reservation.id}, verwerfe laufenden Drag auf {self.state.origin.id}.")
        origin = reservation.copy()
        self.state = Armed(reservation=origin.id, origin=origin)

    def move(self, day):
        state = self.state
        if isinstance(state, Idle):
            return
        if isinstance(state, Previewing) and not state.tracking:
            return

        origin = state.origin
        duration = days_between(origin.start_date, origin.end_date)
        proposed_start = format_day(day)
        self.state = Previewing(
            reservation=origin.id,
            origin=origin,
            proposed_start=proposed_start,
            proposed_end=add_days(proposed_start, duration),
            tracking=True,
        )

    def release(self):
        state = self.state
        if isinstance(state, Armed):
            # Drücken ohne Bewegung ist nur ein Klick
            self.state = IDLE
        elif isinstance(state, Previewing) and state.tracking:
            self.state = state._replace(tracking=False)

    def proposal(self):
        if not isinstance(self.state, Previewing):
            return None
        return self.state.origin.copy(start_date=self.state.proposed_start, end_date=self.state.proposed_end)

    def preview_for(self, reservation_id):
        if not self.is_active or self.state.reservation != reservation_id:
            return None
        return self.proposal()

    def commit(self, manager):
        if not isinstance(self.state, Previewing):
            return None

        state = self.state
        candidate = self.proposal()
        conflicting = manager.find_conflict(candidate, exclude_id=state.origin.id)
        if conflicting is not None:
            logger.info(f"Drag von {state.origin.id} abgelehnt: Konflikt mit {conflicting.id}.")
            raise ConflictError(candidate, conflicting)

        updated = manager.update(state.origin.id, {
            'start_date': state.proposed_start,
            'end_date': state.proposed_end,
        })
        self.state = IDLE
        return updated

    def cancel(self):
        self.state = IDLE

    def to_dict(self):
        state = self.state
        if isinstance(state, Idle):
            return {"state": "idle", "active": False}
        result = {
            "state": "armed" if isinstance(state, Armed) else "previewing",
            "active": self.is_active,
            "reservationId": state.reservation,
            "origin": state.origin.to_dict(),
        }
        if isinstance(state, Previewing):
            result.update({
                "proposedStart": state.proposed_start,
                "proposedEnd": state.proposed_end,
                "tracking": state.tracking,
            })
        return result
