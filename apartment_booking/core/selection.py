import logging
from collections import namedtuple

from .dates import format_day, parse_day

logger = logging.getLogger(__name__)

Idle = namedtuple('Idle', [])
AnchorSet = namedtuple('AnchorSet', ['anchor'])

IDLE = Idle()


class SelectionMachine:
    """Zwei Klicks auf den Kalender ergeben einen Zeitraum.

    Der erste Klick setzt den Anker, der zweite liefert ``(start, ende)``
    in aufsteigender Reihenfolge und setzt die Auswahl zurück.
    """

    def __init__(self):
        self.state = IDLE

    @property
    def anchor(self):
        return self.state.anchor if isinstance(self.state, AnchorSet) else None

    @property
    def is_selecting(self):
        return isinstance(self.state, AnchorSet)

    def pick(self, day):
        picked = parse_day(day)
        if not isinstance(self.state, AnchorSet):
            self.state = AnchorSet(picked)
            return None

        anchor = self.state.anchor
        self.state = IDLE
        start, end = min(anchor, picked), max(anchor, picked)
        logger.debug(f"Zeitraum ausgewählt: {start} bis {end}")
        return format_day(start), format_day(end)

    def cancel(self):
        self.state = IDLE

    def is_day_selected(self, day):
        return self.anchor is not None and parse_day(day) == self.anchor

    def to_dict(self):
        return {
            "selecting": self.is_selecting,
            "anchor": format_day(self.anchor) if self.anchor is not None else None,
        }
