import datetime
import logging
import threading

from flask import Flask, jsonify, request, url_for
from werkzeug.exceptions import HTTPException

from . import config
from .core.apartments import ApartmentRegistry
from .core.controller import CalendarController
from .core.dates import days_between, format_date_european, format_day
from .core.errors import ConflictError, InvalidDate, InvalidReservation, NotFoundError, PersistenceError
from .core.manager import ReservationManager
from .core.models import Reservation
from .core.storage import JsonFileBlobStore
from .core.views import (MONTH_NAMES, SORT_KEYS, filter_reservations, month_grid, reservations_for_day,
                         shift_month, sort_reservations)

logging.basicConfig(level=getattr(logging, config.LOG_LEVEL, logging.INFO), format=config.LOG_FORMAT)

app = Flask(__name__)

# Alle Ereignisse laufen nacheinander durch den einen Controller
_controller_lock = threading.Lock()


def init_controller(blob_store=None):
    if blob_store is None:
        blob_store = JsonFileBlobStore(config.DATA_DIR)
    apartments = ApartmentRegistry(blob_store)
    manager = ReservationManager(blob_store, apartments)
    controller = CalendarController(manager, apartments)
    app.extensions['booking_controller'] = controller
    app.logger.info(f"Controller initialisiert mit {type(blob_store).__name__}.")
    return controller


def get_controller():
    controller = app.extensions.get('booking_controller')
    if controller is None:
        controller = init_controller()
    return controller


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidReservation({"general": "Erwartet ein JSON-Objekt."})
    return data


def _state_response(controller, **extra):
    payload = {"success": True}
    payload.update(extra)
    payload["state"] = controller.snapshot()
    return jsonify(payload)


# --- Fehlerbehandlung ---

@app.errorhandler(InvalidDate)
def handle_invalid_date(e):
    return jsonify({"success": False, "message": str(e)}), 400


@app.errorhandler(InvalidReservation)
def handle_invalid_reservation(e):
    return jsonify({"success": False, "message": "Bitte die Eingaben prüfen.", "errors": e.errors}), 400


@app.errorhandler(NotFoundError)
def handle_not_found(e):
    return jsonify({"success": False, "message": str(e)}), 404


@app.errorhandler(ConflictError)
def handle_conflict(e):
    return jsonify({"success": False, "message": str(e), "conflicting_id": e.conflicting_id}), 409


@app.errorhandler(PersistenceError)
def handle_persistence_error(e):
    app.logger.error(f"Speicherfehler: {e}")
    return jsonify({"success": False, "message": str(e)}), 503


@app.errorhandler(Exception)
def handle_unexpected(e):
    if isinstance(e, HTTPException):
        return e
    app.logger.error(f"Unerwarteter Fehler: {e}", exc_info=True)
    return jsonify({"success": False, "message": f"Serverfehler: {str(e)}"}), 500


# --- Ansichten ---

@app.route('/api/zustand')
def api_state():
    with _controller_lock:
        return jsonify(get_controller().snapshot())


@app.route('/api/wohnungen')
def api_apartments():
    with _controller_lock:
        apartments = get_controller().apartments.list_apartments()
    return jsonify({"success": True, "apartments": [a.to_dict() for a in apartments]})


@app.route('/api/kalender')
def calendar_view():
    today = datetime.date.today()
    try:
        year = int(request.args.get('year', today.year))
        month = int(request.args.get('month', today.month))
        # Das Monatsraster reicht in Nachbarjahre, die datetime noch darstellen muss
        if not datetime.MINYEAR < year < datetime.MAXYEAR or not 1 <= month <= 12:
            raise ValueError((year, month))
    except ValueError:
        year = today.year
        month = today.month

    with _controller_lock:
        controller = get_controller()
        displayed = controller.displayed_reservations()
        weeks = []
        for week in month_grid(year, month):
            weeks.append([{
                'date': format_day(day),
                'in_month': day.month == month,
                'is_today': day == today,
                'selected': controller.selection.is_day_selected(day),
                'reservations': [r.to_dict() for r in reservations_for_day(displayed, day)],
            } for day in week])
        drag = controller.drag.to_dict()

    prev_y, prev_m = shift_month(year, month, -1)
    next_y, next_m = shift_month(year, month, 1)
    return jsonify({
        "success": True,
        "year": year,
        "month": month,
        "month_name": MONTH_NAMES[month],
        "weeks": weeks,
        "drag": drag,
        "prev_month_url": url_for('calendar_view', year=prev_y, month=prev_m),
        "next_month_url": url_for('calendar_view', year=next_y, month=next_m),
    })


@app.route('/api/reservierungen')
def reservations_list_page():
    sort_by_param = request.args.get('sort_by', 'start_date')
    sort_order_param = request.args.get('order', 'asc')

    with _controller_lock:
        all_reservations = get_controller().manager.list_reservations()

    filtered = filter_reservations(
        all_reservations,
        apartment=request.args.get('apartment') or None,
        client_name=request.args.get('client_name') or None,
        start_date=request.args.get('start_date') or None,
        end_date=request.args.get('end_date') or None,
    )
    reservations_processed = []
    for res_obj in sort_reservations(filtered, sort_by_param, sort_order_param):
        res_dict = res_obj.to_dict()
        res_dict['display_start_date'] = format_date_european(res_obj.start_date)
        res_dict['display_end_date'] = format_date_european(res_obj.end_date)
        res_dict['nights'] = days_between(res_obj.start_date, res_obj.end_date)
        reservations_processed.append(res_dict)

    next_sort_order_dict = {k: ('desc' if sort_by_param == k and sort_order_param == 'asc' else 'asc')
                            for k in SORT_KEYS}

    return jsonify({
        "success": True,
        "reservations": reservations_processed,
        "count": len(reservations_processed),
        "current_sort_by": sort_by_param,
        "current_sort_order": sort_order_param,
        "next_sort_order": next_sort_order_dict,
    })


# --- Kalender-Gesten ---

@app.route('/api/kalender/tag_klick', methods=['POST'])
def api_day_clicked():
    data = _json_body()
    with _controller_lock:
        controller = get_controller()
        selected = controller.day_clicked(data.get('day'))
        return _state_response(controller, selected_range=list(selected) if selected else None)


@app.route('/api/kalender/auswahl_abbrechen', methods=['POST'])
def api_cancel_selection():
    with _controller_lock:
        controller = get_controller()
        controller.cancel_selection()
        return _state_response(controller)


@app.route('/api/kalender/reservierung_druecken', methods=['POST'])
def api_reservation_pressed():
    data = _json_body()
    with _controller_lock:
        controller = get_controller()
        controller.reservation_pressed(data.get('reservation_id'))
        return _state_response(controller)


@app.route('/api/kalender/zeiger_bewegt', methods=['POST'])
def api_pointer_moved():
    data = _json_body()
    with _controller_lock:
        controller = get_controller()
        controller.pointer_moved_to_day(data.get('day'))
        return _state_response(controller)


@app.route('/api/kalender/zeiger_losgelassen', methods=['POST'])
def api_pointer_released():
    with _controller_lock:
        controller = get_controller()
        controller.pointer_released()
        return _state_response(controller)


@app.route('/api/kalender/drag_speichern', methods=['POST'])
def api_commit_drag():
    with _controller_lock:
        controller = get_controller()
        updated = controller.commit_drag()
        if updated is None:
            return jsonify({"success": False, "message": "Kein verschobener Zeitraum zum Speichern."}), 409
        app.logger.info(f"Reservierung {updated.id} per Drag auf {updated.start_date} bis {updated.end_date} verschoben.")
        return _state_response(controller, message="Reservierung verschoben.", reservation=updated.to_dict())


@app.route('/api/kalender/drag_abbrechen', methods=['POST'])
def api_cancel_drag():
    with _controller_lock:
        controller = get_controller()
        controller.cancel_drag()
        return _state_response(controller)


@app.route('/api/kalender/reservierung_doppelklick', methods=['POST'])
def api_reservation_double_clicked():
    data = _json_body()
    with _controller_lock:
        controller = get_controller()
        controller.reservation_double_clicked(data.get('reservation_id'))
        return _state_response(controller)


@app.route('/api/kalender/editor_schliessen', methods=['POST'])
def api_close_editor():
    with _controller_lock:
        controller = get_controller()
        controller.close_editor()
        return _state_response(controller)


# --- Editor ---

@app.route('/api/neue_reservierung', methods=['POST'])
def api_create_reservation():
    draft = Reservation.draft_from_dict(_json_body())
    with _controller_lock:
        created = get_controller().submit_create(draft)
    return jsonify({"success": True, "message": "Reservierung angelegt.", "reservation": created.to_dict()}), 201


@app.route('/api/reservierung_bearbeiten/<string:reservation_id>', methods=['POST'])
def api_update_reservation(reservation_id):
    changes = Reservation.changes_from_dict(_json_body())
    with _controller_lock:
        updated = get_controller().submit_edit(reservation_id, changes)
    return jsonify({"success": True, "message": "Aktualisiert.", "reservation": updated.to_dict()})


@app.route('/api/reservierung_loeschen/<string:reservation_id>', methods=['DELETE'])
def api_delete_reservation(reservation_id):
    with _controller_lock:
        deleted = get_controller().submit_delete(reservation_id)
    if deleted:
        return jsonify({"success": True, "message": "Reservierung erfolgreich gelöscht."})
    return jsonify({"success": True, "message": "Reservierung war bereits gelöscht."})


if __name__ == '__main__':
    app.run(debug=False, host=config.HOST, port=config.PORT)
