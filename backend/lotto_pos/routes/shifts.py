# backend/lotto_pos/routes/shifts.py
"""
Shift API Routes

Shift lifecycle: (NOT_STARTED ->) OPEN -> ACTIVE -> CLOSED, immutable once
closed. Every call names its store ("store_id" in the JSON body or the
query string) and is checked against the caller's organization.
"""

from flask import Blueprint, current_app, g, request

from ..decorators import require_auth, require_store_access
from ..responses import fail, ok
from ..services import shift_service
from ..services.shift_service import ShiftError

shifts_bp = Blueprint("shifts", __name__, url_prefix="/api/shifts")


def _body() -> dict:
    return request.get_json(silent=True) or {}


@shifts_bp.post("/terminals")
@require_auth
@require_store_access
def create_terminal_route():
    try:
        data = _body()
        if not data.get("terminal_number") or not data.get("name"):
            return fail("VALIDATION_ERROR", "terminal_number and name required", 400)
        terminal = shift_service.create_terminal(g.store.id, data["terminal_number"], data["name"])
        return ok({"terminal": terminal.to_dict()}, 201)
    except ShiftError as e:
        return fail("VALIDATION_ERROR", str(e), 400)
    except Exception:
        current_app.logger.exception("Failed to create terminal")
        return fail("INTERNAL_ERROR", "Internal server error", 500)


@shifts_bp.post("/cashiers")
@require_auth
@require_store_access
def create_cashier_route():
    try:
        data = _body()
        if not data.get("employee_id") or not data.get("name"):
            return fail("VALIDATION_ERROR", "employee_id and name required", 400)
        cashier = shift_service.create_cashier(g.store.id, data["employee_id"], data["name"])
        return ok({"cashier": cashier.to_dict()}, 201)
    except ShiftError as e:
        return fail("VALIDATION_ERROR", str(e), 400)
    except Exception:
        current_app.logger.exception("Failed to create cashier")
        return fail("INTERNAL_ERROR", "Internal server error", 500)


@shifts_bp.post("")
@require_auth
@require_store_access
def open_shift_route():
    """
    Request body:
    {
        "store_id": 1,
        "cashier_id": 4,
        "terminal_id": 2,          (optional)
        "opening_cash": "200.00",  (optional)
        "status": "OPEN"           (or "NOT_STARTED")
    }
    """
    try:
        data = _body()
        cashier_id = data.get("cashier_id")
        if not isinstance(cashier_id, int):
            return fail("VALIDATION_ERROR", "cashier_id required", 400)

        shift = shift_service.open_shift(
            g.store.id,
            cashier_id,
            terminal_id=data.get("terminal_id"),
            opening_cash=data.get("opening_cash", 0),
            opened_by=g.current_user.id,
            status=data.get("status", "OPEN"),
        )
        return ok({"shift": shift.to_dict()}, 201)
    except (ShiftError, ValueError) as e:
        return fail("VALIDATION_ERROR", str(e), 400)
    except Exception:
        current_app.logger.exception("Failed to open shift")
        return fail("INTERNAL_ERROR", "Internal server error", 500)


@shifts_bp.post("/<int:shift_id>/start")
@require_auth
@require_store_access
def start_shift_route(shift_id: int):
    try:
        shift = shift_service.start_shift(shift_id, g.store.id)
        return ok({"shift": shift.to_dict()})
    except ShiftError as e:
        return fail("VALIDATION_ERROR", str(e), 400)
    except Exception:
        current_app.logger.exception("Failed to start shift")
        return fail("INTERNAL_ERROR", "Internal server error", 500)


@shifts_bp.post("/<int:shift_id>/activate")
@require_auth
@require_store_access
def activate_shift_route(shift_id: int):
    try:
        shift = shift_service.mark_shift_active(shift_id, g.store.id)
        return ok({"shift": shift.to_dict()})
    except ShiftError as e:
        return fail("VALIDATION_ERROR", str(e), 400)
    except Exception:
        current_app.logger.exception("Failed to activate shift")
        return fail("INTERNAL_ERROR", "Internal server error", 500)


@shifts_bp.post("/<int:shift_id>/close")
@require_auth
@require_store_access
def close_shift_route(shift_id: int):
    try:
        shift = shift_service.close_shift(shift_id, g.store.id, closing_cash=_body().get("closing_cash"))
        return ok({"shift": shift.to_dict()})
    except ShiftError as e:
        return fail("VALIDATION_ERROR", str(e), 400)
    except Exception:
        current_app.logger.exception("Failed to close shift")
        return fail("INTERNAL_ERROR", "Internal server error", 500)


@shifts_bp.post("/<int:shift_id>/openings")
@require_auth
@require_store_access
def record_opening_route(shift_id: int):
    """
    Request body:
    {
        "store_id": 1,
        "pack_id": 12,
        "opening_serial": "017"
    }
    """
    try:
        data = _body()
        pack_id = data.get("pack_id")
        opening_serial = data.get("opening_serial")
        if not isinstance(pack_id, int) or not isinstance(opening_serial, str):
            return fail("VALIDATION_ERROR", "pack_id and opening_serial required", 400)

        opening = shift_service.record_shift_opening(shift_id, g.store.id, pack_id, opening_serial)
        return ok({"opening": opening.to_dict()}, 201)
    except ShiftError as e:
        return fail("VALIDATION_ERROR", str(e), 400)
    except Exception:
        current_app.logger.exception("Failed to record shift opening")
        return fail("INTERNAL_ERROR", "Internal server error", 500)


@shifts_bp.get("/open")
@require_auth
@require_store_access
def list_open_shifts_route():
    shifts = shift_service.list_open_shifts(g.store.id)
    return ok({"shifts": [shift_service.shift_summary(s) for s in shifts]})
