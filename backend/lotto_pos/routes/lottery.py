# backend/lotto_pos/routes/lottery.py
"""
Lottery API Routes

DESIGN:
- Inventory: games, bins, pack receive/activate/return/deplete
- Day bins read model and the day close itself
- Every store-scoped route runs behind require_store_access, so the
  services below only ever see a store of the caller's organization

ERRORS:
- LotteryError / DayCloseError -> 400 with their code in the envelope
- Anything unexpected -> 500, logged
"""

from flask import Blueprint, current_app, g, request

from ..decorators import require_auth, require_store_access
from ..responses import fail, ok
from ..services import business_period_service, day_close_service, lottery_service
from ..services.day_close_service import DayCloseContext, DayCloseError
from ..services.lottery_service import LotteryError
from ..services.shift_service import ShiftError
from ..services.unscanned_bins import find_unscanned_bins

lottery_bp = Blueprint("lottery", __name__, url_prefix="/api/lottery")


def _day_close_error(e: DayCloseError):
    return fail(e.code, e.message, 400, details=e.details)


def _int_arg(data: dict, key: str):
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


# =============================================================================
# INVENTORY
# =============================================================================

@lottery_bp.post("/games")
@require_auth
@require_store_access
def create_game_route():
    """
    Request body:
    {
        "store_id": 1,
        "game_code": "1234",
        "name": "Lucky 7s",
        "price": "5.00",
        "pack_value": "150.00"     (optional)
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        game = lottery_service.create_game(
            data.get("game_code"),
            data.get("name"),
            data.get("price"),
            store_id=g.store.id,
            pack_value=data.get("pack_value"),
        )
        return ok({"game": game.to_dict()}, 201)
    except LotteryError as e:
        return fail("VALIDATION_ERROR", str(e), 400)
    except Exception:
        current_app.logger.exception("Failed to create game")
        return fail("INTERNAL_ERROR", "Internal server error", 500)


@lottery_bp.post("/bins")
@require_auth
@require_store_access
def create_bin_route():
    try:
        data = request.get_json(silent=True) or {}
        lottery_bin = lottery_service.create_bin(
            g.store.id,
            name=data.get("name"),
            display_order=_int_arg(data, "display_order"),
        )
        return ok({"bin": lottery_bin.to_dict()}, 201)
    except LotteryError as e:
        return fail("VALIDATION_ERROR", str(e), 400)
    except Exception:
        current_app.logger.exception("Failed to create bin")
        return fail("INTERNAL_ERROR", "Internal server error", 500)


@lottery_bp.delete("/stores/<int:store_id>/bins/<int:bin_id>")
@require_auth
@require_store_access
def deactivate_bin_route(store_id: int, bin_id: int):
    try:
        lottery_bin = lottery_service.deactivate_bin(bin_id, store_id)
        return ok({"bin": lottery_bin.to_dict()})
    except LotteryError as e:
        return fail("VALIDATION_ERROR", str(e), 400)
    except Exception:
        current_app.logger.exception("Failed to deactivate bin")
        return fail("INTERNAL_ERROR", "Internal server error", 500)


@lottery_bp.post("/packs/receive")
@require_auth
@require_store_access
def receive_pack_route():
    """
    Request body:
    {
        "store_id": 1,
        "game_id": 3,
        "pack_number": "1234567",
        "serial_start": "000",
        "serial_end": "049"
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        game_id = _int_arg(data, "game_id")
        if game_id is None:
            return fail("VALIDATION_ERROR", "game_id required", 400)

        pack = lottery_service.receive_pack(
            g.store.id,
            game_id,
            data.get("pack_number"),
            serial_start=data.get("serial_start", "000"),
            serial_end=data.get("serial_end", "149"),
        )
        return ok({"pack": pack.to_dict()}, 201)
    except LotteryError as e:
        return fail("VALIDATION_ERROR", str(e), 400)
    except Exception:
        current_app.logger.exception("Failed to receive pack")
        return fail("INTERNAL_ERROR", "Internal server error", 500)


@lottery_bp.put("/stores/<int:store_id>/packs/<int:pack_id>/activate")
@require_auth
@require_store_access
def activate_pack_route(store_id: int, pack_id: int):
    try:
        data = request.get_json(silent=True) or {}
        bin_id = _int_arg(data, "bin_id")
        if bin_id is None:
            return fail("VALIDATION_ERROR", "bin_id required", 400)

        pack = lottery_service.activate_pack(pack_id, bin_id, store_id, user_id=g.current_user.id)
        return ok({"pack": pack.to_dict()})
    except LotteryError as e:
        return fail("VALIDATION_ERROR", str(e), 400)
    except Exception:
        current_app.logger.exception("Failed to activate pack")
        return fail("INTERNAL_ERROR", "Internal server error", 500)


@lottery_bp.post("/stores/<int:store_id>/packs/<int:pack_id>/return")
@require_auth
@require_store_access
def return_pack_route(store_id: int, pack_id: int):
    try:
        pack = lottery_service.return_pack(pack_id, store_id)
        return ok({"pack": pack.to_dict()})
    except LotteryError as e:
        return fail("VALIDATION_ERROR", str(e), 400)
    except Exception:
        current_app.logger.exception("Failed to return pack")
        return fail("INTERNAL_ERROR", "Internal server error", 500)


@lottery_bp.post("/stores/<int:store_id>/packs/<int:pack_id>/deplete")
@require_auth
@require_store_access
def deplete_pack_route(store_id: int, pack_id: int):
    try:
        pack = lottery_service.deplete_pack(pack_id, store_id, user_id=g.current_user.id)
        return ok({"pack": pack.to_dict()})
    except LotteryError as e:
        return fail("VALIDATION_ERROR", str(e), 400)
    except Exception:
        current_app.logger.exception("Failed to deplete pack")
        return fail("INTERNAL_ERROR", "Internal server error", 500)


# =============================================================================
# DAY BINS AND DAY CLOSE
# =============================================================================

@lottery_bp.get("/bins/day/<int:store_id>")
@require_auth
@require_store_access
def day_bins_route(store_id: int):
    """
    Active bins with starting/ending serials for the open period.

    ?current_shift_id=7 reads starting serials as a close by that shift would.
    """
    try:
        current_shift_id = request.args.get("current_shift_id", type=int)
        return ok(business_period_service.get_day_bins(store_id, current_shift_id))
    except ShiftError as e:
        return fail("VALIDATION_ERROR", str(e), 400)
    except Exception:
        current_app.logger.exception("Failed to load day bins")
        return fail("INTERNAL_ERROR", "Internal server error", 500)


def _day_close_args(store_id: int):
    data = request.get_json(silent=True) or {}
    current_shift_id = data.get("current_shift_id")
    if isinstance(current_shift_id, str) and current_shift_id.strip().isdigit():
        current_shift_id = int(current_shift_id)
    if current_shift_id is not None and (isinstance(current_shift_id, bool) or not isinstance(current_shift_id, int)):
        raise DayCloseError("VALIDATION_ERROR", "current_shift_id must be an integer", {"field": "current_shift_id"})

    context = DayCloseContext(
        store_id=store_id,
        user_id=g.current_user.id,
        current_shift_id=current_shift_id,
    )
    return context, data.get("closings"), data.get("entry_method") or "SCAN"


@lottery_bp.post("/bins/day/<int:store_id>/close")
@require_auth
@require_store_access
def close_day_route(store_id: int):
    """
    Close the business day for every active bin of the store.

    Request body:
    {
        "closings": [{"pack_id": 12, "closing_serial": "035"}, ...],
        "entry_method": "SCAN" | "MANUAL",
        "current_shift_id": 7        (optional)
    }

    Error codes: SHIFTS_STILL_OPEN, INVALID_PACKS, MISSING_PACKS,
    CLOSINGS_ALREADY_EXIST, VALIDATION_ERROR (all 400).
    """
    try:
        context, closings, entry_method = _day_close_args(store_id)
        result = day_close_service.close_day(context, closings, entry_method)
        return ok(result.to_dict())
    except DayCloseError as e:
        return _day_close_error(e)
    except Exception:
        current_app.logger.exception("Failed to close lottery day")
        return fail("INTERNAL_ERROR", "Internal server error", 500)


@lottery_bp.post("/bins/day/<int:store_id>/close/preview")
@require_auth
@require_store_access
def preview_close_route(store_id: int):
    """Same body and checks as /close; writes nothing."""
    try:
        context, closings, entry_method = _day_close_args(store_id)
        result = day_close_service.preview_close(context, closings, entry_method)
        return ok(result.to_dict())
    except DayCloseError as e:
        return _day_close_error(e)
    except Exception:
        current_app.logger.exception("Failed to preview lottery day close")
        return fail("INTERNAL_ERROR", "Internal server error", 500)


@lottery_bp.get("/bins/day/<int:store_id>/unscanned")
@require_auth
@require_store_access
def unscanned_bins_route(store_id: int):
    """
    ?scanned=1,2,3 lists the active bins whose pack is not among them.

    Optional ?current_shift_id= as for the day bins view.
    """
    raw = request.args.get("scanned", "")
    try:
        scanned = {int(part) for part in raw.split(",") if part.strip()}
    except ValueError:
        return fail("VALIDATION_ERROR", "scanned must be a comma separated list of pack ids", 400)

    try:
        bins = find_unscanned_bins(store_id, scanned, request.args.get("current_shift_id", type=int))
        return ok({"bins": [b.to_dict() for b in bins]})
    except ShiftError as e:
        return fail("VALIDATION_ERROR", str(e), 400)
    except Exception:
        current_app.logger.exception("Failed to list unscanned bins")
        return fail("INTERNAL_ERROR", "Internal server error", 500)


@lottery_bp.get("/stores/<int:store_id>/business-period")
@require_auth
@require_store_access
def business_period_route(store_id: int):
    try:
        return ok(business_period_service.get_activated_packs(store_id))
    except Exception:
        current_app.logger.exception("Failed to load business period")
        return fail("INTERNAL_ERROR", "Internal server error", 500)


@lottery_bp.get("/stores/<int:store_id>/day-status")
@require_auth
@require_store_access
def day_status_route(store_id: int):
    try:
        day = day_close_service.get_day_status(store_id)
        return ok({"business_day": day.to_dict() if day else None})
    except Exception:
        current_app.logger.exception("Failed to load day status")
        return fail("INTERNAL_ERROR", "Internal server error", 500)
