# Overview: Terminals, cashiers, shifts and per-shift pack serial readings.

"""
Shift Ledger Service

WHY: Each shift is a period of accountability for one cashier. Pack
readings taken at shift start (ShiftOpening) and at close (ShiftClosing)
are what ticket sales are computed from.

DESIGN PRINCIPLES:
- One OPEN/ACTIVE shift per terminal at a time
- Shifts are immutable once CLOSED
- Serial readings are written once and never updated
"""

from __future__ import annotations

import logging

from ..extensions import db
from ..models import (
    Cashier,
    LotteryPack,
    PackStatus,
    Shift,
    ShiftClosing,
    ShiftOpening,
    ShiftStatus,
    Terminal,
)
from ..time_utils import to_utc_z, utcnow
from . import serials
from .concurrency import lock_for_update

logger = logging.getLogger(__name__)

# Statuses that count as "still open" for the day-close guard
LIVE_STATUSES = tuple(status for status in ShiftStatus if status.blocks_day_close)


class ShiftError(Exception):
    """Raised for shift management errors."""
    pass


# =============================================================================
# TERMINALS AND CASHIERS
# =============================================================================

def create_terminal(store_id: int, terminal_number: str, name: str) -> Terminal:
    existing = db.session.query(Terminal).filter_by(
        store_id=store_id,
        terminal_number=terminal_number,
    ).first()
    if existing:
        raise ShiftError(f"Terminal '{terminal_number}' already exists in this store")

    terminal = Terminal(store_id=store_id, terminal_number=terminal_number, name=name, is_active=True)
    db.session.add(terminal)
    db.session.commit()
    return terminal


def create_cashier(store_id: int, employee_id: str, name: str) -> Cashier:
    existing = db.session.query(Cashier).filter_by(store_id=store_id, employee_id=employee_id).first()
    if existing:
        raise ShiftError(f"Cashier '{employee_id}' already exists in this store")

    cashier = Cashier(store_id=store_id, employee_id=employee_id, name=name, is_active=True)
    db.session.add(cashier)
    db.session.commit()
    return cashier


# =============================================================================
# SHIFT LIFECYCLE
# =============================================================================

def open_shift(
    store_id: int,
    cashier_id: int,
    *,
    terminal_id: int | None = None,
    opening_cash=0,
    opened_by: int | None = None,
    status: ShiftStatus = ShiftStatus.OPEN,
) -> Shift:
    """
    Create a shift for a cashier.

    status may be NOT_STARTED for a shift set up ahead of time; anything
    else other than OPEN is refused.

    Raises:
        ShiftError: unknown cashier/terminal, inactive terminal, or the
            terminal already has a live shift
    """
    status = ShiftStatus.parse(status)
    if status not in (ShiftStatus.OPEN, ShiftStatus.NOT_STARTED):
        raise ShiftError("New shifts start as OPEN or NOT_STARTED")

    cashier = db.session.query(Cashier).filter_by(id=cashier_id, store_id=store_id).first()
    if not cashier or not cashier.is_active:
        raise ShiftError("Cashier not found")

    if terminal_id is not None:
        terminal = db.session.query(Terminal).filter_by(id=terminal_id, store_id=store_id).first()
        if not terminal:
            raise ShiftError("Terminal not found")
        if not terminal.is_active:
            raise ShiftError("Cannot open shift on inactive terminal")

        existing_open = db.session.query(Shift).filter(
            Shift.terminal_id == terminal_id,
            Shift.status.in_(LIVE_STATUSES),
        ).first()
        if existing_open:
            raise ShiftError(f"Terminal already has open shift (shift {existing_open.id})")

    try:
        opening_cash = serials.to_decimal(opening_cash or 0)
    except (ArithmeticError, TypeError, ValueError):
        raise ShiftError("opening_cash must be a decimal amount") from None

    shift = Shift(
        store_id=store_id,
        cashier_id=cashier_id,
        terminal_id=terminal_id,
        opened_by=opened_by,
        status=status,
        opening_cash=opening_cash,
        opened_at=utcnow(),
    )
    db.session.add(shift)
    db.session.commit()

    logger.info("Shift %s %s for cashier %s (store %s)", shift.id, status.value, cashier_id, store_id)
    return shift


def _get_shift_locked(shift_id: int, store_id: int) -> Shift:
    shift = lock_for_update(db.session.query(Shift).filter_by(id=shift_id, store_id=store_id)).first()
    if not shift:
        raise ShiftError("Shift not found")
    return shift


def start_shift(shift_id: int, store_id: int) -> Shift:
    """NOT_STARTED -> OPEN."""
    shift = _get_shift_locked(shift_id, store_id)
    if shift.status != ShiftStatus.NOT_STARTED:
        raise ShiftError(f"Shift is {shift.status.value}, expected NOT_STARTED")
    shift.status = ShiftStatus.OPEN
    shift.opened_at = utcnow()
    db.session.commit()
    return shift


def mark_shift_active(shift_id: int, store_id: int) -> Shift:
    """OPEN -> ACTIVE (first transaction processed)."""
    shift = _get_shift_locked(shift_id, store_id)
    if shift.status != ShiftStatus.OPEN:
        raise ShiftError(f"Shift is {shift.status.value}, expected OPEN")
    shift.status = ShiftStatus.ACTIVE
    db.session.commit()
    return shift


def close_shift(shift_id: int, store_id: int, closing_cash=None) -> Shift:
    """
    Close a live shift.

    IMMUTABLE: once closed, a shift cannot be reopened.
    """
    shift = _get_shift_locked(shift_id, store_id)
    if not shift.status.blocks_day_close:
        raise ShiftError(f"Shift is {shift.status.value}; only OPEN or ACTIVE shifts can be closed")

    if closing_cash is not None:
        try:
            shift.closing_cash = serials.to_decimal(closing_cash)
        except (ArithmeticError, TypeError, ValueError):
            raise ShiftError("closing_cash must be a decimal amount") from None

    shift.status = ShiftStatus.CLOSED
    shift.closed_at = utcnow()
    db.session.commit()

    logger.info("Shift %s closed (store %s)", shift.id, store_id)
    return shift


def list_open_shifts(store_id: int, exclude_shift_id: int | None = None) -> list[Shift]:
    """
    OPEN or ACTIVE shifts of the store, oldest first.

    exclude_shift_id drops the shift that is itself submitting a day close.
    """
    query = db.session.query(Shift).filter(
        Shift.store_id == store_id,
        Shift.status.in_(LIVE_STATUSES),
    )
    if exclude_shift_id is not None:
        query = query.filter(Shift.id != exclude_shift_id)
    return query.order_by(Shift.opened_at.asc(), Shift.id.asc()).all()


def resolve_closing_shift(store_id: int, current_shift_id: int | None = None) -> Shift | None:
    """
    Shift that day-close readings are attributed to.

    The submitting shift when given (it must belong to the store), else the
    store's most recently opened shift that has started. None if the store
    has never had one.
    """
    if current_shift_id is not None:
        shift = db.session.query(Shift).filter_by(id=current_shift_id, store_id=store_id).first()
        if not shift:
            raise ShiftError("Shift not found")
        return shift

    return db.session.query(Shift).filter(
        Shift.store_id == store_id,
        Shift.status != ShiftStatus.NOT_STARTED,
    ).order_by(Shift.opened_at.desc(), Shift.id.desc()).first()


# =============================================================================
# SERIAL READINGS
# =============================================================================

def record_shift_opening(shift_id: int, store_id: int, pack_id: int, opening_serial: str) -> ShiftOpening:
    """
    Record the serial a live shift found on an ACTIVE pack.

    The serial must lie inside the pack's range. One opening per
    (shift, pack).
    """
    shift = db.session.query(Shift).filter_by(id=shift_id, store_id=store_id).first()
    if not shift:
        raise ShiftError("Shift not found")
    if not shift.status.blocks_day_close:
        raise ShiftError(f"Shift is {shift.status.value}; readings need an OPEN or ACTIVE shift")

    pack = db.session.query(LotteryPack).filter_by(id=pack_id, store_id=store_id).first()
    if not pack:
        raise ShiftError("Pack not found")
    if pack.status != PackStatus.ACTIVE:
        raise ShiftError(f"Pack {pack.pack_number} is not ACTIVE")

    try:
        value = serials.to_int(opening_serial)
        if not serials.to_int(pack.serial_start) <= value <= serials.to_int(pack.serial_end):
            raise ShiftError(
                f"Opening serial {opening_serial} outside pack range "
                f"{pack.serial_start}-{pack.serial_end}"
            )
    except serials.SerialFormatError as e:
        raise ShiftError(str(e)) from e

    if db.session.query(ShiftOpening).filter_by(shift_id=shift_id, pack_id=pack_id).first():
        raise ShiftError(f"Opening already recorded for pack {pack.pack_number} in this shift")

    opening = ShiftOpening(shift_id=shift_id, pack_id=pack_id, opening_serial=opening_serial)
    db.session.add(opening)
    db.session.commit()
    return opening


def latest_opening_serial(shift_id: int, pack_id: int, since=None) -> str | None:
    """Newest opening for (shift, pack), optionally only those recorded after since."""
    query = db.session.query(ShiftOpening).filter_by(shift_id=shift_id, pack_id=pack_id)
    if since is not None:
        query = query.filter(ShiftOpening.created_at > since)
    opening = query.order_by(ShiftOpening.created_at.desc(), ShiftOpening.id.desc()).first()
    return opening.opening_serial if opening else None


def existing_closings(shift_id: int, pack_ids) -> list[ShiftClosing]:
    pack_ids = list(pack_ids)
    if not pack_ids:
        return []
    return db.session.query(ShiftClosing).filter(
        ShiftClosing.shift_id == shift_id,
        ShiftClosing.pack_id.in_(pack_ids),
    ).all()


def shift_summary(shift: Shift) -> dict:
    """Shift as listed in SHIFTS_STILL_OPEN details."""
    return {
        "shift_id": shift.id,
        "terminal_name": shift.terminal.name if shift.terminal else None,
        "cashier_name": shift.cashier.name if shift.cashier else None,
        "status": shift.status.value,
        "opened_at": to_utc_z(shift.opened_at),
    }
