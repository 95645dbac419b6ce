# Overview: Day-close reconciliation for a store's lottery bins.

"""
Day-Close Service

WHY: At the end of a business day every active pack in every active bin is
read once more. The reading (closing serial) against the reading the
period started from gives tickets sold; together they become the permanent
LotteryDayPack ledger and the next period's starting point.

VALIDATION ORDER (first failure wins, nothing is written):
0. Request shape                           VALIDATION_ERROR
1. No other OPEN/ACTIVE shift              SHIFTS_STILL_OPEN
2. Packs exist and belong to the store     INVALID_PACKS
3. Submission covers exactly the packs     MISSING_PACKS / INVALID_PACKS /
   in active bins, once each, not closed   CLOSINGS_ALREADY_EXIST
   already
4. starting <= closing <= serial_end       VALIDATION_ERROR

EFFECTS (single transaction):
- Today's LotteryBusinessDay is created if needed and moved to CLOSED
- One ShiftClosing and one LotteryDayPack per submitted pack
- Packs closed at serial_end become DEPLETED and leave their bin

Sales for a closing are closing - starting (serial_delta): the starting
serial is the next unsold ticket, so an unchanged reading is zero sales.
A closing flagged is_sold_out must sit at serial_end and is counted
inclusively (tickets_sold): the pack went through its last ticket, so
serial_end itself was sold. See unscanned_bins.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import (
    BusinessDayStatus,
    EntryMethod,
    LotteryBin,
    LotteryBusinessDay,
    LotteryDayPack,
    LotteryPack,
    Shift,
    ShiftClosing,
    Store,
)
from ..time_utils import business_date_for, to_utc_z, utcnow
from . import lottery_service, serials, shift_service
from .business_period_service import starting_serial_for
from .concurrency import lock_for_update, run_with_retry
from .store_service import store_timezone

logger = logging.getLogger(__name__)

SHIFTS_STILL_OPEN = "SHIFTS_STILL_OPEN"
INVALID_PACKS = "INVALID_PACKS"
MISSING_PACKS = "MISSING_PACKS"
CLOSINGS_ALREADY_EXIST = "CLOSINGS_ALREADY_EXIST"
VALIDATION_ERROR = "VALIDATION_ERROR"


class DayCloseError(Exception):
    """Rejected day close. code is one of the module-level error codes."""

    def __init__(self, code: str, message: str, details: dict | None = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details


@dataclass(frozen=True)
class DayCloseContext:
    """Who is closing which store, passed explicitly into every call."""
    store_id: int
    user_id: int | None
    current_shift_id: int | None = None


@dataclass(frozen=True)
class ClosingInput:
    pack_id: int
    closing_serial: str
    entry_method: EntryMethod = EntryMethod.SCAN
    is_sold_out: bool = False


@dataclass
class ClosedBin:
    bin_id: int
    bin_number: int
    pack_id: int
    pack_number: str
    game_name: str
    game_price: Decimal
    starting_serial: str
    closing_serial: str
    tickets_sold: int
    sales_amount: Decimal
    entry_method: EntryMethod
    depleted: bool
    is_sold_out: bool = False

    def to_dict(self) -> dict:
        return {
            "bin_id": self.bin_id,
            "bin_number": self.bin_number,
            "pack_id": self.pack_id,
            "pack_number": self.pack_number,
            "game_name": self.game_name,
            "game_price": float(self.game_price),
            "starting_serial": self.starting_serial,
            "closing_serial": self.closing_serial,
            "tickets_sold": self.tickets_sold,
            "sales_amount": float(self.sales_amount),
            "entry_method": self.entry_method.value,
            "depleted": self.depleted,
            "is_sold_out": self.is_sold_out,
        }


@dataclass
class DayCloseResult:
    business_day: date
    closings_created: int
    day_closed: bool
    bins_closed: list[ClosedBin] = field(default_factory=list)

    @property
    def lottery_total(self) -> Decimal:
        return sum((b.sales_amount for b in self.bins_closed), Decimal("0.00"))

    def to_dict(self) -> dict:
        return {
            "success": True,
            "closings_created": self.closings_created,
            "business_day": self.business_day.isoformat(),
            "bins_closed": [b.to_dict() for b in self.bins_closed],
            "day_closed": self.day_closed,
            "lottery_total": float(self.lottery_total),
        }


# =============================================================================
# REQUEST PARSING
# =============================================================================

def _parse_entry_method(value, where: str) -> EntryMethod:
    try:
        return EntryMethod.parse(value)
    except ValueError as e:
        raise DayCloseError(VALIDATION_ERROR, str(e), {"field": where}) from None


def _parse_pack_id(value, index: int) -> int:
    if isinstance(value, bool):
        value = None
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int):
        raise DayCloseError(
            VALIDATION_ERROR,
            "pack_id must be an integer",
            {"index": index, "field": "pack_id"},
        )
    return value


def parse_closings(raw_closings, entry_method="SCAN") -> list[ClosingInput]:
    """
    Turn request JSON into ClosingInput items.

    Each item may override the request-level entry_method. Serial format is
    not checked here; that happens with the range checks.
    """
    default_method = _parse_entry_method(entry_method or EntryMethod.SCAN, "entry_method")
    if raw_closings is None:
        raw_closings = []
    if not isinstance(raw_closings, list):
        raise DayCloseError(VALIDATION_ERROR, "closings must be a list", {"field": "closings"})

    parsed = []
    for index, item in enumerate(raw_closings):
        if isinstance(item, ClosingInput):
            parsed.append(item)
            continue
        if not isinstance(item, dict):
            raise DayCloseError(VALIDATION_ERROR, "Each closing must be an object", {"index": index})

        closing_serial = item.get("closing_serial")
        if not isinstance(closing_serial, str):
            raise DayCloseError(
                VALIDATION_ERROR,
                "closing_serial must be a string",
                {"index": index, "field": "closing_serial"},
            )

        is_sold_out = item.get("is_sold_out", False)
        if not isinstance(is_sold_out, bool):
            raise DayCloseError(
                VALIDATION_ERROR,
                "is_sold_out must be a boolean",
                {"index": index, "field": "is_sold_out"},
            )

        method = default_method
        if item.get("entry_method") is not None:
            method = _parse_entry_method(item["entry_method"], f"closings[{index}].entry_method")

        parsed.append(ClosingInput(
            pack_id=_parse_pack_id(item.get("pack_id"), index),
            closing_serial=closing_serial,
            entry_method=method,
            is_sold_out=is_sold_out,
        ))
    return parsed


# =============================================================================
# VALIDATION
# =============================================================================

def _get_store(store_id: int) -> Store:
    store = db.session.query(Store).filter_by(id=store_id).first()
    if not store:
        raise DayCloseError(VALIDATION_ERROR, "Store not found", {"store_id": store_id})
    return store


def _check_open_shifts(context: DayCloseContext) -> None:
    open_shifts = shift_service.list_open_shifts(context.store_id, exclude_shift_id=context.current_shift_id)
    if open_shifts:
        raise DayCloseError(
            SHIFTS_STILL_OPEN,
            f"{len(open_shifts)} shift(s) must be closed before the day can be closed",
            {"open_shifts": [shift_service.shift_summary(s) for s in open_shifts]},
        )


def _check_pack_ownership(store_id: int, pack_ids: set[int]) -> None:
    if not pack_ids:
        return
    found = {
        row[0]
        for row in db.session.query(LotteryPack.id).filter(
            LotteryPack.id.in_(pack_ids),
            LotteryPack.store_id == store_id,
        ).all()
    }
    invalid = sorted(pack_ids - found)
    if invalid:
        raise DayCloseError(
            INVALID_PACKS,
            "Some packs do not exist or belong to another store",
            {"invalid_pack_ids": invalid},
        )


def _check_completeness(
    context: DayCloseContext,
    closings: list[ClosingInput],
    today: date,
) -> tuple[Shift | None, dict[int, tuple[LotteryBin, LotteryPack]]]:
    counts = Counter(c.pack_id for c in closings)
    duplicates = sorted(pack_id for pack_id, n in counts.items() if n > 1)
    if duplicates:
        raise DayCloseError(
            CLOSINGS_ALREADY_EXIST,
            "Each pack can only be closed once per submission",
            {"duplicate_pack_ids": duplicates},
        )

    active = {pack.id: (lottery_bin, pack) for lottery_bin, pack in lottery_service.get_active_bin_packs(context.store_id)}

    missing = [active[pack_id] for pack_id in active if pack_id not in counts]
    if missing:
        raise DayCloseError(
            MISSING_PACKS,
            f"All active bins require a closing serial; {len(missing)} bin(s) missing",
            {
                "missing": [
                    {
                        "bin_id": lottery_bin.id,
                        "bin_number": lottery_bin.bin_number,
                        "pack_id": pack.id,
                        "pack_number": pack.pack_number,
                    }
                    for lottery_bin, pack in missing
                ]
            },
        )

    not_in_bins = sorted(pack_id for pack_id in counts if pack_id not in active)
    if not_in_bins:
        raise DayCloseError(
            INVALID_PACKS,
            "Some packs are not active in an active bin",
            {"invalid_pack_ids": not_in_bins},
        )

    try:
        shift = shift_service.resolve_closing_shift(context.store_id, context.current_shift_id)
    except shift_service.ShiftError as e:
        raise DayCloseError(VALIDATION_ERROR, str(e), {"current_shift_id": context.current_shift_id}) from e

    if shift is not None:
        already = shift_service.existing_closings(shift.id, counts.keys())
        if already:
            raise DayCloseError(
                CLOSINGS_ALREADY_EXIST,
                "Closings already recorded for this shift",
                {"shift_id": shift.id, "pack_ids": sorted(c.pack_id for c in already)},
            )

    day = db.session.query(LotteryBusinessDay).filter_by(
        store_id=context.store_id,
        business_date=today,
    ).first()
    if day is not None and day.status == BusinessDayStatus.CLOSED:
        raise DayCloseError(
            CLOSINGS_ALREADY_EXIST,
            f"Business day {today.isoformat()} is already closed",
            {"business_day": today.isoformat(), "closed_at": to_utc_z(day.closed_at)},
        )

    return shift, active


def _plan(context: DayCloseContext, closings: list[ClosingInput], today: date) -> tuple[Shift | None, list[ClosedBin]]:
    _check_open_shifts(context)
    _check_pack_ownership(context.store_id, {c.pack_id for c in closings})
    shift, active = _check_completeness(context, closings, today)

    if closings and shift is None:
        raise DayCloseError(VALIDATION_ERROR, "No shift found to attribute closings to")

    planned = []
    errors = []
    for closing in closings:
        lottery_bin, pack = active[closing.pack_id]
        starting = starting_serial_for(context.store_id, pack, shift)
        problem = {
            "pack_id": pack.id,
            "pack_number": pack.pack_number,
            "closing_serial": closing.closing_serial,
            "starting_serial": starting,
            "serial_end": pack.serial_end,
        }

        if not serials.is_valid_serial(closing.closing_serial):
            errors.append(dict(problem, reason=f"closing_serial must be exactly {serials.SERIAL_WIDTH} digits"))
            continue
        closing_value = serials.to_int(closing.closing_serial)
        if closing_value < serials.to_int(starting):
            errors.append(dict(problem, reason="closing_serial is before the starting serial"))
            continue
        if closing_value > serials.to_int(pack.serial_end):
            errors.append(dict(problem, reason="closing_serial is past the end of the pack"))
            continue
        if closing.is_sold_out and closing.closing_serial != pack.serial_end:
            errors.append(dict(problem, reason="a sold out pack must close at serial_end"))
            continue

        if closing.is_sold_out:
            tickets = serials.tickets_sold(starting, closing.closing_serial)
        else:
            tickets = serials.serial_delta(starting, closing.closing_serial)
        planned.append(ClosedBin(
            bin_id=lottery_bin.id,
            bin_number=lottery_bin.bin_number,
            pack_id=pack.id,
            pack_number=pack.pack_number,
            game_name=pack.game.name,
            game_price=pack.game.price,
            starting_serial=starting,
            closing_serial=closing.closing_serial,
            tickets_sold=tickets,
            sales_amount=serials.sales_amount(tickets, pack.game.price),
            entry_method=closing.entry_method,
            depleted=closing_value == serials.to_int(pack.serial_end),
            is_sold_out=closing.is_sold_out,
        ))

    if errors:
        raise DayCloseError(
            VALIDATION_ERROR,
            f"{len(errors)} closing serial(s) are invalid",
            {"errors": errors},
        )

    planned.sort(key=lambda b: (b.bin_number, b.bin_id))
    return shift, planned


# =============================================================================
# PUBLIC OPERATIONS
# =============================================================================

def preview_close(context: DayCloseContext, closings, entry_method="SCAN") -> DayCloseResult:
    """
    Run every day-close check and report what would be closed.

    Nothing is written; closings_created is 0 and day_closed False.
    """
    closings = parse_closings(closings, entry_method)
    store = _get_store(context.store_id)
    today = business_date_for(store_timezone(store))

    _, planned = _plan(context, closings, today)
    db.session.rollback()
    return DayCloseResult(business_day=today, closings_created=0, day_closed=False, bins_closed=planned)


def close_day(context: DayCloseContext, closings, entry_method="SCAN") -> DayCloseResult:
    """
    Validate and commit a full-store day close.

    Raises DayCloseError; on any error nothing is written. A uniqueness
    violation from a concurrent close of the same shift or day surfaces as
    CLOSINGS_ALREADY_EXIST.
    """
    closings = parse_closings(closings, entry_method)
    store = _get_store(context.store_id)
    today = business_date_for(store_timezone(store))

    def _op():
        shift, planned = _plan(context, closings, today)
        now = utcnow()

        day = lock_for_update(
            db.session.query(LotteryBusinessDay).filter_by(store_id=context.store_id, business_date=today)
        ).first()
        if day is None:
            day = LotteryBusinessDay(
                store_id=context.store_id,
                business_date=today,
                status=BusinessDayStatus.OPEN,
                opened_by=context.user_id,
                opened_at=now,
            )
            db.session.add(day)
            db.session.flush()

        for closed in planned:
            db.session.add(ShiftClosing(
                shift_id=shift.id,
                pack_id=closed.pack_id,
                cashier_id=shift.cashier_id,
                closed_by=context.user_id,
                closing_serial=closed.closing_serial,
                entry_method=closed.entry_method,
                is_sold_out=closed.is_sold_out,
                created_at=now,
            ))
            db.session.add(LotteryDayPack(
                day_id=day.id,
                pack_id=closed.pack_id,
                bin_id=closed.bin_id,
                starting_serial=closed.starting_serial,
                ending_serial=closed.closing_serial,
                tickets_sold=closed.tickets_sold,
                sales_amount=closed.sales_amount,
                entry_method=closed.entry_method,
                is_sold_out=closed.is_sold_out,
                created_at=now,
            ))
            if closed.depleted:
                pack = db.session.get(LotteryPack, closed.pack_id)
                lottery_service.mark_depleted(pack, context.user_id, at=now)

        day.status = BusinessDayStatus.CLOSED
        day.closed_by = context.user_id
        day.closed_at = now
        db.session.commit()

        return DayCloseResult(
            business_day=today,
            closings_created=len(planned),
            day_closed=True,
            bins_closed=planned,
        )

    try:
        result = run_with_retry(_op)
    except DayCloseError:
        db.session.rollback()
        raise
    except IntegrityError as e:
        db.session.rollback()
        logger.warning("Day close for store %s hit a uniqueness violation: %s", context.store_id, e.orig)
        raise DayCloseError(
            CLOSINGS_ALREADY_EXIST,
            "Closings were recorded concurrently for this shift or day",
            {"business_day": today.isoformat()},
        ) from e

    logger.info(
        "Day %s closed for store %s: %d closing(s), total %s",
        today.isoformat(), context.store_id, result.closings_created, result.lottery_total,
    )
    return result


def get_day_status(store_id: int) -> LotteryBusinessDay | None:
    """Today's business day row for the store, if a close has started one."""
    store = _get_store(store_id)
    today = business_date_for(store_timezone(store))
    return db.session.query(LotteryBusinessDay).filter_by(store_id=store_id, business_date=today).first()
