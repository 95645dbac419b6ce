# Overview: Read models derived from the business-day ledger.

"""
Business Period Tracker

The open business period of a store runs from its last closed business day
to now. It is never stored: everything here is derived from
LotteryBusinessDay / LotteryDayPack rows, so there is a single source of
truth for "when did this store last close".

LABELS:
- "All Time": the store has never closed a day
- "Today": last close was today or yesterday
- "Current Period": more than one day since last close
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from ..extensions import db
from ..models import (
    BusinessDayStatus,
    LotteryBusinessDay,
    LotteryDayPack,
    LotteryGame,
    LotteryPack,
    PackStatus,
    Shift,
    ShiftClosing,
    Store,
)
from ..time_utils import business_date_for, to_utc_z
from . import lottery_service, shift_service
from .store_service import store_timezone


@dataclass
class BusinessPeriod:
    started_at: datetime | None
    last_closed_date: date | None
    days_since_last_close: int | None
    is_first_period: bool

    def to_dict(self) -> dict:
        return {
            "started_at": to_utc_z(self.started_at),
            "last_closed_date": self.last_closed_date.isoformat() if self.last_closed_date else None,
            "days_since_last_close": self.days_since_last_close,
            "is_first_period": self.is_first_period,
        }


def _store(store_id: int) -> Store:
    store = db.session.query(Store).filter_by(id=store_id).first()
    if not store:
        raise ValueError(f"Store {store_id} not found")
    return store


def store_today(store_id: int) -> date:
    """Business date for the store right now, in the store's timezone."""
    return business_date_for(store_timezone(_store(store_id)))


def last_closed_day(store_id: int) -> LotteryBusinessDay | None:
    return db.session.query(LotteryBusinessDay).filter_by(
        store_id=store_id,
        status=BusinessDayStatus.CLOSED,
    ).order_by(
        LotteryBusinessDay.closed_at.desc(),
        LotteryBusinessDay.business_date.desc(),
    ).first()


def carried_ending_serial(store_id: int, pack_id: int) -> str | None:
    """ending_serial recorded for the pack by the most recent closed day."""
    row = (
        db.session.query(LotteryDayPack.ending_serial)
        .join(LotteryBusinessDay, LotteryBusinessDay.id == LotteryDayPack.day_id)
        .filter(
            LotteryBusinessDay.store_id == store_id,
            LotteryBusinessDay.status == BusinessDayStatus.CLOSED,
            LotteryDayPack.pack_id == pack_id,
            LotteryDayPack.ending_serial.isnot(None),
        )
        .order_by(LotteryBusinessDay.closed_at.desc(), LotteryDayPack.id.desc())
        .first()
    )
    return row[0] if row else None


def get_open_business_period(store_id: int, today: date | None = None) -> BusinessPeriod:
    """
    The store's current accounting window.

    started_at is the last close (or store creation for the first period).
    days_since_last_close counts calendar days in the store's timezone.
    """
    store = _store(store_id)
    today = today or business_date_for(store_timezone(store))

    last = last_closed_day(store_id)
    if last is None:
        return BusinessPeriod(
            started_at=store.created_at,
            last_closed_date=None,
            days_since_last_close=None,
            is_first_period=True,
        )

    return BusinessPeriod(
        started_at=last.closed_at,
        last_closed_date=last.business_date,
        days_since_last_close=max(0, (today - last.business_date).days),
        is_first_period=False,
    )


def period_label(period: BusinessPeriod) -> str:
    if period.is_first_period:
        return "All Time"
    if (period.days_since_last_close or 0) > 1:
        return "Current Period"
    return "Today"


def get_activated_packs(store_id: int, today: date | None = None) -> dict:
    """Packs activated during the open period, newest first."""
    period = get_open_business_period(store_id, today=today)

    query = (
        db.session.query(LotteryPack, LotteryGame)
        .join(LotteryGame, LotteryGame.id == LotteryPack.game_id)
        .filter(
            LotteryPack.store_id == store_id,
            LotteryPack.activated_at.isnot(None),
        )
    )
    if not period.is_first_period:
        query = query.filter(LotteryPack.activated_at > period.started_at)

    packs = []
    for pack, game in query.order_by(LotteryPack.activated_at.desc(), LotteryPack.id.desc()).all():
        packs.append({
            "pack_id": pack.id,
            "pack_number": pack.pack_number,
            "game_name": game.name,
            "game_price": float(game.price),
            "bin_number": pack.current_bin.bin_number if pack.current_bin else None,
            "status": pack.status.value,
            "activated_at": to_utc_z(pack.activated_at),
        })

    return {
        "period": period.to_dict(),
        "label": period_label(period),
        "packs": packs,
    }


def starting_serial_for(store_id: int, pack: LotteryPack, shift: Shift | None) -> str:
    """
    Serial the pack's open period starts from.

    Latest opening the closing shift recorded since the last close, else
    the ending serial of the last closed day, else the first serial of the
    pack. The day-bins view and the day close both read it from here.
    """
    if shift is not None:
        last = last_closed_day(store_id)
        opening = shift_service.latest_opening_serial(shift.id, pack.id, since=last.closed_at if last else None)
        if opening is not None:
            return opening
    return carried_ending_serial(store_id, pack.id) or pack.serial_start


def _latest_closing_since(pack_id: int, since: datetime | None) -> str | None:
    query = db.session.query(ShiftClosing).filter(ShiftClosing.pack_id == pack_id)
    if since is not None:
        query = query.filter(ShiftClosing.created_at > since)
    closing = query.order_by(ShiftClosing.created_at.desc(), ShiftClosing.id.desc()).first()
    return closing.closing_serial if closing else None


def get_day_bins(store_id: int, current_shift_id: int | None = None) -> dict:
    """
    Every active bin of the store with the pack it holds.

    starting_serial: see starting_serial_for, with the shift a day close
    submitted by current_shift_id would attribute its closings to.
    ending_serial: newest closing recorded after the last close, else None.
    A day close therefore leaves every bin at "starting = what was just
    closed, ending = None".
    """
    today = store_today(store_id)
    last = last_closed_day(store_id)
    since = last.closed_at if last else None
    shift = shift_service.resolve_closing_shift(store_id, current_shift_id)

    occupants = {
        lottery_bin.id: pack for lottery_bin, pack in lottery_service.get_active_bin_packs(store_id)
    }

    bins = []
    for lottery_bin in lottery_service.list_bins(store_id):
        pack = occupants.get(lottery_bin.id)
        entry = {
            "bin_id": lottery_bin.id,
            "bin_number": lottery_bin.bin_number,
            "name": lottery_bin.name,
            "display_order": lottery_bin.display_order,
            "pack_id": None,
            "pack_number": None,
            "game_name": None,
            "game_price": None,
            "serial_start": None,
            "serial_end": None,
            "starting_serial": None,
            "ending_serial": None,
        }
        if pack is not None:
            entry.update({
                "pack_id": pack.id,
                "pack_number": pack.pack_number,
                "game_name": pack.game.name,
                "game_price": float(pack.game.price),
                "serial_start": pack.serial_start,
                "serial_end": pack.serial_end,
                "starting_serial": starting_serial_for(store_id, pack, shift),
                "ending_serial": _latest_closing_since(pack.id, since),
            })
        bins.append(entry)

    depleted_query = db.session.query(LotteryPack).filter(
        LotteryPack.store_id == store_id,
        LotteryPack.status == PackStatus.DEPLETED,
    )
    if since is not None:
        depleted_query = depleted_query.filter(LotteryPack.depleted_at > since)
    depleted_packs = [
        {
            "pack_id": pack.id,
            "pack_number": pack.pack_number,
            "game_name": pack.game.name,
            "serial_end": pack.serial_end,
            "depleted_at": to_utc_z(pack.depleted_at),
        }
        for pack in depleted_query.order_by(LotteryPack.depleted_at.desc()).all()
    ]

    return {
        "business_date": today.isoformat(),
        "bins": bins,
        "depleted_packs": depleted_packs,
    }
