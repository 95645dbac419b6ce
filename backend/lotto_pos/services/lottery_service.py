# Overview: Games, bins and pack lifecycle for store lottery inventory.

"""
Lottery Inventory Service

LIFECYCLE of a pack:
    RECEIVED -> ACTIVE (placed in a bin) -> DEPLETED | RETURNED

A bin holds at most one pack; the link lives on the pack
(LotteryPack.current_bin_id) and is cleared when the pack leaves the bin.
Bins are soft-deleted and cannot be deactivated while holding a pack.
"""

from __future__ import annotations

import logging

from ..extensions import db
from ..models import GameStatus, LotteryBin, LotteryGame, LotteryPack, PackStatus
from ..time_utils import utcnow
from . import serials
from .concurrency import lock_for_update, run_with_retry

logger = logging.getLogger(__name__)


class LotteryError(Exception):
    """Raised for inventory operations that violate pack/bin rules."""
    pass


# =============================================================================
# GAMES AND BINS
# =============================================================================

def create_game(
    game_code: str,
    name: str,
    price,
    *,
    store_id: int | None = None,
    pack_value=None,
) -> LotteryGame:
    """Create a game. store_id=None makes it a state-level game."""
    if not game_code or not name:
        raise LotteryError("game_code and name are required")
    try:
        price = serials.to_decimal(price)
        if pack_value is not None:
            pack_value = serials.to_decimal(pack_value)
    except (ArithmeticError, TypeError, ValueError):
        raise LotteryError("price and pack_value must be decimal amounts") from None
    if price <= 0:
        raise LotteryError("price must be positive")

    game = LotteryGame(
        store_id=store_id,
        game_code=game_code,
        name=name,
        price=price,
        pack_value=pack_value,
        status=GameStatus.ACTIVE,
    )
    db.session.add(game)
    db.session.commit()
    return game


def get_game_for_store(game_id: int, store_id: int) -> LotteryGame | None:
    """A game usable by the store: its own or a state-level one."""
    return db.session.query(LotteryGame).filter(
        LotteryGame.id == game_id,
        db.or_(LotteryGame.store_id == store_id, LotteryGame.store_id.is_(None)),
    ).first()


def create_bin(store_id: int, name: str | None = None, display_order: int | None = None) -> LotteryBin:
    """
    Create a bin. Without display_order the bin goes after the last one.

    display_order is 0-based; the bin's user-facing number is one higher.
    """
    def _op():
        order = display_order
        if order is None:
            current_max = db.session.query(db.func.max(LotteryBin.display_order)).filter(
                LotteryBin.store_id == store_id,
                LotteryBin.is_active.is_(True),
            ).scalar()
            order = 0 if current_max is None else current_max + 1
        if order < 0:
            raise LotteryError("display_order must be >= 0")

        lottery_bin = LotteryBin(
            store_id=store_id,
            name=name or f"Bin {order + 1}",
            display_order=order,
            is_active=True,
        )
        db.session.add(lottery_bin)
        db.session.commit()
        return lottery_bin

    return run_with_retry(_op)


def deactivate_bin(bin_id: int, store_id: int) -> LotteryBin:
    """Soft delete. Refused while an ACTIVE pack sits in the bin."""
    lottery_bin = lock_for_update(
        db.session.query(LotteryBin).filter_by(id=bin_id, store_id=store_id)
    ).first()
    if not lottery_bin:
        raise LotteryError("Bin not found")

    occupant = db.session.query(LotteryPack).filter_by(
        current_bin_id=bin_id,
        status=PackStatus.ACTIVE,
    ).first()
    if occupant:
        raise LotteryError(f"Bin holds active pack {occupant.pack_number}; return or deplete it first")

    lottery_bin.is_active = False
    db.session.commit()
    return lottery_bin


def list_bins(store_id: int) -> list[LotteryBin]:
    return db.session.query(LotteryBin).filter_by(
        store_id=store_id,
        is_active=True,
    ).order_by(LotteryBin.display_order.asc(), LotteryBin.id.asc()).all()


# =============================================================================
# PACK LIFECYCLE
# =============================================================================

def receive_pack(
    store_id: int,
    game_id: int,
    pack_number: str,
    serial_start: str = "000",
    serial_end: str = "149",
) -> LotteryPack:
    """
    Record a pack delivered to the store (status RECEIVED).

    Raises LotteryError for unknown or inactive games, malformed or inverted
    serial ranges, and pack numbers already received by the store.
    """
    game = get_game_for_store(game_id, store_id)
    if not game:
        raise LotteryError("Game not found")
    if game.status != GameStatus.ACTIVE:
        raise LotteryError("Game is not active")

    try:
        if serials.to_int(serial_start) > serials.to_int(serial_end):
            raise LotteryError("serial_start must not be after serial_end")
    except serials.SerialFormatError as e:
        raise LotteryError(str(e)) from e

    if not pack_number:
        raise LotteryError("pack_number is required")
    existing = db.session.query(LotteryPack).filter_by(store_id=store_id, pack_number=pack_number).first()
    if existing:
        raise LotteryError(f"Pack {pack_number} already received")

    pack = LotteryPack(
        game_id=game.id,
        store_id=store_id,
        pack_number=pack_number,
        serial_start=serial_start,
        serial_end=serial_end,
        status=PackStatus.RECEIVED,
        received_at=utcnow(),
    )
    db.session.add(pack)
    db.session.commit()
    return pack


def activate_pack(pack_id: int, bin_id: int, store_id: int, user_id: int | None = None) -> LotteryPack:
    """
    Put a RECEIVED pack on sale in an active, empty bin.
    """
    def _op():
        pack = lock_for_update(
            db.session.query(LotteryPack).filter_by(id=pack_id, store_id=store_id)
        ).first()
        if not pack:
            raise LotteryError("Pack not found")
        if pack.status != PackStatus.RECEIVED:
            raise LotteryError(f"Only RECEIVED packs can be activated (pack is {pack.status.value})")

        lottery_bin = db.session.query(LotteryBin).filter_by(id=bin_id, store_id=store_id).first()
        if not lottery_bin or not lottery_bin.is_active:
            raise LotteryError("Bin not found or inactive")

        occupant = db.session.query(LotteryPack).filter_by(
            current_bin_id=bin_id,
            status=PackStatus.ACTIVE,
        ).first()
        if occupant:
            raise LotteryError(f"Bin {lottery_bin.bin_number} already holds pack {occupant.pack_number}")

        pack.status = PackStatus.ACTIVE
        pack.current_bin_id = bin_id
        pack.activated_at = utcnow()
        pack.activated_by = user_id
        db.session.commit()

        logger.info("Pack %s activated in bin %s (store %s)", pack.pack_number, lottery_bin.bin_number, store_id)
        return pack

    return run_with_retry(_op)


def return_pack(pack_id: int, store_id: int) -> LotteryPack:
    """Send a RECEIVED or ACTIVE pack back to the lottery; frees its bin."""
    pack = lock_for_update(
        db.session.query(LotteryPack).filter_by(id=pack_id, store_id=store_id)
    ).first()
    if not pack:
        raise LotteryError("Pack not found")
    if pack.status not in (PackStatus.RECEIVED, PackStatus.ACTIVE):
        raise LotteryError(f"Pack is already {pack.status.value}")

    pack.status = PackStatus.RETURNED
    pack.returned_at = utcnow()
    pack.current_bin_id = None
    db.session.commit()
    return pack


def mark_depleted(pack: LotteryPack, user_id: int | None = None, at=None) -> None:
    """
    Flag an ACTIVE pack sold out and take it out of its bin.

    Does not commit; callers own the transaction.
    """
    pack.status = PackStatus.DEPLETED
    pack.depleted_at = at or utcnow()
    pack.depleted_by = user_id
    pack.current_bin_id = None
    logger.info("Pack %s depleted (store %s)", pack.pack_number, pack.store_id)


def deplete_pack(pack_id: int, store_id: int, user_id: int | None = None) -> LotteryPack:
    """Manual sold-out outside of a day close."""
    pack = lock_for_update(
        db.session.query(LotteryPack).filter_by(id=pack_id, store_id=store_id)
    ).first()
    if not pack:
        raise LotteryError("Pack not found")
    if pack.status != PackStatus.ACTIVE:
        raise LotteryError(f"Only ACTIVE packs can be depleted (pack is {pack.status.value})")

    mark_depleted(pack, user_id)
    db.session.commit()
    return pack


def get_active_bin_packs(store_id: int) -> list[tuple[LotteryBin, LotteryPack]]:
    """
    (bin, pack) for every ACTIVE pack sitting in an active bin of the store,
    ordered by display_order.

    This set is what a day close must cover exactly.
    """
    return (
        db.session.query(LotteryBin, LotteryPack)
        .join(LotteryPack, LotteryPack.current_bin_id == LotteryBin.id)
        .filter(
            LotteryBin.store_id == store_id,
            LotteryBin.is_active.is_(True),
            LotteryPack.store_id == store_id,
            LotteryPack.status == PackStatus.ACTIVE,
        )
        .order_by(LotteryBin.display_order.asc(), LotteryBin.id.asc())
        .all()
    )
