from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .enums import GameStatus, PackStatus, enum_column_type


class LotteryGame(db.Model):
    """
    Scratch-ticket product definition.

    store_id set: game defined by one store. store_id null: state-level game
    visible to every store. Price is per ticket.
    """
    __tablename__ = "lottery_games"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=True, index=True)
    game_code = db.Column(db.String(8), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    pack_value = db.Column(db.Numeric(10, 2), nullable=True)
    status = db.Column(enum_column_type(GameStatus, db), nullable=False, default=GameStatus.ACTIVE)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "game_code": self.game_code,
            "name": self.name,
            "price": float(self.price),
            "pack_value": float(self.pack_value) if self.pack_value is not None else None,
            "status": self.status.value,
        }


class LotteryBin(db.Model):
    """
    Physical display slot. Holds at most one pack, referenced from the
    pack side via LotteryPack.current_bin_id.

    display_order is 0-based; users see bin_number = display_order + 1.
    Bins are soft-deleted with is_active.
    """
    __tablename__ = "lottery_bins"
    __table_args__ = (
        db.Index("ix_lottery_bins_store_active", "store_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    name = db.Column(db.String(64), nullable=False)
    display_order = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    store = db.relationship("Store", backref=db.backref("lottery_bins", lazy=True))

    @property
    def bin_number(self) -> int:
        return self.display_order + 1

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "name": self.name,
            "display_order": self.display_order,
            "bin_number": self.bin_number,
            "is_active": self.is_active,
        }


class LotteryPack(db.Model):
    """
    A book of scratch tickets with a fixed inclusive serial range.

    LIFECYCLE:
    - RECEIVED: in the back office
    - ACTIVE: on sale in a bin
    - DEPLETED: sold out (closed at serial_end or marked sold out)
    - RETURNED: sent back to the lottery
    """
    __tablename__ = "lottery_packs"
    __table_args__ = (
        db.UniqueConstraint("store_id", "pack_number", name="uq_lottery_packs_store_number"),
        db.Index("ix_lottery_packs_store_status", "store_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey("lottery_games.id"), nullable=False, index=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    pack_number = db.Column(db.String(32), nullable=False)

    serial_start = db.Column(db.String(3), nullable=False)
    serial_end = db.Column(db.String(3), nullable=False)

    status = db.Column(enum_column_type(PackStatus, db), nullable=False, default=PackStatus.RECEIVED)
    current_bin_id = db.Column(db.Integer, db.ForeignKey("lottery_bins.id"), nullable=True, index=True)

    received_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    activated_at = db.Column(db.DateTime(timezone=True), nullable=True)
    activated_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    depleted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    depleted_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    returned_at = db.Column(db.DateTime(timezone=True), nullable=True)

    game = db.relationship("LotteryGame", backref=db.backref("packs", lazy=True))
    current_bin = db.relationship("LotteryBin", backref=db.backref("packs", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "game_id": self.game_id,
            "store_id": self.store_id,
            "pack_number": self.pack_number,
            "serial_start": self.serial_start,
            "serial_end": self.serial_end,
            "status": self.status.value,
            "current_bin_id": self.current_bin_id,
            "received_at": to_utc_z(self.received_at),
            "activated_at": to_utc_z(self.activated_at),
            "depleted_at": to_utc_z(self.depleted_at),
            "returned_at": to_utc_z(self.returned_at),
        }
