from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .enums import EntryMethod, ShiftStatus, enum_column_type


def _money(value):
    return float(value) if value is not None else None


class Terminal(db.Model):
    """
    Physical POS terminal in a store.

    Terminals are persistent (deactivated, never deleted) so historical
    shifts keep their terminal name.
    """
    __tablename__ = "terminals"
    __table_args__ = (
        db.UniqueConstraint("store_id", "terminal_number", name="uq_terminals_store_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    terminal_number = db.Column(db.String(32), nullable=False)
    name = db.Column(db.String(128), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    store = db.relationship("Store", backref=db.backref("terminals", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "terminal_number": self.terminal_number,
            "name": self.name,
            "is_active": self.is_active,
        }


class Cashier(db.Model):
    """Store employee who works shifts (PIN login lives outside this service)."""
    __tablename__ = "cashiers"
    __table_args__ = (
        db.UniqueConstraint("store_id", "employee_id", name="uq_cashiers_store_employee"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    employee_id = db.Column(db.String(32), nullable=False)
    name = db.Column(db.String(128), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    store = db.relationship("Store", backref=db.backref("cashiers", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "employee_id": self.employee_id,
            "name": self.name,
            "is_active": self.is_active,
        }


class Shift(db.Model):
    """
    One cashier's working session at a store.

    LIFECYCLE:
    - NOT_STARTED: created ahead of time, not yet counting
    - OPEN: drawer counted in, cashier may scan packs
    - ACTIVE: first transaction processed
    - CLOSED: drawer counted out; immutable afterwards

    Several shifts may exist per store per day (sequential cashiers).
    Normally only one is OPEN at a time, but day close checks for any
    OPEN or ACTIVE shift.
    """
    __tablename__ = "shifts"
    __table_args__ = (
        db.Index("ix_shifts_store_status", "store_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    cashier_id = db.Column(db.Integer, db.ForeignKey("cashiers.id"), nullable=False, index=True)
    terminal_id = db.Column(db.Integer, db.ForeignKey("terminals.id"), nullable=True, index=True)
    opened_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    status = db.Column(enum_column_type(ShiftStatus, db), nullable=False, default=ShiftStatus.OPEN, index=True)

    opening_cash = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    closing_cash = db.Column(db.Numeric(12, 2), nullable=True)

    opened_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    store = db.relationship("Store", backref=db.backref("shifts", lazy=True))
    cashier = db.relationship("Cashier", backref=db.backref("shifts", lazy=True))
    terminal = db.relationship("Terminal", backref=db.backref("shifts", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "cashier_id": self.cashier_id,
            "terminal_id": self.terminal_id,
            "opened_by": self.opened_by,
            "status": self.status.value,
            "opening_cash": _money(self.opening_cash),
            "closing_cash": _money(self.closing_cash),
            "opened_at": to_utc_z(self.opened_at),
            "closed_at": to_utc_z(self.closed_at),
        }


class ShiftOpening(db.Model):
    """Serial observed on a pack when a shift starts scanning it."""
    __tablename__ = "shift_openings"
    __table_args__ = (
        db.UniqueConstraint("shift_id", "pack_id", name="uq_shift_openings_shift_pack"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("shifts.id"), nullable=False, index=True)
    pack_id = db.Column(db.Integer, db.ForeignKey("lottery_packs.id"), nullable=False, index=True)
    opening_serial = db.Column(db.String(3), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    shift = db.relationship("Shift", backref=db.backref("openings", lazy=True))
    pack = db.relationship("LotteryPack")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shift_id": self.shift_id,
            "pack_id": self.pack_id,
            "opening_serial": self.opening_serial,
            "created_at": to_utc_z(self.created_at),
        }


class ShiftClosing(db.Model):
    """
    Serial observed on a pack at shift or day close.

    Rows are written once and never updated: a second closing for the same
    (shift, pack) violates uq_shift_closings_shift_pack.

    cashier_id is copied from the shift when the row is written so reports
    can filter by cashier without joining through shifts. It is a cached
    value, not the source of truth; Shift.cashier_id is. A shift's cashier
    does not change once the shift exists, so the two cannot diverge.
    """
    __tablename__ = "shift_closings"
    __table_args__ = (
        db.UniqueConstraint("shift_id", "pack_id", name="uq_shift_closings_shift_pack"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("shifts.id"), nullable=False, index=True)
    pack_id = db.Column(db.Integer, db.ForeignKey("lottery_packs.id"), nullable=False, index=True)
    cashier_id = db.Column(db.Integer, db.ForeignKey("cashiers.id"), nullable=False, index=True)
    closed_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    closing_serial = db.Column(db.String(3), nullable=False)
    entry_method = db.Column(enum_column_type(EntryMethod, db), nullable=False, default=EntryMethod.SCAN)
    is_sold_out = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    shift = db.relationship("Shift", backref=db.backref("closings", lazy=True))
    pack = db.relationship("LotteryPack")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shift_id": self.shift_id,
            "pack_id": self.pack_id,
            "cashier_id": self.cashier_id,
            "closed_by": self.closed_by,
            "closing_serial": self.closing_serial,
            "entry_method": self.entry_method.value,
            "is_sold_out": self.is_sold_out,
            "created_at": to_utc_z(self.created_at),
        }
