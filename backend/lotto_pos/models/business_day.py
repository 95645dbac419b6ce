from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .enums import BusinessDayStatus, EntryMethod, enum_column_type


class LotteryBusinessDay(db.Model):
    """
    One trading day of lottery activity for a store.

    Created lazily by the first day close for (store, business_date) and
    moved OPEN -> CLOSED in the same transaction. business_date is the
    store-local date, never the UTC date.
    """
    __tablename__ = "lottery_business_days"
    __table_args__ = (
        db.UniqueConstraint("store_id", "business_date", name="uq_lottery_business_days_store_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    business_date = db.Column(db.Date, nullable=False, index=True)
    status = db.Column(enum_column_type(BusinessDayStatus, db), nullable=False, default=BusinessDayStatus.OPEN)

    opened_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    opened_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    closed_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)

    store = db.relationship("Store", backref=db.backref("lottery_business_days", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "business_date": self.business_date.isoformat(),
            "status": self.status.value,
            "opened_by": self.opened_by,
            "opened_at": to_utc_z(self.opened_at),
            "closed_by": self.closed_by,
            "closed_at": to_utc_z(self.closed_at),
        }


class LotteryDayPack(db.Model):
    """
    Permanent per-day ledger line for a pack closed during a business day.

    ending_serial of the most recent closed day is the next period's
    starting serial (carry-forward).
    """
    __tablename__ = "lottery_day_packs"
    __table_args__ = (
        db.UniqueConstraint("day_id", "pack_id", name="uq_lottery_day_packs_day_pack"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    day_id = db.Column(db.Integer, db.ForeignKey("lottery_business_days.id"), nullable=False, index=True)
    pack_id = db.Column(db.Integer, db.ForeignKey("lottery_packs.id"), nullable=False, index=True)
    bin_id = db.Column(db.Integer, db.ForeignKey("lottery_bins.id"), nullable=True)

    starting_serial = db.Column(db.String(3), nullable=False)
    ending_serial = db.Column(db.String(3), nullable=True)
    tickets_sold = db.Column(db.Integer, nullable=False, default=0)
    sales_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    entry_method = db.Column(enum_column_type(EntryMethod, db), nullable=True)
    # Closed through its last ticket; tickets_sold counts serial_end itself
    is_sold_out = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    day = db.relationship("LotteryBusinessDay", backref=db.backref("day_packs", lazy=True))
    pack = db.relationship("LotteryPack")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "day_id": self.day_id,
            "pack_id": self.pack_id,
            "bin_id": self.bin_id,
            "starting_serial": self.starting_serial,
            "ending_serial": self.ending_serial,
            "tickets_sold": self.tickets_sold,
            "sales_amount": float(self.sales_amount),
            "entry_method": self.entry_method.value if self.entry_method else None,
            "is_sold_out": self.is_sold_out,
        }
