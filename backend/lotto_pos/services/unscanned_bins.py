# Overview: Sold-out decisions for active bins left unscanned at day close.

"""
Decisions for active bins that were not scanned before a day close.

A day close must cover every active bin. When the operator has scanned
some bins but not others, each unscanned bin is either marked sold out
(its pack is closed at its last serial) or left for the operator to go back
and scan. UnscannedBinResolution collects those decisions and turns the
sold-out ones into extra closings for the close request.

The collector holds no database state; find_unscanned_bins is the only
function here that reads the store.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from decimal import Decimal

from ..models import EntryMethod
from . import serials

SOLD_OUT = "SOLD_OUT"


class SelectAllState(str, enum.Enum):
    NONE = "NONE"
    SOME = "SOME"
    ALL = "ALL"


@dataclass(frozen=True)
class UnscannedBinInfo:
    bin_id: int
    bin_number: int
    pack_id: int
    pack_number: str
    game_name: str
    game_price: Decimal
    starting_serial: str
    serial_end: str

    def to_dict(self) -> dict:
        return {
            "bin_id": self.bin_id,
            "bin_number": self.bin_number,
            "pack_id": self.pack_id,
            "pack_number": self.pack_number,
            "game_name": self.game_name,
            "game_price": float(self.game_price),
            "starting_serial": self.starting_serial,
            "serial_end": self.serial_end,
        }


@dataclass(frozen=True)
class SoldOutDecision:
    bin_id: int
    pack_id: int
    ending_serial: str
    tickets_sold: int
    sales_amount: Decimal
    game_price: Decimal
    action: str = SOLD_OUT

    @classmethod
    def for_bin(cls, info: UnscannedBinInfo) -> "SoldOutDecision":
        # Sold out means every ticket from starting through serial_end went
        tickets = serials.tickets_sold(info.starting_serial, info.serial_end)
        return cls(
            bin_id=info.bin_id,
            pack_id=info.pack_id,
            ending_serial=info.serial_end,
            tickets_sold=tickets,
            sales_amount=serials.sales_amount(tickets, info.game_price),
            game_price=serials.to_decimal(info.game_price),
        )

    def to_closing(self) -> dict:
        return {
            "pack_id": self.pack_id,
            "closing_serial": self.ending_serial,
            "entry_method": EntryMethod.MANUAL.value,
            "is_sold_out": True,
        }

    def to_dict(self) -> dict:
        return {
            "bin_id": self.bin_id,
            "pack_id": self.pack_id,
            "action": self.action,
            "ending_serial": self.ending_serial,
            "tickets_sold": self.tickets_sold,
            "sales_amount": float(self.sales_amount),
            "game_price": float(self.game_price),
        }


@dataclass(frozen=True)
class ResolutionResult:
    return_to_scan: bool
    decisions: list[SoldOutDecision] | None


class UnscannedBinResolution:
    """
    Per-bin sold-out decisions for one pass of the unscanned-bins prompt.

    Every bin starts undecided. Reopening the prompt starts over: decisions
    from an earlier pass never carry into a new submission.
    """

    def __init__(self, bins):
        self.reopen(bins)

    def reopen(self, bins=None) -> None:
        if bins is not None:
            self.bins = list(bins)
        self._sold_out = set()

    def reset(self) -> None:
        self._sold_out = set()

    def _require_bin(self, bin_id: int) -> None:
        if bin_id not in {b.bin_id for b in self.bins}:
            raise KeyError(f"Bin {bin_id} is not in the unscanned list")

    def is_sold_out(self, bin_id: int) -> bool:
        return bin_id in self._sold_out

    def mark_sold_out(self, bin_id: int) -> None:
        self._require_bin(bin_id)
        self._sold_out.add(bin_id)

    def clear(self, bin_id: int) -> None:
        self._require_bin(bin_id)
        self._sold_out.discard(bin_id)

    def toggle(self, bin_id: int) -> bool:
        """Flip one bin; returns whether it is now sold out."""
        if self.is_sold_out(bin_id):
            self.clear(bin_id)
            return False
        self.mark_sold_out(bin_id)
        return True

    @property
    def select_all_state(self) -> SelectAllState:
        if not self.bins or not self._sold_out:
            return SelectAllState.NONE
        if len(self._sold_out) == len(self.bins):
            return SelectAllState.ALL
        return SelectAllState.SOME

    def click_select_all(self) -> SelectAllState:
        """ALL clears everything; SOME or NONE selects everything."""
        if self.select_all_state is SelectAllState.ALL:
            self._sold_out = set()
        else:
            self._sold_out = {b.bin_id for b in self.bins}
        return self.select_all_state

    def decisions(self) -> list[SoldOutDecision]:
        return [
            SoldOutDecision.for_bin(info)
            for info in sorted(self.bins, key=lambda b: (b.bin_number, b.bin_id))
            if info.bin_id in self._sold_out
        ]

    def result(self, return_to_scan: bool = True) -> ResolutionResult:
        decisions = self.decisions()
        return ResolutionResult(return_to_scan=return_to_scan, decisions=decisions or None)

    def merge_into(self, closings) -> list[dict]:
        """
        closings plus one closing at serial_end per sold-out bin.

        Packs already present in closings keep their scanned reading.
        """
        merged = list(closings)
        present = {c["pack_id"] for c in merged}
        for decision in self.decisions():
            if decision.pack_id not in present:
                merged.append(decision.to_closing())
        return merged


def find_unscanned_bins(store_id: int, scanned_pack_ids, current_shift_id: int | None = None) -> list[UnscannedBinInfo]:
    """
    Active bins holding a pack that is not in scanned_pack_ids.

    Starting serials are the ones a close by current_shift_id would use.
    """
    from .business_period_service import get_day_bins

    scanned = set(scanned_pack_ids or ())
    unscanned = []
    for entry in get_day_bins(store_id, current_shift_id)["bins"]:
        if entry["pack_id"] is None or entry["pack_id"] in scanned:
            continue
        unscanned.append(UnscannedBinInfo(
            bin_id=entry["bin_id"],
            bin_number=entry["bin_number"],
            pack_id=entry["pack_id"],
            pack_number=entry["pack_number"],
            game_name=entry["game_name"],
            game_price=serials.to_decimal(entry["game_price"]),
            starting_serial=entry["starting_serial"],
            serial_end=entry["serial_end"],
        ))
    return unscanned
