"""Sold-out decisions for bins left unscanned at day close."""

from decimal import Decimal

import pytest

from lotto_pos.models import LotteryDayPack, LotteryPack, PackStatus, ShiftClosing
from lotto_pos.services import day_close_service, lottery_service
from lotto_pos.services.day_close_service import DayCloseContext
from lotto_pos.services.unscanned_bins import (
    SelectAllState,
    SoldOutDecision,
    UnscannedBinInfo,
    UnscannedBinResolution,
    find_unscanned_bins,
)


def _info(bin_id, starting="000", end="014", price="5.00", bin_number=None):
    return UnscannedBinInfo(
        bin_id=bin_id,
        bin_number=bin_number or bin_id,
        pack_id=100 + bin_id,
        pack_number=f"PK{bin_id}",
        game_name="Lucky 7s",
        game_price=Decimal(price),
        starting_serial=starting,
        serial_end=end,
    )


class TestSoldOutDecision:
    @pytest.mark.parametrize("starting,end,price,tickets,amount", [
        ("000", "014", "5.00", 15, "75.00"),
        ("005", "054", "10.00", 50, "500.00"),
        ("000", "000", "2.00", 1, "2.00"),
    ])
    def test_counts_through_last_ticket(self, starting, end, price, tickets, amount):
        decision = SoldOutDecision.for_bin(_info(1, starting, end, price))
        assert decision.tickets_sold == tickets
        assert decision.sales_amount == Decimal(amount)
        assert decision.ending_serial == end

    def test_closing_is_manual_at_serial_end(self):
        decision = SoldOutDecision.for_bin(_info(3, end="029"))
        assert decision.to_closing() == {
            "pack_id": 103,
            "closing_serial": "029",
            "entry_method": "MANUAL",
            "is_sold_out": True,
        }
        assert decision.to_dict()["action"] == "SOLD_OUT"


class TestResolution:
    def test_select_all_tri_state(self):
        resolution = UnscannedBinResolution([_info(1), _info(2)])
        assert resolution.select_all_state is SelectAllState.NONE

        resolution.mark_sold_out(1)
        assert resolution.select_all_state is SelectAllState.SOME

        assert resolution.click_select_all() is SelectAllState.ALL
        assert resolution.is_sold_out(2)

        assert resolution.click_select_all() is SelectAllState.NONE
        assert resolution.decisions() == []

    def test_toggle(self):
        resolution = UnscannedBinResolution([_info(1)])
        assert resolution.toggle(1) is True
        assert resolution.toggle(1) is False

    def test_unknown_bin(self):
        resolution = UnscannedBinResolution([_info(1)])
        with pytest.raises(KeyError):
            resolution.mark_sold_out(9)

    def test_reopen_starts_over(self):
        resolution = UnscannedBinResolution([_info(1), _info(2)])
        resolution.mark_sold_out(2)
        resolution.reopen()
        assert resolution.decisions() == []

    def test_result_without_decisions(self):
        result = UnscannedBinResolution([_info(1)]).result()
        assert result.return_to_scan is True
        assert result.decisions is None

    def test_decisions_ordered_by_bin_number(self):
        resolution = UnscannedBinResolution([_info(2, bin_number=5), _info(1, bin_number=4)])
        resolution.click_select_all()
        assert [d.bin_id for d in resolution.decisions()] == [1, 2]

    def test_merge_keeps_scanned_readings(self):
        resolution = UnscannedBinResolution([_info(1), _info(2)])
        resolution.click_select_all()
        scanned = [{"pack_id": 101, "closing_serial": "007"}]

        merged = resolution.merge_into(scanned)

        assert merged[0] == {"pack_id": 101, "closing_serial": "007"}
        assert merged[1]["pack_id"] == 102
        assert merged[1]["closing_serial"] == "014"
        assert len(merged) == 2


class TestFindUnscannedBins:
    def test_lists_only_unscanned_packs(self, lottery_store):
        _, scanned = lottery_store.add_bin_with_pack()
        second_bin, missed = lottery_store.add_bin_with_pack(serial_start="005", serial_end="054")
        lottery_service.create_bin(lottery_store.store.id)

        bins = find_unscanned_bins(lottery_store.store.id, {scanned.id})

        assert [b.pack_id for b in bins] == [missed.id]
        assert bins[0].bin_id == second_bin.id
        assert bins[0].starting_serial == "005"
        assert bins[0].game_price == Decimal("5.0")

    def test_sold_out_merge_closes_day(self, db_session, lottery_store):
        _, scanned = lottery_store.add_bin_with_pack()
        _, missed = lottery_store.add_bin_with_pack(serial_end="049")
        shift = lottery_store.open_shift()
        closings = [{"pack_id": scanned.id, "closing_serial": "010"}]

        resolution = UnscannedBinResolution(find_unscanned_bins(lottery_store.store.id, {scanned.id}))
        resolution.click_select_all()
        context = DayCloseContext(lottery_store.store.id, lottery_store.user.id, shift.id)
        result = day_close_service.close_day(context, resolution.merge_into(closings))

        decision = resolution.decisions()[0]
        assert result.closings_created == 2
        assert db_session.get(LotteryPack, missed.id).status == PackStatus.DEPLETED
        assert db_session.get(LotteryPack, scanned.id).status == PackStatus.ACTIVE

        ledger = db_session.query(LotteryDayPack).filter_by(pack_id=missed.id).one()
        assert ledger.is_sold_out is True
        assert ledger.tickets_sold == decision.tickets_sold == 50
        assert ledger.sales_amount == decision.sales_amount == Decimal("250.00")
        assert db_session.query(ShiftClosing).filter_by(pack_id=missed.id).one().is_sold_out is True

        scanned_line = db_session.query(LotteryDayPack).filter_by(pack_id=scanned.id).one()
        assert scanned_line.is_sold_out is False
        assert scanned_line.tickets_sold == 10
        assert result.lottery_total == Decimal("300.00")
