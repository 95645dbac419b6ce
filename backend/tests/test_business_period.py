"""Open business period and day-bins read model."""

import pytest

from lotto_pos.services import business_period_service, day_close_service, lottery_service, shift_service
from lotto_pos.services.day_close_service import DayCloseContext


def _close(lottery_store, shift, packs, serial):
    context = DayCloseContext(lottery_store.store.id, lottery_store.user.id, shift.id if shift else None)
    return day_close_service.close_day(
        context, [{"pack_id": p.id, "closing_serial": serial} for p in packs],
    )


class TestBusinessPeriod:
    def test_first_period_is_all_time(self, lottery_store):
        period = business_period_service.get_open_business_period(lottery_store.store.id)
        assert period.is_first_period is True
        assert period.days_since_last_close is None
        assert period.started_at == lottery_store.store.created_at
        assert business_period_service.period_label(period) == "All Time"

    def test_closed_today(self, lottery_store):
        _close(lottery_store, None, [], None)
        period = business_period_service.get_open_business_period(lottery_store.store.id)
        assert period.is_first_period is False
        assert period.days_since_last_close == 0
        assert business_period_service.period_label(period) == "Today"

    @pytest.mark.parametrize("days,label", [(1, "Today"), (2, "Current Period"), (5, "Current Period")])
    def test_label_by_days_since_close(self, lottery_store, backdate, days, label):
        _close(lottery_store, None, [], None)
        backdate(lottery_store.store.id, days)

        data = business_period_service.get_activated_packs(lottery_store.store.id)
        assert data["period"]["days_since_last_close"] == days
        assert data["label"] == label

    def test_unknown_store(self, db_session):
        with pytest.raises(ValueError):
            business_period_service.get_open_business_period(424242)


class TestActivatedPacks:
    def test_first_period_lists_every_activation(self, lottery_store):
        _, first = lottery_store.add_bin_with_pack()
        _, second = lottery_store.add_bin_with_pack()

        packs = business_period_service.get_activated_packs(lottery_store.store.id)["packs"]
        assert {p["pack_id"] for p in packs} == {first.id, second.id}
        assert packs[0]["pack_id"] == second.id

    def test_only_packs_activated_since_last_close(self, lottery_store):
        _, before = lottery_store.add_bin_with_pack()
        shift = lottery_store.open_shift()
        _close(lottery_store, shift, [before], "010")

        _, after = lottery_store.add_bin_with_pack()
        data = business_period_service.get_activated_packs(lottery_store.store.id)

        assert [p["pack_id"] for p in data["packs"]] == [after.id]
        assert data["packs"][0]["bin_number"] == 2
        assert data["packs"][0]["status"] == "ACTIVE"


class TestDayBins:
    def test_empty_bin_listed(self, lottery_store):
        lottery_service.create_bin(lottery_store.store.id, name="Spare")
        view = business_period_service.get_day_bins(lottery_store.store.id)

        entry = view["bins"][0]
        assert entry["name"] == "Spare"
        assert entry["pack_id"] is None
        assert entry["starting_serial"] is None
        assert view["depleted_packs"] == []

    def test_pack_without_readings_starts_at_serial_start(self, lottery_store):
        lottery_store.add_bin_with_pack(serial_start="005", serial_end="054")
        entry = business_period_service.get_day_bins(lottery_store.store.id)["bins"][0]
        assert entry["starting_serial"] == "005"
        assert entry["ending_serial"] is None
        assert entry["game_name"] == "Lucky 7s"
        assert entry["game_price"] == 5.0

    def test_first_shift_opening_is_starting_serial(self, lottery_store):
        _, pack = lottery_store.add_bin_with_pack()
        shift = lottery_store.open_shift()
        shift_service.record_shift_opening(shift.id, lottery_store.store.id, pack.id, "004")

        entry = business_period_service.get_day_bins(lottery_store.store.id)["bins"][0]
        assert entry["starting_serial"] == "004"

    def test_depleted_pack_listed_for_period(self, lottery_store):
        _, pack = lottery_store.add_bin_with_pack(serial_end="049")
        lottery_service.deplete_pack(pack.id, lottery_store.store.id)

        view = business_period_service.get_day_bins(lottery_store.store.id)
        assert [p["pack_id"] for p in view["depleted_packs"]] == [pack.id]
        assert view["bins"][0]["pack_id"] is None

    def test_business_date_follows_store_timezone(self, lottery_store):
        view = business_period_service.get_day_bins(lottery_store.store.id)
        assert view["business_date"] == business_period_service.store_today(lottery_store.store.id).isoformat()
