"""Games, bins and pack lifecycle."""

import pytest

from lotto_pos.models import PackStatus
from lotto_pos.services import lottery_service
from lotto_pos.services.lottery_service import LotteryError


class TestBins:
    def test_bins_numbered_from_display_order(self, lottery_store):
        first = lottery_service.create_bin(lottery_store.store.id)
        second = lottery_service.create_bin(lottery_store.store.id)
        assert (first.display_order, first.bin_number) == (0, 1)
        assert (second.display_order, second.bin_number) == (1, 2)
        assert second.name == "Bin 2"

    def test_cannot_deactivate_bin_holding_pack(self, lottery_store):
        lottery_bin, _ = lottery_store.add_bin_with_pack()
        with pytest.raises(LotteryError, match="holds active pack"):
            lottery_service.deactivate_bin(lottery_bin.id, lottery_store.store.id)

    def test_deactivated_bin_is_hidden(self, lottery_store):
        lottery_bin = lottery_service.create_bin(lottery_store.store.id)
        lottery_service.deactivate_bin(lottery_bin.id, lottery_store.store.id)
        assert lottery_service.list_bins(lottery_store.store.id) == []


class TestPackLifecycle:
    def test_receive_then_activate(self, lottery_store):
        lottery_bin, pack = lottery_store.add_bin_with_pack()
        assert pack.status == PackStatus.ACTIVE
        assert pack.current_bin_id == lottery_bin.id
        assert pack.activated_at is not None

    def test_duplicate_pack_number_rejected(self, lottery_store):
        lottery_service.receive_pack(lottery_store.store.id, lottery_store.game.id, "P-1")
        with pytest.raises(LotteryError, match="already received"):
            lottery_service.receive_pack(lottery_store.store.id, lottery_store.game.id, "P-1")

    @pytest.mark.parametrize("start,end", [("1", "050"), ("000", "50"), ("060", "050")])
    def test_bad_serial_range_rejected(self, lottery_store, start, end):
        with pytest.raises(LotteryError):
            lottery_service.receive_pack(
                lottery_store.store.id, lottery_store.game.id, "P-2", serial_start=start, serial_end=end,
            )

    def test_bin_holds_one_pack(self, lottery_store):
        lottery_bin, _ = lottery_store.add_bin_with_pack()
        other = lottery_service.receive_pack(lottery_store.store.id, lottery_store.game.id, "P-3")
        with pytest.raises(LotteryError, match="already holds"):
            lottery_service.activate_pack(other.id, lottery_bin.id, lottery_store.store.id)

    def test_return_frees_bin(self, lottery_store):
        lottery_bin, pack = lottery_store.add_bin_with_pack()
        pack = lottery_service.return_pack(pack.id, lottery_store.store.id)
        assert pack.status == PackStatus.RETURNED
        assert pack.current_bin_id is None
        assert lottery_service.get_active_bin_packs(lottery_store.store.id) == []

    def test_manual_deplete(self, lottery_store):
        _, pack = lottery_store.add_bin_with_pack()
        pack = lottery_service.deplete_pack(pack.id, lottery_store.store.id, user_id=lottery_store.user.id)
        assert pack.status == PackStatus.DEPLETED
        assert pack.depleted_at is not None
        with pytest.raises(LotteryError):
            lottery_service.deplete_pack(pack.id, lottery_store.store.id)

    def test_state_game_usable_by_any_store(self, lottery_store):
        state_game = lottery_service.create_game("9999", "State Jackpot", "20.00")
        pack = lottery_service.receive_pack(lottery_store.store.id, state_game.id, "S-1")
        assert pack.game_id == state_game.id

    def test_other_store_game_not_usable(self, lottery_store, store_b):
        foreign = lottery_service.create_game("5555", "Foreign", "1.00", store_id=store_b.id)
        with pytest.raises(LotteryError, match="Game not found"):
            lottery_service.receive_pack(lottery_store.store.id, foreign.id, "F-1")


class TestActiveBinPacks:
    def test_ordered_by_bin(self, lottery_store):
        _, first = lottery_store.add_bin_with_pack()
        _, second = lottery_store.add_bin_with_pack()
        lottery_service.create_bin(lottery_store.store.id)  # empty bin
        pairs = lottery_service.get_active_bin_packs(lottery_store.store.id)
        assert [pack.id for _, pack in pairs] == [first.id, second.id]
        assert [b.bin_number for b, _ in pairs] == [1, 2]
