"""HTTP surface of inventory and the day close."""

from lotto_pos.models import LotteryBusinessDay
from lotto_pos.services import shift_service


def _bins_url(store):
    return f'/api/lottery/bins/day/{store.id}'


class TestHealth:
    def test_health(self, client, db_session):
        response = client.get('/api/health')
        assert response.status_code == 200
        assert response.json['data']['checks']['database']['status'] == 'healthy'


class TestInventoryRoutes:
    def test_receive_and_activate_pack(self, client, headers_a, store_a, game_a):
        bin_response = client.post('/api/lottery/bins', json={'store_id': store_a.id}, headers=headers_a)
        assert bin_response.status_code == 201
        bin_id = bin_response.json['data']['bin']['id']

        pack_response = client.post('/api/lottery/packs/receive', json={
            'store_id': store_a.id,
            'game_id': game_a.id,
            'pack_number': 'R-100',
            'serial_start': '000',
            'serial_end': '029',
        }, headers=headers_a)
        assert pack_response.status_code == 201
        pack_id = pack_response.json['data']['pack']['id']

        response = client.put(
            f'/api/lottery/stores/{store_a.id}/packs/{pack_id}/activate',
            json={'bin_id': bin_id},
            headers=headers_a,
        )
        assert response.status_code == 200
        assert response.json['data']['pack']['status'] == 'ACTIVE'

    def test_receive_without_game(self, client, headers_a, store_a):
        response = client.post('/api/lottery/packs/receive', json={'store_id': store_a.id}, headers=headers_a)
        assert response.status_code == 400
        assert response.json['error']['code'] == 'VALIDATION_ERROR'


class TestDayCloseRoutes:
    def test_close_returns_envelope(self, client, headers_a, lottery_store):
        _, pack = lottery_store.add_bin_with_pack()
        shift = lottery_store.open_shift()

        response = client.post(_bins_url(lottery_store.store) + '/close', json={
            'closings': [{'pack_id': pack.id, 'closing_serial': '012'}],
            'entry_method': 'SCAN',
            'current_shift_id': shift.id,
        }, headers=headers_a)

        assert response.status_code == 200
        body = response.json
        assert body['success'] is True
        assert body['error'] is None
        data = body['data']
        assert data['closings_created'] == 1
        assert data['day_closed'] is True
        assert data['bins_closed'][0]['tickets_sold'] == 12
        assert data['lottery_total'] == 60.0

    def test_string_pack_id_accepted(self, client, headers_a, lottery_store):
        _, pack = lottery_store.add_bin_with_pack()
        shift = lottery_store.open_shift()

        response = client.post(_bins_url(lottery_store.store) + '/close', json={
            'closings': [{'pack_id': str(pack.id), 'closing_serial': '003'}],
            'current_shift_id': str(shift.id),
        }, headers=headers_a)
        assert response.status_code == 200

    def test_missing_packs_is_400(self, client, headers_a, lottery_store):
        lottery_store.add_bin_with_pack()
        shift = lottery_store.open_shift()

        response = client.post(_bins_url(lottery_store.store) + '/close', json={
            'closings': [],
            'current_shift_id': shift.id,
        }, headers=headers_a)

        assert response.status_code == 400
        assert response.json['success'] is False
        assert response.json['error']['code'] == 'MISSING_PACKS'
        assert len(response.json['error']['details']['missing']) == 1

    def test_bad_entry_method_is_400(self, client, headers_a, lottery_store):
        response = client.post(_bins_url(lottery_store.store) + '/close', json={
            'closings': [],
            'entry_method': 'KEYBOARD',
        }, headers=headers_a)
        assert response.status_code == 400
        assert response.json['error']['code'] == 'VALIDATION_ERROR'

    def test_open_shift_is_400(self, client, headers_a, lottery_store):
        lottery_store.open_shift()
        response = client.post(_bins_url(lottery_store.store) + '/close', json={'closings': []}, headers=headers_a)
        assert response.status_code == 400
        assert response.json['error']['code'] == 'SHIFTS_STILL_OPEN'

    def test_preview_does_not_close(self, client, db_session, headers_a, lottery_store):
        _, pack = lottery_store.add_bin_with_pack()
        shift = lottery_store.open_shift()

        response = client.post(_bins_url(lottery_store.store) + '/close/preview', json={
            'closings': [{'pack_id': pack.id, 'closing_serial': '004'}],
            'current_shift_id': shift.id,
        }, headers=headers_a)

        assert response.status_code == 200
        assert response.json['data']['day_closed'] is False
        assert response.json['data']['bins_closed'][0]['tickets_sold'] == 4
        assert db_session.query(LotteryBusinessDay).count() == 0

    def test_day_bins_show_carry_forward(self, client, headers_a, lottery_store):
        _, pack = lottery_store.add_bin_with_pack()
        shift = lottery_store.open_shift()
        client.post(_bins_url(lottery_store.store) + '/close', json={
            'closings': [{'pack_id': pack.id, 'closing_serial': '035'}],
            'current_shift_id': shift.id,
        }, headers=headers_a)

        response = client.get(_bins_url(lottery_store.store), headers=headers_a)
        entry = response.json['data']['bins'][0]
        assert entry['starting_serial'] == '035'
        assert entry['ending_serial'] is None

        status = client.get(f'/api/lottery/stores/{lottery_store.store.id}/day-status', headers=headers_a)
        assert status.json['data']['business_day']['status'] == 'CLOSED'

    def test_unscanned_bins(self, client, headers_a, lottery_store):
        _, scanned = lottery_store.add_bin_with_pack()
        _, missed = lottery_store.add_bin_with_pack()

        response = client.get(
            _bins_url(lottery_store.store) + f'/unscanned?scanned={scanned.id}',
            headers=headers_a,
        )
        assert response.status_code == 200
        assert [b['pack_id'] for b in response.json['data']['bins']] == [missed.id]

    def test_unscanned_bad_list(self, client, headers_a, lottery_store):
        response = client.get(_bins_url(lottery_store.store) + '/unscanned?scanned=1,x', headers=headers_a)
        assert response.status_code == 400

    def test_day_bins_unknown_shift_is_400(self, client, headers_a, lottery_store):
        lottery_store.add_bin_with_pack()
        response = client.get(_bins_url(lottery_store.store) + '?current_shift_id=9999', headers=headers_a)
        assert response.status_code == 400
        assert response.json['error']['code'] == 'VALIDATION_ERROR'

    def test_day_bins_use_shift_opening(self, client, headers_a, lottery_store):
        _, pack = lottery_store.add_bin_with_pack()
        shift = lottery_store.open_shift()
        shift_service.record_shift_opening(shift.id, lottery_store.store.id, pack.id, '007')
        lottery_store.open_shift(terminal=False)

        response = client.get(_bins_url(lottery_store.store) + f'?current_shift_id={shift.id}', headers=headers_a)
        assert response.status_code == 200
        assert response.json['data']['bins'][0]['starting_serial'] == '007'

    def test_sold_out_closing_counts_last_ticket(self, client, headers_a, lottery_store):
        _, pack = lottery_store.add_bin_with_pack(serial_end='014')
        shift = lottery_store.open_shift()

        response = client.post(_bins_url(lottery_store.store) + '/close', json={
            'closings': [{'pack_id': pack.id, 'closing_serial': '014', 'is_sold_out': True}],
            'current_shift_id': shift.id,
        }, headers=headers_a)

        assert response.status_code == 200
        closed = response.json['data']['bins_closed'][0]
        assert closed['is_sold_out'] is True
        assert closed['tickets_sold'] == 15
        assert closed['sales_amount'] == 75.0

    def test_business_period(self, client, headers_a, lottery_store):
        lottery_store.add_bin_with_pack()
        response = client.get(f'/api/lottery/stores/{lottery_store.store.id}/business-period', headers=headers_a)
        assert response.status_code == 200
        assert response.json['data']['label'] == 'All Time'
        assert len(response.json['data']['packs']) == 1
