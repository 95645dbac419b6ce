"""Flask CLI commands."""

import pytest

from lotto_pos.models import Organization, Store, User
from lotto_pos.services import store_service
from lotto_pos.services.store_service import StoreError


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


class TestSystemInit:
    def test_init_is_idempotent(self, runner, db_session):
        first = runner.invoke(args=['system', 'init', '--timezone', 'America/Chicago'])
        assert first.exit_code == 0, first.output
        assert 'PASS Created user: manager' in first.output

        second = runner.invoke(args=['system', 'init'])
        assert second.exit_code == 0, second.output
        assert 'already exists' in second.output

        assert db_session.query(Organization).count() == 1
        assert db_session.query(Store).one().timezone == 'America/Chicago'
        assert db_session.query(User).filter_by(username='manager').count() == 1

    def test_store_defaults_to_configured_timezone(self, app, org_a):
        store = store_service.create_store(org_a.id, "Second Store")
        assert store.timezone == app.config['DEFAULT_STORE_TIMEZONE']

    def test_duplicate_org_code(self, org_a):
        with pytest.raises(StoreError):
            store_service.create_organization("Copy", org_a.code)


class TestLotteryCommands:
    def test_bins_for_unknown_store(self, runner, db_session):
        result = runner.invoke(args=['lottery', 'bins', '--store-id', '4242'])
        assert result.exit_code != 0
        assert 'not found' in result.output

    def test_bins_lists_packs(self, runner, lottery_store):
        lottery_store.add_bin_with_pack()
        result = runner.invoke(args=['lottery', 'bins', '--store-id', str(lottery_store.store.id)])
        assert result.exit_code == 0, result.output
        assert 'PK00001' in result.output

    def test_open_shift_list(self, runner, lottery_store):
        lottery_store.open_shift()
        result = runner.invoke(args=['shifts', 'open-list', '--store-id', str(lottery_store.store.id)])
        assert 'Alice Cashier' in result.output
