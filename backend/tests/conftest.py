"""
Pytest fixtures for lottery backend tests.

Provides test database setup, tenant fixtures, a lottery store builder and
the test client.
"""

from datetime import timedelta

import pytest

from lotto_pos import create_app
from lotto_pos.extensions import db
from lotto_pos.models import Organization, Store, User
from lotto_pos.services import lottery_service, shift_service
from lotto_pos.services.auth_service import hash_password

PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LOG_LEVEL': 'WARNING',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def org_a(db_session):
    """Create Organization A (first tenant)."""
    org = Organization(name="Org A - Corner Mart", code="CORNER", is_active=True)
    db_session.add(org)
    db_session.commit()
    return org


@pytest.fixture(scope='function')
def org_b(db_session):
    """Create Organization B (second tenant)."""
    org = Organization(name="Org B - Gas & Go", code="GASGO", is_active=True)
    db_session.add(org)
    db_session.commit()
    return org


@pytest.fixture(scope='function')
def store_a(db_session, org_a):
    """Store A in Organization A. UTC keeps business dates predictable."""
    store = Store(org_id=org_a.id, name="Store A1", code="A1", timezone="UTC")
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def store_b(db_session, org_b):
    """Store B in Organization B."""
    store = Store(org_id=org_b.id, name="Store B1", code="B1", timezone="UTC")
    db_session.add(store)
    db_session.commit()
    return store


def _make_user(db_session, org, store, username):
    user = User(
        org_id=org.id,
        store_id=store.id,
        username=username,
        email=f"{username}@example.com",
        password_hash=hash_password(PASSWORD),
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def user_a(db_session, org_a, store_a):
    """Manager of Store A."""
    return _make_user(db_session, org_a, store_a, "user_a")


@pytest.fixture(scope='function')
def user_b(db_session, org_b, store_b):
    """Manager of Store B."""
    return _make_user(db_session, org_b, store_b, "user_b")


@pytest.fixture(scope='function')
def cashier_a(db_session, store_a):
    return shift_service.create_cashier(store_a.id, "E100", "Alice Cashier")


@pytest.fixture(scope='function')
def terminal_a(db_session, store_a):
    return shift_service.create_terminal(store_a.id, "T1", "Front Counter")


@pytest.fixture(scope='function')
def game_a(db_session, store_a):
    """$5 scratch game."""
    return lottery_service.create_game("1234", "Lucky 7s", "5.00", store_id=store_a.id, pack_value="250.00")


class LotteryStore:
    """Builds bins with active packs for one store."""

    def __init__(self, store, user, cashier, terminal, game):
        self.store = store
        self.user = user
        self.cashier = cashier
        self.terminal = terminal
        self.game = game
        self._pack_seq = 0

    def add_bin_with_pack(self, serial_start="000", serial_end="049", game=None):
        lottery_bin = lottery_service.create_bin(self.store.id)
        self._pack_seq += 1
        pack = lottery_service.receive_pack(
            self.store.id,
            (game or self.game).id,
            f"PK{self._pack_seq:05d}",
            serial_start=serial_start,
            serial_end=serial_end,
        )
        lottery_service.activate_pack(pack.id, lottery_bin.id, self.store.id, user_id=self.user.id)
        return lottery_bin, pack

    def open_shift(self, terminal=True):
        return shift_service.open_shift(
            self.store.id,
            self.cashier.id,
            terminal_id=self.terminal.id if terminal else None,
            opened_by=self.user.id,
        )

    def close_shift(self, shift):
        return shift_service.close_shift(shift.id, self.store.id, closing_cash="0.00")


@pytest.fixture(scope='function')
def lottery_store(db_session, store_a, user_a, cashier_a, terminal_a, game_a):
    return LotteryStore(store_a, user_a, cashier_a, terminal_a, game_a)


def backdate_last_close(db_session, store_id, days):
    """Shift the store's history (closes, readings, pack events) `days` into the past."""
    from lotto_pos.models import LotteryBusinessDay, LotteryPack, Shift, ShiftClosing, ShiftOpening

    delta = timedelta(days=days)
    for day in db_session.query(LotteryBusinessDay).filter_by(store_id=store_id).all():
        day.business_date = day.business_date - delta
        day.opened_at = day.opened_at - delta
        if day.closed_at:
            day.closed_at = day.closed_at - delta

    shifts = db_session.query(Shift).filter_by(store_id=store_id).all()
    shift_ids = [s.id for s in shifts]
    for shift in shifts:
        shift.opened_at = shift.opened_at - delta
        if shift.closed_at:
            shift.closed_at = shift.closed_at - delta
    for model in (ShiftOpening, ShiftClosing):
        for reading in db_session.query(model).filter(model.shift_id.in_(shift_ids)).all():
            reading.created_at = reading.created_at - delta

    for pack in db_session.query(LotteryPack).filter_by(store_id=store_id).all():
        for attr in ("received_at", "activated_at", "depleted_at", "returned_at"):
            if getattr(pack, attr):
                setattr(pack, attr, getattr(pack, attr) - delta)
    db_session.commit()


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json['data']['token']
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def headers_a(client, user_a):
    """Authorization headers for user_a."""
    return auth_headers(get_auth_token(client, "user_a"))


@pytest.fixture(scope='function')
def headers_b(client, user_b):
    """Authorization headers for user_b."""
    return auth_headers(get_auth_token(client, "user_b"))


@pytest.fixture(scope='function')
def backdate(db_session):
    """backdate(store_id, days) pushes closed business days into the past."""
    def _backdate(store_id, days):
        backdate_last_close(db_session, store_id, days)
    return _backdate
