"""
Authentication and store isolation tests.

A store of another organization and a store that does not exist must be
indistinguishable to the caller.
"""

from datetime import timedelta

from lotto_pos.models import SessionToken
from lotto_pos.services import session_service


def get_auth_token(client, username, password="Password123!"):
    response = client.post("/api/auth/login", json={"username": username, "password": password})
    return response.json["data"]["token"]


def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


class TestLogin:
    def test_login_returns_token(self, client, user_a):
        response = client.post('/api/auth/login', json={'username': 'user_a', 'password': 'Password123!'})
        assert response.status_code == 200
        data = response.json['data']
        assert len(data['token']) == 64
        assert data['user']['username'] == 'user_a'
        assert data['expires_at'].endswith('Z')

    def test_wrong_password(self, client, user_a):
        response = client.post('/api/auth/login', json={'username': 'user_a', 'password': 'wrong-password'})
        assert response.status_code == 401
        assert response.json['error']['code'] == 'INVALID_CREDENTIALS'

    def test_missing_fields(self, client, db_session):
        response = client.post('/api/auth/login', json={'username': 'user_a'})
        assert response.status_code == 400
        assert response.json['error']['code'] == 'VALIDATION_ERROR'

    def test_no_token_rejected(self, client, store_a):
        response = client.get(f'/api/lottery/bins/day/{store_a.id}')
        assert response.status_code == 401
        assert response.json['error']['code'] == 'UNAUTHORIZED'

    def test_logout_revokes_token(self, client, user_a, store_a):
        token = get_auth_token(client, 'user_a')
        headers = auth_headers(token)
        assert client.post('/api/auth/logout', headers=headers).status_code == 200

        response = client.get(f'/api/lottery/bins/day/{store_a.id}', headers=headers)
        assert response.status_code == 401

    def test_idle_session_revoked(self, client, db_session, user_a, store_a):
        token = get_auth_token(client, 'user_a')
        session = db_session.query(SessionToken).filter_by(
            token_hash=session_service.hash_token(token),
        ).one()
        session.last_used_at = session.last_used_at - timedelta(hours=3)
        db_session.commit()

        response = client.get(f'/api/lottery/bins/day/{store_a.id}', headers=auth_headers(token))
        assert response.status_code == 401
        db_session.refresh(session)
        assert session.is_revoked is True
        assert session.revoked_reason == 'Idle timeout'


class TestStoreIsolation:
    def test_own_store_allowed(self, client, headers_a, store_a):
        response = client.get(f'/api/lottery/bins/day/{store_a.id}', headers=headers_a)
        assert response.status_code == 200
        assert response.json['success'] is True

    def test_foreign_store_denied(self, client, headers_a, store_b):
        response = client.get(f'/api/lottery/bins/day/{store_b.id}', headers=headers_a)
        assert response.status_code == 403
        assert response.json['error']['code'] == 'STORE_ACCESS_DENIED'

    def test_nonexistent_store_looks_the_same(self, client, headers_a):
        response = client.get('/api/lottery/bins/day/99999', headers=headers_a)
        assert response.status_code == 403
        assert response.json['error']['code'] == 'STORE_ACCESS_DENIED'

    def test_foreign_store_close_denied(self, client, headers_b, store_a):
        response = client.post(
            f'/api/lottery/bins/day/{store_a.id}/close',
            json={'closings': []},
            headers=headers_b,
        )
        assert response.status_code == 403

    def test_store_id_in_body(self, client, headers_a, store_b):
        response = client.post(
            '/api/lottery/bins',
            json={'store_id': store_b.id, 'name': 'Sneaky'},
            headers=headers_a,
        )
        assert response.status_code == 403

    def test_store_id_in_query(self, client, headers_a, store_a, store_b):
        assert client.get(f'/api/shifts/open?store_id={store_a.id}', headers=headers_a).status_code == 200
        assert client.get(f'/api/shifts/open?store_id={store_b.id}', headers=headers_a).status_code == 403
