from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from stonksim.api.server import create_app


@pytest.fixture
def client(session):
    return TestClient(create_app(session))


class TestReadEndpoints:
    def test_health(self, client):
        response = client.get('/health')
        assert response.status_code == 200
        assert response.json() == {'status': 'ok', 'time': 0, 'paused': False}

    def test_state(self, client):
        data = client.get('/state').json()
        assert len(data['instruments']) == 16
        assert data['cash'] == 100000.0
        assert len(data['ai_traders']) == 3
        assert data['logs'][0]['msg'] == 'System initialization complete'


class TestTrading:
    def test_buy(self, client, session):
        response = client.post('/trade', json={'symbol': 'MEGA', 'action': 'BUY_LONG', 'quantity': 2})
        assert response.status_code == 200
        assert response.json()['message'].startswith('Buy MEGA 2 shares')
        assert session.ledger.position('MEGA').quantity == 2

    def test_rejected_trade(self, client):
        response = client.post('/trade', json={'symbol': 'BYTE', 'action': 'SELL_LONG', 'quantity': 5})
        assert response.status_code == 400
        assert 'insufficient shares' in response.json()['detail']

    def test_unknown_symbol(self, client):
        response = client.post('/trade', json={'symbol': 'NOPE', 'action': 'BUY_LONG', 'quantity': 1})
        assert response.status_code == 404

    def test_invalid_action(self, client):
        response = client.post('/trade', json={'symbol': 'MEGA', 'action': 'HOLD', 'quantity': 1})
        assert response.status_code == 422


class TestBondTrading:
    def test_buy_bond(self, client, session):
        response = client.post('/bonds/trade', json={'bond_id': 'GOV-2Y', 'side': 'BUY', 'quantity': 1})
        assert response.status_code == 200
        assert session.ledger.cash == Decimal('98950')

    def test_oversell(self, client):
        response = client.post('/bonds/trade', json={'bond_id': 'GOV-10Y', 'side': 'SELL', 'quantity': 1})
        assert response.status_code == 400

    def test_unknown_bond(self, client):
        response = client.post('/bonds/trade', json={'bond_id': 'GOV-99Y', 'side': 'BUY', 'quantity': 1})
        assert response.status_code == 404


class TestOrders:
    def test_place_and_cancel(self, client, session):
        response = client.post('/orders', json={
            'symbol': 'MEGA', 'action': 'BUY_LONG', 'quantity': 1, 'trigger_price': '5.50'
        })
        assert response.status_code == 200
        order_id = response.json()['id']
        assert session.orders.get(order_id).trigger_price == Decimal('5.50')

        assert client.delete(f'/orders/{order_id}').status_code == 200

        again = client.delete(f'/orders/{order_id}')
        assert again.status_code == 400
        assert again.json()['detail'] == f'Order {order_id} is CANCELLED, not PENDING'

    def test_rejected_order(self, client):
        response = client.post('/orders', json={
            'symbol': 'MEGA', 'action': 'BUY_LONG', 'quantity': 0, 'trigger_price': '5'
        })
        assert response.status_code == 400

    def test_cancel_unknown(self, client):
        assert client.delete('/orders/ord-missing').status_code == 404


class TestControl:
    def test_pause_and_resume(self, client, session):
        assert client.post('/pause').json() == {'paused': True}
        assert client.post('/pause', json={'reason': 'modal'}).json() == {'paused': True}
        assert client.post('/resume').json() == {'paused': True}
        assert client.post('/resume', json={'reason': 'modal'}).json() == {'paused': False}
        assert not session.time_engine.is_paused

    def test_reset(self, client, session):
        client.post('/trade', json={'symbol': 'MEGA', 'action': 'BUY_LONG', 'quantity': 2})
        response = client.post('/reset')
        assert response.status_code == 200
        assert response.json()['cash'] == 100000.0
        assert session.ledger.position('MEGA').quantity == 0

    def test_text_glow(self, client):
        assert client.post('/display/text-glow').json() == {'is_text_glow_enabled': False}
        assert client.post('/display/text-glow').json() == {'is_text_glow_enabled': True}
