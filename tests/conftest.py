import os
import uuid
import pytest
from datetime import timedelta

import jwt
import requests

# Set test environment variables before importing the app
os.environ['FLASK_ENV'] = 'testing'

from reservation_service import create_app
from reservation_service.models import (
    db, Warehouse, InventoryRecord, Reservation, ReservationStatus
)
from reservation_service.utils.time_utils import utcnow

TEST_JWT_SECRET = 'test-jwt-secret-with-at-least-32-characters'


@pytest.fixture(scope='session')
def app():
    """Create application for the tests."""
    app = create_app('testing')

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def db_session(app):
    """Database session for a test; every table is emptied afterwards."""
    # A fresh session per test; SQLite reuses primary keys once rows are deleted
    db.session.remove()
    yield db.session

    db.session.remove()
    for table in reversed(db.metadata.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()
    db.session.remove()
    app.extensions.pop('expiry_sweeper', None)


def make_token(user_id='user-1', roles=None, secret=TEST_JWT_SECRET, **claims):
    """Mint a bearer token signed with the test secret."""
    payload = {
        'sub': user_id,
        'email': f'{user_id}@example.com',
        'roles': roles or ['customer'],
        'exp': utcnow() + timedelta(hours=1),
    }
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm='HS256')


@pytest.fixture
def auth_headers():
    """Authentication headers for a regular customer."""
    return {
        'Authorization': f'Bearer {make_token()}',
        'Content-Type': 'application/json'
    }


@pytest.fixture
def admin_headers():
    """Authentication headers for an admin."""
    return {
        'Authorization': f'Bearer {make_token("admin-1", roles=["admin"])}',
        'Content-Type': 'application/json'
    }


class FakeErpResponse:
    def __init__(self, status_code, body):
        self.status_code = status_code
        self._body = body

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        return self._body


class FakeErpSession:
    """
    In-memory ERP that honours idempotency keys.

    ``mode`` selects the behaviour of the next calls: 'ok', 'reject'
    (HTTP 409 with an ERP error body) or 'network' (connection error).
    """

    def __init__(self, stock=100):
        self.stock = stock
        self.mode = 'ok'
        self.calls = []
        self.reservations = {}

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append({'url': url, 'json': json, 'headers': headers, 'timeout': timeout})
        if self.mode == 'network':
            raise requests.exceptions.ConnectionError('ERP unreachable')
        if self.mode == 'reject':
            return FakeErpResponse(409, {'error_code': 'INSUFFICIENT_STOCK', 'message': 'Not enough stock'})

        key = json['idempotency_key']
        if key not in self.reservations:
            if json['quantity'] > self.stock:
                return FakeErpResponse(409, {'error_code': 'INSUFFICIENT_STOCK', 'message': 'Not enough stock'})
            self.stock -= json['quantity']
            self.reservations[key] = f'ERP-RES-{len(self.reservations) + 1}'
        return FakeErpResponse(200, {'reservation_id': self.reservations[key], 'available_quantity': self.stock})

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append({'url': url, 'params': params, 'headers': headers, 'timeout': timeout})
        if self.mode == 'network':
            raise requests.exceptions.ConnectionError('ERP unreachable')
        return FakeErpResponse(200, {'available_quantity': self.stock})


@pytest.fixture
def fake_erp(monkeypatch):
    """Route every ErpClient created during the test to the in-memory ERP."""
    session = FakeErpSession()
    monkeypatch.setattr('reservation_service.clients.erp_client.requests.Session', lambda: session)
    return session


# Helper functions for tests
def create_test_warehouse(db_session, **kwargs):
    """Create a test warehouse with default values."""
    defaults = {
        'code': f'WH-{str(uuid.uuid4())[:8]}',
        'name': 'Main warehouse',
        'is_default': True
    }
    defaults.update(kwargs)

    warehouse = Warehouse(**defaults)
    db_session.add(warehouse)
    db_session.commit()
    return warehouse


def create_test_inventory_record(db_session, **kwargs):
    """Create a test inventory record with default values."""
    defaults = {
        'product_id': 101,
        'warehouse_id': 'wh-main',
        'quantity_on_hand': 10,
        'quantity_reserved': 0,
        'version': 0
    }
    defaults.update(kwargs)

    record = InventoryRecord(**defaults)
    db_session.add(record)
    db_session.commit()
    return record


def create_test_reservation(db_session, record, **kwargs):
    """Create a test reservation against a record, holding its quantity in the ledger."""
    defaults = {
        'inventory_id': record.id,
        'product_id': record.product_id,
        'warehouse_id': record.warehouse_id,
        'quantity': 2,
        'user_id': 'user-1',
        'status': ReservationStatus.ACTIVE,
        'expires_at': utcnow() + timedelta(minutes=15)
    }
    defaults.update(kwargs)

    reservation = Reservation(**defaults)
    db_session.add(reservation)
    if reservation.status == ReservationStatus.ACTIVE:
        record.quantity_reserved += reservation.quantity
        record.version += 1
    db_session.commit()
    return reservation


def reload(db_session, instance):
    """Re-read an instance from the database."""
    db_session.refresh(instance)
    return instance
