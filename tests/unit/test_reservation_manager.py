import pytest
from datetime import timedelta
from unittest.mock import MagicMock

from sqlalchemy.exc import OperationalError

from reservation_service.exceptions import InvalidRequest, LedgerError, StorageError
from reservation_service.models import (
    ExternalReservation, InventoryRecord, Reservation, ReservationStatus, StockMovement, StockMovementType
)
from reservation_service.repositories import MovementRepository, ReservationRepository
from reservation_service.services import MovementLog, ReservationManager, status_code_for
from reservation_service.utils.time_utils import utcnow
from tests.conftest import (
    create_test_inventory_record, create_test_reservation, create_test_warehouse, reload
)


def storage_error():
    return OperationalError('INSERT', {}, Exception('disk I/O error'))


class TestValidation:
    """Structurally invalid requests are rejected before storage access."""

    @pytest.mark.parametrize('payload', [
        None,
        {},
        {'items': []},
        {'items': [{'product_id': 1, 'quantity': 0}]},
        {'items': [{'product_id': 1, 'quantity': -2}]},
        {'items': [{'product_id': 1}]},
        {'items': [{'product_id': 1, 'quantity': 2}], 'duration_minutes': 0},
    ])
    def test_invalid_payloads(self, db_session, payload):
        with pytest.raises(InvalidRequest):
            ReservationManager().reserve(payload, user_id='user-1')

    def test_missing_identity(self, db_session):
        with pytest.raises(InvalidRequest) as exc_info:
            ReservationManager().reserve({'items': [{'product_id': 1, 'quantity': 1}]})

        assert 'user_id' in exc_info.value.details

    def test_nothing_written_for_invalid_request(self, db_session):
        with pytest.raises(InvalidRequest):
            ReservationManager().reserve({'items': [{'product_id': 1, 'quantity': 0}]}, user_id='user-1')

        assert InventoryRecord.query.count() == 0
        assert Reservation.query.count() == 0


class TestReserve:
    """Test multi-item reservations."""

    def test_full_success(self, db_session):
        record = create_test_inventory_record(db_session, quantity_on_hand=10)

        result = ReservationManager().reserve({
            'items': [{'product_id': record.product_id, 'quantity': 7, 'warehouse_id': 'wh-main'}],
            'order_id': 'ORD-1'
        }, user_id='user-1')

        assert result['success'] is True
        assert result['failures'] == []
        assert status_code_for(result) == 200

        reservation = result['reservations'][0]
        assert reservation['status'] == 'active'
        assert reservation['quantity'] == 7
        assert reservation['order_id'] == 'ORD-1'

        record = reload(db_session, record)
        assert (record.quantity_on_hand, record.quantity_reserved, record.version) == (10, 7, 1)

        movement = StockMovement.query.one()
        assert movement.movement_type == StockMovementType.RESERVATION
        assert movement.quantity == -7
        assert movement.reason == 'Stock reserved for order'
        assert movement.reference == reservation['id']

    def test_expiry_uses_requested_duration(self, db_session):
        record = create_test_inventory_record(db_session)
        now = utcnow()

        ReservationManager(clock=lambda: now).reserve({
            'items': [{'product_id': record.product_id, 'quantity': 1, 'warehouse_id': 'wh-main'}],
            'duration_minutes': 30
        }, user_id='user-1')

        assert Reservation.query.one().expires_at == now + timedelta(minutes=30)

    def test_expiry_defaults_to_configured_ttl(self, db_session):
        record = create_test_inventory_record(db_session)
        now = utcnow()

        ReservationManager(clock=lambda: now).reserve({
            'items': [{'product_id': record.product_id, 'quantity': 1, 'warehouse_id': 'wh-main'}]
        }, user_id='user-1')

        assert Reservation.query.one().expires_at == now + timedelta(minutes=15)

    def test_partial_success_keeps_going(self, db_session):
        in_stock = create_test_inventory_record(db_session, product_id=1, quantity_on_hand=5)
        short = create_test_inventory_record(db_session, product_id=2, quantity_on_hand=1)

        result = ReservationManager().reserve({'items': [
            {'product_id': 1, 'quantity': 2, 'warehouse_id': 'wh-main'},
            {'product_id': 2, 'quantity': 3, 'warehouse_id': 'wh-main'},
            {'product_id': 3, 'quantity': 1, 'warehouse_id': 'wh-main'},
        ]}, user_id='user-1')

        assert result['success'] is False
        assert status_code_for(result) == 207
        assert [r['product_id'] for r in result['reservations']] == [1]

        insufficient, not_stocked = result['failures']
        assert insufficient == {
            'product_id': 2, 'reason': 'Insufficient stock', 'error_code': 'INSUFFICIENT_STOCK',
            'available': 1, 'requested': 3, 'warehouse_id': 'wh-main'
        }
        assert not_stocked['reason'] == 'Product not in stock'
        assert not_stocked['available'] == 0

        assert reload(db_session, in_stock).quantity_reserved == 2
        assert reload(db_session, short).quantity_reserved == 0

    def test_total_failure_is_still_multi_status(self, db_session):
        result = ReservationManager().reserve({'items': [
            {'product_id': 9, 'quantity': 1, 'warehouse_id': 'wh-main'}
        ]}, user_id='user-1')

        assert result['success'] is False
        assert result['reservations'] == []
        assert status_code_for(result) == 207

    def test_unknown_product_creates_empty_record(self, db_session):
        ReservationManager().reserve({'items': [
            {'product_id': 42, 'quantity': 1, 'warehouse_id': 'wh-main'}
        ]}, user_id='user-1')

        record = InventoryRecord.query.filter_by(product_id=42).one()
        assert record.quantity_on_hand == 0
        assert Reservation.query.count() == 0

    def test_no_warehouse_resolved(self, db_session):
        result = ReservationManager().reserve({'items': [{'product_id': 1, 'quantity': 1}]}, user_id='user-1')

        failure = result['failures'][0]
        assert failure['error_code'] == 'NO_WAREHOUSE'
        assert failure['reason'] == 'No warehouse specified and no default warehouse found'
        assert InventoryRecord.query.count() == 0

    def test_default_warehouse_is_used(self, db_session):
        warehouse = create_test_warehouse(db_session)
        create_test_inventory_record(db_session, product_id=1, warehouse_id=warehouse.id)

        result = ReservationManager().reserve({'items': [{'product_id': 1, 'quantity': 1}]}, user_id='user-1')

        assert result['reservations'][0]['warehouse_id'] == warehouse.id

    def test_configured_default_warehouse(self, app, db_session, monkeypatch):
        monkeypatch.setitem(app.config, 'DEFAULT_WAREHOUSE_ID', 'wh-main')
        create_test_inventory_record(db_session, product_id=1)

        result = ReservationManager().reserve({'items': [{'product_id': 1, 'quantity': 1}]}, user_id='user-1')

        assert result['success'] is True
        assert result['reservations'][0]['warehouse_id'] == 'wh-main'

    def test_user_id_in_body_wins(self, db_session):
        create_test_inventory_record(db_session, product_id=1)

        result = ReservationManager().reserve({
            'items': [{'product_id': 1, 'quantity': 1, 'warehouse_id': 'wh-main'}],
            'user_id': 'guest-7'
        }, user_id='user-1')

        assert result['reservations'][0]['user_id'] == 'guest-7'


class TestCompensation:
    """A half-applied item is rolled back so ledger and reservations agree."""

    def test_reservation_insert_failure_releases_hold(self, db_session):
        record = create_test_inventory_record(db_session, quantity_on_hand=10)
        repo = ReservationRepository()
        repo.create = MagicMock(side_effect=storage_error())

        result = ReservationManager(reservation_repo=repo).reserve({'items': [
            {'product_id': record.product_id, 'quantity': 4, 'warehouse_id': 'wh-main'}
        ]}, user_id='user-1')

        failure = result['failures'][0]
        assert failure['error_code'] == 'STORAGE_ERROR'
        assert failure['reason'] == 'Reservation failed'
        record = reload(db_session, record)
        assert record.quantity_reserved == 0
        assert record.version == 2

    def test_movement_failure_removes_reservation_and_hold(self, db_session):
        record = create_test_inventory_record(db_session, quantity_on_hand=10)
        movement_log = MovementLog()
        movement_log.record = MagicMock(side_effect=storage_error())

        result = ReservationManager(movement_log=movement_log).reserve({'items': [
            {'product_id': record.product_id, 'quantity': 4, 'warehouse_id': 'wh-main'}
        ]}, user_id='user-1')

        assert result['failures'][0]['error_code'] == 'STORAGE_ERROR'
        assert Reservation.query.count() == 0
        assert reload(db_session, record).quantity_reserved == 0


class TestErpMirroring:
    """Items carrying an ERP SKU are mirrored to the ERP."""

    def payload(self, record, **extra):
        payload = {'items': [{'product_id': record.product_id, 'quantity': 2, 'warehouse_id': 'wh-main',
                              'erp_sku': 'SKU-1'}], 'cart_session_id': 'cart-1'}
        payload.update(extra)
        return payload

    def test_erp_success_is_attached(self, db_session, fake_erp):
        record = create_test_inventory_record(db_session)

        result = ReservationManager().reserve(self.payload(record), user_id='user-1')

        erp_sync = result['reservations'][0]['erp_sync']
        assert erp_sync['success'] is True
        assert erp_sync['erp_reservation_id'] == 'ERP-RES-1'
        assert result['reservations'][0]['erp_sku'] == 'SKU-1'

        product_movements = StockMovement.query.filter_by(product_id=record.product_id).all()
        assert sum(m.quantity for m in product_movements) == -2

    def test_retried_request_reuses_idempotency_key(self, db_session, fake_erp):
        record = create_test_inventory_record(db_session)
        manager = ReservationManager()

        manager.reserve(self.payload(record, request_id='req-1'), user_id='user-1')
        manager.reserve(self.payload(record, request_id='req-1'), user_id='user-1')

        assert len(fake_erp.reservations) == 1
        assert ExternalReservation.query.count() == 1

    def test_later_attempt_in_same_cart_calls_erp_again(self, db_session, fake_erp):
        record = create_test_inventory_record(db_session)
        manager = ReservationManager()
        fake_erp.mode = 'reject'
        assert manager.reserve(self.payload(record), user_id='user-1')['success'] is False

        fake_erp.mode = 'ok'
        calls_before = len(fake_erp.calls)
        payload = self.payload(record)
        payload['items'][0]['quantity'] = 3
        result = manager.reserve(payload, user_id='user-1')

        assert result['success'] is True
        assert result['reservations'][0]['erp_sync']['replayed'] is False
        assert len(fake_erp.calls) == calls_before + 1
        assert ExternalReservation.query.count() == 2
        assert reload(db_session, record).quantity_reserved == 3

    def test_storage_error_while_mirroring_releases_local(self, db_session):
        record = create_test_inventory_record(db_session)
        bridge = MagicMock(is_enabled=True)
        bridge.reserve_external.side_effect = storage_error()

        result = ReservationManager(bridge=bridge).reserve(self.payload(record), user_id='user-1')

        failure = result['failures'][0]
        assert failure['error_code'] == 'STORAGE_ERROR'
        assert result['reservations'] == []
        assert Reservation.query.one().status == ReservationStatus.RELEASED
        assert reload(db_session, record).quantity_reserved == 0
        release = StockMovement.query.filter_by(movement_type=StockMovementType.RELEASE).one()
        assert release.reason == 'Reservation rolled back after storage error'

    def test_mandatory_sync_failure_rolls_back_local(self, db_session, fake_erp):
        record = create_test_inventory_record(db_session)
        fake_erp.mode = 'reject'

        result = ReservationManager(erp_sync_mandatory=True).reserve(self.payload(record), user_id='user-1')

        failure = result['failures'][0]
        assert failure['error_code'] == 'EXTERNAL_SERVICE_ERROR'
        assert failure['erp_error_code'] == 'INSUFFICIENT_STOCK'
        assert failure['erp_sku'] == 'SKU-1'

        reservation = Reservation.query.one()
        assert reservation.status == ReservationStatus.RELEASED
        assert reload(db_session, record).quantity_reserved == 0

        release = StockMovement.query.filter_by(movement_type=StockMovementType.RELEASE).one()
        assert release.reason == 'External reservation failed'

    def test_optional_sync_failure_keeps_local(self, db_session, fake_erp):
        record = create_test_inventory_record(db_session)
        fake_erp.mode = 'network'

        result = ReservationManager(erp_sync_mandatory=False).reserve(self.payload(record), user_id='user-1')

        assert result['success'] is True
        erp_sync = result['reservations'][0]['erp_sync']
        assert erp_sync['success'] is False
        assert erp_sync['error_code'] == 'NETWORK_ERROR'
        assert reload(db_session, record).quantity_reserved == 2

    def test_erp_not_configured_reserves_locally(self, app, db_session, monkeypatch):
        monkeypatch.setitem(app.config, 'ERP_API_BASE_URL', None)
        record = create_test_inventory_record(db_session)

        result = ReservationManager().reserve(self.payload(record), user_id='user-1')

        assert result['success'] is True
        assert result['reservations'][0]['erp_sync']['skipped'] is True


class TestLifecycle:
    """Test release, fulfill and lookups."""

    def test_release(self, db_session):
        record = create_test_inventory_record(db_session)
        reservation = create_test_reservation(db_session, record, quantity=3)

        result = ReservationManager().release(reservation.id, performed_by='user-1')

        assert result['success'] is True
        assert result['reservation']['status'] == 'released'
        assert result['reservation']['released_at'] is not None
        assert reload(db_session, record).quantity_reserved == 0
        release = StockMovement.query.one()
        assert release.quantity == 3
        assert release.to_warehouse_id == 'wh-main'

    def test_release_twice_touches_ledger_once(self, db_session):
        record = create_test_inventory_record(db_session)
        reservation = create_test_reservation(db_session, record, quantity=3)
        manager = ReservationManager()

        manager.release(reservation.id)
        second = manager.release(reservation.id)

        assert second['success'] is False
        assert second['message'] == 'Reservation is already released'
        assert StockMovement.query.count() == 1
        assert reload(db_session, record).version == 2

    def test_fulfill(self, db_session):
        record = create_test_inventory_record(db_session, quantity_on_hand=10)
        reservation = create_test_reservation(db_session, record, quantity=4)

        result = ReservationManager().fulfill(reservation.id, performed_by='user-1')

        assert result['success'] is True
        record = reload(db_session, record)
        assert (record.quantity_on_hand, record.quantity_reserved) == (6, 0)
        movement = StockMovement.query.one()
        assert movement.movement_type == StockMovementType.FULFILLMENT
        assert movement.quantity == -4

    def test_cannot_fulfill_lapsed_reservation(self, db_session):
        record = create_test_inventory_record(db_session)
        reservation = create_test_reservation(db_session, record, expires_at=utcnow() - timedelta(minutes=1))

        result = ReservationManager().fulfill(reservation.id)

        assert result['success'] is False
        assert result['message'] == 'Reservation has expired'
        assert reload(db_session, record).quantity_reserved == 2

    def test_ledger_failure_commits_nothing(self, db_session):
        record = create_test_inventory_record(db_session, quantity_on_hand=10, quantity_reserved=0)
        reservation = Reservation(inventory_id=record.id, product_id=record.product_id, warehouse_id='wh-main',
                                  quantity=3, user_id='user-1', status=ReservationStatus.ACTIVE,
                                  expires_at=utcnow() + timedelta(minutes=5))
        db_session.add(reservation)
        db_session.commit()

        with pytest.raises(LedgerError):
            ReservationManager().release(reservation.id)

        reservation = reload(db_session, reservation)
        assert reservation.status == ReservationStatus.ACTIVE
        assert reservation.released_at is None
        assert reload(db_session, record).version == 0
        assert StockMovement.query.count() == 0

    def test_movement_failure_rolls_back_settlement(self, db_session):
        record = create_test_inventory_record(db_session, quantity_on_hand=10)
        reservation = create_test_reservation(db_session, record, quantity=3)
        movement_repo = MovementRepository()
        movement_repo.create = MagicMock(side_effect=storage_error())
        manager = ReservationManager(movement_log=MovementLog(movement_repo=movement_repo))

        with pytest.raises(StorageError):
            manager.release(reservation.id)

        assert reload(db_session, reservation).status == ReservationStatus.ACTIVE
        record = reload(db_session, record)
        assert record.quantity_reserved == 3
        assert record.version == 1
        assert StockMovement.query.count() == 0

    def test_release_for_order(self, db_session):
        record = create_test_inventory_record(db_session)
        create_test_reservation(db_session, record, quantity=1, order_id='ORD-1')
        create_test_reservation(db_session, record, quantity=2, order_id='ORD-1')
        create_test_reservation(db_session, record, quantity=3, order_id='ORD-2')

        result = ReservationManager().release_for_order('ORD-1')

        assert result['success'] is True
        assert len(result['released']) == 2
        assert reload(db_session, record).quantity_reserved == 3

    def test_release_for_cart(self, db_session):
        record = create_test_inventory_record(db_session)
        create_test_reservation(db_session, record, quantity=1, cart_session_id='cart-1')

        result = ReservationManager().release_for_cart('cart-1')

        assert len(result['released']) == 1
        assert reload(db_session, record).quantity_reserved == 0

    def test_list_reservations(self, db_session):
        record = create_test_inventory_record(db_session)
        create_test_reservation(db_session, record, quantity=1, user_id='user-1')
        create_test_reservation(db_session, record, quantity=1, user_id='user-2')

        result = ReservationManager().list_reservations(user_id='user-1')

        assert result['pagination']['total'] == 1
        assert result['reservations'][0]['user_id'] == 'user-1'
