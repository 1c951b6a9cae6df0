from datetime import timedelta

from reservation_service.models import InventoryRecord, Reservation, ReservationStatus
from reservation_service.utils.time_utils import utcnow, to_utc_z
from tests.conftest import create_test_inventory_record, create_test_reservation


class TestInventoryRecord:
    def test_available_is_derived(self):
        record = InventoryRecord(quantity_on_hand=10, quantity_reserved=4)

        assert record.quantity_available == 6

    def test_to_dict(self, db_session):
        record = create_test_inventory_record(db_session, quantity_on_hand=8, quantity_reserved=3)

        data = record.to_dict()

        assert data['quantity_available'] == 5
        assert data['version'] == 0
        assert data['pieces_per_box'] == 1
        assert data['sqm_per_box'] == 1.0
        assert data['created_at'].endswith('Z')


class TestReservation:
    def test_is_expired(self):
        now = utcnow()
        reservation = Reservation(expires_at=now - timedelta(seconds=1))

        assert reservation.is_expired(now) is True
        assert Reservation(expires_at=now + timedelta(minutes=1)).is_expired(now) is False

    def test_to_dict(self, db_session):
        record = create_test_inventory_record(db_session)
        reservation = create_test_reservation(db_session, record, order_id='ORD-1')

        data = reservation.to_dict()

        assert data['status'] == 'active'
        assert data['order_id'] == 'ORD-1'
        assert data['inventory_id'] == record.id
        assert data['released_at'] is None
        assert data['expires_at'] == to_utc_z(reservation.expires_at)
        assert reservation.status == ReservationStatus.ACTIVE
