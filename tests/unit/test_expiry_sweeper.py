import threading
from datetime import timedelta
from unittest.mock import MagicMock

from reservation_service.exceptions import LedgerError
from reservation_service.models import ReservationStatus, StockMovement, StockMovementType
from reservation_service.services import ExpirySweeper, InventoryLedger, ReservationManager, SweeperState
from reservation_service.utils.time_utils import utcnow
from tests.conftest import create_test_inventory_record, create_test_reservation, reload


class TestExpirySweeper:
    """Test expiry of overdue reservations."""

    def test_expires_overdue_reservations_only(self, db_session):
        record = create_test_inventory_record(db_session, quantity_on_hand=10)
        overdue = create_test_reservation(db_session, record, quantity=3,
                                          expires_at=utcnow() - timedelta(minutes=1))
        current = create_test_reservation(db_session, record, quantity=2)

        result = ExpirySweeper().sweep()

        assert result['skipped'] is False
        assert result['expired_count'] == 1
        assert reload(db_session, overdue).status == ReservationStatus.EXPIRED
        assert reload(db_session, current).status == ReservationStatus.ACTIVE
        assert reload(db_session, record).quantity_reserved == 2

        movement = StockMovement.query.one()
        assert movement.movement_type == StockMovementType.RELEASE
        assert movement.quantity == 3
        assert movement.reason == 'Reservation expired'

    def test_second_sweep_is_a_no_op(self, db_session):
        record = create_test_inventory_record(db_session, quantity_on_hand=10)
        create_test_reservation(db_session, record, quantity=3, expires_at=utcnow() - timedelta(minutes=1))
        sweeper = ExpirySweeper()

        sweeper.sweep()
        version_after_first = reload(db_session, record).version
        result = sweeper.sweep()

        assert result['expired_count'] == 0
        assert reload(db_session, record).version == version_after_first
        assert StockMovement.query.count() == 1

    def test_settling_an_already_expired_reservation_skips_ledger(self, db_session):
        record = create_test_inventory_record(db_session, quantity_on_hand=10)
        reservation = create_test_reservation(db_session, record, quantity=3,
                                              expires_at=utcnow() - timedelta(minutes=1))
        manager = ReservationManager()

        assert manager.settle(reservation, ReservationStatus.EXPIRED) is True
        assert manager.settle(reservation, ReservationStatus.EXPIRED) is False
        assert reload(db_session, record).quantity_reserved == 0

    def test_one_failure_does_not_block_others(self, db_session):
        record = create_test_inventory_record(db_session, quantity_on_hand=10)
        first = create_test_reservation(db_session, record, quantity=1,
                                        expires_at=utcnow() - timedelta(minutes=2))
        second = create_test_reservation(db_session, record, quantity=2,
                                         expires_at=utcnow() - timedelta(minutes=1))

        ledger = InventoryLedger()
        real_release = ledger.release

        def fail_first(record_id, quantity, commit=True):
            if quantity == 1:
                raise LedgerError('simulated')
            return real_release(record_id, quantity, commit=commit)

        ledger.release = fail_first
        sweeper = ExpirySweeper(manager=ReservationManager(ledger=ledger))

        result = sweeper.sweep()

        assert result['expired_count'] == 1
        assert result['failed_ids'] == [first.id]
        # A failed release leaves the reservation active for the next sweep
        assert reload(db_session, first).status == ReservationStatus.ACTIVE
        assert reload(db_session, second).status == ReservationStatus.EXPIRED
        assert reload(db_session, record).quantity_reserved == 1

    def test_overlapping_sweep_is_skipped(self, db_session):
        sweeper = ExpirySweeper()
        entered = threading.Event()
        release = threading.Event()
        results = []

        def slow_sweep():
            entered.set()
            release.wait(timeout=5)
            return {'skipped': False, 'expired_count': 0, 'failed_count': 0}

        sweeper._sweep = slow_sweep
        worker = threading.Thread(target=lambda: results.append(sweeper.sweep()))
        worker.start()
        entered.wait(timeout=5)

        assert sweeper.state == SweeperState.SWEEPING
        assert sweeper.sweep()['skipped'] is True

        release.set()
        worker.join(timeout=5)
        assert results[0]['skipped'] is False
        assert sweeper.state == SweeperState.IDLE

    def test_sweep_releases_stale_erp_shadows(self, db_session):
        bridge = MagicMock()
        bridge.release_stale_pending.return_value = 2

        result = ExpirySweeper(bridge=bridge).sweep()

        assert result['stale_erp_released'] == 2
