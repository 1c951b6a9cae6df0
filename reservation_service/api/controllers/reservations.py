"""
Reservations Controller - multi-item stock reservations and their lifecycle
"""

import logging

from flask import current_app, request
from flask_restx import Namespace, Resource, fields
from marshmallow import ValidationError

from reservation_service.api.middlewares.auth import require_auth, require_admin, get_current_user
from reservation_service.exceptions import InvalidRequest, ReservationError, ReservationNotFound, StorageError
from reservation_service.services import ExpirySweeper, ReservationManager, status_code_for
from reservation_service.utils.schemas import ReservationActionSchema, ReservationSearchSchema

logger = logging.getLogger(__name__)

reservations_ns = Namespace('reservations', description='Stock reservation operations', path='/reservations')

action_schema = ReservationActionSchema()
search_schema = ReservationSearchSchema()

reservation_item_model = reservations_ns.model('ReservationItem', {
    'product_id': fields.Integer(required=True, description='Product identifier'),
    'quantity': fields.Integer(required=True, description='Quantity to hold'),
    'warehouse_id': fields.String(description='Warehouse; defaults to the default warehouse'),
    'erp_sku': fields.String(description='ERP SKU to mirror the hold to'),
    'location_code': fields.String(description='ERP location code')
})

reservation_request_model = reservations_ns.model('ReservationRequest', {
    'items': fields.List(fields.Nested(reservation_item_model), required=True),
    'order_id': fields.String(description='Order identifier'),
    'cart_session_id': fields.String(description='Cart session identifier'),
    'user_id': fields.String(description='Defaults to the authenticated user'),
    'request_id': fields.String(description='Client retry token for ERP idempotency'),
    'duration_minutes': fields.Integer(description='Hold duration in minutes')
})


def _get_sweeper():
    """One sweeper per app so overlapping sweep calls see the same state"""
    sweeper = current_app.extensions.get('expiry_sweeper')
    if sweeper is None:
        sweeper = current_app.extensions['expiry_sweeper'] = ExpirySweeper()
    return sweeper


def _current_user_id():
    user = get_current_user()
    return user['id'] if user else None


@reservations_ns.route('')
class ReservationList(Resource):
    @reservations_ns.doc('create_reservation')
    @reservations_ns.expect(reservation_request_model)
    @require_auth
    def post(self):
        """Reserve stock for every item of a cart or order"""
        try:
            result = ReservationManager().reserve(request.get_json(silent=True), user_id=_current_user_id())
            return result, status_code_for(result)
        except InvalidRequest as e:
            return {'success': False, 'error': e.message, 'details': e.details}, 400
        except Exception as e:
            logger.error(f"Error creating reservations: {e}", exc_info=True)
            return {'success': False, 'error': 'Internal server error'}, 500

    @reservations_ns.doc('list_reservations')
    @require_auth
    def get(self):
        """List reservations with optional filtering"""
        try:
            params = search_schema.load(request.args.to_dict())
            page = params.pop('page')
            per_page = params.pop('per_page')
            return ReservationManager().list_reservations(page=page, per_page=per_page, **params), 200
        except ValidationError as e:
            return {'error': 'Validation failed', 'details': e.messages}, 400
        except Exception as e:
            logger.error(f"Error listing reservations: {e}", exc_info=True)
            return {'error': 'Internal server error'}, 500


@reservations_ns.route('/expire')
class ReservationExpiry(Resource):
    @reservations_ns.doc('expire_reservations')
    @require_admin
    def post(self):
        """Run one expiry sweep now"""
        try:
            return _get_sweeper().sweep(), 200
        except Exception as e:
            logger.error(f"Error running expiry sweep: {e}", exc_info=True)
            return {'error': 'Internal server error'}, 500


@reservations_ns.route('/<string:reservation_id>')
class ReservationItem(Resource):
    @reservations_ns.doc('get_reservation')
    @require_auth
    def get(self, reservation_id):
        """Get reservation by ID"""
        try:
            return ReservationManager().get_reservation(reservation_id), 200
        except ReservationNotFound as e:
            return {'error': e.message}, 404
        except Exception as e:
            logger.error(f"Error getting reservation {reservation_id}: {e}", exc_info=True)
            return {'error': 'Internal server error'}, 500


def _settle(action, reservation_id):
    try:
        data = action_schema.load(request.get_json(silent=True) or {})
        manager = ReservationManager()
        handler = manager.release if action == 'release' else manager.fulfill
        result = handler(reservation_id, performed_by=_current_user_id(), reason=data.get('reason'))
        return result, 200 if result['success'] else 409
    except ValidationError as e:
        return {'error': 'Validation failed', 'details': e.messages}, 400
    except ReservationNotFound as e:
        return {'error': e.message}, 404
    except StorageError as e:
        logger.error(f"Storage error trying to {action} reservation {reservation_id}: {e.message}")
        return {'error': 'Internal server error'}, 500
    except ReservationError as e:
        logger.error(f"Error trying to {action} reservation {reservation_id}: {e.message}")
        return {'success': False, 'error': e.reason, 'error_code': e.code}, 409
    except Exception as e:
        logger.error(f"Error trying to {action} reservation {reservation_id}: {e}", exc_info=True)
        return {'error': 'Internal server error'}, 500


@reservations_ns.route('/<string:reservation_id>/release')
class ReservationRelease(Resource):
    @reservations_ns.doc('release_reservation')
    @require_auth
    def post(self, reservation_id):
        """Release an active reservation"""
        return _settle('release', reservation_id)


@reservations_ns.route('/<string:reservation_id>/fulfill')
class ReservationFulfill(Resource):
    @reservations_ns.doc('fulfill_reservation')
    @require_auth
    def post(self, reservation_id):
        """Fulfill an active reservation"""
        return _settle('fulfill', reservation_id)


@reservations_ns.route('/orders/<string:order_id>/release')
class OrderRelease(Resource):
    @reservations_ns.doc('release_order_reservations')
    @require_auth
    def post(self, order_id):
        """Release every active reservation of an order"""
        try:
            result = ReservationManager().release_for_order(order_id, performed_by=_current_user_id())
            return result, 200 if result['success'] else 207
        except Exception as e:
            logger.error(f"Error releasing reservations for order {order_id}: {e}", exc_info=True)
            return {'error': 'Internal server error'}, 500


@reservations_ns.route('/carts/<string:cart_session_id>/release')
class CartRelease(Resource):
    @reservations_ns.doc('release_cart_reservations')
    @require_auth
    def post(self, cart_session_id):
        """Release every active reservation of a cart session"""
        try:
            result = ReservationManager().release_for_cart(cart_session_id, performed_by=_current_user_id())
            return result, 200 if result['success'] else 207
        except Exception as e:
            logger.error(f"Error releasing reservations for cart {cart_session_id}: {e}", exc_info=True)
            return {'error': 'Internal server error'}, 500
