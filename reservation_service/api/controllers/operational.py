"""
Operational endpoints used by load balancers and orchestrators
"""

import os
import time
import logging

from flask import Blueprint, jsonify, current_app
from sqlalchemy import text

from reservation_service.database import db
from reservation_service.utils.time_utils import utcnow, to_utc_z

logger = logging.getLogger(__name__)

SERVICE_NAME = 'stock-reservation-service'

operational_bp = Blueprint('operational', __name__)


@operational_bp.route('/health', methods=['GET'])
def health():
    """Main health check endpoint"""
    return jsonify({
        'status': 'healthy',
        'service': SERVICE_NAME,
        'timestamp': to_utc_z(utcnow()),
        'version': os.environ.get('API_VERSION', '1.0.0'),
        'erp_configured': bool(current_app.config.get('ERP_API_BASE_URL')),
    }), 200


@operational_bp.route('/health/ready', methods=['GET'])
def readiness():
    """Readiness probe - checks the database is reachable"""
    started = time.monotonic()
    try:
        db.session.execute(text('SELECT 1'))
        database = {'status': 'healthy'}
        status = 'ready'
    except Exception as e:
        db.session.rollback()
        logger.error(f"Readiness check failed: {e}")
        database = {'status': 'unhealthy', 'error': 'Database unreachable'}
        status = 'not ready'

    return jsonify({
        'status': status,
        'service': SERVICE_NAME,
        'timestamp': to_utc_z(utcnow()),
        'total_check_time': round(time.monotonic() - started, 4),
        'checks': {'database': database},
    }), 200 if status == 'ready' else 503
