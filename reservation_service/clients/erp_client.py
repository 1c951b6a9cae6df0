"""
ERP Client - HTTP client for the third-party ERP inventory API
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

import requests

from reservation_service.api.middlewares.correlation_id import create_request_headers
from reservation_service.utils.app_config import get_setting

logger = logging.getLogger(__name__)

USER_AGENT = 'StockReservationService/1.0'


@dataclass
class ErpResult:
    """Outcome of an ERP reservation call; failures are values, not exceptions"""
    success: bool
    reservation_id: Optional[str] = None
    available_quantity: Optional[int] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None


class ErpClient:
    """Client for the ERP inventory reservation endpoints"""

    def __init__(self, base_url: str = None, token: str = None, timeout: float = None,
                 ttl_minutes: int = None, session: requests.Session = None):
        self._base_url = base_url
        self._token = token
        self.timeout = timeout or get_setting('ERP_TIMEOUT_SECONDS', 10)
        self.ttl_minutes = ttl_minutes or get_setting('ERP_TTL_MINUTES', 30)
        self.session = session or requests.Session()

    @property
    def base_url(self):
        """Get base URL, using Flask config if not provided during init"""
        if self._base_url is None:
            self._base_url = get_setting('ERP_API_BASE_URL') or ''
        return self._base_url.rstrip('/')

    @property
    def token(self):
        if self._token is None:
            self._token = get_setting('ERP_API_TOKEN') or ''
        return self._token

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url)

    def _headers(self) -> Dict[str, str]:
        return create_request_headers({
            'Authorization': f'Bearer {self.token}',
            'User-Agent': USER_AGENT
        })

    def reserve_stock(self, sku: str, quantity: int, location: str, idempotency_key: str) -> ErpResult:
        """
        Reserve stock in the ERP.

        The idempotency key is sent on every attempt so the ERP treats a
        retry as the same reservation.
        """
        url = f"{self.base_url}/inventory/reserve"
        payload = {
            'sku': sku,
            'quantity': quantity,
            'location': location,
            'idempotency_key': idempotency_key,
            'ttl_minutes': self.ttl_minutes
        }

        try:
            response = self.session.post(url, json=payload, headers=self._headers(), timeout=self.timeout)
        except requests.exceptions.Timeout:
            logger.error(f"Timeout calling ERP reserve for {sku} (key {idempotency_key})")
            return ErpResult(success=False, error_code='NETWORK_ERROR',
                             error_message=f'ERP request timed out after {self.timeout}s')
        except requests.exceptions.RequestException as e:
            logger.error(f"Network error calling ERP reserve for {sku}: {e}")
            return ErpResult(success=False, error_code='NETWORK_ERROR', error_message=str(e))

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if not response.ok:
            logger.warning(f"ERP reserve for {sku} rejected: HTTP {response.status_code}")
            return ErpResult(
                success=False,
                error_code=data.get('error_code') or 'ERP_ERROR',
                error_message=data.get('message') or f'HTTP {response.status_code}'
            )

        return ErpResult(
            success=True,
            reservation_id=data.get('reservation_id'),
            available_quantity=data.get('available_quantity')
        )

    def get_stock_level(self, sku: str, location: str) -> Optional[int]:
        """Get available quantity for a SKU; None when the ERP cannot be reached"""
        url = f"{self.base_url}/inventory/stock/{sku}"
        try:
            response = self.session.get(url, params={'location': location},
                                        headers=self._headers(), timeout=self.timeout)
            if response.status_code == 200:
                return int(response.json().get('available_quantity') or 0)
            logger.error(f"ERP stock check error for {sku}: {response.status_code}")
            return None
        except requests.exceptions.RequestException as e:
            logger.error(f"Network error calling ERP stock check for {sku}: {e}")
            return None
        except (ValueError, TypeError) as e:
            logger.error(f"Malformed ERP stock response for {sku}: {e}")
            return None
