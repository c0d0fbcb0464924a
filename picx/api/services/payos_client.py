"""
PayOS Client
Creates payment links and verifies webhook signatures for wallet top-ups.
"""

import hashlib
import hmac
import json
import logging
from typing import Any, Dict, List, Optional

import requests

from ..config import get_settings
from ..errors import PaymentProviderError

logger = logging.getLogger(__name__)

PAYOS_SUCCESS_CODE = "00"


class PayOSClient:
    """
    Minimal PayOS merchant API client.

    Request signatures are HMAC-SHA256 over
    `amount=..&cancelUrl=..&description=..&orderCode=..&returnUrl=..`
    keyed with the checksum key.
    """

    def __init__(
        self,
        client_id: str,
        api_key: str,
        checksum_key: str,
        base_url: str = "https://api-merchant.payos.vn",
        timeout: int = 15,
    ):
        self.client_id = client_id
        self.api_key = api_key
        self.checksum_key = checksum_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        return {
            "x-client-id": self.client_id,
            "x-api-key": self.api_key,
            "Content-Type": "application/json",
        }

    def _sign(self, message: str) -> str:
        return hmac.new(
            self.checksum_key.encode("utf-8"), message.encode("utf-8"), hashlib.sha256
        ).hexdigest()

    def payment_request_signature(
        self, amount: int, cancel_url: str, description: str, order_code: int, return_url: str
    ) -> str:
        return self._sign(
            f"amount={amount}&cancelUrl={cancel_url}&description={description}"
            f"&orderCode={order_code}&returnUrl={return_url}"
        )

    def data_signature(self, data: Dict[str, Any]) -> str:
        """Signature of webhook `data`: sorted `key=value` pairs joined by `&`."""
        parts = []
        for key in sorted(data):
            value = data[key]
            if value is None:
                value = ""
            elif isinstance(value, (list, dict)):
                value = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
            elif isinstance(value, bool):
                value = str(value).lower()
            parts.append(f"{key}={value}")
        return self._sign("&".join(parts))

    def verify_webhook_data(self, data: Dict[str, Any], signature: Optional[str]) -> bool:
        if not signature:
            return False
        return hmac.compare_digest(self.data_signature(data), signature)

    def create_payment_link(
        self,
        order_code: int,
        amount: int,
        description: str,
        items: List[Dict[str, Any]],
        return_url: str,
        cancel_url: str,
    ) -> Dict[str, Any]:
        """
        Create a hosted checkout link.

        Returns:
            The `data` object of the PayOS response (contains `checkoutUrl`)

        Raises:
            PaymentProviderError: On transport errors or a non-success code
        """
        payload = {
            "orderCode": order_code,
            "amount": amount,
            "description": description,
            "items": items,
            "returnUrl": return_url,
            "cancelUrl": cancel_url,
            "signature": self.payment_request_signature(
                amount, cancel_url, description, order_code, return_url
            ),
        }
        url = f"{self.base_url}/v2/payment-requests"

        try:
            response = requests.post(url, json=payload, headers=self._headers(), timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"PayOS payment link request failed for order {order_code}: {e}")
            raise PaymentProviderError("Payment provider is unavailable")

        if body.get("code") != PAYOS_SUCCESS_CODE or not body.get("data"):
            logger.error(
                f"PayOS rejected order {order_code}: {body.get('code')} {body.get('desc')}"
            )
            raise PaymentProviderError(
                "Payment provider rejected the request",
                details={"code": body.get("code"), "desc": body.get("desc")},
            )

        logger.info(f"PayOS payment link created for order {order_code}")
        return body["data"]


_payos_client: Optional[PayOSClient] = None


def get_payos_client() -> PayOSClient:
    """Get PayOS client (singleton)."""
    global _payos_client
    if _payos_client is None:
        settings = get_settings()
        _payos_client = PayOSClient(
            client_id=settings.payos_client_id,
            api_key=settings.payos_api_key,
            checksum_key=settings.payos_checksum_key,
            base_url=settings.payos_base_url,
            timeout=settings.payos_timeout,
        )
    return _payos_client
