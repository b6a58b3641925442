"""
PayPal REST API Client
Handles OAuth2 client-credentials authentication, Orders v2 (deposits)
and Payouts v1 (worker withdrawals)
"""

import logging
import time
import uuid
from typing import Optional, Dict, Any

import requests

from taskinn.core.config import settings
from taskinn.core.exceptions import UpstreamProcessorError
from taskinn.schemas.processor_schemas import PayPalOrder, PayPalCapture, PayPalPayout

logger = logging.getLogger(__name__)


class PayPalClient:
    """PayPal API Client with cached OAuth2 access token"""

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.client_id = client_id or settings.PAYPAL_CLIENT_ID
        self.client_secret = client_secret or settings.PAYPAL_CLIENT_SECRET
        self.base_url = (base_url or settings.paypal_api_base).rstrip("/")
        self.timeout = timeout or settings.PROCESSOR_TIMEOUT_SECONDS
        self.session = requests.Session()
        self._access_token: Optional[str] = None
        self._token_expires_at: float = 0.0

    def _get_access_token(self) -> str:
        """Fetch (or reuse) an OAuth2 access token"""
        if not self.client_id or not self.client_secret:
            raise UpstreamProcessorError("PayPal credentials are not configured", processor="paypal")

        # Refresh one minute before expiry
        if self._access_token and time.time() < self._token_expires_at - 60:
            return self._access_token

        url = f"{self.base_url}/v1/oauth2/token"
        try:
            response = self.session.post(
                url,
                data={"grant_type": "client_credentials"},
                auth=(self.client_id, self.client_secret),
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"PayPal authentication failed: {e}")
            raise UpstreamProcessorError(f"PayPal authentication failed: {e}", processor="paypal")

        data = response.json()
        self._access_token = data["access_token"]
        self._token_expires_at = time.time() + int(data.get("expires_in", 0))
        return self._access_token

    def _request(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
        request_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Send an authenticated request to PayPal

        Args:
            method: HTTP method
            path: API path, e.g. "/v2/checkout/orders"
            payload: JSON body for POST requests
            request_id: PayPal-Request-Id for idempotent retries

        Returns:
            Parsed JSON response

        Raises:
            UpstreamProcessorError: on transport errors or non-2xx responses
        """
        url = f"{self.base_url}{path}"
        headers = {
            "Authorization": f"Bearer {self._get_access_token()}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if request_id:
            headers["PayPal-Request-Id"] = request_id

        try:
            response = self.session.request(method, url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"PayPal {method} {path} failed: {e}")
            raise UpstreamProcessorError(f"PayPal request failed: {e}", processor="paypal")

        if response.status_code >= 400:
            message = self._error_message(response)
            logger.error(f"PayPal {method} {path} returned {response.status_code}: {message}")
            raise UpstreamProcessorError(message, processor="paypal", details={"status": response.status_code})

        return response.json() if response.content else {}

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return f"PayPal returned HTTP {response.status_code}"
        details = body.get("details") or []
        if details and details[0].get("issue"):
            return f"{body.get('name', 'PAYPAL_ERROR')}: {details[0]['issue']}"
        return body.get("message") or body.get("error_description") or f"PayPal returned HTTP {response.status_code}"

    def create_order(self, amount: float, currency: str = "USD") -> PayPalOrder:
        """
        Create a CAPTURE-intent order for an employer deposit

        Returns:
            Order id and the approval URL the payer must visit
        """
        payload = {
            "intent": "CAPTURE",
            "purchase_units": [
                {
                    "amount": {"currency_code": currency, "value": f"{amount:.2f}"},
                    "description": "TaskInn wallet deposit",
                }
            ],
            "application_context": {
                "brand_name": "TaskInn",
                "landing_page": "NO_PREFERENCE",
                "user_action": "PAY_NOW",
                "return_url": f"{settings.APP_URL}/dashboard/employer/payments?success=true",
                "cancel_url": f"{settings.APP_URL}/dashboard/employer/payments?cancelled=true",
            },
        }
        data = self._request("POST", "/v2/checkout/orders", payload, request_id=str(uuid.uuid4()))

        approval_url = next(
            (link.get("href") for link in data.get("links", []) if link.get("rel") in ("approve", "payer-action")),
            None,
        )
        return PayPalOrder(order_id=data["id"], approval_url=approval_url)

    def capture_order(self, order_id: str) -> PayPalCapture:
        """
        Capture an approved order

        The captured amount reported here is the only amount a deposit is
        ever settled for.
        """
        # The order id doubles as the idempotency key: a retried capture returns the same result
        data = self._request("POST", f"/v2/checkout/orders/{order_id}/capture", {}, request_id=f"capture-{order_id}")

        try:
            capture = data["purchase_units"][0]["payments"]["captures"][0]
            amount = float(capture["amount"]["value"])
        except (KeyError, IndexError, TypeError, ValueError):
            logger.error(f"Unexpected PayPal capture response for order {order_id}: {data}")
            raise UpstreamProcessorError("PayPal capture response did not contain a capture", processor="paypal")

        if capture.get("status") not in ("COMPLETED", "PENDING"):
            raise UpstreamProcessorError(
                f"PayPal capture {capture.get('id')} is {capture.get('status')}",
                processor="paypal",
            )

        return PayPalCapture(
            capture_id=capture["id"],
            status=data.get("status", capture.get("status", "")),
            amount=amount,
            currency=capture["amount"].get("currency_code", "USD"),
        )

    def create_payout(self, recipient_email: str, amount: float, currency: str = "USD", note: Optional[str] = None) -> PayPalPayout:
        """Send a single-item payout to a PayPal account"""
        sender_batch_id = f"batch_{uuid.uuid4().hex}"
        payload = {
            "sender_batch_header": {
                "sender_batch_id": sender_batch_id,
                "email_subject": "You have a payout from TaskInn!",
                "email_message": note or "Thank you for your work on TaskInn platform.",
            },
            "items": [
                {
                    "recipient_type": "EMAIL",
                    "amount": {"value": f"{amount:.2f}", "currency": currency},
                    "note": note or "Payment for completed tasks",
                    "sender_item_id": f"item_{uuid.uuid4().hex}",
                    "receiver": recipient_email,
                }
            ],
        }
        data = self._request("POST", "/v1/payments/payouts", payload)

        header = data.get("batch_header") or {}
        if not header.get("payout_batch_id"):
            raise UpstreamProcessorError("PayPal payout response did not contain a batch id", processor="paypal")
        return PayPalPayout(batch_id=header["payout_batch_id"], status=header.get("batch_status", "PENDING"))

    def get_payout_status(self, batch_id: str) -> PayPalPayout:
        data = self._request("GET", f"/v1/payments/payouts/{batch_id}")
        header = data.get("batch_header") or {}
        return PayPalPayout(batch_id=batch_id, status=header.get("batch_status", "UNKNOWN"))


def get_paypal_client() -> PayPalClient:
    """Get PayPal client instance"""
    return PayPalClient()
