"""
CoinPayments API Client
Handles USDT (TRC20) deposit addresses, withdrawals and IPN verification
Uses HMAC-SHA512 request signing over the url-encoded body
"""

import hashlib
import hmac
import logging
from typing import Optional, Dict, Any, Union
from urllib.parse import urlencode

import requests

from taskinn.core.config import settings
from taskinn.core.exceptions import UpstreamProcessorError
from taskinn.schemas.processor_schemas import CryptoDepositAddress, CryptoWithdrawal, CryptoWithdrawalInfo

logger = logging.getLogger(__name__)


def sign_payload(payload: Union[str, bytes], secret: str) -> str:
    """HMAC-SHA512 hex digest used both for API requests and IPN callbacks"""
    if isinstance(payload, str):
        payload = payload.encode('utf-8')
    return hmac.new(
        secret.encode('utf-8'),
        payload,
        hashlib.sha512
    ).hexdigest()


def verify_ipn_signature(raw_body: bytes, received_hmac: Optional[str], secret: Optional[str] = None) -> bool:
    """
    Verify that an IPN body was signed with our IPN secret

    Args:
        raw_body: Request body exactly as received (url-encoded form)
        received_hmac: Value of the HMAC request header
        secret: IPN secret; defaults to the configured one

    Returns:
        True only when the signature matches
    """
    secret = secret or settings.coinpayments_ipn_secret
    if not secret:
        logger.error("CoinPayments IPN secret is not configured")
        return False
    if not received_hmac:
        return False

    # Signed over the raw bytes; the body is only decoded once it is trusted
    expected = sign_payload(raw_body, secret)
    return hmac.compare_digest(expected.encode('ascii'), received_hmac.strip().lower().encode('utf-8'))


class CoinPaymentsClient:
    """CoinPayments API Client"""

    def __init__(
        self,
        public_key: Optional[str] = None,
        private_key: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.public_key = public_key or settings.COINPAYMENTS_PUBLIC_KEY
        self.private_key = private_key or settings.COINPAYMENTS_PRIVATE_KEY
        self.api_url = api_url or settings.COINPAYMENTS_API_URL
        self.timeout = timeout or settings.PROCESSOR_TIMEOUT_SECONDS
        self.currency = settings.COINPAYMENTS_CURRENCY

    def _request(self, command: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Send a signed command to the CoinPayments API

        Args:
            command: API command name, e.g. "create_withdrawal"
            params: Command parameters

        Returns:
            The "result" object of the response

        Raises:
            UpstreamProcessorError: on transport errors or when "error" is not "ok"
        """
        if not self.public_key or not self.private_key:
            raise UpstreamProcessorError("CoinPayments credentials are not configured", processor="coinpayments")

        request_params = {
            "version": 1,
            "cmd": command,
            "key": self.public_key,
            "format": "json",
        }
        if params:
            request_params.update(params)

        body = urlencode(request_params)
        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "HMAC": sign_payload(body, self.private_key),
        }

        try:
            response = requests.post(self.api_url, data=body, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"CoinPayments {command} failed: {e}")
            raise UpstreamProcessorError(f"CoinPayments request failed: {e}", processor="coinpayments")

        if data.get("error") != "ok":
            logger.error(f"CoinPayments {command} returned error: {data.get('error')}")
            raise UpstreamProcessorError(data.get("error") or "CoinPayments API error", processor="coinpayments")

        return data.get("result") or {}

    def get_callback_address(self, label: str, ipn_url: str) -> CryptoDepositAddress:
        """
        Get a deposit address whose incoming payments are reported via IPN

        Args:
            label: Address label; echoed back in every IPN for this address
            ipn_url: Where CoinPayments should push notifications
        """
        result = self._request("get_callback_address", {
            "currency": self.currency,
            "ipn_url": ipn_url,
            "label": label,
        })
        if not result.get("address"):
            raise UpstreamProcessorError("CoinPayments did not return a deposit address", processor="coinpayments")

        return CryptoDepositAddress(
            address=result["address"],
            pubkey=result.get("pubkey"),
            dest_tag=str(result["dest_tag"]) if result.get("dest_tag") is not None else None,
        )

    def create_withdrawal(self, address: str, amount: float, note: Optional[str] = None) -> CryptoWithdrawal:
        """Send `amount` to an external address"""
        result = self._request("create_withdrawal", {
            "currency": self.currency,
            "amount": f"{amount:.2f}",
            "address": address,
            "auto_confirm": 1,
            "note": note or "TaskInn payout",
        })
        if not result.get("id"):
            raise UpstreamProcessorError("CoinPayments did not return a withdrawal id", processor="coinpayments")

        return CryptoWithdrawal(
            withdrawal_id=str(result["id"]),
            status=str(result.get("status", "")),
            amount=float(result["amount"]) if result.get("amount") is not None else None,
        )

    def get_withdrawal_info(self, withdrawal_id: str) -> CryptoWithdrawalInfo:
        result = self._request("get_withdrawal_info", {"id": withdrawal_id})
        return CryptoWithdrawalInfo(
            withdrawal_id=withdrawal_id,
            status=str(result.get("status", "")),
            status_text=result.get("status_text"),
            amount=float(result["amount"]) if result.get("amount") is not None else None,
            raw=result,
        )


# Initialize client (can be used throughout the app)
def get_coinpayments_client() -> CoinPaymentsClient:
    """Get CoinPayments client instance"""
    return CoinPaymentsClient()
