import base64
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict

import requests

from core.config import settings
from core.errors import GatewayRejected, GatewayUnavailable, InvalidPhoneFormat

logger = logging.getLogger(__name__)

COUNTRY_PREFIX = "254"
TOKEN_PATH = "/oauth/v1/generate?grant_type=client_credentials"
STK_PUSH_PATH = "/mpesa/stkpush/v1/processrequest"


def normalize_phone(phone: str | None) -> str:
    """Return the 12-digit ``2547XXXXXXXX`` form of a Kenyan mobile number.

    Accepts ``07XXXXXXXX``, ``7XXXXXXXX`` or ``254XXXXXXXXX``; separators
    such as spaces, dashes or a leading ``+`` are ignored.
    """
    digits = re.sub(r"\D", "", phone or "")
    if len(digits) == 10 and digits.startswith("07"):
        return COUNTRY_PREFIX + digits[1:]
    if len(digits) == 9 and digits.startswith("7"):
        return COUNTRY_PREFIX + digits
    if len(digits) == 12 and digits.startswith(COUNTRY_PREFIX):
        return digits
    raise InvalidPhoneFormat()


@dataclass(frozen=True)
class PushResult:
    checkout_request_id: str
    merchant_request_id: str | None
    description: str | None


class MpesaGateway:
    """Daraja client: OAuth token exchange and STK push initiation.

    No state is kept between calls; every push fetches a fresh token.
    """

    def __init__(
        self,
        consumer_key: str,
        consumer_secret: str,
        short_code: str,
        passkey: str,
        base_url: str = "https://sandbox.safaricom.co.ke",
        timeout: float = 20,
    ):
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self.short_code = short_code
        self.passkey = passkey
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @classmethod
    def from_settings(cls) -> "MpesaGateway":
        return cls(
            consumer_key=settings.MPESA_CONSUMER_KEY,
            consumer_secret=settings.MPESA_CONSUMER_SECRET,
            short_code=settings.BUSINESS_SHORT_CODE,
            passkey=settings.MPESA_PASSKEY,
            base_url=settings.MPESA_BASE_URL,
            timeout=settings.MPESA_TIMEOUT_SECONDS,
        )

    def _password(self, timestamp: str) -> str:
        raw = f"{self.short_code}{self.passkey}{timestamp}"
        return base64.b64encode(raw.encode()).decode()

    def get_access_token(self) -> str:
        try:
            resp = requests.get(
                f"{self.base_url}{TOKEN_PATH}",
                auth=(self.consumer_key, self.consumer_secret),
                timeout=self.timeout,
            )
            resp.raise_for_status()
            token = resp.json().get("access_token")
        except (requests.RequestException, ValueError) as exc:
            logger.warning("M-Pesa token request failed: %s", exc)
            raise GatewayUnavailable() from exc
        if not token:
            logger.warning("M-Pesa token response carried no access_token")
            raise GatewayUnavailable()
        return token

    def initiate_push(
        self,
        token: str,
        phone: str,
        amount: int,
        callback_url: str,
        reference: str,
        description: str = "",
    ) -> PushResult:
        timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
        payload: Dict[str, Any] = {
            "BusinessShortCode": self.short_code,
            "Password": self._password(timestamp),
            "Timestamp": timestamp,
            "TransactionType": "CustomerPayBillOnline",
            "Amount": int(amount),
            "PartyA": phone,
            "PartyB": self.short_code,
            "PhoneNumber": phone,
            "CallBackURL": callback_url,
            "AccountReference": reference,
            "TransactionDesc": description or reference,
        }
        try:
            resp = requests.post(
                f"{self.base_url}{STK_PUSH_PATH}",
                json=payload,
                headers={"Authorization": f"Bearer {token}"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("M-Pesa STK push did not complete: %s", exc)
            raise GatewayUnavailable() from exc

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if resp.status_code >= 400:
            detail = data.get("errorMessage") or f"HTTP {resp.status_code}"
            raise GatewayRejected(detail)
        if str(data.get("ResponseCode")) != "0":
            raise GatewayRejected(data.get("ResponseDescription") or "STK push failed")
        return PushResult(
            checkout_request_id=data.get("CheckoutRequestID"),
            merchant_request_id=data.get("MerchantRequestID"),
            description=data.get("ResponseDescription"),
        )


def get_gateway() -> MpesaGateway:
    """FastAPI dependency; tests override it with a fake gateway."""
    return MpesaGateway.from_settings()
