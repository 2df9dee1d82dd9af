# sneakerhead/core/esewa.py
import logging
import re
from decimal import Decimal
from functools import lru_cache

import requests

from sneakerhead.core.config import get_settings
from sneakerhead.core.errors import GatewayUnavailableError

logger = logging.getLogger(__name__)

_RESPONSE_CODE = re.compile(
    r"<response_code>\s*([A-Za-z]+)\s*</response_code>", re.IGNORECASE
)


class EsewaClient:
    """
    Thin client for the eSewa ePay (v1) redirect flow.

    Outgoing leg:
      - build_form(...) returns the fields the browser POSTs to
        `payment_url` (an auto-submitting form on the client).

    Return leg:
      - verify_transaction(...) asks eSewa whether the transaction with
        the given reference really exists for this merchant and amount.
        eSewa answers with a tiny XML document whose <response_code> is
        "Success" or "failure".
    """

    def __init__(
        self,
        merchant_id: str,
        payment_url: str,
        verify_url: str,
        success_url: str,
        failure_url: str,
        timeout: float = 10.0,
    ):
        self.merchant_id = merchant_id
        self.payment_url = payment_url
        self.verify_url = verify_url
        self.success_url = success_url
        self.failure_url = failure_url
        self.timeout = timeout

    def build_form(self, merchant_reference: str, amount: Decimal) -> dict[str, str]:
        """
        ePay form fields. Delivery charge, service charge and tax are
        already folded into the order total, so they are sent as 0.
        """
        return {
            "amt": str(amount),
            "pdc": "0",
            "psc": "0",
            "txAmt": "0",
            "tAmt": str(amount),
            "pid": merchant_reference,
            "scd": self.merchant_id,
            "su": self.success_url,
            "fu": self.failure_url,
        }

    def verify_transaction(
        self,
        merchant_reference: str,
        amount: Decimal,
        reference_id: str,
    ) -> bool:
        """
        Server-to-gateway check of a returned transaction.

        Raises:
            GatewayUnavailableError: on network / HTTP errors.
        """
        data = {
            "amt": str(amount),
            "rid": reference_id,
            "pid": merchant_reference,
            "scd": self.merchant_id,
        }
        try:
            response = requests.post(self.verify_url, data=data, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.error("eSewa verification request failed: %s", exc)
            raise GatewayUnavailableError() from exc

        match = _RESPONSE_CODE.search(response.text)
        code = match.group(1).lower() if match else None
        logger.info(
            "eSewa verification for %s (rid=%s): %s", merchant_reference, reference_id, code
        )
        return code == "success"


@lru_cache
def get_esewa_client() -> EsewaClient:
    """
    Client configured from settings (merchant code, endpoints, return URLs).
    """
    settings = get_settings()
    frontend = settings.FRONTEND_URL.rstrip("/")
    return EsewaClient(
        merchant_id=settings.ESEWA_MERCHANT_ID,
        payment_url=settings.ESEWA_PAYMENT_URL,
        verify_url=settings.ESEWA_VERIFY_URL,
        success_url=f"{frontend}/payment/success",
        failure_url=f"{frontend}/payment/failure",
        timeout=settings.ESEWA_TIMEOUT_SECONDS,
    )
