"""Payment gateway - Seam for the external payment processor"""

import logging
import time
import uuid
from decimal import Decimal
from typing import Optional

logger = logging.getLogger(__name__)


class PaymentGateway:
    """Interface the ledger uses to open payment intents with a processor"""

    def is_available(self) -> bool:
        raise NotImplementedError

    def create_intent(
        self,
        amount: Decimal,
        currency: str,
        payment_method: str,
        metadata: Optional[dict] = None,
    ) -> dict:
        """
        Open an intent with the processor

        Returns:
            Dict with at least "id" and "client_secret"
        """
        raise NotImplementedError


class MockPaymentGateway(PaymentGateway):
    """
    Stand-in processor used until a real integration is configured.

    Intent ids look like pi_mock_<epoch millis>_<hex>; nothing leaves the process.
    """

    def is_available(self) -> bool:
        return True

    def create_intent(
        self,
        amount: Decimal,
        currency: str,
        payment_method: str,
        metadata: Optional[dict] = None,
    ) -> dict:
        # Millisecond stamps alone collide under concurrent requests
        intent_id = f"pi_mock_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"
        logger.info(f"💳 Mock intent {intent_id} for {amount} {currency} via {payment_method}")
        return {
            "id": intent_id,
            "client_secret": f"{intent_id}_secret_{uuid.uuid4().hex[:12]}",
            "amount": amount,
            "currency": currency,
            "metadata": metadata or {},
        }


_gateway: PaymentGateway = MockPaymentGateway()


def get_payment_gateway() -> PaymentGateway:
    """Dependency returning the configured gateway"""
    return _gateway
