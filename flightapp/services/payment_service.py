import secrets
import time
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Any, Optional, Protocol
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

PAYMENT_SUCCEEDED = "succeeded"


class PaymentIntent(BaseModel):
    client_secret: str
    payment_intent_id: str
    amount: int  # minor units
    currency: str
    status: str = "requires_payment_method"
    metadata: Dict[str, Any] = Field(default_factory=dict)
    demo_mode: bool = False


class PaymentGateway(Protocol):

    async def create_payment_intent(self, amount: int, currency: str, metadata: Dict[str, Any]) -> PaymentIntent:
        ...

    async def retrieve_payment_intent(self, payment_intent_id: str) -> Optional[PaymentIntent]:
        ...


class DemoPaymentGateway:
    """
    Simulated processor: issues pi_demo_* intents and moves no money.

    Demo intents are settled the moment they are issued. Only intents
    issued by this gateway can be retrieved.
    """

    def __init__(self):
        self.intents: Dict[str, PaymentIntent] = {}

    async def create_payment_intent(self, amount: int, currency: str, metadata: Dict[str, Any]) -> PaymentIntent:
        intent_id = f"pi_demo_{int(time.time() * 1000)}_{secrets.token_hex(4)}"
        intent = PaymentIntent(
            client_secret=f"{intent_id}_secret",
            payment_intent_id=intent_id,
            amount=amount,
            currency=currency,
            status=PAYMENT_SUCCEEDED,
            metadata=dict(metadata),
            demo_mode=True,
        )
        self.intents[intent_id] = intent
        logger.info("Demo payment intent %s for booking %s (%s %s)", intent_id, metadata.get("pnr"), amount, currency)
        return intent.model_copy(deep=True)

    async def retrieve_payment_intent(self, payment_intent_id: str) -> Optional[PaymentIntent]:
        intent = self.intents.get(payment_intent_id)
        return intent.model_copy(deep=True) if intent else None


def to_minor_units(amount: Decimal) -> int:
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
