"""Stripe hosted-checkout wrapper.

Amounts cross this boundary in minor units (cents).
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

import stripe

from .config import settings
from .errors import UpstreamFailure, ValidationFailed

logger = logging.getLogger(__name__)


@dataclass
class CheckoutSession:
    id: str
    url: str


@dataclass
class GatewayPayment:
    reference: str
    paid: bool
    amount_minor: int
    currency: str
    metadata: dict = field(default_factory=dict)
    payment_intent: Optional[str] = None


class StripeGateway:
    def __init__(self, api_key: str, site_domain: str):
        self.api_key = api_key
        self.site_domain = site_domain

    def _require_key(self) -> None:
        if not self.api_key:
            raise UpstreamFailure("Payment gateway is not configured")

    def create_checkout_session(
        self,
        amount_minor: int,
        currency: str,
        product_name: str,
        customer_email: str,
        metadata: dict,
    ) -> CheckoutSession:
        self._require_key()
        try:
            session = stripe.checkout.Session.create(
                api_key=self.api_key,
                mode="payment",
                payment_method_types=["card"],
                line_items=[
                    {
                        "price_data": {
                            "currency": currency,
                            "unit_amount": amount_minor,
                            "product_data": {"name": product_name},
                        },
                        "quantity": 1,
                    }
                ],
                customer_email=customer_email,
                metadata=metadata,
                payment_intent_data={"metadata": metadata},
                success_url=f"{self.site_domain}/payment-success?session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=f"{self.site_domain}/payment-cancelled",
            )
        except stripe.StripeError as exc:
            logger.exception("checkout session creation failed for %s", customer_email)
            raise UpstreamFailure(f"Payment gateway error: {exc.user_message or exc}") from exc
        return CheckoutSession(id=session.id, url=session.url)

    def retrieve(self, reference: str) -> GatewayPayment:
        self._require_key()
        try:
            if reference.startswith("cs_"):
                session = stripe.checkout.Session.retrieve(reference, api_key=self.api_key)
                return GatewayPayment(
                    reference=session.id,
                    paid=session.payment_status == "paid",
                    amount_minor=session.amount_total or 0,
                    currency=session.currency or settings.currency,
                    metadata=dict(session.metadata or {}),
                    payment_intent=session.payment_intent,
                )
            if reference.startswith("pi_"):
                intent = stripe.PaymentIntent.retrieve(reference, api_key=self.api_key)
                return GatewayPayment(
                    reference=intent.id,
                    paid=intent.status == "succeeded",
                    amount_minor=intent.amount_received or 0,
                    currency=intent.currency or settings.currency,
                    metadata=dict(intent.metadata or {}),
                    payment_intent=intent.id,
                )
        except stripe.StripeError as exc:
            logger.exception("payment lookup failed for %s", reference)
            raise UpstreamFailure(f"Payment gateway error: {exc.user_message or exc}") from exc
        raise ValidationFailed("Invalid payment reference")


def default_gateway() -> StripeGateway:
    return StripeGateway(api_key=settings.stripe_secret_key, site_domain=settings.site_domain)
