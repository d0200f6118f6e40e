"""
Payment gateway adapter (Stripe hosted Checkout Sessions).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal

import stripe
from django.conf import settings
from django.utils.module_loading import import_string

from shop.domain.exceptions import ExternalServiceFailure, InvalidSession
from shop.domain.order import Order

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckoutSession:
    """Gateway-neutral view of a hosted checkout session."""
    id: str
    url: str | None
    payment_status: str
    metadata: dict = field(default_factory=dict)


def to_minor_units(amount: Decimal, conversion_rate: Decimal) -> int:
    """Convert a display-currency amount into settlement-currency minor units."""
    if conversion_rate <= 0:
        raise ValueError("Conversion rate must be positive")
    converted = amount / conversion_rate * 100
    return int(converted.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _metadata_dict(metadata) -> dict:
    if not metadata:
        return {}
    return {key: metadata[key] for key in metadata.keys()}


class StripePaymentGateway:
    """Creates and retrieves Stripe Checkout Sessions for card orders."""

    def __init__(
        self,
        api_key: str | None = None,
        webhook_secret: str | None = None,
        currency: str | None = None,
        conversion_rate: Decimal | None = None,
        frontend_url: str | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret if webhook_secret is not None else settings.STRIPE_WEBHOOK_SECRET
        self.currency = currency or settings.SHOP_CARD_CURRENCY
        self.conversion_rate = conversion_rate or settings.SHOP_CARD_CONVERSION_RATE
        self.frontend_url = (frontend_url or settings.SHOP_FRONTEND_URL).rstrip("/")

    def create_checkout_session(self, order: Order, customer_email: str | None = None) -> CheckoutSession:
        """Open a hosted payment page sized to the order total."""
        if not self.api_key:
            raise ExternalServiceFailure("Stripe secret key is not configured")

        amount = to_minor_units(order.total_amount, self.conversion_rate)
        order_ref = str(order.id)
        params = {
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": [{
                "price_data": {
                    "currency": self.currency,
                    "product_data": {
                        "name": f"Order #{order_ref[-8:]}",
                        "description": (
                            f"{len(order.items)} item(s) - Total: Rs. {order.total_amount:,.2f} "
                            f"(≈ {order.total_amount / self.conversion_rate:.2f} {self.currency.upper()})"
                        ),
                    },
                    "unit_amount": amount,
                },
                "quantity": 1,
            }],
            "success_url": (
                f"{self.frontend_url}/orders/{order_ref}?success=true&session_id={{CHECKOUT_SESSION_ID}}"
            ),
            "cancel_url": f"{self.frontend_url}/checkout?canceled=true",
            "metadata": {
                "order_id": order_ref,
                "customer_id": str(order.customer_id),
                "original_amount": str(order.total_amount),
            },
        }
        if customer_email:
            params["customer_email"] = customer_email

        try:
            session = stripe.checkout.Session.create(api_key=self.api_key, **params)
        except stripe.StripeError as e:
            logger.error(
                "stripe_session_create_failed",
                extra={"error": str(e), "error_type": type(e).__name__},
            )
            raise ExternalServiceFailure(f"Payment processing failed: {e}") from e

        logger.info(
            "stripe_session_created",
            extra={"operation": "create_checkout_session", "status": session.payment_status},
        )
        return self._to_session(session)

    def retrieve_session(self, session_id: str) -> CheckoutSession:
        try:
            session = stripe.checkout.Session.retrieve(session_id, api_key=self.api_key)
        except stripe.InvalidRequestError as e:
            raise InvalidSession(f"Unknown payment session: {session_id}") from e
        except stripe.StripeError as e:
            logger.error(
                "stripe_session_retrieve_failed",
                extra={"error": str(e), "error_type": type(e).__name__},
            )
            raise ExternalServiceFailure(f"Failed to verify payment: {e}") from e
        return self._to_session(session)

    def parse_webhook(self, payload: bytes, signature: str) -> dict:
        """Verify a webhook signature and return the event as plain data."""
        if not self.webhook_secret:
            raise ExternalServiceFailure("Stripe webhook secret is not configured")
        try:
            event = stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            logger.warning("webhook_signature_invalid", extra={"error": str(e)})
            raise InvalidSession("Invalid webhook signature") from e
        except ValueError as e:
            raise InvalidSession("Invalid webhook payload") from e

        session = event["data"]["object"]
        return {
            "id": event["id"],
            "type": event["type"],
            "session_id": session["id"] if event["type"].startswith("checkout.session.") else None,
        }

    def _to_session(self, session) -> CheckoutSession:
        return CheckoutSession(
            id=session.id,
            url=session.url,
            payment_status=session.payment_status,
            metadata=_metadata_dict(session.metadata),
        )


def get_payment_gateway():
    """Instantiate the gateway configured in ``SHOP_PAYMENT_GATEWAY``."""
    return import_string(settings.SHOP_PAYMENT_GATEWAY)()
