"""Stripe service - Integration with the Stripe API"""

import logging
from typing import Optional

import stripe

from ..config import STRIPE_API_VERSION, STRIPE_SECRET_KEY

logger = logging.getLogger(__name__)


class StripeServiceError(Exception):
    """Raised when a Stripe call fails or Stripe is not configured"""

    pass


class StripeService:
    """Service for Stripe API operations"""

    def __init__(self, api_key: Optional[str] = None):
        self.api_key = api_key or STRIPE_SECRET_KEY

        if not self.api_key:
            logger.warning("STRIPE_SECRET_KEY not set; payment endpoints will fail until configured")
        else:
            if STRIPE_API_VERSION:
                stripe.api_version = STRIPE_API_VERSION
            logger.info("Stripe client configured")

    def is_available(self) -> bool:
        """Check if Stripe is configured"""
        return bool(self.api_key)

    def _ensure_available(self):
        if not self.api_key:
            raise StripeServiceError("Stripe client not configured")

    def create_payment_intent(
        self,
        amount_cents: int,
        currency: str,
        metadata: dict,
        **extra,
    ):
        """Create a PaymentIntent with automatic payment methods enabled"""
        self._ensure_available()
        try:
            intent = stripe.PaymentIntent.create(
                api_key=self.api_key,
                amount=amount_cents,
                currency=currency,
                metadata=metadata,
                automatic_payment_methods={"enabled": True},
                **extra,
            )
            logger.info(f"✅ Created payment intent {intent.id} for {amount_cents} {currency}")
            return intent
        except stripe.StripeError as e:
            logger.error(f"❌ Stripe payment intent creation failed: {e}")
            raise StripeServiceError(str(e)) from e

    def retrieve_payment_intent(self, payment_intent_id: str):
        self._ensure_available()
        try:
            return stripe.PaymentIntent.retrieve(payment_intent_id, api_key=self.api_key)
        except stripe.StripeError as e:
            logger.error(f"❌ Failed to retrieve payment intent {payment_intent_id}: {e}")
            raise StripeServiceError(str(e)) from e

    def create_transfer(
        self,
        amount_cents: int,
        destination: str,
        description: str,
        metadata: dict,
        currency: str = "usd",
    ):
        """Transfer funds to a connected account"""
        self._ensure_available()
        try:
            transfer = stripe.Transfer.create(
                api_key=self.api_key,
                amount=amount_cents,
                currency=currency,
                destination=destination,
                description=description,
                metadata=metadata,
            )
            logger.info(f"✅ Created transfer {transfer.id} to {destination}")
            return transfer
        except stripe.StripeError as e:
            logger.error(f"❌ Stripe transfer to {destination} failed: {e}")
            raise StripeServiceError(str(e)) from e

    def create_refund(self, payment_intent_id: str, metadata: dict):
        """Refund a payment intent in full"""
        self._ensure_available()
        try:
            refund = stripe.Refund.create(
                api_key=self.api_key,
                payment_intent=payment_intent_id,
                reason="requested_by_customer",
                metadata=metadata,
            )
            logger.info(f"✅ Created refund {refund.id} for {payment_intent_id}")
            return refund
        except stripe.StripeError as e:
            logger.error(f"❌ Stripe refund for {payment_intent_id} failed: {e}")
            raise StripeServiceError(str(e)) from e

    def create_checkout_session(
        self,
        amount_cents: int,
        currency: str,
        product_name: str,
        product_description: str,
        customer_email: str,
        success_url: str,
        cancel_url: str,
        metadata: dict,
        expires_at: Optional[int] = None,
    ):
        """Create a one-off payment Checkout session"""
        self._ensure_available()
        params = {
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": [
                {
                    "price_data": {
                        "currency": currency,
                        "product_data": {
                            "name": product_name,
                            "description": product_description,
                        },
                        "unit_amount": amount_cents,
                    },
                    "quantity": 1,
                }
            ],
            "customer_email": customer_email,
            "metadata": metadata,
            "success_url": success_url,
            "cancel_url": cancel_url,
        }
        if expires_at:
            params["expires_at"] = expires_at

        try:
            session = stripe.checkout.Session.create(api_key=self.api_key, **params)
            logger.info(f"✅ Created checkout session {session.id}")
            return session
        except stripe.StripeError as e:
            logger.error(f"❌ Stripe checkout session creation failed: {e}")
            raise StripeServiceError(str(e)) from e


# Module-level instance, patched in tests
stripe_service = StripeService()


def get_stripe_service() -> StripeService:
    """FastAPI dependency for the Stripe service"""
    return stripe_service
