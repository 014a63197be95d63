"""
Stripe payment processor client.

Creates hosted checkout sessions, looks sessions up for admission, and
verifies webhook signatures. The Stripe SDK is synchronous, so network
calls run in a thread pool to keep the event loop free.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field

import stripe

from ytscribe.config import Settings
from ytscribe.models.schemas import PlanId

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"


def _as_dict(obj) -> dict:
    """Plain dict view of a Stripe API object."""
    if obj is None:
        return {}
    if isinstance(obj, dict):
        return obj
    return obj.to_dict()


class PaymentError(Exception):
    """Raised when the payment processor call fails."""

    def __init__(self, message: str, original_error: Exception | None = None):
        self.message = message
        self.original_error = original_error
        super().__init__(message)


class PaymentNotConfiguredError(PaymentError):
    """Raised when Stripe keys or price ids are missing."""


class WebhookVerificationError(PaymentError):
    """Raised when a webhook payload or signature is invalid."""


@dataclass
class CheckoutSession:
    """Hosted checkout session created for a paid plan."""

    session_id: str
    url: str | None


@dataclass
class PaymentSession:
    """Checkout session state as reported by the processor."""

    session_id: str
    payment_status: str
    metadata: dict[str, str] = field(default_factory=dict)

    @property
    def paid(self) -> bool:
        return self.payment_status == "paid"


class PaymentClient:
    """
    Thin async wrapper over the Stripe checkout API.

    Example:
        client = PaymentClient.from_settings(settings)
        if client.is_configured:
            checkout = await client.create_checkout_session(
                plan=PlanId.BASIC,
                video_id="dQw4w9WgXcQ",
                video_url="https://youtu.be/dQw4w9WgXcQ",
                target_language="Spanish",
            )
    """

    def __init__(
        self,
        secret_key: str | None,
        webhook_secret: str | None = None,
        price_ids: dict[PlanId, str | None] | None = None,
        frontend_url: str = "http://localhost:5173",
    ):
        """
        Initialize payment client.

        Args:
            secret_key: Stripe secret key (None disables payments)
            webhook_secret: Signing secret for webhook verification
            price_ids: Stripe price id per paid plan
            frontend_url: Base URL for success/cancel redirects
        """
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.price_ids = price_ids or {}
        self.frontend_url = frontend_url.rstrip("/")

    @classmethod
    def from_settings(cls, settings: Settings) -> "PaymentClient":
        """
        Create PaymentClient from application settings.

        Args:
            settings: Application settings

        Returns:
            Configured PaymentClient instance
        """
        return cls(
            secret_key=settings.stripe_secret_key,
            webhook_secret=settings.stripe_webhook_secret,
            price_ids={
                PlanId.BASIC: settings.stripe_price_basic,
                PlanId.PREMIUM: settings.stripe_price_premium,
            },
            frontend_url=settings.frontend_url,
        )

    @property
    def is_configured(self) -> bool:
        """True when sessions can be created and looked up."""
        return bool(self.secret_key)

    async def create_checkout_session(
        self,
        plan: PlanId,
        video_id: str,
        video_url: str,
        target_language: str | None,
    ) -> CheckoutSession:
        """
        Create a hosted checkout session for a paid plan.

        The (video id, target language, plan) triple travels in session
        metadata so admission can rebuild the entitlement later.

        Raises:
            PaymentNotConfiguredError: If the secret key or price id is missing
            PaymentError: If Stripe rejects the request
        """
        if not self.is_configured:
            raise PaymentNotConfiguredError("Stripe secret key is not configured")

        price_id = self.price_ids.get(plan)
        if not price_id:
            raise PaymentNotConfiguredError(f"No Stripe price configured for plan '{plan.value}'")

        params = {
            "mode": "payment",
            "line_items": [{"price": price_id, "quantity": 1}],
            "success_url": f"{self.frontend_url}/?session_id={{CHECKOUT_SESSION_ID}}",
            "cancel_url": f"{self.frontend_url}/pricing",
            "metadata": {
                "videoId": video_id,
                "videoUrl": video_url,
                "targetLanguage": target_language or "",
                "planId": plan.value,
            },
        }

        try:
            session = await asyncio.to_thread(
                stripe.checkout.Session.create, api_key=self.secret_key, **params
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe checkout creation failed: {e}")
            raise PaymentError(f"Stripe checkout creation failed: {e}", e) from e

        session = _as_dict(session)
        logger.info(f"Checkout session created: {session['id'][:16]}... plan={plan.value}")
        return CheckoutSession(session_id=session["id"], url=session.get("url"))

    async def retrieve_session(self, session_id: str) -> PaymentSession:
        """
        Look up a checkout session.

        Raises:
            PaymentNotConfiguredError: If the secret key is missing
            PaymentError: If Stripe rejects the request
        """
        if not self.is_configured:
            raise PaymentNotConfiguredError("Stripe secret key is not configured")

        try:
            session = await asyncio.to_thread(
                stripe.checkout.Session.retrieve, session_id, api_key=self.secret_key
            )
        except stripe.StripeError as e:
            logger.warning(f"Stripe session lookup failed for {session_id[:16]}...: {e}")
            raise PaymentError(f"Stripe session lookup failed: {e}", e) from e

        session = _as_dict(session)
        metadata = _as_dict(session.get("metadata"))
        return PaymentSession(
            session_id=session["id"],
            payment_status=session.get("payment_status") or "unpaid",
            metadata={k: str(v) for k, v in metadata.items()},
        )

    def parse_webhook(self, payload: bytes, signature: str | None) -> dict:
        """
        Verify a webhook signature and return the event as a plain dict.

        Raises:
            PaymentNotConfiguredError: If the webhook secret is missing
            WebhookVerificationError: If the payload or signature is invalid
        """
        if not self.webhook_secret:
            raise PaymentNotConfiguredError("Stripe webhook secret is not configured")
        if not signature:
            raise WebhookVerificationError("Missing Stripe-Signature header")

        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except ValueError as e:
            raise WebhookVerificationError(f"Invalid webhook payload: {e}", e) from e
        except stripe.SignatureVerificationError as e:
            raise WebhookVerificationError(f"Invalid webhook signature: {e}", e) from e

        # Signature checked; the event body is plain JSON
        return json.loads(payload)
