"""Tests for the Stripe payment client (SDK calls patched)."""

from unittest.mock import patch

import pytest
import stripe

from ytscribe.models.schemas import PlanId, VideoRequest
from ytscribe.services.admission import PaymentAdmission
from ytscribe.services.payment_client import (
    PaymentClient,
    PaymentError,
    PaymentNotConfiguredError,
    WebhookVerificationError,
)

VIDEO_ID = "dQw4w9WgXcQ"


def stripe_session(values: dict) -> stripe.checkout.Session:
    """Session object as the SDK returns it (not a plain dict)."""
    return stripe.checkout.Session.construct_from(values, "sk_test_abc")


@pytest.fixture
def payment_client() -> PaymentClient:
    return PaymentClient(
        secret_key="sk_test_abc",
        webhook_secret="whsec_abc",
        price_ids={PlanId.BASIC: "price_basic", PlanId.PREMIUM: "price_premium"},
        frontend_url="https://app.example.com/",
    )


class TestCheckout:
    @pytest.mark.asyncio
    async def test_create_checkout_session(self, payment_client):
        with patch.object(
            stripe.checkout.Session,
            "create",
            return_value=stripe_session(
                {"id": "cs_test_paid", "url": "https://checkout.stripe.com/c/pay/cs_test_paid"}
            ),
        ) as create:
            checkout = await payment_client.create_checkout_session(
                plan=PlanId.BASIC,
                video_id=VIDEO_ID,
                video_url=f"https://youtu.be/{VIDEO_ID}",
                target_language=None,
            )

        assert checkout.session_id == "cs_test_paid"
        assert checkout.url.startswith("https://checkout.stripe.com/")
        kwargs = create.call_args.kwargs
        assert kwargs["api_key"] == "sk_test_abc"
        assert kwargs["line_items"] == [{"price": "price_basic", "quantity": 1}]
        assert kwargs["success_url"] == "https://app.example.com/?session_id={CHECKOUT_SESSION_ID}"
        assert kwargs["metadata"] == {
            "videoId": VIDEO_ID,
            "videoUrl": f"https://youtu.be/{VIDEO_ID}",
            "targetLanguage": "",
            "planId": "basic",
        }

    @pytest.mark.asyncio
    async def test_missing_price_id(self):
        client = PaymentClient(secret_key="sk_test_abc", price_ids={PlanId.BASIC: None})

        with pytest.raises(PaymentNotConfiguredError):
            await client.create_checkout_session(PlanId.BASIC, VIDEO_ID, VIDEO_ID, None)

    @pytest.mark.asyncio
    async def test_processor_error_wrapped(self, payment_client):
        with patch.object(
            stripe.checkout.Session,
            "create",
            side_effect=stripe.InvalidRequestError("No such price: 'price_basic'", "line_items"),
        ):
            with pytest.raises(PaymentError) as exc_info:
                await payment_client.create_checkout_session(PlanId.BASIC, VIDEO_ID, VIDEO_ID, "Spanish")

        assert not isinstance(exc_info.value, PaymentNotConfiguredError)
        assert isinstance(exc_info.value.original_error, stripe.InvalidRequestError)


class TestRetrieve:
    @pytest.mark.asyncio
    async def test_retrieve_paid_session(self, payment_client):
        with patch.object(
            stripe.checkout.Session,
            "retrieve",
            return_value=stripe_session(
                {
                    "id": "cs_test_paid",
                    "object": "checkout.session",
                    "payment_status": "paid",
                    "metadata": {"videoId": VIDEO_ID, "targetLanguage": "Spanish", "planId": "basic"},
                }
            ),
        ) as retrieve:
            session = await payment_client.retrieve_session("cs_test_paid")

        assert session.paid
        assert session.metadata["targetLanguage"] == "Spanish"
        assert retrieve.call_args.args == ("cs_test_paid",)

    @pytest.mark.asyncio
    async def test_unconfigured(self):
        with pytest.raises(PaymentNotConfiguredError):
            await PaymentClient(secret_key=None).retrieve_session("cs_test")


class TestWebhook:
    def test_requires_secret(self):
        with pytest.raises(PaymentNotConfiguredError):
            PaymentClient(secret_key="sk_test_abc").parse_webhook(b"{}", "t=1,v1=abc")

    def test_rejects_bad_signature(self, payment_client):
        with pytest.raises(WebhookVerificationError):
            payment_client.parse_webhook(b'{"type": "checkout.session.completed"}', "t=1,v1=abc")


class TestAdmissionWithProcessor:
    @pytest.mark.asyncio
    async def test_paid_session_object_admits(self, payment_client, store):
        paid = stripe_session(
            {
                "id": "cs_test_paid",
                "object": "checkout.session",
                "payment_status": "paid",
                "metadata": {"videoId": VIDEO_ID, "targetLanguage": "Spanish", "planId": "premium"},
            }
        )
        admission = PaymentAdmission(store, payment_client)
        request = VideoRequest(
            url=f"https://youtu.be/{VIDEO_ID}",
            video_id=VIDEO_ID,
            target_language="Spanish",
            session_id="cs_test_paid",
        )

        with patch.object(stripe.checkout.Session, "retrieve", return_value=paid):
            decision = await admission.check(request)

        assert decision.admitted
        assert store.lookup("cs_test_paid").plan is PlanId.PREMIUM
