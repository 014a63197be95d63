"""
HTTP API routes for plans and payments.

Provides endpoints for:
- Listing plans (GET /plans)
- Creating checkout sessions (POST /create-checkout-session)
- Checking a session (GET /verify-payment/{session_id})
- Receiving processor callbacks (POST /webhook)
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ytscribe.api.dependencies import AppServices, get_services
from ytscribe.models.schemas import CheckoutRequest, CheckoutResponse, PlanId, PlanInfo
from ytscribe.services.admission import entitlement_from_metadata
from ytscribe.services.payment_client import (
    CHECKOUT_COMPLETED,
    PaymentError,
    PaymentNotConfiguredError,
    WebhookVerificationError,
)
from ytscribe.services.video_id import extract_video_id

logger = logging.getLogger(__name__)
router = APIRouter(tags=["payments"])


def format_price(price: int, currency: str = "usd") -> str:
    """Human-readable price from minor units, e.g. 199 -> "$1.99"."""
    if price == 0:
        return "Free"
    symbol = "$" if currency.lower() == "usd" else f"{currency.upper()} "
    return f"{symbol}{price / 100:.2f}"


def _not_configured(message: str) -> JSONResponse:
    return JSONResponse(status_code=503, content={"error": message, "requiresStripeConfig": True})


@router.get("/plans")
async def list_plans(services: AppServices = Depends(get_services)) -> dict:
    """
    List purchasable plans.

    Returns:
        {"success": true, "plans": [{"id", "name", "price", "priceFormatted", "description"}]}
    """
    currency = services.settings.currency
    plans = [
        PlanInfo(
            id=PlanId(plan_id),
            name=plan["name"],
            price=plan["price"],
            price_formatted=format_price(plan["price"], currency),
            description=plan.get("description", ""),
        ).model_dump(by_alias=True)
        for plan_id, plan in services.plans.items()
    ]
    return {"success": True, "plans": plans}


@router.post("/create-checkout-session", response_model=None)
async def create_checkout_session(
    request: CheckoutRequest,
    services: AppServices = Depends(get_services),
) -> dict | JSONResponse:
    """
    Start the purchase flow for one (video, target language) pair.

    Free plan: a session is issued locally and is immediately usable.
    Paid plans: a hosted checkout session is created with the processor.

    Returns:
        Free: {"sessionId", "isFree": true, "url": null}
        Paid: {"sessionId", "url"}

    Raises:
        400: Invalid video URL
        503: Payment processor not configured ({"requiresStripeConfig": true})
        502: Processor rejected the request
    """
    video_id = extract_video_id(request.video_url)
    if video_id is None:
        return JSONResponse(status_code=400, content={"error": "Invalid YouTube URL"})

    if request.plan_id is PlanId.FREE:
        session_id = services.admission.issue_free_entitlement(video_id, request.target_language)
        return {"sessionId": session_id, "isFree": True, "url": None}

    if not services.payment_client.is_configured:
        return _not_configured("Payment processing is not configured")

    try:
        checkout = await services.payment_client.create_checkout_session(
            plan=request.plan_id,
            video_id=video_id,
            video_url=request.video_url,
            target_language=request.target_language,
        )
    except PaymentNotConfiguredError as e:
        logger.error(f"Checkout unavailable: {e.message}")
        return _not_configured(e.message)
    except PaymentError as e:
        logger.error(f"Checkout failed: {e.message}")
        return JSONResponse(
            status_code=502,
            content={"error": "Payment processing error. Please try again."},
        )

    response = CheckoutResponse(session_id=checkout.session_id, url=checkout.url)
    return response.model_dump(by_alias=True, exclude_none=True)


@router.get("/verify-payment/{session_id}")
async def verify_payment(
    session_id: str,
    services: AppServices = Depends(get_services),
) -> dict:
    """
    Report whether a session is paid (or free) and what it entitles.

    Returns:
        {"paid": true, "sessionId", "videoId", "targetLanguage", "plan", ...}
        or {"paid": false}
    """
    record = await services.admission.verify_session(session_id)
    if record is None:
        return {"paid": False}

    return {"paid": True, **record.model_dump(mode="json", by_alias=True, exclude_none=True)}


@router.post("/webhook", response_model=None)
async def payment_webhook(
    request: Request,
    services: AppServices = Depends(get_services),
) -> dict | JSONResponse:
    """
    Processor callback. Verifies the signature and, on a completed checkout,
    stores the entitlement from the session metadata.

    Returns:
        {"received": true}

    Raises:
        400: Invalid payload or signature
        503: Webhook secret not configured
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    try:
        event = services.payment_client.parse_webhook(payload, signature)
    except PaymentNotConfiguredError as e:
        logger.error(f"Webhook received but not configured: {e.message}")
        return _not_configured(e.message)
    except WebhookVerificationError as e:
        logger.warning(f"Webhook rejected: {e.message}")
        return JSONResponse(status_code=400, content={"error": e.message})

    event_type = event["type"]
    logger.info(f"Webhook event: {event_type}")

    if event_type == CHECKOUT_COMPLETED:
        session = event["data"]["object"]
        metadata = dict(session.get("metadata") or {})
        try:
            record = entitlement_from_metadata(session["id"], metadata)
        except ValueError as e:
            logger.warning(f"Completed checkout without usable metadata: {e}")
        else:
            services.store.insert(record.session_id, record)

    return {"received": True}
