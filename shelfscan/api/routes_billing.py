"""
Billing API: subscription status for the signed-in owner and the payment
processor's webhook.
"""

import json

from fastapi import APIRouter, Depends, Request

from shelfscan.api.deps import Services, api_rate_limit, get_current_owner, get_services
from shelfscan.api.schemas import SubscriptionResponse, WebhookAck
from shelfscan.billing.webhook import SIGNATURE_HEADER, apply_billing_event, verify_signature
from shelfscan.errors import InvalidInput

router = APIRouter(prefix="/api", tags=["billing"])


@router.get(
    "/subscription",
    response_model=SubscriptionResponse,
    dependencies=[Depends(api_rate_limit)],
)
def get_subscription(
    owner: str = Depends(get_current_owner),
    services: Services = Depends(get_services),
) -> SubscriptionResponse:
    sub = services.entitlements.get(owner)
    return SubscriptionResponse(
        is_subscribed=bool(sub and sub.is_active),
        subscription=sub.to_dict() if sub else None,
    )


@router.post("/billing/webhook", response_model=WebhookAck)
async def billing_webhook(
    request: Request,
    services: Services = Depends(get_services),
) -> WebhookAck:
    # signature covers the raw bytes, so read before any parsing
    body = await request.body()
    verify_signature(services.webhook_secret, body, request.headers.get(SIGNATURE_HEADER))
    try:
        event = json.loads(body)
    except ValueError as e:
        raise InvalidInput(f"Webhook Error: invalid JSON ({e})") from e
    if not isinstance(event, dict):
        raise InvalidInput("Webhook Error: event must be an object")
    apply_billing_event(services.entitlements, event)
    return WebhookAck()
