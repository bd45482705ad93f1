"""Billing endpoints: subscription status, card registration and cancellation against OpenPay."""
from fastapi import APIRouter, Depends, HTTPException
import logging

from config import db
from models import PaymentRequest
from auth import require_user, get_subscription_service
from routes.user import public_user
from services.subscription_service import (
    SubscriptionService, BillingError, NotRegisteredError, GatewayError, is_active_status,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def billing_http_error(error: BillingError, message: str, redirect: str) -> HTTPException:
    status_code = 400 if isinstance(error, NotRegisteredError) else 502
    return HTTPException(status_code=status_code, detail={"message": error.description or message, "redirect": redirect})


@router.get("/billing")
async def get_billing(user: dict = Depends(require_user), service: SubscriptionService = Depends(get_subscription_service)):
    subscription, message = None, None
    try:
        subscription = await service.get_status(user)
    except BillingError as e:
        message = e.description or "An error occurred fetching data from the payment server"
    return {
        "user": public_user(user),
        "subscription": subscription,
        "is_active": bool(subscription) and is_active_status(subscription.get("status")),
        "message": message,
    }


@router.get("/billing/add-payment")
async def get_add_payment(user: dict = Depends(require_user), service: SubscriptionService = Depends(get_subscription_service)):
    """Public credentials the client needs to tokenize a card."""
    settings = service.settings
    return {
        "merchant_id": settings.merchant_id,
        "public_key": settings.public_key,
        "production": settings.production,
    }


@router.post("/billing/process-payment")
async def process_payment(
    data: PaymentRequest,
    user: dict = Depends(require_user),
    service: SubscriptionService = Depends(get_subscription_service),
):
    error_message = "An error occurred processing your payment, try again."
    if (user.get("payment") or {}).get("subscriptionId"):
        try:
            current = await service.get_status(user)
        except GatewayError as e:
            raise billing_http_error(e, error_message, "/billing")
        if is_active_status(current.get("status")):
            raise HTTPException(status_code=400, detail={
                "message": "You already have an active subscription.",
                "redirect": "/billing",
            })

    try:
        customer_id = await service.ensure_customer(user)
    except GatewayError as e:
        raise billing_http_error(e, error_message, "/billing/add-payment")
    payment = user.get("payment") or {}
    if payment.get("customerId") != customer_id:
        await db.users.update_one({"id": user["id"]}, {"$set": {"payment.customerId": customer_id}})
        user = {**user, "payment": {**payment, "customerId": customer_id}}

    try:
        subscription = await service.add_subscription(user, data.token_id)
    except BillingError as e:
        raise billing_http_error(e, error_message, "/billing/add-payment")
    await db.users.update_one({"id": user["id"]}, {"$set": {"payment.subscriptionId": subscription["id"]}})
    logger.info(f"Subscription {subscription['id']} created for user {user['id']} (device {data.device_id})")
    return {
        "success": True,
        "message": "All set! You can now start using Caff Balance.",
        "redirect": "/",
        "subscription": subscription,
    }


@router.post("/billing/cancel")
async def cancel_subscription(user: dict = Depends(require_user), service: SubscriptionService = Depends(get_subscription_service)):
    try:
        await service.cancel_subscription(user)
    except BillingError as e:
        logger.warning(f"Subscription cancel failed for user {user['id']}: {e.description}")
        raise HTTPException(status_code=400 if isinstance(e, NotRegisteredError) else 502, detail={
            "message": "There was a problem cancelling the subscription. Try again later.",
            "redirect": "/billing",
        })
    await db.users.update_one({"id": user["id"]}, {"$unset": {"payment.subscriptionId": ""}})
    return {"success": True, "message": "Your subscription has been cancelled, we will miss you.", "redirect": "/billing"}
