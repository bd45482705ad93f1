"""Keeps a user's local billing linkage consistent with OpenPay.

The service only reads user documents. Every operation returns what the
caller has to persist, so route handlers stay the single writer of
``users``.
"""
import logging
from typing import Optional, Tuple

from config import OpenPaySettings

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = ("trial", "active")


class BillingError(Exception):
    def __init__(self, description: str):
        super().__init__(description)
        self.description = description


class NotRegisteredError(BillingError):
    """The user lacks the customer/subscription linkage the operation needs."""


class GatewayError(BillingError):
    """Any failure reported by OpenPay or while talking to it."""

    def __init__(self, description: str, error_code: Optional[int] = None, category: Optional[str] = None,
                 http_code: Optional[int] = None, request_id: Optional[str] = None):
        super().__init__(description)
        self.error_code = error_code
        self.category = category
        self.http_code = http_code
        self.request_id = request_id

    @classmethod
    def from_body(cls, body: dict, http_code: Optional[int] = None) -> "GatewayError":
        return cls(
            body.get("description") or "Payment server rejected the request",
            error_code=body.get("error_code"),
            category=body.get("category"),
            http_code=body.get("http_code", http_code),
            request_id=body.get("request_id"),
        )


def is_active_status(status: Optional[str]) -> bool:
    return status in ACTIVE_STATUSES


def _payment(user: dict) -> dict:
    return user.get("payment") or {}


def build_customer_payload(user: dict, country_code: str = "MX") -> dict:
    """Project the user's profile and address onto an OpenPay customer."""
    profile = user.get("profile") or {}
    address = user.get("address") or {}
    return {
        "name": profile.get("fname") or "",
        "last_name": profile.get("lname") or "",
        "email": user.get("email") or "",
        "phone_number": profile.get("phone") or "",
        "address": {
            "city": address.get("city") or "",
            "state": address.get("state") or "",
            "line1": address.get("line1") or "",
            "postal_code": address.get("postalCode") or "",
            "country_code": country_code,
        },
    }


class SubscriptionService:
    def __init__(self, client, settings: OpenPaySettings):
        self.client = client
        self.settings = settings

    async def ensure_customer(self, user: dict) -> str:
        customer_id = _payment(user).get("customerId")
        if customer_id:
            return customer_id
        customer = await self.client.create_customer(build_customer_payload(user, self.settings.country_code))
        logger.info(f"OpenPay customer {customer['id']} created for user {user.get('id')}")
        return customer["id"]

    async def update_customer(self, user: dict) -> dict:
        customer_id = _payment(user).get("customerId")
        if not customer_id:
            raise NotRegisteredError("This account is not registered with the payment server yet.")
        return await self.client.update_customer(customer_id, build_customer_payload(user, self.settings.country_code))

    async def update_customer_with_fallback(self, user: dict) -> Tuple[Optional[str], Optional[dict]]:
        """Update the remote customer, recreating it once if the update fails.

        Returns ``(new_customer_id, remote_customer)``. ``new_customer_id`` is
        only set when the fallback created a customer and must be persisted.
        If the fallback fails too, the original update error is raised.
        """
        try:
            return None, await self.update_customer(user)
        except GatewayError as update_error:
            logger.warning(f"OpenPay customer update failed for user {user.get('id')}: {update_error.description}")
            unlinked = {**user, "payment": {k: v for k, v in _payment(user).items() if k != "customerId"}}
            try:
                customer_id = await self.ensure_customer(unlinked)
            except GatewayError as create_error:
                logger.error(f"OpenPay customer re-creation failed for user {user.get('id')}: {create_error.description}")
                raise update_error
            return customer_id, None

    async def add_subscription(self, user: dict, token_id: str) -> dict:
        customer_id = _payment(user).get("customerId")
        if not customer_id:
            raise NotRegisteredError("Your account is not linked to the payment server yet.")
        return await self.client.create_subscription(customer_id, self.settings.plan_id, token_id)

    async def get_status(self, user: dict) -> dict:
        payment = _payment(user)
        if not payment.get("customerId") or not payment.get("subscriptionId"):
            raise NotRegisteredError("Please register your payment details.")
        return await self.client.get_subscription(payment["customerId"], payment["subscriptionId"])

    async def cancel_subscription(self, user: dict) -> None:
        payment = _payment(user)
        if not payment.get("customerId") or not payment.get("subscriptionId"):
            raise NotRegisteredError("There is no subscription to cancel.")
        await self.client.delete_subscription(payment["customerId"], payment["subscriptionId"])
        logger.info(f"OpenPay subscription {payment['subscriptionId']} cancelled for user {user.get('id')}")
