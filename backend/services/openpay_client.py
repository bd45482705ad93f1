"""Thin async wrapper around the OpenPay customers/subscriptions REST API."""
import logging
from typing import Optional

import httpx

from config import OpenPaySettings
from services.subscription_service import GatewayError

logger = logging.getLogger(__name__)


class OpenPayClient:
    def __init__(self, settings: OpenPaySettings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self._transport = transport

    async def _request(self, method: str, path: str, payload: Optional[dict] = None) -> dict:
        if not self.settings.is_configured:
            raise RuntimeError("OpenPay is not configured: set OPENPAY_MERCHANT_ID, OPENPAY_PRIVATE_KEY and OPENPAY_SUBSCRIPTION_ID")
        try:
            async with httpx.AsyncClient(
                base_url=self.settings.base_url,
                auth=(self.settings.private_key, ""),
                timeout=self.settings.timeout,
                transport=self._transport,
            ) as client:
                resp = await client.request(method, path, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"OpenPay {method} {path} transport error: {e}")
            raise GatewayError(f"Could not reach the payment server: {e}") from e

        if resp.status_code >= 400:
            try:
                body = resp.json()
            except ValueError:
                body = {}
            raise GatewayError.from_body(body if isinstance(body, dict) else {}, http_code=resp.status_code)
        if resp.status_code == 204 or not resp.content:
            return {}
        return resp.json()

    async def create_customer(self, payload: dict) -> dict:
        return await self._request("POST", "/customers", payload)

    async def update_customer(self, customer_id: str, payload: dict) -> dict:
        return await self._request("PUT", f"/customers/{customer_id}", payload)

    async def create_subscription(self, customer_id: str, plan_id: str, source_id: str) -> dict:
        return await self._request(
            "POST", f"/customers/{customer_id}/subscriptions",
            {"plan_id": plan_id, "source_id": source_id},
        )

    async def get_subscription(self, customer_id: str, subscription_id: str) -> dict:
        return await self._request("GET", f"/customers/{customer_id}/subscriptions/{subscription_id}")

    async def delete_subscription(self, customer_id: str, subscription_id: str) -> None:
        await self._request("DELETE", f"/customers/{customer_id}/subscriptions/{subscription_id}")
