"""
OpenPay REST client tests against an httpx mock transport
"""
import base64
import json

import httpx
import pytest

from config import OpenPaySettings
from services.openpay_client import OpenPayClient
from services.subscription_service import GatewayError
from conftest import SETTINGS


def make_client(handler, settings=SETTINGS):
    return OpenPayClient(settings, transport=httpx.MockTransport(handler))


class TestRequests:
    async def test_create_customer_posts_with_basic_auth(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"id": "cus_abc", "name": "Ana"})

        customer = await make_client(handler).create_customer({"name": "Ana"})
        assert customer["id"] == "cus_abc"
        assert seen["method"] == "POST"
        assert seen["url"] == "https://sandbox-api.openpay.mx/v1/mtest123/customers"
        assert seen["auth"] == "Basic " + base64.b64encode(b"sk_test_key:").decode()
        assert seen["body"] == {"name": "Ana"}

    async def test_subscription_endpoints(self):
        seen = []

        def handler(request):
            seen.append((request.method, request.url.path, request.content))
            if request.method == "DELETE":
                return httpx.Response(204)
            return httpx.Response(200, json={"id": "sub_1", "status": "active"})

        client = make_client(handler)
        await client.create_subscription("cus_1", "plan_fixed", "tok_1")
        assert (await client.get_subscription("cus_1", "sub_1"))["status"] == "active"
        assert await client.delete_subscription("cus_1", "sub_1") is None
        assert seen[0][:2] == ("POST", "/v1/mtest123/customers/cus_1/subscriptions")
        assert json.loads(seen[0][2]) == {"plan_id": "plan_fixed", "source_id": "tok_1"}
        assert seen[1][:2] == ("GET", "/v1/mtest123/customers/cus_1/subscriptions/sub_1")
        assert seen[2][:2] == ("DELETE", "/v1/mtest123/customers/cus_1/subscriptions/sub_1")

    async def test_update_customer_uses_put(self):
        def handler(request):
            assert request.method == "PUT"
            assert request.url.path == "/v1/mtest123/customers/cus_1"
            return httpx.Response(200, json={"id": "cus_1"})

        assert (await make_client(handler).update_customer("cus_1", {}))["id"] == "cus_1"


class TestErrors:
    async def test_provider_error_body(self):
        def handler(request):
            return httpx.Response(404, json={
                "category": "request", "description": "The customer with id 'cus_x' does not exist",
                "http_code": 404, "error_code": 1005, "request_id": "req-1",
            })

        with pytest.raises(GatewayError) as exc:
            await make_client(handler).update_customer("cus_x", {})
        err = exc.value
        assert "does not exist" in err.description
        assert err.error_code == 1005
        assert err.http_code == 404
        assert err.request_id == "req-1"

    async def test_non_json_error(self):
        def handler(request):
            return httpx.Response(502, text="Bad gateway")

        with pytest.raises(GatewayError) as exc:
            await make_client(handler).get_subscription("cus_1", "sub_1")
        assert exc.value.http_code == 502

    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(GatewayError) as exc:
            await make_client(handler).get_subscription("cus_1", "sub_1")
        assert "payment server" in exc.value.description

    async def test_unconfigured_client_is_a_hard_error(self):
        def handler(request):
            raise AssertionError("no request expected")

        with pytest.raises(RuntimeError):
            await make_client(handler, OpenPaySettings()).create_customer({})


def test_production_base_url():
    settings = OpenPaySettings(merchant_id="m1", private_key="k", plan_id="p", production=True)
    assert settings.base_url == "https://api.openpay.mx/v1/m1"
    assert settings.is_configured
    assert not OpenPaySettings(merchant_id="m1").is_configured
