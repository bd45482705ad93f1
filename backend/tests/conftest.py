"""
Shared fixtures: in-memory MongoDB, a recording fake OpenPay gateway and an API client
"""
import asyncio
import os
import sys
import tempfile
import uuid
from datetime import datetime
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("MONGO_URL", "mongodb://localhost:27017")
os.environ.setdefault("DB_NAME", "caffbalance_test")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="caffbalance-uploads-"))
os.environ["ADMIN_EMAIL"] = "admin@caffbalance.com"
os.environ["RESEND_API_KEY"] = ""

from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from auth import create_token
from config import OpenPaySettings
from server import app
from services.subscription_service import SubscriptionService, GatewayError

ADMIN_EMAIL = "admin@caffbalance.com"
SETTINGS = OpenPaySettings(
    merchant_id="mtest123", private_key="sk_test_key", public_key="pk_test_key", plan_id="plan_fixed",
)
DB_MODULES = ("config", "auth", "server", "routes.user", "routes.billing", "routes.routines")


class FakeGateway:
    """Records every OpenPay call; individual operations can be told to fail."""

    def __init__(self):
        self.calls = []
        self.failures = {}
        self.subscription_status = "active"
        self._customers = 0

    def fail(self, operation, description="The customer does not exist", http_code=404):
        self.failures[operation] = GatewayError(description, error_code=1005, category="request", http_code=http_code)

    @property
    def operations(self):
        return [call[0] for call in self.calls]

    def _record(self, operation, *args):
        self.calls.append((operation,) + args)
        if operation in self.failures:
            raise self.failures[operation]

    async def create_customer(self, payload):
        self._record("create_customer", payload)
        self._customers += 1
        return {"id": f"cus_{self._customers}", **payload}

    async def update_customer(self, customer_id, payload):
        self._record("update_customer", customer_id, payload)
        return {"id": customer_id, **payload}

    async def create_subscription(self, customer_id, plan_id, source_id):
        self._record("create_subscription", customer_id, plan_id, source_id)
        return {"id": "sub_1", "status": "trial", "plan_id": plan_id, "customer_id": customer_id}

    async def get_subscription(self, customer_id, subscription_id):
        self._record("get_subscription", customer_id, subscription_id)
        return {"id": subscription_id, "status": self.subscription_status, "customer_id": customer_id}

    async def delete_subscription(self, customer_id, subscription_id):
        self._record("delete_subscription", customer_id, subscription_id)


def make_user_doc(email="athlete@example.com", payment=None, **extra):
    user = {
        "id": str(uuid.uuid4()),
        "email": email,
        "password": "not-a-real-hash",
        "profile": {"fname": "Ana", "lname": "Lopez", "gender": "", "phone": "5512345678"},
        "address": {"city": "CDMX", "state": "CDMX", "line1": "Reforma 222", "postalCode": "06600"},
        "created_at": datetime.utcnow(),
    }
    if payment is not None:
        user["payment"] = payment
    user.update(extra)
    return user


def auth_headers(user):
    return {"Authorization": f"Bearer {create_token(user['id'], user['email'])}"}


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def service(gateway):
    return SubscriptionService(gateway, SETTINGS)


@pytest.fixture
def mock_db(monkeypatch):
    database = AsyncMongoMockClient()["caffbalance_test"]
    for module in DB_MODULES:
        monkeypatch.setattr(f"{module}.db", database)
    return database


@pytest.fixture
def client(mock_db, service, monkeypatch):
    monkeypatch.setattr(app.state, "subscription_service", service)
    return TestClient(app)


@pytest.fixture
def insert_user(mock_db):
    """Insert a user document and return it (without Mongo's ``_id``)."""
    def _insert(**kwargs):
        user = make_user_doc(**kwargs)
        asyncio.run(mock_db.users.insert_one(dict(user)))
        return user
    return _insert


@pytest.fixture
def load_user(mock_db):
    def _load(user_id):
        return asyncio.run(mock_db.users.find_one({"id": user_id}, {"_id": 0}))
    return _load
