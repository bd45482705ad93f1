from dataclasses import dataclass
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from datetime import datetime, timedelta
from passlib.context import CryptContext
from typing import Optional
import logging
import jwt

from config import db, JWT_SECRET, JWT_ALGORITHM, ADMIN_EMAIL
from services.subscription_service import (
    SubscriptionService, NotRegisteredError, GatewayError, is_active_status,
)

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(password: str, hashed: str) -> bool:
    return pwd_context.verify(password, hashed)

def create_token(user_id: str, email: str) -> str:
    payload = {
        "user_id": user_id,
        "email": email,
        "exp": datetime.utcnow() + timedelta(days=30)
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)

def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")


async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)):
    if not credentials:
        return None
    try:
        payload = decode_token(credentials.credentials)
    except HTTPException:
        return None
    return await db.users.find_one({"id": payload["user_id"]}, {"_id": 0})

async def require_user(credentials: HTTPAuthorizationCredentials = Depends(security)):
    if not credentials:
        raise HTTPException(status_code=401, detail="Authentication required")
    payload = decode_token(credentials.credentials)
    user = await db.users.find_one({"id": payload["user_id"]}, {"_id": 0})
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return user

async def require_admin(user: dict = Depends(require_user)):
    if user.get("email", "").lower() != ADMIN_EMAIL.lower():
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


def get_subscription_service(request: Request) -> SubscriptionService:
    return request.app.state.subscription_service


# ── Access gate ──

@dataclass(frozen=True)
class AccessDecision:
    admitted: bool
    message: str = ""
    redirect: Optional[str] = None
    status_code: int = 200


async def evaluate_access(user: Optional[dict], service: SubscriptionService) -> AccessDecision:
    """Decide whether ``user`` may enter a subscriber-only route.

    Runs on every gated request and asks OpenPay each time; nothing is cached.
    Any failure to verify the subscription denies access.
    """
    if not user:
        return AccessDecision(False, "Please log in.", "/login", 401)
    if not (user.get("payment") or {}).get("customerId"):
        return AccessDecision(False, "Please register a payment method.", "/billing", 402)
    try:
        subscription = await service.get_status(user)
    except NotRegisteredError as e:
        return AccessDecision(False, e.description, "/billing", 402)
    except GatewayError as e:
        logger.error(f"Subscription check failed for user {user.get('id')}: {e.description}")
        return AccessDecision(
            False, "An error occurred connecting to our payment server. Try again later.", "/", 503
        )
    if is_active_status(subscription.get("status")):
        return AccessDecision(True)
    return AccessDecision(
        False, "There is a problem with your payment method, check your details and try again.", "/billing", 402
    )


async def require_active_subscription(
    user: Optional[dict] = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
):
    decision = await evaluate_access(user, service)
    if not decision.admitted:
        raise HTTPException(
            status_code=decision.status_code,
            detail={"message": decision.message, "redirect": decision.redirect},
        )
    return user
