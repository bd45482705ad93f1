"""Account endpoints: signup/login, profile with payment-server sync, password and reset flow."""
from fastapi import APIRouter, Depends, HTTPException, Request
from datetime import datetime, timedelta
import secrets
import uuid
import logging

from config import db, RESET_TOKEN_TTL_SECONDS, APP_NAME
from models import (
    UserCreate, UserLogin, ProfileUpdate, PasswordUpdate,
    ForgotPasswordRequest, ResetPasswordRequest,
)
from auth import hash_password, verify_password, create_token, require_user, get_subscription_service
from services.email_service import send_email, email_wrapper
from services.subscription_service import SubscriptionService, NotRegisteredError, GatewayError

logger = logging.getLogger(__name__)

router = APIRouter()

PRIVATE_FIELDS = ("_id", "password", "passwordResetToken", "passwordResetExpires")


def public_user(user: dict) -> dict:
    return {k: v for k, v in user.items() if k not in PRIVATE_FIELDS}


# ── Auth ──

@router.post("/auth/register")
async def register_user(user_data: UserCreate):
    if user_data.confirm_password != user_data.password:
        raise HTTPException(status_code=400, detail="Passwords do not match")
    email = user_data.email.lower()
    if await db.users.find_one({"email": email}):
        raise HTTPException(status_code=400, detail="An account with that email already exists.")
    user = {
        "id": str(uuid.uuid4()), "email": email,
        "password": hash_password(user_data.password),
        "profile": {"fname": "", "lname": "", "gender": "", "phone": ""},
        "address": {"city": "", "state": "", "line1": "", "postalCode": ""},
        "created_at": datetime.utcnow(),
    }
    await db.users.insert_one(user)
    token = create_token(user["id"], user["email"])
    welcome_html = email_wrapper("Welcome!", f"""
        <h2>Welcome to {APP_NAME}!</h2>
        <p style="line-height:1.6;">Your account has been created. Register a payment method to start your daily routines.</p>
    """)
    await send_email(email, f"Welcome to {APP_NAME}!", welcome_html)
    return {"token": token, "user": public_user(user)}


@router.post("/auth/login")
async def login_user(credentials: UserLogin):
    user = await db.users.find_one({"email": credentials.email.lower()}, {"_id": 0})
    if not user or not verify_password(credentials.password, user["password"]):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    token = create_token(user["id"], user["email"])
    return {"token": token, "user": public_user(user), "message": "Welcome back!"}


@router.get("/auth/me")
async def get_current_user_info(user: dict = Depends(require_user)):
    return public_user(user)


# ── Account ──

@router.get("/account")
async def get_account(user: dict = Depends(require_user)):
    return public_user(user)


@router.post("/account/profile")
async def update_profile(
    data: ProfileUpdate,
    user: dict = Depends(require_user),
    service: SubscriptionService = Depends(get_subscription_service),
):
    email = data.email.lower()
    if email != user["email"] and await db.users.find_one({"email": email}):
        raise HTTPException(status_code=400, detail="The email you entered already belongs to another account.")
    await db.users.update_one({"id": user["id"]}, {"$set": {
        "email": email,
        "profile.fname": data.fname, "profile.lname": data.lname,
        "profile.gender": data.gender, "profile.phone": data.phone,
        "address.city": data.city, "address.state": data.state,
        "address.line1": data.line1, "address.postalCode": data.postal_code,
        "updated_at": datetime.utcnow(),
    }})
    user = await db.users.find_one({"id": user["id"]}, {"_id": 0})

    try:
        new_customer_id, remote = await service.update_customer_with_fallback(user)
    except NotRegisteredError:
        # Customer gets created together with the first subscription.
        return {"success": True, "message": "Your profile information has been updated.", "user": public_user(user)}
    except GatewayError as e:
        logger.error(f"Profile saved but payment server sync failed for user {user['id']}: {e.description}")
        raise HTTPException(status_code=502, detail={
            "message": "An error occurred updating your details with our payment server. Try again.",
            "redirect": "/account",
        })
    if new_customer_id:
        # The old subscription belonged to the lost customer.
        await db.users.update_one(
            {"id": user["id"]},
            {"$set": {"payment.customerId": new_customer_id}, "$unset": {"payment.subscriptionId": ""}},
        )
        user["payment"] = {"customerId": new_customer_id}
    else:
        logger.info(f"OpenPay customer updated for user {user['id']}: {remote.get('id')}")
    return {"success": True, "message": "Your profile information has been updated.", "user": public_user(user)}


@router.post("/account/password")
async def update_password(data: PasswordUpdate, user: dict = Depends(require_user)):
    if data.confirm_password != data.password:
        raise HTTPException(status_code=400, detail="Passwords do not match")
    await db.users.update_one({"id": user["id"]}, {"$set": {"password": hash_password(data.password)}})
    return {"success": True, "message": "Your password has been updated."}


@router.post("/account/delete")
async def delete_account(user: dict = Depends(require_user)):
    await db.users.delete_one({"id": user["id"]})
    return {"success": True, "message": "Your account has been deleted."}


# ── Password reset ──

@router.post("/auth/forgot-password")
async def forgot_password(req: ForgotPasswordRequest, request: Request):
    generic = {"message": "If that email exists, a reset link has been sent."}
    user = await db.users.find_one({"email": req.email.lower()})
    if not user:
        return generic
    token = secrets.token_hex(16)
    await db.users.update_one({"id": user["id"]}, {"$set": {
        "passwordResetToken": token,
        "passwordResetExpires": datetime.utcnow() + timedelta(seconds=RESET_TOKEN_TTL_SECONDS),
    }})
    reset_url = f"{str(request.base_url).rstrip('/')}/reset/{token}"
    reset_html = email_wrapper("Password Reset", f"""
        <h2>Password Reset Requested</h2>
        <p>You are receiving this email because you (or someone else) asked to reset the password of your account.</p>
        <p>Follow this link to complete the process:</p>
        <p><a href="{reset_url}">{reset_url}</a></p>
        <p style="font-size:12px;">If you did not request this, ignore this email and your password will remain unchanged. The link expires in 1 hour.</p>
    """)
    await send_email(user["email"], f"Reset your {APP_NAME} password", reset_html)
    return generic


async def _find_reset_user(token: str):
    return await db.users.find_one(
        {"passwordResetToken": token, "passwordResetExpires": {"$gt": datetime.utcnow()}}, {"_id": 0}
    )


@router.get("/auth/reset/{token}")
async def check_reset_token(token: str):
    if not await _find_reset_user(token):
        raise HTTPException(status_code=400, detail="The password reset token is invalid or has expired.")
    return {"valid": True}


@router.post("/auth/reset/{token}")
async def reset_password(token: str, req: ResetPasswordRequest):
    if req.confirm != req.password:
        raise HTTPException(status_code=400, detail="Passwords must match.")
    user = await _find_reset_user(token)
    if not user:
        raise HTTPException(status_code=400, detail="The password reset token is invalid or has expired.")
    await db.users.update_one(
        {"id": user["id"]},
        {"$set": {"password": hash_password(req.password)}, "$unset": {"passwordResetToken": "", "passwordResetExpires": ""}},
    )
    confirm_html = email_wrapper("Password Changed", f"""
        <h2>Password Updated</h2>
        <p>This is a confirmation that the password for your account {user['email']} has just been changed.</p>
    """)
    await send_email(user["email"], f"Your {APP_NAME} password has been changed", confirm_html)
    return {"token": create_token(user["id"], user["email"]), "message": "Success! Your password has been changed."}
