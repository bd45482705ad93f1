"""Contact form, delivered to the team mailbox."""
from fastapi import APIRouter, Depends, HTTPException
from email_validator import validate_email, EmailNotValidError
from typing import Optional
import html

from config import CONTACT_EMAIL, APP_NAME
from models import ContactMessage
from auth import get_current_user
from services.email_service import send_email, email_wrapper

router = APIRouter()


@router.post("/contact")
async def post_contact(data: ContactMessage, user: Optional[dict] = Depends(get_current_user)):
    if user:
        profile = user.get("profile") or {}
        from_name = " ".join(p for p in (profile.get("fname"), profile.get("lname")) if p)
        from_email = user["email"]
    else:
        if not (data.name or "").strip():
            raise HTTPException(status_code=400, detail="Name is required")
        try:
            from_email = validate_email(data.email or "", check_deliverability=False).normalized
        except EmailNotValidError:
            raise HTTPException(status_code=400, detail="Email is not valid")
        from_name = data.name.strip()

    body = email_wrapper("Contact Form", f"""
        <p><strong>{html.escape(from_name)}</strong> &lt;{html.escape(from_email)}&gt; wrote:</p>
        <p style="white-space:pre-wrap;">{html.escape(data.message)}</p>
    """)
    reply_to = f"{from_name} <{from_email}>" if from_name else from_email
    sent = await send_email(CONTACT_EMAIL, f"Contact Form | {APP_NAME}", body, reply_to=reply_to)
    if not sent:
        raise HTTPException(status_code=502, detail="The message could not be sent, try again later.")
    return {"success": True, "message": "Your message has been sent!"}
