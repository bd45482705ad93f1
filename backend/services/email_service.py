import asyncio
import logging
from typing import Optional

import resend

from config import RESEND_API_KEY, SENDER_EMAIL, APP_NAME, CONTACT_EMAIL

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


async def send_email(to: str, subject: str, html: str, reply_to: Optional[str] = None):
    """Send an email via Resend. Returns True on success."""
    if not RESEND_API_KEY:
        logger.warning(f"RESEND_API_KEY not set, email '{subject}' to {to} not sent")
        return False
    params = {
        "from": SENDER_EMAIL,
        "to": [to],
        "subject": subject,
        "html": html,
    }
    if reply_to:
        params["reply_to"] = reply_to
    try:
        await asyncio.to_thread(resend.Emails.send, params)
        return True
    except Exception as e:
        logger.error(f"Email send error: {e}")
        return False


def email_wrapper(title: str, body_html: str) -> str:
    """Lay out a transactional email: brand bar, title, body and a support footer."""
    return f"""
    <table role="presentation" width="100%" cellpadding="0" cellspacing="0" style="background:#f2f4f3;padding:24px 0;">
      <tr><td align="center">
        <table role="presentation" width="560" cellpadding="0" cellspacing="0" style="background:#ffffff;font-family:Helvetica,Arial,sans-serif;color:#2b2b2b;">
          <tr><td style="background:#1b5e20;color:#ffffff;padding:16px 24px;font-size:20px;font-weight:bold;">{APP_NAME}</td></tr>
          <tr><td style="padding:24px 24px 0;font-size:13px;text-transform:uppercase;letter-spacing:1px;color:#6b7d6c;">{title}</td></tr>
          <tr><td style="padding:8px 24px 24px;font-size:15px;line-height:1.5;">{body_html}</td></tr>
          <tr><td style="padding:16px 24px;font-size:11px;color:#8a8a8a;border-top:1px solid #e3e7e4;">
            Questions about your routine or your membership? Write to
            <a href="mailto:{CONTACT_EMAIL}" style="color:#1b5e20;">{CONTACT_EMAIL}</a>.
          </td></tr>
        </table>
      </td></tr>
    </table>
    """
