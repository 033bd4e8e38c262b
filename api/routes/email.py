"""
Email Router

Inspect and trigger the inbound mailbox poller.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request

from api.auth.dependencies import require_admin
from api.middleware.error_handler import APIError, ValidationError
from config.settings import settings
from database.models import User
from services.mailbox import MailboxError
from workers.email_poller import MailboxPoller


router = APIRouter(prefix="/email", tags=["Email"])


def get_poller(request: Request) -> Optional[MailboxPoller]:
    """The poller created by the application lifespan, if mail is configured."""
    return getattr(request.app.state, "email_poller", None)


@router.get("/status")
async def email_status(
    current_user: User = Depends(require_admin),
    poller: Optional[MailboxPoller] = Depends(get_poller)
):
    data = {
        "configured": settings.email_configured,
        "polling_enabled": settings.email_polling_enabled,
        "poller": poller.status() if poller else None,
    }
    return {"success": True, "data": data}


@router.post("/check")
async def check_email(
    current_user: User = Depends(require_admin),
    poller: Optional[MailboxPoller] = Depends(get_poller)
):
    """
    Check the mailbox now.

    With the polling loop running the loop is woken up; otherwise a pass
    runs inline and its summary is returned. A check requested while one
    is in flight is dropped.
    """
    if poller is None:
        raise ValidationError("Email is not configured")

    if poller.running:
        triggered = poller.trigger()
        return {"success": True, "data": {"triggered": triggered, "status": poller.status()}}

    try:
        summary = await poller.check_now()
    except MailboxError as e:
        raise APIError(f"Mailbox unavailable: {e}", 502, "MAILBOX_ERROR")

    return {
        "success": True,
        "data": {"triggered": summary is not None, "summary": summary, "status": poller.status()},
    }
