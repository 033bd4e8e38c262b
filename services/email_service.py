"""
Email Service

Outbound mail over SMTP, including the RFP invitation sent to vendors.
"""

import logging
import smtplib
import ssl
from html import escape
from email.message import EmailMessage
from email.utils import formataddr, make_msgid
from typing import Callable, Optional

from config.settings import settings, Settings

logger = logging.getLogger("rfp_manager.services.email")


class EmailDeliveryError(Exception):
    """Raised when a message cannot be handed to the SMTP server."""


class EmailService:
    """
    SMTP sender.

    Args:
        config: Settings to read SMTP host/port/credentials from
        smtp_factory: Returns a connected smtplib.SMTP-like object; tests
                      inject a fake here
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        smtp_factory: Optional[Callable[[], smtplib.SMTP]] = None
    ):
        self.config = config or settings
        self._smtp_factory = smtp_factory or self._connect

    def _connect(self) -> smtplib.SMTP:
        context = ssl.create_default_context()
        if self.config.email_secure:
            smtp = smtplib.SMTP_SSL(self.config.email_host, self.config.email_port, context=context)
        else:
            smtp = smtplib.SMTP(self.config.email_host, self.config.email_port)
            smtp.ehlo()
            smtp.starttls(context=context)
            smtp.ehlo()

        if self.config.email_user and self.config.email_password:
            smtp.login(self.config.email_user, self.config.email_password)
        return smtp

    def send_email(
        self,
        to: str,
        subject: str,
        text: str,
        html: Optional[str] = None
    ) -> dict:
        """
        Send one message.

        Returns:
            {"success": True, "message_id": ...}

        Raises:
            EmailDeliveryError: On any SMTP or connection failure
        """
        message = EmailMessage()
        message["From"] = formataddr(("RFP Manager", self.config.email_from))
        message["To"] = to
        message["Subject"] = subject
        message["Message-ID"] = make_msgid(domain=self.config.email_from.split("@")[-1])
        message.set_content(text)
        if html:
            message.add_alternative(html, subtype="html")

        try:
            smtp = self._smtp_factory()
            try:
                smtp.send_message(message)
            finally:
                smtp.quit()
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Error sending email to {to}: {e}")
            raise EmailDeliveryError("Failed to send email") from e

        logger.info(f"Message sent: {message['Message-ID']} -> {to}")
        return {"success": True, "message_id": message["Message-ID"]}

    def send_rfp_email(
        self,
        vendor_email: str,
        vendor_name: str,
        rfp_title: str,
        rfp_id: str,
        message: str = ""
    ) -> dict:
        """
        Invite a vendor to submit a proposal.

        The subject carries "[RFP:<id>]" so replies can be matched back to
        the RFP by the inbound mail correlator.
        """
        subject, text, html = build_rfp_email(
            vendor_name, rfp_title, rfp_id, message, self.config.app_url
        )
        return self.send_email(to=vendor_email, subject=subject, text=text, html=html)


def build_rfp_email(
    vendor_name: str,
    rfp_title: str,
    rfp_id: str,
    message: str,
    app_url: str
) -> tuple[str, str, str]:
    """Build (subject, text, html) for an RFP invitation."""
    submit_url = f"{app_url}/rfp/{rfp_id}/submit"
    subject = f"New RFP: {rfp_title} [RFP:{rfp_id}]"
    text = (
        f"Dear {vendor_name},\n\n"
        f"You have been invited to submit a proposal for the following RFP:\n\n"
        f"Title: {rfp_title}\n"
        f"Message: {message}\n\n"
        f"Please submit your proposal by following this link: {submit_url}\n"
        f"or reply to this email keeping the RFP reference in the subject.\n\n"
        f"Best regards,\n"
        f"The RFP Manager Team"
    )
    name_html, title_html, message_html = escape(vendor_name), escape(rfp_title), escape(message)
    html = f"""
        <div style="font-family: Arial, sans-serif; line-height: 1.6;">
            <p>Dear {name_html},</p>
            <p>You have been invited to submit a proposal for the following RFP:</p>
            <h2>{title_html}</h2>
            <p>{message_html}</p>
            <div style="margin: 25px 0;">
                <a href="{submit_url}"
                   style="background-color: #4CAF50; color: white; padding: 12px 24px;
                          text-decoration: none; display: inline-block; border-radius: 4px;">
                    Submit Proposal
                </a>
            </div>
            <p>Or copy and paste this link into your browser:</p>
            <p>{submit_url}</p>
            <p>Best regards,<br>The RFP Manager Team</p>
        </div>
    """
    return subject, text, html


_email_service: Optional[EmailService] = None


def get_email_service() -> EmailService:
    """Get the shared SMTP sender (FastAPI dependency)."""
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service
