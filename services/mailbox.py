"""
Mailbox Client

Thin IMAP wrapper used by the poller, plus parsing of raw RFC 822 messages
into InboundEmail records. All methods block; callers run them in a thread.
"""

import imaplib
import logging
import re
from datetime import date
from email import message_from_bytes, policy
from email.message import EmailMessage
from email.utils import getaddresses, parseaddr
from html import unescape
from typing import List, Optional

from config.settings import settings, Settings
from schemas.email import EmailAttachment, InboundEmail

logger = logging.getLogger("rfp_manager.services.mailbox")


class MailboxError(Exception):
    """IMAP command failed or the connection dropped."""


def imap_date(day: date) -> str:
    """Format a date the way IMAP SEARCH expects (01-Jan-2024)."""
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
    return f"{day.day:02d}-{months[day.month - 1]}-{day.year}"


def message_count(data: list) -> Optional[int]:
    """Last message count from untagged EXISTS data, if any."""
    values = [item for item in data or [] if item is not None]
    if not values:
        return None
    try:
        return int(values[-1])
    except (TypeError, ValueError):
        return None


class MailboxClient:
    """IMAP connection to one mailbox folder."""

    def __init__(self, config: Optional[Settings] = None, folder: str = "INBOX"):
        self.config = config or settings
        self.folder = folder
        self._imap: Optional[imaplib.IMAP4] = None
        self._exists = 0

    def connect(self) -> None:
        """Log in and select the folder read-write."""
        cls = imaplib.IMAP4_SSL if self.config.email_imap_secure else imaplib.IMAP4
        try:
            imap = cls(self.config.email_imap_host, self.config.email_imap_port)
            imap.login(self.config.email_user or "", self.config.email_password or "")
            status, data = imap.select(self.folder, readonly=False)
        except (imaplib.IMAP4.error, OSError) as e:
            raise MailboxError(f"IMAP connect failed: {e}") from e

        if status != "OK":
            raise MailboxError(f"Could not open {self.folder}")

        self._imap = imap
        self._exists = message_count(data) or 0
        # Drop the EXISTS seen on SELECT; later ones mean the folder grew
        imap.response("EXISTS")
        logger.info(f"IMAP connection established ({self.config.email_imap_host}/{self.folder})")

    def close(self) -> None:
        if self._imap is None:
            return
        try:
            self._imap.logout()
        except (imaplib.IMAP4.error, OSError):
            pass  # already gone
        finally:
            self._imap = None

    def has_new_mail(self) -> bool:
        """
        Send NOOP and report whether the server announced new messages.

        Servers answer NOOP with untagged EXISTS once the folder changes; a
        count above the last known one means mail arrived.
        """
        if self._imap is None:
            raise MailboxError("Not connected")
        try:
            status, _ = self._imap.noop()
            _, counts = self._imap.response("EXISTS")
        except (imaplib.IMAP4.error, OSError) as e:
            raise MailboxError(f"IMAP NOOP failed: {e}") from e
        if status != "OK":
            raise MailboxError(f"IMAP NOOP returned {status}")

        latest = message_count(counts)
        if latest is None:
            return False
        grew = latest > self._exists
        self._exists = latest
        return grew

    def _command(self, *args) -> list:
        if self._imap is None:
            raise MailboxError("Not connected")
        try:
            status, data = self._imap.uid(*args)
        except (imaplib.IMAP4.error, OSError) as e:
            raise MailboxError(f"IMAP {args[0]} failed: {e}") from e
        if status != "OK":
            raise MailboxError(f"IMAP {args[0]} returned {status}")
        return data

    def search_unseen_since(self, since: date) -> List[str]:
        """UIDs of unread messages received on or after `since`."""
        data = self._command("SEARCH", None, "UNSEEN", "SINCE", imap_date(since))
        if not data or not data[0]:
            return []
        return data[0].decode().split()

    def fetch(self, uid: str) -> bytes:
        """Fetch the full raw message without setting \\Seen."""
        data = self._command("FETCH", uid, "(BODY.PEEK[])")
        for item in data:
            if isinstance(item, tuple) and len(item) == 2:
                return item[1]
        raise MailboxError(f"Message {uid} has no body")

    def mark_seen(self, uid: str) -> None:
        self._command("STORE", uid, "+FLAGS", "(\\Seen)")


_TAG_PATTERN = re.compile(r"<[^>]+>")


def html_to_text(html: str) -> str:
    """Crude tag strip for HTML-only replies."""
    text = _TAG_PATTERN.sub(" ", re.sub(r"(?i)<br\s*/?>|</p>", "\n", html))
    return re.sub(r"[ \t]+", " ", unescape(text)).strip()


def parse_message(raw: bytes) -> InboundEmail:
    """Parse a raw RFC 822 message into an InboundEmail."""
    message: EmailMessage = message_from_bytes(raw, policy=policy.default)

    sender = parseaddr(str(message.get("From", "")))[1] or "unknown"
    recipients = [address for _, address in getaddresses([str(v) for v in message.get_all("To", [])]) if address]

    text_part = message.get_body(preferencelist=("plain",))
    html_part = message.get_body(preferencelist=("html",))

    attachments = []
    for part in message.iter_attachments():
        payload = part.get_payload(decode=True) or b""
        attachments.append(EmailAttachment(
            filename=part.get_filename(),
            content_type=part.get_content_type(),
            size=len(payload)
        ))

    text = text_part.get_content() if text_part is not None else ""
    html = html_part.get_content() if html_part is not None else ""
    if not text.strip() and html:
        text = html_to_text(html)

    date_header = message.get("Date")
    received = getattr(date_header, "datetime", None) if date_header else None
    message_id = message.get("Message-ID")

    return InboundEmail(
        from_=sender,
        to=recipients,
        subject=str(message.get("Subject", "") or ""),
        text=text,
        html=html,
        date=received,
        message_id=str(message_id) if message_id else None,
        attachments=attachments
    )
