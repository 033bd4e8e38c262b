"""
Response Correlator

Matches an inbound email to a tracked RFP by the "RFP <id>" token in its
subject or body and records it as a vendor response.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Optional, Protocol, Tuple

from database.models import is_valid_object_id
from schemas.email import InboundEmail

logger = logging.getLogger("rfp_manager.services.correlator")


# "RFP", optional separators, then a 24-hex id that is not part of a longer hex run
RFP_REFERENCE_PATTERN = re.compile(
    r"RFP[\s:#\-\[\(]*([0-9a-f]{24})(?![0-9a-f])",
    re.IGNORECASE
)

# A reply only promotes an RFP that is waiting on vendors
SENT_TO_IN_REVIEW: Tuple[str, str] = ("sent", "in_review")


def extract_rfp_id(text: Optional[str]) -> Optional[str]:
    """
    Return the first RFP identifier referenced in text, lower-cased.

    >>> extract_rfp_id("Re: RFP: 5F1D9C3B2A1E4F6789ABC123")
    '5f1d9c3b2a1e4f6789abc123'
    >>> extract_rfp_id("no reference here") is None
    True
    """
    if not text:
        return None
    match = RFP_REFERENCE_PATTERN.search(text)
    return match.group(1).lower() if match else None


def find_rfp_reference(subject: Optional[str], text: Optional[str]) -> Optional[str]:
    """Subject takes priority over the body."""
    return extract_rfp_id(subject) or extract_rfp_id(text)


class ResponseStore(Protocol):
    """The part of RFPStore the correlator needs."""

    async def get_rfp(self, rfp_id: str) -> Optional[dict]:
        ...

    async def append_rfp_response(
        self,
        rfp_id: str,
        response: dict,
        status_transition: Optional[Tuple[str, str]] = None
    ) -> Optional[dict]:
        ...


class ResponseCorrelator:
    """
    Attach inbound vendor replies to their RFP.

    Not idempotent: handling the same email twice records two responses.
    """

    def __init__(self, store: ResponseStore):
        self.store = store

    async def process(self, email: InboundEmail) -> Optional[dict]:
        """
        Correlate one email.

        Returns:
            The updated RFP, or None when the email does not concern a
            tracked RFP (no reference, malformed id, or unknown RFP)

        Raises:
            Any store error, unchanged
        """
        rfp_id = find_rfp_reference(email.subject, email.text)
        if rfp_id is None:
            return None

        if not is_valid_object_id(rfp_id):
            logger.debug(f"Ignoring malformed RFP reference {rfp_id!r}")
            return None

        rfp = await self.store.get_rfp(rfp_id)
        if rfp is None:
            logger.info(f"RFP {rfp_id} not found (email from {email.from_})")
            return None

        response = {
            "vendor_email": email.from_,
            "response_date": datetime.now(timezone.utc).isoformat(),
            "content": email.text,
            "attachments": [attachment.model_dump() for attachment in email.attachments],
        }
        updated = await self.store.append_rfp_response(
            rfp_id, response, status_transition=SENT_TO_IN_REVIEW
        )
        if updated is None:
            # Deleted between lookup and update
            logger.info(f"RFP {rfp_id} disappeared before the response was saved")
            return None

        logger.info(
            f"Response from {email.from_} added to RFP {rfp_id} (status {updated['status']})"
        )
        return updated
