"""
RFP Manager - Services Package

Persistence, mail transport, inbound correlation and document processing.
"""

from services.document_processor import (
    DocumentProcessor,
    get_processor,
    extract_text,
    resolve_mime_type,
)
from services.email_service import (
    EmailService,
    EmailDeliveryError,
    build_rfp_email,
    get_email_service,
)
from services.mailbox import MailboxClient, MailboxError, parse_message
from services.response_correlator import (
    ResponseCorrelator,
    extract_rfp_id,
    find_rfp_reference,
)
from services.rfp_store import RFPStore, get_store

__all__ = [
    "DocumentProcessor",
    "get_processor",
    "extract_text",
    "resolve_mime_type",
    "EmailService",
    "EmailDeliveryError",
    "build_rfp_email",
    "get_email_service",
    "MailboxClient",
    "MailboxError",
    "parse_message",
    "ResponseCorrelator",
    "extract_rfp_id",
    "find_rfp_reference",
    "RFPStore",
    "get_store",
]
