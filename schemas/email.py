"""
Email Schemas

Normalized inbound email record handed from the mailbox poller to the
response correlator.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class EmailAttachment(BaseModel):
    """Attachment metadata (content is not persisted)."""
    filename: Optional[str] = None
    content_type: str = "application/octet-stream"
    size: int = 0


class InboundEmail(BaseModel):
    """A parsed inbound message."""
    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(default="unknown", alias="from", description="Sender address")
    to: list[str] = Field(default_factory=list)
    subject: str = ""
    text: str = ""
    html: str = ""
    date: Optional[datetime] = None
    message_id: Optional[str] = None
    attachments: list[EmailAttachment] = Field(default_factory=list)
