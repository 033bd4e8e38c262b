"""
Database Models

SQLAlchemy models for RFP Manager.

RFP sub-documents (requirements, vendor associations, timeline, responses)
are owned by the RFP row and stored as JSON columns.
"""

import re
import secrets
import time
from datetime import datetime
from typing import Optional, List

from sqlalchemy import (
    String, Text, Float, Boolean, DateTime, JSON,
    ForeignKey, Index, UniqueConstraint
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func


# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")

OBJECT_ID_PATTERN = re.compile(r"^[0-9a-f]{24}$")


def generate_object_id() -> str:
    """
    Generate a 24-char hex identifier.

    Layout: 4-byte big-endian creation timestamp followed by 8 random bytes,
    so ids sort roughly by creation time.
    """
    return f"{int(time.time()) & 0xFFFFFFFF:08x}{secrets.token_hex(8)}"


def is_valid_object_id(value: Optional[str]) -> bool:
    """Whether value is a well-formed 24-char lowercase hex identifier."""
    return bool(value) and isinstance(value, str) and OBJECT_ID_PATTERN.match(value) is not None


def _id_column():
    return mapped_column(String(24), primary_key=True, default=generate_object_id)


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


# ============================================================================
# STATUS ENUMERATIONS
# ============================================================================

RFP_STATUSES = ("draft", "sent", "in_review", "evaluating", "awarded", "completed", "cancelled")
VENDOR_ASSOCIATION_STATUSES = ("pending", "sent", "viewed", "working", "submitted", "declined")
PROPOSAL_STATUSES = ("received", "under_review", "accepted", "rejected")
USER_ROLES = ("user", "admin", "vendor")
REQUIREMENT_PRIORITIES = ("high", "medium", "low")


# ============================================================================
# USERS & VENDORS
# ============================================================================

class Vendor(Base):
    """Vendor contact that RFPs are sent to."""
    __tablename__ = "vendors"

    id: Mapped[str] = _id_column()
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    company: Mapped[Optional[str]] = mapped_column(String(255))
    phone: Mapped[Optional[str]] = mapped_column(String(50))
    expertise: Mapped[list] = mapped_column(JSONType, default=list)
    rating: Mapped[float] = mapped_column(Float, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_by: Mapped[Optional[str]] = mapped_column(String(24))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )

    # Relationships
    proposals: Mapped[List["Proposal"]] = relationship(
        back_populates="vendor",
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_vendors_name", "name"),
    )


class User(Base):
    """User model with authentication fields."""
    __tablename__ = "users"

    id: Mapped[str] = _id_column()
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), default="user")
    vendor_id: Mapped[Optional[str]] = mapped_column(
        String(24),
        ForeignKey("vendors.id", ondelete="SET NULL")
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )


# ============================================================================
# RFP MODELS
# ============================================================================

class RFP(Base):
    """RFP document with its embedded workflow history."""
    __tablename__ = "rfps"

    id: Mapped[str] = _id_column()
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="draft")
    deadline: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    budget_amount: Mapped[float] = mapped_column(Float, default=0)
    budget_currency: Mapped[str] = mapped_column(String(3), default="USD")
    natural_language_input: Mapped[Optional[str]] = mapped_column(Text)

    # Embedded sub-documents
    requirements: Mapped[list] = mapped_column(JSONType, default=list)
    ai_metadata: Mapped[Optional[dict]] = mapped_column(JSONType)
    vendors: Mapped[list] = mapped_column(JSONType, default=list)
    email_template: Mapped[Optional[dict]] = mapped_column(JSONType)
    timeline: Mapped[list] = mapped_column(JSONType, default=list)
    responses: Mapped[list] = mapped_column(JSONType, default=list)

    created_by: Mapped[Optional[str]] = mapped_column(String(24))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )

    # Relationships
    proposals: Mapped[List["Proposal"]] = relationship(
        back_populates="rfp",
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_rfps_status_deadline", "status", "deadline"),
        Index("idx_rfps_created_by", "created_by", "status"),
    )


class Proposal(Base):
    """A vendor's proposal for an RFP."""
    __tablename__ = "proposals"

    id: Mapped[str] = _id_column()
    rfp_id: Mapped[str] = mapped_column(
        String(24),
        ForeignKey("rfps.id", ondelete="CASCADE"),
        nullable=False
    )
    vendor_id: Mapped[str] = mapped_column(
        String(24),
        ForeignKey("vendors.id", ondelete="CASCADE"),
        nullable=False
    )
    proposal_text: Mapped[str] = mapped_column(Text, nullable=False)
    price_amount: Mapped[float] = mapped_column(Float, nullable=False)
    price_currency: Mapped[str] = mapped_column(String(3), default="USD")
    parsed_data: Mapped[Optional[dict]] = mapped_column(JSONType)
    analysis: Mapped[Optional[dict]] = mapped_column(JSONType)
    status: Mapped[str] = mapped_column(String(20), default="received")
    notes: Mapped[list] = mapped_column(JSONType, default=list)
    attachments: Mapped[list] = mapped_column(JSONType, default=list)
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now()
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )

    # Relationships
    rfp: Mapped["RFP"] = relationship(back_populates="proposals")
    vendor: Mapped["Vendor"] = relationship(back_populates="proposals")

    __table_args__ = (
        UniqueConstraint("rfp_id", "vendor_id", name="uq_proposal_rfp_vendor"),
        Index("idx_proposals_rfp", "rfp_id"),
    )
