"""
RFP Manager - Pydantic Schemas

Request payloads, AI results and the normalized inbound email record.
"""

from schemas.ai import AIResult
from schemas.email import EmailAttachment, InboundEmail
from schemas.rfp import (
    RequirementItem,
    RFPCreate,
    RFPNaturalCreate,
    RFPStatusUpdate,
    SendRFPRequest,
    ParseTextRequest,
    RFPDraft,
    coerce_amount,
    normalize_requirements,
)
from schemas.vendor import VendorCreate, VendorUpdate
from schemas.proposal import (
    ProposalCreate,
    ProposalStatusUpdate,
    AnalyzeProposalRequest,
    ProposalAnalysis,
    ProposalComparison,
    RankedVendor,
)

__all__ = [
    # AI
    "AIResult",
    # Email
    "EmailAttachment",
    "InboundEmail",
    # RFP
    "RequirementItem",
    "RFPCreate",
    "RFPNaturalCreate",
    "RFPStatusUpdate",
    "SendRFPRequest",
    "ParseTextRequest",
    "RFPDraft",
    "coerce_amount",
    "normalize_requirements",
    # Vendor
    "VendorCreate",
    "VendorUpdate",
    # Proposal
    "ProposalCreate",
    "ProposalStatusUpdate",
    "AnalyzeProposalRequest",
    "ProposalAnalysis",
    "ProposalComparison",
    "RankedVendor",
]
