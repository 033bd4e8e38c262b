"""
Proposal Schemas

Proposal submission, review status and AI analysis payloads.
"""

from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from schemas.rfp import coerce_amount


ProposalStatus = Literal["received", "under_review", "accepted", "rejected"]


class ProposalCreate(BaseModel):
    """Vendor proposal submission."""
    vendor_id: str = Field(..., min_length=24, max_length=24)
    proposal_text: str = Field(..., min_length=1)
    price: Union[float, str, dict] = Field(..., description="Submitted price")
    currency: str = Field(default="USD", max_length=3)

    @property
    def price_amount(self) -> float:
        return coerce_amount(self.price)


class ProposalStatusUpdate(BaseModel):
    """Review decision for a proposal."""
    status: ProposalStatus
    note: Optional[str] = None


class AnalyzeProposalRequest(BaseModel):
    """Proposal text to score; with proposal_id the analysis is stored on it."""
    proposal_text: str = Field(..., min_length=1, alias="proposalText")
    proposal_id: Optional[str] = Field(default=None, alias="proposalId")

    model_config = {"populate_by_name": True}


class ProposalAnalysis(BaseModel):
    """AI assessment of a single proposal."""
    score: float = Field(default=0, ge=0, le=10, description="1-10 rating, 0 when not scored")
    summary: str = Field(default="Manual review required")
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    risk_assessment: Optional[str] = None

    @field_validator("score", mode="before")
    @classmethod
    def clamp_score(cls, value: Any) -> float:
        return min(coerce_amount(value), 10.0)


class RankedVendor(BaseModel):
    vendor_name: str
    company: Optional[str] = None
    rank: int
    rationale: str = ""


class ProposalComparison(BaseModel):
    """AI comparison across all proposals for one RFP."""
    recommendation: str
    ranking: list[RankedVendor] = Field(default_factory=list)
    summary: str = ""
