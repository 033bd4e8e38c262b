"""
RFP Schemas

Request models for RFP creation and workflow actions, plus the structured
draft produced from free text.
"""

import re
from datetime import datetime
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


RFPStatus = Literal["draft", "sent", "in_review", "evaluating", "awarded", "completed", "cancelled"]
Priority = Literal["high", "medium", "low"]

_NUMBER_PATTERN = re.compile(r"-?\d+(?:\.\d+)?")


def coerce_amount(value: Any) -> float:
    """
    Coerce a loosely-typed money value into a non-negative float.

    Accepts numbers, numeric strings ("50000", "$50,000", "50000 USD") and
    {"amount": ...} mappings. Anything unparseable becomes 0.
    """
    if isinstance(value, dict):
        value = value.get("amount")
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float)):
        amount = float(value)
    else:
        match = _NUMBER_PATTERN.search(str(value).replace(",", ""))
        amount = float(match.group(0)) if match else 0.0
    return amount if amount > 0 else 0.0


class RequirementItem(BaseModel):
    """A single requirement embedded in an RFP."""
    description: str = Field(..., description="Requirement text")
    is_required: bool = Field(default=True, description="Whether the requirement is mandatory")
    priority: Priority = Field(default="medium", description="Requirement priority")
    category: Optional[str] = Field(default=None, description="Requirement category")

    @field_validator("priority", mode="before")
    @classmethod
    def normalize_priority(cls, value: Any) -> str:
        value = str(value or "medium").strip().lower()
        return value if value in ("high", "medium", "low") else "medium"


def normalize_requirements(items: Any) -> list[dict]:
    """Turn a mixed list of strings / dicts into requirement dicts."""
    if not isinstance(items, list):
        return []
    normalized = []
    for item in items:
        if isinstance(item, str):
            if item.strip():
                normalized.append(RequirementItem(description=item.strip()).model_dump())
        elif isinstance(item, dict) and item.get("description"):
            normalized.append(RequirementItem(**item).model_dump())
    return normalized


class RFPCreate(BaseModel):
    """Direct RFP creation from the form."""
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=255, description="RFP title")
    description: str = Field(..., min_length=1, description="RFP description")
    budget: Union[float, str, dict, None] = Field(default=None, description="Budget amount")
    currency: str = Field(default="USD", max_length=3)
    deadline: Optional[datetime] = Field(default=None, description="Defaults to 30 days from now")
    requirements: list[Union[RequirementItem, str]] = Field(default_factory=list)
    natural_language_input: Optional[str] = None

    @property
    def budget_amount(self) -> float:
        return coerce_amount(self.budget)


class RFPNaturalCreate(BaseModel):
    """Save an RFP from a (possibly AI-generated) draft; every field is optional."""
    title: Optional[str] = None
    description: Optional[str] = None
    budget: Union[float, str, dict, None] = None
    timeline: Optional[str] = None
    deadline: Optional[datetime] = None
    requirements: list[Union[RequirementItem, str]] = Field(default_factory=list)
    natural_language_input: Optional[str] = None


class RFPStatusUpdate(BaseModel):
    """Move an RFP to another workflow stage."""
    status: RFPStatus


class SendRFPRequest(BaseModel):
    """Send an RFP to selected vendors."""
    vendor_ids: list[str] = Field(..., min_length=1, alias="vendorIds")
    message: str = Field(default="")

    model_config = ConfigDict(populate_by_name=True)


class ParseTextRequest(BaseModel):
    """Free text to draft an RFP from."""
    text: str = Field(..., min_length=1)


class RFPDraft(BaseModel):
    """Structured RFP draft returned by the text-generation adapter."""
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    budget: float = Field(default=0, ge=0)
    timeline: str = Field(default="TBD")
    requirements: list[RequirementItem] = Field(default_factory=list)

    @field_validator("budget", mode="before")
    @classmethod
    def parse_budget(cls, value: Any) -> float:
        return coerce_amount(value)

    @field_validator("timeline", mode="before")
    @classmethod
    def stringify_timeline(cls, value: Any) -> str:
        return str(value) if value not in (None, "") else "TBD"

    @field_validator("requirements", mode="before")
    @classmethod
    def parse_requirements(cls, value: Any) -> list:
        return normalize_requirements(value)
