"""
Vendor Schemas
"""

from typing import Annotated, Any, Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator


def check_vendor_email(value: str) -> str:
    """
    Validate the address format but keep it exactly as submitted.

    Vendor emails are matched case-sensitively, so no normalization.
    """
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError as e:
        raise ValueError(str(e))
    return value


VendorEmail = Annotated[str, AfterValidator(check_vendor_email)]


class VendorCreate(BaseModel):
    """Create a vendor."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=255)
    email: VendorEmail
    company: Optional[str] = None
    phone: Optional[str] = None
    expertise: list[str] = Field(default_factory=list, description='e.g. ["IT", "Construction"]')
    rating: float = Field(default=0, ge=0, le=5)
    is_active: bool = True


class VendorUpdate(BaseModel):
    """Partial vendor update; only provided fields change."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[VendorEmail] = None
    company: Optional[str] = None
    phone: Optional[str] = None
    expertise: Optional[list[str]] = None
    rating: Optional[float] = Field(default=None, ge=0, le=5)
    is_active: Optional[bool] = None

    @field_validator("name", "email", "expertise", "rating", "is_active", mode="before")
    @classmethod
    def reject_null(cls, value: Any) -> Any:
        # Omit a field to leave it unchanged; these columns cannot be cleared
        if value is None:
            raise ValueError("may be omitted but not null")
        return value
