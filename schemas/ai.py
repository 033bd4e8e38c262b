"""
AI Result Schema

Every text-generation call returns an AIResult so callers can tell a real
completion from the deterministic fallback.
"""

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


class AIResult(BaseModel):
    """Discriminated result of a completion call."""
    source: Literal["completion", "fallback"]
    data: Any = Field(..., description="Structured payload")
    error: Optional[str] = Field(default=None, description="Why the fallback was used")

    @property
    def used_fallback(self) -> bool:
        return self.source == "fallback"

    @classmethod
    def completion(cls, data: Any) -> "AIResult":
        return cls(source="completion", data=data)

    @classmethod
    def fallback(cls, data: Any, error: str) -> "AIResult":
        return cls(source="fallback", data=data, error=error)
