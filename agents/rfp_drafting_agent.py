"""
RFP Drafting Agent

Turns a free-text procurement request into a structured RFP draft.
"""

from typing import Optional

from agents.base import CompletionClient, parse_json_output, run_completion
from schemas.ai import AIResult
from schemas.rfp import RFPDraft


RFP_DRAFTING_SYSTEM_PROMPT = "You are a JSON generator."

RFP_DRAFTING_PROMPT = """
Create a JSON object for an RFP based on this text: "{text}"

Required JSON structure:
{{
    "title": "String",
    "description": "String",
    "budget": "50000" (String, numbers only),
    "timeline": "String",
    "requirements": [
        {{ "category": "General", "description": "String", "priority": "Medium" }}
    ]
}}
"""


def fallback_draft(text: str) -> dict:
    """Deterministic draft derived from the input text alone."""
    text = text or ""
    return RFPDraft(
        title=f"RFP: {text[:20]}...",
        description=text.strip() or "No description provided",
        budget=0,
        timeline="TBD",
        requirements=[{
            "category": "General",
            "description": "Details to be defined based on description.",
            "priority": "medium",
        }]
    ).model_dump()


def _parse_draft(raw: str) -> dict:
    data = parse_json_output(raw, ["title", "description"])
    return RFPDraft.model_validate(data).model_dump()


def draft_rfp_from_text(text: str, llm: Optional[CompletionClient] = None) -> AIResult:
    """
    Draft an RFP from natural language.

    Args:
        text: Free-text description of what needs to be procured
        llm: Completion client override (defaults to the configured provider)

    Returns:
        AIResult whose data matches RFPDraft; source tells whether the
        completion or the fallback produced it
    """
    messages = [
        {"role": "system", "content": RFP_DRAFTING_SYSTEM_PROMPT},
        {"role": "user", "content": RFP_DRAFTING_PROMPT.format(text=text)},
    ]
    return run_completion(
        "rfp_drafting",
        messages,
        parse=_parse_draft,
        fallback=lambda: fallback_draft(text),
        llm=llm
    )
