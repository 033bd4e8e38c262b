"""
RFP Manager - AI Agents

Text-generation adapters. Every entry point returns an AIResult and never
raises: failures produce a deterministic fallback payload.
"""

from agents.base import (
    get_llm,
    get_completion_client,
    parse_json_output,
    run_completion,
    MissingCredentialsError,
)
from agents.rfp_drafting_agent import draft_rfp_from_text, fallback_draft
from agents.proposal_analysis_agent import (
    analyze_proposal,
    compare_proposals,
    generate_executive_summary,
)

__all__ = [
    "get_llm",
    "get_completion_client",
    "parse_json_output",
    "run_completion",
    "MissingCredentialsError",
    "draft_rfp_from_text",
    "fallback_draft",
    "analyze_proposal",
    "compare_proposals",
    "generate_executive_summary",
]
