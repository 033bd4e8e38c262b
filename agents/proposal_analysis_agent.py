"""
Proposal Analysis Agent

Scores vendor proposals against RFP requirements, compares proposals and
writes an executive summary for the award decision.
"""

import json
from typing import Optional

from agents.base import CompletionClient, parse_json_output, run_completion
from schemas.ai import AIResult
from schemas.proposal import ProposalAnalysis, ProposalComparison


PROPOSAL_ANALYST_SYSTEM_PROMPT = """You are a procurement analyst evaluating vendor proposals
against RFP requirements. You are objective and concise.

IMPORTANT: You must output ONLY valid JSON. No explanatory text before or after the JSON."""


def _format_requirements(requirements: list[dict]) -> str:
    lines = [
        f"- [{req.get('priority', 'medium')}] {req.get('description', '')}"
        for req in requirements or []
    ]
    return "\n".join(lines) or "- No explicit requirements listed"


# ============================================================================
# Single proposal analysis
# ============================================================================

def analyze_proposal(
    proposal_text: str,
    requirements: list[dict],
    llm: Optional[CompletionClient] = None
) -> AIResult:
    """
    Score a proposal (1-10) against the RFP requirements.

    Fallback: score 0 with "Manual review required".
    """
    prompt = f"""Evaluate this vendor proposal against the RFP requirements.

RFP REQUIREMENTS:
{_format_requirements(requirements)}

PROPOSAL:
---
{proposal_text}
---

Return a JSON object:
{{
    "score": 1-10,
    "summary": "2-3 sentence assessment",
    "strengths": ["..."],
    "weaknesses": ["..."],
    "risk_assessment": "Main delivery or compliance risks"
}}"""

    return run_completion(
        "proposal_analysis",
        [
            {"role": "system", "content": PROPOSAL_ANALYST_SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ],
        parse=lambda raw: ProposalAnalysis.model_validate(
            parse_json_output(raw, ["score", "summary"])
        ).model_dump(),
        fallback=lambda: ProposalAnalysis().model_dump(),
        llm=llm
    )


# ============================================================================
# Comparison across proposals
# ============================================================================

def fallback_comparison(proposals: list[dict]) -> dict:
    """Rank by price (lowest first) when no completion is available."""
    ordered = sorted(proposals, key=lambda p: (p.get("price") or {}).get("amount") or 0)
    ranking = [
        {
            "vendor_name": p.get("vendor_name") or "Unknown vendor",
            "company": p.get("company"),
            "rank": index,
            "rationale": f"Price {(p.get('price') or {}).get('amount', 0)}",
        }
        for index, p in enumerate(ordered, start=1)
    ]
    leader = ranking[0]["vendor_name"] if ranking else "none"
    return ProposalComparison(
        recommendation=f"Lowest price: {leader}. Manual review required.",
        ranking=ranking,
        summary="Ranked by submitted price only."
    ).model_dump()


def compare_proposals(
    proposals: list[dict],
    rfp_context: dict,
    llm: Optional[CompletionClient] = None
) -> AIResult:
    """
    Compare all proposals for one RFP and recommend a vendor.

    Args:
        proposals: vendor_name, company, price, score, summary, text per proposal
        rfp_context: title, requirements, evaluation_criteria
    """
    prompt = f"""Compare these proposals for the RFP "{rfp_context.get('title', '')}".

RFP REQUIREMENTS:
{_format_requirements(rfp_context.get('requirements', []))}

EVALUATION CRITERIA:
{json.dumps(rfp_context.get('evaluation_criteria') or [], indent=2)}

PROPOSALS:
{json.dumps(proposals, indent=2, default=str)}

Return a JSON object:
{{
    "recommendation": "Which vendor to award and why",
    "ranking": [
        {{"vendor_name": "...", "company": "...", "rank": 1, "rationale": "..."}}
    ],
    "summary": "Overall comparison"
}}"""

    return run_completion(
        "proposal_comparison",
        [
            {"role": "system", "content": PROPOSAL_ANALYST_SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ],
        parse=lambda raw: ProposalComparison.model_validate(
            parse_json_output(raw, ["recommendation", "ranking"])
        ).model_dump(),
        fallback=lambda: fallback_comparison(proposals),
        llm=llm
    )


# ============================================================================
# Executive summary
# ============================================================================

def fallback_summary(rfp: dict, proposals: list[dict]) -> dict:
    lines = [
        f"{rfp.get('title', 'RFP')}: {len(proposals)} proposal(s) received.",
    ]
    for p in proposals:
        price = (p.get("price") or {}).get("amount", 0)
        lines.append(f"- {p.get('vendor_name') or 'Unknown vendor'}: price {price}, score {p.get('score', 0)}")
    return {"summary": "\n".join(lines)}


def generate_executive_summary(
    rfp: dict,
    proposals: list[dict],
    llm: Optional[CompletionClient] = None
) -> AIResult:
    """Write a short executive summary of the proposals received for an RFP."""
    budget = (rfp.get("budget") or {}).get("amount", 0)
    prompt = f"""Write an executive summary for the RFP "{rfp.get('title', '')}"
(budget {budget}, status {rfp.get('status', '')}).

PROPOSALS:
{json.dumps(proposals, indent=2, default=str)}

Return a JSON object: {{"summary": "Markdown executive summary with a recommendation"}}"""

    return run_completion(
        "executive_summary",
        [
            {"role": "system", "content": PROPOSAL_ANALYST_SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ],
        parse=lambda raw: {"summary": str(parse_json_output(raw, ["summary"])["summary"])},
        fallback=lambda: fallback_summary(rfp, proposals),
        llm=llm
    )
