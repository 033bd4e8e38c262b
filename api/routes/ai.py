"""
AI Router

Completion-backed helpers: RFP drafting, proposal scoring, comparison and
executive summaries. Every endpoint answers even when the completion
service is unavailable; `source` tells whether the fallback was used.
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile

from agents import (
    analyze_proposal,
    compare_proposals,
    draft_rfp_from_text,
    generate_executive_summary,
    get_completion_client,
)
from agents.base import CompletionClient
from api.auth.dependencies import get_current_active_user
from api.middleware.error_handler import NotFoundError, ValidationError
from api.middleware.rate_limit import limiter, LIMIT_AI
from database.models import User
from schemas.proposal import AnalyzeProposalRequest
from schemas.rfp import ParseTextRequest
from services.document_processor import extract_text, resolve_mime_type
from services.rfp_store import RFPStore, get_store


logger = logging.getLogger("rfp_manager.api.ai")

router = APIRouter(prefix="/ai", tags=["AI"])

MAX_UPLOAD_BYTES = 10 * 1024 * 1024


def proposal_summary(proposal: dict) -> dict:
    """Flatten a stored proposal into the shape the prompts expect."""
    analysis = proposal.get("analysis") or {}
    vendor = proposal.get("vendor") or {}
    return {
        "vendor_name": vendor.get("name"),
        "company": vendor.get("company"),
        "price": proposal.get("price"),
        "score": analysis.get("score", 0),
        "summary": analysis.get("summary", ""),
        "strengths": analysis.get("strengths", []),
        "weaknesses": analysis.get("weaknesses", []),
        "text": proposal.get("proposal_text"),
    }


async def load_rfp_with_proposals(rfp_id: str, store: RFPStore) -> tuple[dict, list[dict]]:
    rfp = await store.get_rfp(rfp_id)
    if rfp is None:
        raise NotFoundError("RFP not found")
    return rfp, await store.list_proposals(rfp_id)


@router.post("/parse-rfp")
@limiter.limit(LIMIT_AI)
async def parse_rfp(
    request: Request,
    data: ParseTextRequest,
    current_user: User = Depends(get_current_active_user),
    llm: Optional[CompletionClient] = Depends(get_completion_client)
):
    """Draft a structured RFP from free text."""
    result = await asyncio.to_thread(draft_rfp_from_text, data.text, llm)
    return {"success": True, "source": result.source, "data": result.data}


@router.post("/analyze-proposal/{rfp_id}")
@limiter.limit(LIMIT_AI)
async def analyze_proposal_endpoint(
    request: Request,
    rfp_id: str,
    data: AnalyzeProposalRequest,
    current_user: User = Depends(get_current_active_user),
    store: RFPStore = Depends(get_store),
    llm: Optional[CompletionClient] = Depends(get_completion_client)
):
    """
    Score proposal text against the RFP's requirements.

    When proposal_id names a proposal of this RFP the analysis is saved
    on it, so later comparisons use the score.
    """
    rfp = await store.get_rfp(rfp_id)
    if rfp is None:
        raise NotFoundError("RFP not found")

    if data.proposal_id:
        proposals = await store.list_proposals(rfp_id)
        if not any(p["id"] == data.proposal_id for p in proposals):
            raise NotFoundError("Proposal not found")

    result = await asyncio.to_thread(analyze_proposal, data.proposal_text, rfp["requirements"], llm)

    if data.proposal_id:
        await store.save_proposal_analysis(data.proposal_id, result.data)

    return {"success": True, "source": result.source, "data": result.data}


@router.get("/compare-proposals/{rfp_id}")
@limiter.limit(LIMIT_AI)
async def compare_proposals_endpoint(
    request: Request,
    rfp_id: str,
    current_user: User = Depends(get_current_active_user),
    store: RFPStore = Depends(get_store),
    llm: Optional[CompletionClient] = Depends(get_completion_client)
):
    """Rank all proposals for an RFP (needs at least two)."""
    rfp, proposals = await load_rfp_with_proposals(rfp_id, store)
    if len(proposals) < 2:
        raise ValidationError("At least two proposals are required for comparison")

    rfp_context = {
        "title": rfp["title"],
        "requirements": rfp["requirements"],
        "evaluation_criteria": (rfp.get("ai_metadata") or {}).get("evaluation_criteria", []),
    }
    result = await asyncio.to_thread(
        compare_proposals, [proposal_summary(p) for p in proposals], rfp_context, llm
    )
    return {"success": True, "source": result.source, "data": result.data}


@router.get("/executive-summary/{rfp_id}")
@limiter.limit(LIMIT_AI)
async def executive_summary_endpoint(
    request: Request,
    rfp_id: str,
    current_user: User = Depends(get_current_active_user),
    store: RFPStore = Depends(get_store),
    llm: Optional[CompletionClient] = Depends(get_completion_client)
):
    rfp, proposals = await load_rfp_with_proposals(rfp_id, store)
    if not proposals:
        raise ValidationError("No proposals found for this RFP")

    summaries = [proposal_summary(p) for p in proposals]
    result = await asyncio.to_thread(generate_executive_summary, rfp, summaries, llm)
    return {
        "success": True,
        "source": result.source,
        "data": {
            "summary": result.data["summary"],
            "rfp_title": rfp["title"],
            "total_proposals": len(proposals),
            "vendors": [
                {"name": s["vendor_name"], "company": s["company"], "score": s["score"]}
                for s in summaries
            ],
        },
    }


@router.post("/extract-document")
@limiter.limit(LIMIT_AI)
async def extract_document(
    request: Request,
    document: UploadFile = File(...),
    mime_type: Optional[str] = Form(default=None, alias="mimeType"),
    current_user: User = Depends(get_current_active_user),
    llm: Optional[CompletionClient] = Depends(get_completion_client)
):
    """
    Extract text from an uploaded PDF, DOCX or text file and draft an RFP
    from it.
    """
    content = await document.read()
    if not content:
        raise ValidationError("No document file uploaded")
    if len(content) > MAX_UPLOAD_BYTES:
        raise ValidationError("Document exceeds the 10MB limit")

    resolved = resolve_mime_type(mime_type or document.content_type, document.filename)
    try:
        text = await asyncio.to_thread(extract_text, content, resolved)
    except ValueError as e:
        raise ValidationError(str(e))

    if not text.strip():
        raise ValidationError("No text could be extracted from the document")

    logger.info(f"Extracted {len(text)} chars from {document.filename} ({resolved})")
    result = await asyncio.to_thread(draft_rfp_from_text, text, llm)
    return {
        "success": True,
        "source": result.source,
        "data": {
            "filename": document.filename,
            "mime_type": resolved,
            "text_length": len(text),
            "text": text,
            "draft": result.data,
        },
    }
