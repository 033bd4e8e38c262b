"""
RFPs Router

RFP lifecycle: creation (form or AI draft), status changes, sending to
vendors and collecting proposals.
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status

from agents import draft_rfp_from_text, get_completion_client
from agents.base import CompletionClient
from api.auth.dependencies import get_current_active_user
from api.middleware.error_handler import APIError, NotFoundError, ValidationError
from api.middleware.rate_limit import limiter, LIMIT_AI
from api.routes.common import paginated
from database.models import User
from schemas.proposal import ProposalCreate, ProposalStatusUpdate
from schemas.rfp import (
    RFPCreate,
    RFPNaturalCreate,
    RFPStatus,
    RFPStatusUpdate,
    SendRFPRequest,
    ParseTextRequest,
    coerce_amount,
)
from services.email_service import EmailService, EmailDeliveryError, get_email_service
from services.rfp_store import RFPStore, get_store


logger = logging.getLogger("rfp_manager.api.rfps")

router = APIRouter(prefix="/rfp", tags=["RFPs"])


async def load_rfp(rfp_id: str, store: RFPStore) -> dict:
    rfp = await store.get_rfp(rfp_id)
    if rfp is None:
        raise NotFoundError("RFP not found")
    return rfp


# ============================================================================
# RFP Endpoints
# ============================================================================

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_rfp(
    data: RFPCreate,
    current_user: User = Depends(get_current_active_user),
    store: RFPStore = Depends(get_store)
):
    """Create a draft RFP from the form."""
    rfp = await store.create_rfp(
        {
            "title": data.title,
            "description": data.description,
            "budget_amount": data.budget_amount,
            "currency": data.currency,
            "deadline": data.deadline,
            "requirements": data.requirements,
            "natural_language_input": data.natural_language_input,
        },
        created_by=current_user.id
    )
    return {"success": True, "message": "RFP created successfully", "data": rfp}


@router.get("")
async def list_rfps(
    status_filter: Optional[RFPStatus] = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    current_user: User = Depends(get_current_active_user),
    store: RFPStore = Depends(get_store)
):
    """List RFPs, newest first."""
    rfps, total = await store.list_rfps(status=status_filter, page=page, limit=limit)
    return paginated(rfps, total, page, limit)


@router.post("/parse")
@limiter.limit(LIMIT_AI)
async def parse_rfp(
    request: Request,
    data: ParseTextRequest,
    current_user: User = Depends(get_current_active_user),
    llm: Optional[CompletionClient] = Depends(get_completion_client)
):
    """Preview an AI-drafted RFP without saving it."""
    result = await asyncio.to_thread(draft_rfp_from_text, data.text, llm)
    return {"success": True, "source": result.source, "data": result.data}


@router.post("/natural", status_code=status.HTTP_201_CREATED)
async def create_from_natural_language(
    data: RFPNaturalCreate,
    current_user: User = Depends(get_current_active_user),
    store: RFPStore = Depends(get_store)
):
    """
    Save an RFP from a draft.

    Missing fields get placeholders; the draft's timeline text is kept in
    ai_metadata since the RFP timeline is the event log.
    """
    rfp = await store.create_rfp(
        {
            "title": data.title,
            "description": data.description,
            "budget_amount": coerce_amount(data.budget),
            "deadline": data.deadline,
            "requirements": data.requirements,
            "natural_language_input": data.natural_language_input,
            "ai_metadata": {"timeline": data.timeline} if data.timeline else None,
        },
        created_by=current_user.id
    )
    return {"success": True, "data": rfp}


@router.get("/{rfp_id}")
async def get_rfp(
    rfp_id: str,
    current_user: User = Depends(get_current_active_user),
    store: RFPStore = Depends(get_store)
):
    """Get one RFP (404 for unknown or malformed IDs)."""
    return {"success": True, "data": await load_rfp(rfp_id, store)}


@router.patch("/{rfp_id}/status")
async def update_rfp_status(
    rfp_id: str,
    data: RFPStatusUpdate,
    current_user: User = Depends(get_current_active_user),
    store: RFPStore = Depends(get_store)
):
    """Move an RFP to another stage."""
    rfp = await store.update_rfp_status(rfp_id, data.status, user=current_user.id)
    if rfp is None:
        raise NotFoundError("RFP not found")
    return {"success": True, "data": rfp}


@router.post("/{rfp_id}/send")
async def send_to_vendors(
    rfp_id: str,
    data: SendRFPRequest,
    current_user: User = Depends(get_current_active_user),
    store: RFPStore = Depends(get_store),
    email_service: EmailService = Depends(get_email_service)
):
    """
    Email the RFP to the selected vendors.

    Vendors that received the email are marked "sent" on the RFP and the
    RFP moves to "sent". Unknown vendor IDs are ignored.
    """
    rfp = await load_rfp(rfp_id, store)

    vendors = await store.get_vendors_by_ids(data.vendor_ids)
    if not vendors:
        raise ValidationError("No valid vendors found")

    results = []
    for vendor in vendors:
        try:
            sent = await asyncio.to_thread(
                email_service.send_rfp_email,
                vendor["email"],
                vendor["name"],
                rfp["title"],
                rfp["id"],
                data.message
            )
            results.append({"vendor_id": vendor["id"], "success": True, "message_id": sent["message_id"]})
        except EmailDeliveryError as e:
            results.append({"vendor_id": vendor["id"], "success": False, "error": str(e)})

    delivered = [result["vendor_id"] for result in results if result["success"]]
    if not delivered:
        raise APIError("Failed to send RFP to any vendor", 502, "EMAIL_DELIVERY_FAILED")

    updated = await store.mark_rfp_sent(
        rfp_id,
        delivered,
        {"subject": f"New RFP: {rfp['title']} [RFP:{rfp['id']}]", "body": data.message},
        user=current_user.id
    )
    logger.info(f"RFP {rfp_id} sent to {len(delivered)}/{len(vendors)} vendor(s)")
    return {"success": True, "data": updated, "results": results}


# ============================================================================
# Proposal Endpoints
# ============================================================================

@router.post("/{rfp_id}/proposals", status_code=status.HTTP_201_CREATED)
async def submit_proposal(
    rfp_id: str,
    data: ProposalCreate,
    current_user: User = Depends(get_current_active_user),
    store: RFPStore = Depends(get_store)
):
    """Record a vendor proposal (one per vendor and RFP)."""
    await load_rfp(rfp_id, store)

    proposal = await store.create_proposal(rfp_id, {
        "vendor_id": data.vendor_id,
        "proposal_text": data.proposal_text,
        "price_amount": data.price_amount,
        "currency": data.currency,
    })
    if proposal is None:
        raise NotFoundError("Vendor not found")
    return {"success": True, "data": proposal}


@router.get("/{rfp_id}/proposals")
async def list_proposals(
    rfp_id: str,
    current_user: User = Depends(get_current_active_user),
    store: RFPStore = Depends(get_store)
):
    await load_rfp(rfp_id, store)
    proposals = await store.list_proposals(rfp_id)
    return {"success": True, "count": len(proposals), "data": proposals}


@router.patch("/{rfp_id}/proposals/{proposal_id}")
async def update_proposal_status(
    rfp_id: str,
    proposal_id: str,
    data: ProposalStatusUpdate,
    current_user: User = Depends(get_current_active_user),
    store: RFPStore = Depends(get_store)
):
    """Set a proposal's review status, optionally with a note."""
    proposal = await store.update_proposal_status(
        rfp_id, proposal_id, data.status, note=data.note, user=current_user.id
    )
    if proposal is None:
        raise NotFoundError("Proposal not found")
    return {"success": True, "data": proposal}
