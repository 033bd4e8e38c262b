"""
RFP Store Service

Async persistence for RFPs, vendors and proposals.
Every method opens its own session and returns plain dicts.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, List, Tuple

from sqlalchemy import select, func, or_
from sqlalchemy.exc import IntegrityError

from api.middleware.error_handler import ConflictError
from database.connection import get_db_context
from database.models import RFP, Vendor, Proposal, is_valid_object_id
from schemas.rfp import RequirementItem, normalize_requirements

logger = logging.getLogger("rfp_manager.services.store")

DEFAULT_DEADLINE_DAYS = 30


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def timeline_entry(event: str, description: str, user: Optional[str] = "system") -> dict:
    """Build one append-only timeline record."""
    return {
        "event": event,
        "description": description,
        "date": utcnow().isoformat(),
        "user": user or "system",
    }


def set_rfp_status(rfp: RFP, status: str, user: Optional[str] = "system") -> bool:
    """
    Change an RFP's status and log it on the timeline.

    Returns False (and records nothing) when the status is unchanged.
    """
    if rfp.status == status:
        return False
    rfp.status = status
    rfp.timeline = [*(rfp.timeline or []), timeline_entry(
        "status_update", f"Status changed to {status}", user
    )]
    return True


# =========================================================================
# Serialization
# =========================================================================

def rfp_to_dict(rfp: RFP) -> dict:
    return {
        "id": rfp.id,
        "title": rfp.title,
        "description": rfp.description,
        "status": rfp.status,
        "deadline": _iso(rfp.deadline),
        "budget": {"amount": rfp.budget_amount, "currency": rfp.budget_currency},
        "requirements": rfp.requirements or [],
        "natural_language_input": rfp.natural_language_input,
        "ai_metadata": rfp.ai_metadata,
        "vendors": rfp.vendors or [],
        "email_template": rfp.email_template,
        "timeline": rfp.timeline or [],
        "responses": rfp.responses or [],
        "created_by": rfp.created_by,
        "created_at": _iso(rfp.created_at),
        "updated_at": _iso(rfp.updated_at),
    }


def vendor_to_dict(vendor: Vendor) -> dict:
    return {
        "id": vendor.id,
        "name": vendor.name,
        "email": vendor.email,
        "company": vendor.company,
        "phone": vendor.phone,
        "expertise": vendor.expertise or [],
        "rating": vendor.rating,
        "is_active": vendor.is_active,
        "created_by": vendor.created_by,
        "created_at": _iso(vendor.created_at),
        "updated_at": _iso(vendor.updated_at),
    }


def proposal_to_dict(proposal: Proposal, vendor: Optional[Vendor] = None) -> dict:
    data = {
        "id": proposal.id,
        "rfp_id": proposal.rfp_id,
        "vendor_id": proposal.vendor_id,
        "proposal_text": proposal.proposal_text,
        "price": {"amount": proposal.price_amount, "currency": proposal.price_currency},
        "parsed_data": proposal.parsed_data,
        "analysis": proposal.analysis,
        "status": proposal.status,
        "notes": proposal.notes or [],
        "attachments": proposal.attachments or [],
        "submitted_at": _iso(proposal.submitted_at),
        "created_at": _iso(proposal.created_at),
        "updated_at": _iso(proposal.updated_at),
    }
    if vendor is not None:
        data["vendor"] = {"id": vendor.id, "name": vendor.name, "company": vendor.company}
    return data


class RFPStore:
    """Async store for the RFP workflow records."""

    # =========================================================================
    # RFPs
    # =========================================================================

    async def create_rfp(self, data: dict, created_by: Optional[str] = None) -> dict:
        """
        Create a draft RFP.

        Args:
            data: title, description, budget_amount, currency, deadline,
                  requirements, natural_language_input, ai_metadata
            created_by: User ID of the creator
        """
        requirements = [
            item.model_dump() if isinstance(item, RequirementItem) else item
            for item in data.get("requirements") or []
        ]

        async with get_db_context() as db:
            rfp = RFP(
                title=data.get("title") or "Untitled RFP",
                description=data.get("description") or "No description provided",
                status="draft",
                deadline=data.get("deadline") or utcnow() + timedelta(days=DEFAULT_DEADLINE_DAYS),
                budget_amount=data.get("budget_amount") or 0,
                budget_currency=data.get("currency") or "USD",
                requirements=normalize_requirements(requirements),
                natural_language_input=data.get("natural_language_input"),
                ai_metadata=data.get("ai_metadata"),
                vendors=[],
                timeline=[timeline_entry("created", "RFP created", created_by)],
                responses=[],
                created_by=created_by,
            )
            db.add(rfp)
            await db.commit()
            await db.refresh(rfp)

            logger.info(f"Created RFP {rfp.id}: {rfp.title}")
            return rfp_to_dict(rfp)

    async def get_rfp(self, rfp_id: str) -> Optional[dict]:
        """Get an RFP by ID (None for unknown or malformed IDs)."""
        if not is_valid_object_id(rfp_id):
            return None

        async with get_db_context() as db:
            rfp = await db.get(RFP, rfp_id)
            return rfp_to_dict(rfp) if rfp else None

    async def list_rfps(
        self,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 20
    ) -> Tuple[List[dict], int]:
        """List RFPs newest first. Returns (page of RFPs, total count)."""
        async with get_db_context() as db:
            query = select(RFP)
            count_query = select(func.count()).select_from(RFP)
            if status:
                query = query.where(RFP.status == status)
                count_query = count_query.where(RFP.status == status)

            total = (await db.execute(count_query)).scalar_one()
            result = await db.execute(
                query.order_by(RFP.created_at.desc(), RFP.id.desc())
                .limit(limit)
                .offset((page - 1) * limit)
            )
            return [rfp_to_dict(rfp) for rfp in result.scalars().all()], total

    async def update_rfp_status(
        self,
        rfp_id: str,
        status: str,
        user: Optional[str] = "system"
    ) -> Optional[dict]:
        """Set the RFP status, appending a timeline entry on change."""
        if not is_valid_object_id(rfp_id):
            return None

        async with get_db_context() as db:
            rfp = await db.get(RFP, rfp_id)
            if rfp is None:
                return None

            set_rfp_status(rfp, status, user)
            await db.commit()
            await db.refresh(rfp)
            return rfp_to_dict(rfp)

    async def append_rfp_response(
        self,
        rfp_id: str,
        response: dict,
        status_transition: Optional[Tuple[str, str]] = None
    ) -> Optional[dict]:
        """
        Append a vendor response to an RFP.

        Args:
            rfp_id: Target RFP
            response: vendor_email, response_date, content, attachments
            status_transition: (from_status, to_status); applied only when the
                current status equals from_status

        Returns:
            Updated RFP, or None if it does not exist
        """
        if not is_valid_object_id(rfp_id):
            return None

        async with get_db_context() as db:
            rfp = await db.get(RFP, rfp_id)
            if rfp is None:
                return None

            rfp.responses = [*(rfp.responses or []), response]
            if status_transition and rfp.status == status_transition[0]:
                set_rfp_status(rfp, status_transition[1])

            await db.commit()
            await db.refresh(rfp)
            return rfp_to_dict(rfp)

    async def mark_rfp_sent(
        self,
        rfp_id: str,
        vendor_ids: List[str],
        email_template: dict,
        user: Optional[str] = None
    ) -> Optional[dict]:
        """
        Record that the RFP was emailed to vendors.

        Vendor associations are created or moved to "sent", the email
        template is stored, and the RFP status becomes "sent".
        """
        if not is_valid_object_id(rfp_id):
            return None

        async with get_db_context() as db:
            rfp = await db.get(RFP, rfp_id)
            if rfp is None:
                return None

            now = utcnow().isoformat()
            associations = {entry["vendor"]: dict(entry) for entry in rfp.vendors or []}
            for vendor_id in vendor_ids:
                entry = associations.setdefault(vendor_id, {
                    "vendor": vendor_id,
                    "status": "pending",
                    "sent_at": None,
                    "viewed_at": None,
                    "submitted_at": None,
                })
                entry["status"] = "sent"
                entry["sent_at"] = now

            rfp.vendors = list(associations.values())
            rfp.email_template = {**email_template, "sent_at": now, "sent_by": user}
            rfp.timeline = [*(rfp.timeline or []), timeline_entry(
                "sent", f"RFP sent to {len(vendor_ids)} vendor(s)", user
            )]
            set_rfp_status(rfp, "sent", user)

            await db.commit()
            await db.refresh(rfp)
            return rfp_to_dict(rfp)

    # =========================================================================
    # Vendors
    # =========================================================================

    async def create_vendor(self, data: dict, created_by: Optional[str] = None) -> dict:
        """Create a vendor; the email must not already be in use."""
        async with get_db_context() as db:
            existing = await db.execute(select(Vendor.id).where(Vendor.email == data["email"]))
            if existing.scalar_one_or_none():
                raise ConflictError("Vendor with this email already exists")

            vendor = Vendor(**data, created_by=created_by)
            db.add(vendor)
            try:
                await db.commit()
            except IntegrityError:
                raise ConflictError("Vendor with this email already exists")
            await db.refresh(vendor)

            logger.info(f"Created vendor {vendor.id} <{vendor.email}>")
            return vendor_to_dict(vendor)

    async def get_vendor(self, vendor_id: str) -> Optional[dict]:
        if not is_valid_object_id(vendor_id):
            return None

        async with get_db_context() as db:
            vendor = await db.get(Vendor, vendor_id)
            return vendor_to_dict(vendor) if vendor else None

    async def get_vendors_by_ids(self, vendor_ids: List[str]) -> List[dict]:
        """Fetch the existing vendors among vendor_ids (unknown IDs are skipped)."""
        valid_ids = [vendor_id for vendor_id in vendor_ids if is_valid_object_id(vendor_id)]
        if not valid_ids:
            return []

        async with get_db_context() as db:
            result = await db.execute(select(Vendor).where(Vendor.id.in_(valid_ids)))
            return [vendor_to_dict(vendor) for vendor in result.scalars().all()]

    async def list_vendors(
        self,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10
    ) -> Tuple[List[dict], int]:
        """List vendors by name, optionally filtered by a name/email/company search."""
        async with get_db_context() as db:
            query = select(Vendor)
            count_query = select(func.count()).select_from(Vendor)
            if search:
                pattern = f"%{search}%"
                condition = or_(
                    Vendor.name.ilike(pattern),
                    Vendor.email.ilike(pattern),
                    Vendor.company.ilike(pattern),
                )
                query = query.where(condition)
                count_query = count_query.where(condition)

            total = (await db.execute(count_query)).scalar_one()
            result = await db.execute(
                query.order_by(Vendor.name).limit(limit).offset((page - 1) * limit)
            )
            return [vendor_to_dict(vendor) for vendor in result.scalars().all()], total

    async def update_vendor(self, vendor_id: str, data: dict) -> Optional[dict]:
        """Apply a partial update. Raises ConflictError if the new email is taken."""
        if not is_valid_object_id(vendor_id):
            return None

        async with get_db_context() as db:
            if data.get("email"):
                existing = await db.execute(
                    select(Vendor.id).where(Vendor.email == data["email"], Vendor.id != vendor_id)
                )
                if existing.scalar_one_or_none():
                    raise ConflictError("Email already in use by another vendor")

            vendor = await db.get(Vendor, vendor_id)
            if vendor is None:
                return None

            for key, value in data.items():
                setattr(vendor, key, value)

            await db.commit()
            await db.refresh(vendor)
            return vendor_to_dict(vendor)

    async def delete_vendor(self, vendor_id: str) -> bool:
        if not is_valid_object_id(vendor_id):
            return False

        async with get_db_context() as db:
            vendor = await db.get(Vendor, vendor_id)
            if vendor is None:
                return False

            await db.delete(vendor)
            await db.commit()
            logger.info(f"Deleted vendor {vendor_id}")
            return True

    # =========================================================================
    # Proposals
    # =========================================================================

    async def create_proposal(self, rfp_id: str, data: dict) -> Optional[dict]:
        """
        Record a vendor's proposal for an RFP.

        Marks the vendor's association on the RFP as submitted.
        Returns None if the RFP or vendor does not exist.
        """
        if not is_valid_object_id(rfp_id) or not is_valid_object_id(data.get("vendor_id")):
            return None

        async with get_db_context() as db:
            rfp = await db.get(RFP, rfp_id)
            vendor = await db.get(Vendor, data["vendor_id"])
            if rfp is None or vendor is None:
                return None

            duplicate = await db.execute(
                select(Proposal.id).where(
                    Proposal.rfp_id == rfp_id,
                    Proposal.vendor_id == vendor.id
                )
            )
            if duplicate.scalar_one_or_none():
                raise ConflictError("This vendor has already submitted a proposal for this RFP")

            now = utcnow()
            proposal = Proposal(
                rfp_id=rfp_id,
                vendor_id=vendor.id,
                proposal_text=data["proposal_text"],
                price_amount=data.get("price_amount") or 0,
                price_currency=data.get("currency") or "USD",
                status="received",
                notes=[],
                attachments=data.get("attachments") or [],
                submitted_at=now,
            )
            db.add(proposal)

            associations = [dict(entry) for entry in rfp.vendors or []]
            for entry in associations:
                if entry.get("vendor") == vendor.id:
                    entry["status"] = "submitted"
                    entry["submitted_at"] = now.isoformat()
            rfp.vendors = associations
            rfp.timeline = [*(rfp.timeline or []), timeline_entry(
                "proposal_received", f"Proposal received from {vendor.name}"
            )]

            try:
                await db.commit()
            except IntegrityError:
                raise ConflictError("This vendor has already submitted a proposal for this RFP")
            await db.refresh(proposal)
            return proposal_to_dict(proposal, vendor)

    async def list_proposals(self, rfp_id: str) -> List[dict]:
        """All proposals for an RFP with vendor name/company."""
        if not is_valid_object_id(rfp_id):
            return []

        async with get_db_context() as db:
            result = await db.execute(
                select(Proposal, Vendor)
                .join(Vendor, Proposal.vendor_id == Vendor.id)
                .where(Proposal.rfp_id == rfp_id)
                .order_by(Proposal.submitted_at)
            )
            return [proposal_to_dict(proposal, vendor) for proposal, vendor in result.all()]

    async def update_proposal_status(
        self,
        rfp_id: str,
        proposal_id: str,
        status: str,
        note: Optional[str] = None,
        user: Optional[str] = None
    ) -> Optional[dict]:
        if not is_valid_object_id(proposal_id):
            return None

        async with get_db_context() as db:
            proposal = await db.get(Proposal, proposal_id)
            if proposal is None or proposal.rfp_id != rfp_id:
                return None

            proposal.status = status
            if note:
                proposal.notes = [*(proposal.notes or []), {
                    "text": note,
                    "created_at": utcnow().isoformat(),
                    "created_by": user or "system",
                }]

            await db.commit()
            await db.refresh(proposal)
            return proposal_to_dict(proposal)

    async def save_proposal_analysis(self, proposal_id: str, analysis: dict) -> None:
        """Store AI analysis on a proposal."""
        async with get_db_context() as db:
            proposal = await db.get(Proposal, proposal_id)
            if proposal is not None:
                proposal.analysis = analysis
                await db.commit()


# Factory function
def get_store() -> RFPStore:
    """Get a store instance."""
    return RFPStore()
