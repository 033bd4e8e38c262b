"""
Vendors Router

Vendor directory. Any signed-in user can browse; only admins can change it.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from api.auth.dependencies import get_current_active_user, require_admin
from api.middleware.error_handler import NotFoundError
from api.routes.common import paginated
from database.models import User
from schemas.vendor import VendorCreate, VendorUpdate
from services.rfp_store import RFPStore, get_store


router = APIRouter(prefix="/vendors", tags=["Vendors"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_vendor(
    data: VendorCreate,
    current_user: User = Depends(require_admin),
    store: RFPStore = Depends(get_store)
):
    """Create a vendor (400 if the email is already registered)."""
    vendor = await store.create_vendor(data.model_dump(), created_by=current_user.id)
    return {"success": True, "data": vendor}


@router.get("")
async def list_vendors(
    search: Optional[str] = Query(default=None, description="Matches name, email or company"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    current_user: User = Depends(get_current_active_user),
    store: RFPStore = Depends(get_store)
):
    vendors, total = await store.list_vendors(search=search, page=page, limit=limit)
    return paginated(vendors, total, page, limit)


@router.get("/{vendor_id}")
async def get_vendor(
    vendor_id: str,
    current_user: User = Depends(get_current_active_user),
    store: RFPStore = Depends(get_store)
):
    vendor = await store.get_vendor(vendor_id)
    if vendor is None:
        raise NotFoundError("Vendor not found")
    return {"success": True, "data": vendor}


@router.put("/{vendor_id}")
async def update_vendor(
    vendor_id: str,
    data: VendorUpdate,
    current_user: User = Depends(require_admin),
    store: RFPStore = Depends(get_store)
):
    """Partial update; only the fields sent are changed."""
    vendor = await store.update_vendor(vendor_id, data.model_dump(exclude_unset=True))
    if vendor is None:
        raise NotFoundError("Vendor not found")
    return {"success": True, "data": vendor}


@router.delete("/{vendor_id}")
async def delete_vendor(
    vendor_id: str,
    current_user: User = Depends(require_admin),
    store: RFPStore = Depends(get_store)
):
    """Delete a vendor and its proposals."""
    if not await store.delete_vendor(vendor_id):
        raise NotFoundError("Vendor not found")
    return {"success": True, "data": {}}
