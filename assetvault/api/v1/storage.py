from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from assetvault.db.session import get_db
from assetvault.schemas.storage import BackfillOut, StorageUsageOut
from assetvault.services.auth import AuthUser, get_current_user
from assetvault.services.backfill import backfill_product_image_sizes
from assetvault.services.quota import get_storage_summary

router = APIRouter(prefix="/storage", tags=["storage"])


@router.get("/usage", response_model=StorageUsageOut)
async def storage_usage(
    db: AsyncSession = Depends(get_db),
    current_user: AuthUser = Depends(get_current_user),
) -> StorageUsageOut:
    summary = await get_storage_summary(db, current_user.user_id)
    return StorageUsageOut(
        bytes_used=summary.current_used,
        limit_bytes=summary.limit_bytes,
        limit_mb=summary.limit_mb,
        unlimited=summary.unlimited,
    )


@router.post("/backfill-product-sizes", response_model=BackfillOut)
async def backfill_product_sizes(
    db: AsyncSession = Depends(get_db),
    current_user: AuthUser = Depends(get_current_user),
) -> BackfillOut:
    updated = await backfill_product_image_sizes(db, current_user.user_id)
    return BackfillOut(updated=updated)
