from __future__ import annotations

import sys
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from assetvault.core.config import settings
from assetvault.models.account import Plan, Profile, StorageUsage

BYTES_PER_MB = 1024 * 1024
UNLIMITED = -1


@dataclass(slots=True, frozen=True)
class StorageLimitResult:
    allowed: bool
    current_used: int
    limit_bytes: int
    limit_mb: int

    @property
    def unlimited(self) -> bool:
        return self.limit_mb == UNLIMITED


async def get_storage_limit_mb(db: AsyncSession, user_id: str) -> int:
    row = (
        await db.execute(
            select(Profile.storage_limit_mb_override, Plan.storage_limit_mb)
            .select_from(Profile)
            .outerjoin(Plan, Plan.id == Profile.plan_id)
            .where(Profile.id == user_id)
        )
    ).first()
    if row is not None:
        override, plan_limit = row
        if override is not None:
            return int(override)
        if plan_limit is not None:
            return int(plan_limit)
    return int(settings.default_storage_limit_mb)


async def get_bytes_used(db: AsyncSession, user_id: str) -> int:
    used = (
        await db.execute(select(StorageUsage.bytes_used).where(StorageUsage.user_id == user_id))
    ).scalar_one_or_none()
    return int(used or 0)


async def check_storage_limit(
    db: AsyncSession,
    user_id: str,
    incoming_bytes: int,
    known_used: int | None = None,
) -> StorageLimitResult:
    """Would ``incoming_bytes`` more still fit in the account's plan ceiling?

    ``known_used`` skips the usage read when the caller already has it. This is
    a plain check, nothing is reserved: two concurrent uploads may both pass.
    """
    current_used = int(known_used) if known_used is not None else await get_bytes_used(db, user_id)
    limit_mb = await get_storage_limit_mb(db, user_id)
    if limit_mb == UNLIMITED:
        return StorageLimitResult(allowed=True, current_used=current_used, limit_bytes=sys.maxsize, limit_mb=limit_mb)

    limit_bytes = limit_mb * BYTES_PER_MB
    return StorageLimitResult(
        allowed=current_used + max(0, int(incoming_bytes)) <= limit_bytes,
        current_used=current_used,
        limit_bytes=limit_bytes,
        limit_mb=limit_mb,
    )


async def get_storage_summary(db: AsyncSession, user_id: str) -> StorageLimitResult:
    return await check_storage_limit(db, user_id, 0)
