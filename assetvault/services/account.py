from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from assetvault.core.errors import ValidationError
from assetvault.models.account import Profile
from assetvault.models.catalog import Product
from assetvault.models.project import Project, ProjectDocument, Space, SpaceImage
from assetvault.services.auth import AuthUser
from assetvault.services.object_keys import user_prefix
from assetvault.services.object_store import ObjectStore, ObjectStoreError
from assetvault.services.registry import delete_assets_for_user

logger = logging.getLogger(__name__)


async def delete_all_files_for_user(store: ObjectStore, user_id: str) -> int:
    """Remove every stored object under the account's key prefix.

    The registry is left alone; its rows go away with the account's domain rows.
    """
    user_id = str(user_id or "").strip()
    if not user_id:
        raise ValueError("user_id is required")
    deleted = await store.delete_all_by_prefix(user_prefix(user_id))
    logger.info("Deleted %d stored objects for user %s", deleted, user_id)
    return deleted


async def _delete_domain_rows(db: AsyncSession, user_id: str) -> None:
    project_ids = select(Project.id).where(Project.user_id == user_id)
    space_ids = select(Space.id).where(Space.project_id.in_(project_ids))

    await db.execute(delete(ProjectDocument).where(ProjectDocument.project_id.in_(project_ids)))
    await db.execute(delete(SpaceImage).where(SpaceImage.space_id.in_(space_ids)))
    await db.execute(delete(Space).where(Space.project_id.in_(project_ids)))
    await db.execute(delete(Product).where(Product.user_id == user_id))
    await db.execute(delete(Project).where(Project.user_id == user_id))
    await delete_assets_for_user(db, user_id)
    await db.execute(delete(Profile).where(Profile.id == user_id))


async def delete_account_data(db: AsyncSession, store: ObjectStore, user: AuthUser, confirm_email: str) -> None:
    confirmed = str(confirm_email or "").strip().lower()
    if not confirmed or confirmed != user.email:
        raise ValidationError("The email does not match the account")

    await _delete_domain_rows(db, user.user_id)
    await db.commit()
    logger.info("Deleted domain rows for user %s", user.user_id)

    try:
        await delete_all_files_for_user(store, user.user_id)
    except ObjectStoreError:
        # The database side is already gone; leftover objects stay under the
        # account prefix for operational cleanup.
        logger.exception("Bulk file deletion failed for user %s", user.user_id)
