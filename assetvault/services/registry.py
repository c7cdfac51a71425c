"""Central registry of stored files (the ``assets`` table).

Each asset points at exactly one owning domain row through ``OwnerRef``. The
registry also keeps ``user_storage_usage`` in step with the rows it writes.
Functions here flush but never commit: callers commit the registry change
together with the domain pointer it belongs to.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import ClassVar, Literal

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from assetvault.models.account import StorageUsage
from assetvault.models.asset import Asset

logger = logging.getLogger(__name__)

AssetKind = Literal["product_image", "space_image", "document"]
AssetSource = Literal["native_store", "external_link"]


class RegistryError(Exception):
    pass


class AssetConflictError(RegistryError):
    """Another asset was registered for the same owner concurrently."""


@dataclass(slots=True, frozen=True)
class ProductOwner:
    id: str
    table: ClassVar[str] = "products"
    kind: ClassVar[AssetKind] = "product_image"


@dataclass(slots=True, frozen=True)
class SpaceImageOwner:
    id: str
    table: ClassVar[str] = "space_images"
    kind: ClassVar[AssetKind] = "space_image"


@dataclass(slots=True, frozen=True)
class DocumentOwner:
    id: str
    table: ClassVar[str] = "project_documents"
    kind: ClassVar[AssetKind] = "document"


OwnerRef = ProductOwner | SpaceImageOwner | DocumentOwner

_OWNER_TYPES: dict[str, type[ProductOwner] | type[SpaceImageOwner] | type[DocumentOwner]] = {
    cls.table: cls for cls in (ProductOwner, SpaceImageOwner, DocumentOwner)
}


def owner_ref_for(owner_table: str, owner_id: str) -> OwnerRef:
    try:
        return _OWNER_TYPES[owner_table](owner_id)
    except KeyError as exc:
        raise ValueError(f"Unknown owner table: {owner_table}") from exc


@dataclass(slots=True)
class CreateAssetParams:
    user_id: str
    url: str
    owner: OwnerRef
    source: AssetSource = "native_store"
    storage_path: str | None = None
    bytes: int | None = None
    mime_type: str | None = None


@dataclass(slots=True)
class ReplaceResult:
    asset_id: str
    superseded_id: str | None = None
    superseded_url: str | None = None


async def adjust_usage(db: AsyncSession, user_id: str, delta: int) -> None:
    if not delta:
        return
    row = await db.get(StorageUsage, user_id)
    if row is None:
        row = StorageUsage(user_id=user_id, bytes_used=0)
        db.add(row)
        await db.flush()
    row.bytes_used = max(0, int(row.bytes_used or 0) + int(delta))


async def create_asset(db: AsyncSession, params: CreateAssetParams) -> str:
    row = Asset(
        user_id=params.user_id,
        source=params.source,
        url=params.url,
        storage_path=params.storage_path,
        bytes=params.bytes,
        mime_type=params.mime_type,
        kind=params.owner.kind,
        owner_table=params.owner.table,
        owner_id=params.owner.id,
    )
    db.add(row)
    try:
        await db.flush()
    except IntegrityError as exc:
        raise AssetConflictError(f"Asset already registered for {params.owner.table}/{params.owner.id}") from exc
    except SQLAlchemyError as exc:
        raise RegistryError(f"Asset insert failed for {params.owner.table}/{params.owner.id}") from exc
    if not row.id:
        raise RegistryError("Asset insert did not return id")

    await adjust_usage(db, params.user_id, params.bytes or 0)
    return row.id


async def delete_asset_by_id(db: AsyncSession, asset_id: str) -> bool:
    row = await db.get(Asset, asset_id)
    if row is None:
        return False
    await adjust_usage(db, row.user_id, -(row.bytes or 0))
    await db.delete(row)
    await db.flush()
    return True


async def get_asset_id_by_owner(db: AsyncSession, owner: OwnerRef) -> str | None:
    return (
        await db.execute(
            select(Asset.id).where(Asset.owner_table == owner.table, Asset.owner_id == owner.id)
        )
    ).scalar_one_or_none()


async def get_asset(db: AsyncSession, asset_id: str) -> Asset | None:
    return await db.get(Asset, asset_id)


async def replace_asset_for_owner(db: AsyncSession, params: CreateAssetParams) -> ReplaceResult:
    """Delete the owner's current asset (if any) and register the new one."""
    superseded_url: str | None = None
    existing_id = await get_asset_id_by_owner(db, params.owner)
    if existing_id is not None:
        existing = await get_asset(db, existing_id)
        superseded_url = existing.url if existing is not None else None
        await delete_asset_by_id(db, existing_id)
        logger.info("Replacing asset %s for %s/%s", existing_id, params.owner.table, params.owner.id)
    asset_id = await create_asset(db, params)
    return ReplaceResult(asset_id=asset_id, superseded_id=existing_id, superseded_url=superseded_url)


async def delete_assets_for_user(db: AsyncSession, user_id: str) -> None:
    await db.execute(delete(Asset).where(Asset.user_id == user_id))
    await db.execute(delete(StorageUsage).where(StorageUsage.user_id == user_id))
