"""Upload and delete protocols for product images, space images and documents.

Every upload runs the same chain: ownership -> size ceiling -> type check ->
quota pre-flight -> transform -> final quota check -> object store upload ->
registry replace + domain pointer (one commit). The object store and the
database are not updated atomically: if the commit fails after the upload, the
object is left behind and only logged.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import ClassVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from assetvault.core.config import settings
from assetvault.core.errors import (
    CapacityError,
    ConflictError,
    NotFoundError,
    StorageWriteError,
    UpstreamStoreError,
)
from assetvault.models.catalog import Product
from assetvault.models.project import ProjectDocument, SpaceImage
from assetvault.services import object_keys
from assetvault.services.auth import AuthUser
from assetvault.services.files import (
    OUTPUT_IMAGE_EXTENSION,
    check_upload_size,
    document_extension,
    transform_image,
    validate_document_type,
    validate_image_type,
)
from assetvault.services.object_store import DeleteResult, ObjectStore, ObjectStoreError, StoredObject
from assetvault.services.ownership import (
    find_document_by_url,
    find_image_by_url,
    find_space_image_in_space,
    require_document_row,
    require_product,
    require_project,
    require_space_in_project,
)
from assetvault.services.quota import BYTES_PER_MB, StorageLimitResult, check_storage_limit
from assetvault.services.registry import (
    AssetConflictError,
    CreateAssetParams,
    DocumentOwner,
    OwnerRef,
    ProductOwner,
    RegistryError,
    SpaceImageOwner,
    delete_asset_by_id,
    get_asset_id_by_owner,
    replace_asset_for_owner,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class UploadResult:
    url: str
    bytes: int
    asset_id: str


@dataclass(slots=True, frozen=True)
class PreparedFile:
    data: bytes
    mime_type: str
    extension: str

    @property
    def size(self) -> int:
        return len(self.data)


async def discard_object(store: ObjectStore, url: str) -> DeleteResult | None:
    """Best-effort delete; a failure is logged and reported as None."""
    try:
        return await store.delete_object_by_url(url)
    except ObjectStoreError:
        logger.warning("Could not delete %s from the object store", url, exc_info=True)
        return None


def _capacity_error(check: StorageLimitResult) -> CapacityError:
    used_mb = check.current_used / BYTES_PER_MB
    return CapacityError(
        f"Storage limit reached: {used_mb:.1f} MB used of {check.limit_mb} MB. "
        "Upgrade your plan to upload more files.",
        current_used=check.current_used,
        limit_bytes=check.limit_bytes,
        limit_mb=check.limit_mb,
        upgrade_url=settings.upgrade_url,
    )


class UploadOrchestrator(ABC):
    """One upload for one owning record; subclasses supply the per-kind steps."""

    label: ClassVar[str] = "The file"

    def __init__(self, db: AsyncSession, store: ObjectStore, user: AuthUser) -> None:
        self.db = db
        self.store = store
        self.user = user

    @property
    @abstractmethod
    def max_bytes(self) -> int: ...

    @property
    @abstractmethod
    def owner(self) -> OwnerRef: ...

    @abstractmethod
    async def verify_ownership(self) -> None: ...

    @abstractmethod
    def validate_type(self, mime_type: str | None) -> str: ...

    @abstractmethod
    async def prepare(self, data: bytes, mime_type: str, file_name: str | None) -> PreparedFile: ...

    @abstractmethod
    def object_key(self, prepared: PreparedFile) -> str: ...

    @abstractmethod
    def set_pointer(self, stored: StoredObject, prepared: PreparedFile, asset_id: str) -> None: ...

    async def _check_quota(self, incoming: int, known_used: int | None = None) -> StorageLimitResult:
        check = await check_storage_limit(self.db, self.user.user_id, incoming, known_used)
        if not check.allowed:
            logger.info(
                "Quota exceeded for user %s: %d used, %d incoming, limit %d MB",
                self.user.user_id,
                check.current_used,
                incoming,
                check.limit_mb,
            )
            raise _capacity_error(check)
        return check

    async def _upload(self, prepared: PreparedFile) -> StoredObject:
        key = self.object_key(prepared)
        try:
            return await self.store.upload_object(prepared.data, prepared.mime_type, key)
        except ObjectStoreError as exc:
            logger.exception("Object store upload failed for %s", key)
            raise UpstreamStoreError() from exc

    async def _register(self, stored: StoredObject, prepared: PreparedFile) -> tuple[str, str | None]:
        owner = self.owner
        params = CreateAssetParams(
            user_id=self.user.user_id,
            url=stored.url,
            owner=owner,
            storage_path=stored.key,
            bytes=prepared.size,
            mime_type=prepared.mime_type,
        )
        try:
            result = await replace_asset_for_owner(self.db, params)
            self.set_pointer(stored, prepared, result.asset_id)
            await self.db.commit()
        except AssetConflictError as exc:
            await self.db.rollback()
            logger.warning("Concurrent upload for %s/%s, discarding %s", owner.table, owner.id, stored.key)
            await discard_object(self.store, stored.url)
            raise ConflictError("Another upload for this record finished first, please retry") from exc
        except (RegistryError, SQLAlchemyError) as exc:
            await self.db.rollback()
            logger.exception("Registry write failed for %s/%s, %s is orphaned", owner.table, owner.id, stored.key)
            raise StorageWriteError() from exc
        return result.asset_id, result.superseded_url

    async def run(self, data: bytes, mime_type: str | None, file_name: str | None = None) -> UploadResult:
        await self.verify_ownership()
        check_upload_size(len(data), self.max_bytes, self.label)
        mime = self.validate_type(mime_type)

        # An account already at its ceiling never pays for the transform.
        preflight = await self._check_quota(0)
        prepared = await self.prepare(data, mime, file_name)
        await self._check_quota(prepared.size, known_used=preflight.current_used)

        stored = await self._upload(prepared)
        asset_id, superseded_url = await self._register(stored, prepared)
        if superseded_url and superseded_url != stored.url:
            await discard_object(self.store, superseded_url)

        logger.info(
            "Stored %s for %s/%s (%d bytes, asset %s)",
            stored.key,
            self.owner.table,
            self.owner.id,
            prepared.size,
            asset_id,
        )
        return UploadResult(url=stored.url, bytes=prepared.size, asset_id=asset_id)


class _ImageUpload(UploadOrchestrator):
    label = "The image"

    @property
    def max_bytes(self) -> int:
        return settings.image_max_upload_bytes

    def validate_type(self, mime_type: str | None) -> str:
        return validate_image_type(mime_type)

    async def prepare(self, data: bytes, mime_type: str, file_name: str | None) -> PreparedFile:
        image = await asyncio.to_thread(transform_image, data)
        return PreparedFile(data=image.data, mime_type=image.mime_type, extension=OUTPUT_IMAGE_EXTENSION)


class ProductImageUpload(_ImageUpload):
    def __init__(
        self,
        db: AsyncSession,
        store: ObjectStore,
        user: AuthUser,
        *,
        product_id: str,
        project_id: str | None = None,
    ) -> None:
        super().__init__(db, store, user)
        self.product_id = product_id
        self.project_id = project_id or None
        self.product: Product | None = None

    @property
    def owner(self) -> OwnerRef:
        return ProductOwner(self.product_id)

    async def verify_ownership(self) -> None:
        self.product = await require_product(self.db, self.user.user_id, self.product_id)
        if self.project_id:
            await require_project(self.db, self.user.user_id, self.project_id)

    def object_key(self, prepared: PreparedFile) -> str:
        return object_keys.product_image_key(self.user.user_id, self.product_id, prepared.extension, self.project_id)

    def set_pointer(self, stored: StoredObject, prepared: PreparedFile, asset_id: str) -> None:
        if self.product is None:
            raise NotFoundError("Product not found")
        self.product.image_url = stored.url
        self.product.image_size_bytes = prepared.size
        self.product.asset_id = asset_id


class SpaceImageUpload(_ImageUpload):
    def __init__(
        self,
        db: AsyncSession,
        store: ObjectStore,
        user: AuthUser,
        *,
        project_id: str,
        space_id: str,
        image_id: str,
    ) -> None:
        super().__init__(db, store, user)
        self.project_id = project_id
        self.space_id = space_id
        self.image_id = image_id
        self.image: SpaceImage | None = None

    @property
    def owner(self) -> OwnerRef:
        return SpaceImageOwner(self.image_id)

    async def verify_ownership(self) -> None:
        await require_project(self.db, self.user.user_id, self.project_id)
        await require_space_in_project(self.db, self.project_id, self.space_id)
        self.image = await find_space_image_in_space(self.db, self.space_id, self.image_id)

    def object_key(self, prepared: PreparedFile) -> str:
        return object_keys.space_image_key(self.user.user_id, self.project_id, self.image_id, prepared.extension)

    def set_pointer(self, stored: StoredObject, prepared: PreparedFile, asset_id: str) -> None:
        if self.image is None:
            self.image = SpaceImage(id=self.image_id, space_id=self.space_id)
            self.db.add(self.image)
        self.image.image_url = stored.url
        self.image.image_size_bytes = prepared.size
        self.image.asset_id = asset_id


class DocumentUpload(UploadOrchestrator):
    label = "The document"

    def __init__(
        self,
        db: AsyncSession,
        store: ObjectStore,
        user: AuthUser,
        *,
        project_id: str,
        document_id: str,
    ) -> None:
        super().__init__(db, store, user)
        self.project_id = project_id
        self.document_id = document_id
        self.document: ProjectDocument | None = None

    @property
    def max_bytes(self) -> int:
        return settings.document_max_upload_bytes

    @property
    def owner(self) -> OwnerRef:
        return DocumentOwner(self.document_id)

    async def verify_ownership(self) -> None:
        await require_project(self.db, self.user.user_id, self.project_id)
        self.document = await require_document_row(self.db, self.project_id, self.document_id)

    def validate_type(self, mime_type: str | None) -> str:
        return validate_document_type(mime_type)

    async def prepare(self, data: bytes, mime_type: str, file_name: str | None) -> PreparedFile:
        return PreparedFile(data=data, mime_type=mime_type, extension=document_extension(mime_type, file_name))

    def object_key(self, prepared: PreparedFile) -> str:
        return object_keys.document_key(self.user.user_id, self.project_id, self.document_id, prepared.extension)

    def set_pointer(self, stored: StoredObject, prepared: PreparedFile, asset_id: str) -> None:
        if self.document is None:
            raise NotFoundError("Document not found")
        self.document.file_url = stored.url
        self.document.file_size_bytes = prepared.size
        self.document.file_type = prepared.mime_type
        self.document.asset_id = asset_id


async def _drop_registered_file(db: AsyncSession, store: ObjectStore, owner: OwnerRef, url: str) -> None:
    asset_id = await get_asset_id_by_owner(db, owner)
    if asset_id is not None:
        await delete_asset_by_id(db, asset_id)
    await db.commit()

    result = await discard_object(store, url)
    logger.info(
        "Removed file of %s/%s (asset %s, object %s)",
        owner.table,
        owner.id,
        asset_id or "-",
        result.value if result is not None else "failed",
    )


async def delete_image(db: AsyncSession, store: ObjectStore, user: AuthUser, url: str) -> None:
    row = await find_image_by_url(db, user.user_id, url)
    owner: OwnerRef
    match row:
        case Product():
            owner = ProductOwner(row.id)
        case SpaceImage():
            owner = SpaceImageOwner(row.id)
    row.image_url = None
    row.image_size_bytes = None
    row.asset_id = None
    await _drop_registered_file(db, store, owner, url)


async def delete_document(db: AsyncSession, store: ObjectStore, user: AuthUser, url: str) -> None:
    document = await find_document_by_url(db, user.user_id, url)
    owner = DocumentOwner(document.id)
    document.file_url = None
    document.file_size_bytes = None
    document.file_type = None
    document.asset_id = None
    await _drop_registered_file(db, store, owner, url)
