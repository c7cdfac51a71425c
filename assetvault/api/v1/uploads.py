from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from assetvault.api.v1.deps import clean, require_fields
from assetvault.db.session import get_db
from assetvault.schemas.storage import OkOut, UploadOut
from assetvault.services.auth import AuthUser, get_current_user
from assetvault.services.object_store import ObjectStore, get_object_store
from assetvault.services.uploads import (
    DocumentUpload,
    ProductImageUpload,
    SpaceImageUpload,
    UploadResult,
    delete_document,
    delete_image,
)

router = APIRouter(prefix="/upload", tags=["upload"])


def _as_out(result: UploadResult) -> UploadOut:
    return UploadOut(url=result.url, bytes=result.bytes, asset_id=result.asset_id)


def _require_url(url: str | None) -> str:
    target = clean(url)
    require_fields(url=target)
    return target


@router.post("/product-image", response_model=UploadOut)
async def upload_product_image(
    file: UploadFile | None = File(default=None),
    product_id: str | None = Form(default=None, alias="productId"),
    project_id: str | None = Form(default=None, alias="projectId"),
    db: AsyncSession = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    current_user: AuthUser = Depends(get_current_user),
) -> UploadOut:
    product_id = clean(product_id)
    require_fields(file=file, productId=product_id)

    upload = ProductImageUpload(db, store, current_user, product_id=product_id, project_id=clean(project_id) or None)
    result = await upload.run(await file.read(), file.content_type, file.filename)
    return _as_out(result)


@router.delete("/product-image", response_model=OkOut)
async def delete_product_image(
    url: str | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    current_user: AuthUser = Depends(get_current_user),
) -> OkOut:
    await delete_image(db, store, current_user, _require_url(url))
    return OkOut()


@router.post("/space-image", response_model=UploadOut)
async def upload_space_image(
    file: UploadFile | None = File(default=None),
    project_id: str | None = Form(default=None, alias="projectId"),
    space_id: str | None = Form(default=None, alias="spaceId"),
    image_id: str | None = Form(default=None, alias="imageId"),
    db: AsyncSession = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    current_user: AuthUser = Depends(get_current_user),
) -> UploadOut:
    project_id, space_id, image_id = clean(project_id), clean(space_id), clean(image_id)
    require_fields(file=file, projectId=project_id, spaceId=space_id, imageId=image_id)

    upload = SpaceImageUpload(
        db,
        store,
        current_user,
        project_id=project_id,
        space_id=space_id,
        image_id=image_id,
    )
    result = await upload.run(await file.read(), file.content_type, file.filename)
    return _as_out(result)


@router.delete("/space-image", response_model=OkOut)
async def delete_space_image(
    url: str | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    current_user: AuthUser = Depends(get_current_user),
) -> OkOut:
    await delete_image(db, store, current_user, _require_url(url))
    return OkOut()


@router.post("/document", response_model=UploadOut)
async def upload_document(
    file: UploadFile | None = File(default=None),
    project_id: str | None = Form(default=None, alias="projectId"),
    document_id: str | None = Form(default=None, alias="documentId"),
    db: AsyncSession = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    current_user: AuthUser = Depends(get_current_user),
) -> UploadOut:
    project_id, document_id = clean(project_id), clean(document_id)
    require_fields(file=file, projectId=project_id, documentId=document_id)

    upload = DocumentUpload(db, store, current_user, project_id=project_id, document_id=document_id)
    result = await upload.run(await file.read(), file.content_type, file.filename)
    return _as_out(result)


@router.delete("/document", response_model=OkOut)
async def delete_document_file(
    url: str | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    current_user: AuthUser = Depends(get_current_user),
) -> OkOut:
    await delete_document(db, store, current_user, _require_url(url))
    return OkOut()
