from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from assetvault.core.errors import AuthorizationError, NotFoundError, ValidationError
from assetvault.models.catalog import Product
from assetvault.models.project import Project, ProjectDocument, Space, SpaceImage


async def require_project(db: AsyncSession, user_id: str, project_id: str) -> Project:
    project = await db.get(Project, project_id)
    if project is None:
        raise NotFoundError("Project not found")
    if project.user_id != user_id:
        raise AuthorizationError("Not allowed to use this project")
    return project


async def require_product(db: AsyncSession, user_id: str, product_id: str) -> Product:
    product = await db.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    if product.user_id != user_id:
        raise AuthorizationError("Not allowed to upload images for this product")
    return product


async def require_space_in_project(db: AsyncSession, project_id: str, space_id: str) -> Space:
    space = await db.get(Space, space_id)
    if space is None or space.project_id != project_id:
        raise NotFoundError("Space not found or does not belong to project")
    return space


async def find_space_image_in_space(db: AsyncSession, space_id: str, image_id: str) -> SpaceImage | None:
    image = await db.get(SpaceImage, image_id)
    if image is not None and image.space_id != space_id:
        raise NotFoundError("Space image not found or does not belong to space")
    return image


async def require_document_row(db: AsyncSession, project_id: str, document_id: str) -> ProjectDocument:
    # The row must exist before any bytes are stored for it.
    document = (
        await db.execute(
            select(ProjectDocument).where(
                ProjectDocument.id == document_id,
                ProjectDocument.project_id == project_id,
            )
        )
    ).scalar_one_or_none()
    if document is None:
        raise ValidationError("You must create the document before uploading its file")
    return document


async def _space_image_project_owner(db: AsyncSession, image: SpaceImage) -> str:
    space = await db.get(Space, image.space_id)
    if space is None:
        raise NotFoundError("Space not found")
    project = await db.get(Project, space.project_id)
    if project is None:
        raise NotFoundError("Project not found")
    return project.user_id


async def find_image_by_url(db: AsyncSession, user_id: str, url: str) -> Product | SpaceImage:
    """Resolve a stored image URL to the product or space image holding it."""
    product = (
        await db.execute(select(Product).where(Product.image_url == url).limit(1))
    ).scalar_one_or_none()
    if product is not None:
        if product.user_id != user_id:
            raise AuthorizationError("Not allowed to delete this image")
        return product

    image = (
        await db.execute(select(SpaceImage).where(SpaceImage.image_url == url).limit(1))
    ).scalar_one_or_none()
    if image is None:
        raise NotFoundError("Image not found")
    if await _space_image_project_owner(db, image) != user_id:
        raise AuthorizationError("Not allowed to delete this image")
    return image


async def find_document_by_url(db: AsyncSession, user_id: str, url: str) -> ProjectDocument:
    document = (
        await db.execute(select(ProjectDocument).where(ProjectDocument.file_url == url).limit(1))
    ).scalar_one_or_none()
    if document is None:
        raise NotFoundError("Document not found")
    project = await db.get(Project, document.project_id)
    if project is None or project.user_id != user_id:
        raise AuthorizationError("Not allowed to delete this document")
    return document
