from __future__ import annotations

import logging
from urllib.parse import urlparse

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from assetvault.core.config import settings
from assetvault.models.catalog import Product
from assetvault.services.object_keys import object_key_from_url
from assetvault.services.registry import (
    CreateAssetParams,
    ProductOwner,
    create_asset,
    get_asset_id_by_owner,
)

logger = logging.getLogger(__name__)


async def _register_legacy_image(db: AsyncSession, product: Product, size: int) -> None:
    owner = ProductOwner(product.id)
    if await get_asset_id_by_owner(db, owner) is not None:
        return
    url = str(product.image_url)
    key = object_key_from_url(url, settings.b2_download_url, settings.b2_bucket_name)
    product.asset_id = await create_asset(
        db,
        CreateAssetParams(
            user_id=product.user_id,
            url=url,
            owner=owner,
            source="native_store" if key else "external_link",
            storage_path=key,
            bytes=size,
        ),
    )


async def backfill_product_image_sizes(
    db: AsyncSession,
    user_id: str,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> int:
    """Fill ``image_size_bytes`` for products stored before sizes were tracked.

    Each sized image is registered as an asset, so its bytes count toward the
    account usage and are released again when the image is replaced or
    deleted. Only https URLs are requested and redirects are not followed.
    """
    products = (
        await db.execute(
            select(Product).where(
                Product.user_id == user_id,
                Product.image_url.is_not(None),
                Product.image_size_bytes.is_(None),
            )
        )
    ).scalars().all()
    if not products:
        return 0

    updated = 0
    async with httpx.AsyncClient(timeout=15, follow_redirects=False, transport=transport) as client:
        for product in products:
            url = str(product.image_url or "").strip()
            if urlparse(url).scheme != "https":
                continue
            try:
                res = await client.head(url)
            except httpx.HTTPError:
                logger.warning("HEAD failed for product %s image", product.id, exc_info=True)
                continue
            raw = res.headers.get("content-length")
            if res.status_code != 200 or raw is None or not raw.isdigit():
                continue
            product.image_size_bytes = int(raw)
            await _register_legacy_image(db, product, int(raw))
            updated += 1

    if updated:
        await db.commit()
    return updated
