from __future__ import annotations

import pytest
from sqlalchemy import func, select

from assetvault.models.account import StorageUsage
from assetvault.models.asset import Asset
from assetvault.services.quota import get_bytes_used
from assetvault.services.registry import (
    AssetConflictError,
    CreateAssetParams,
    DocumentOwner,
    ProductOwner,
    SpaceImageOwner,
    adjust_usage,
    create_asset,
    delete_asset_by_id,
    delete_assets_for_user,
    get_asset_id_by_owner,
    owner_ref_for,
    replace_asset_for_owner,
)


def params(owner, url: str, size: int, user_id: str = "user-1") -> CreateAssetParams:
    return CreateAssetParams(user_id=user_id, url=url, owner=owner, storage_path=url.rsplit("/", 1)[-1], bytes=size)


def test_owner_refs_carry_table_and_kind() -> None:
    assert (ProductOwner("p").table, ProductOwner("p").kind) == ("products", "product_image")
    assert (SpaceImageOwner("s").table, SpaceImageOwner("s").kind) == ("space_images", "space_image")
    assert (DocumentOwner("d").table, DocumentOwner("d").kind) == ("project_documents", "document")
    assert owner_ref_for("space_images", "s") == SpaceImageOwner("s")
    with pytest.raises(ValueError):
        owner_ref_for("users", "u")


async def test_create_asset_tracks_usage(db) -> None:
    asset_id = await create_asset(db, params(ProductOwner("p1"), "https://cdn/a.webp", 1500))
    await db.commit()

    row = await db.get(Asset, asset_id)
    assert row.kind == "product_image"
    assert row.owner_table == "products"
    assert row.source == "native_store"
    assert await get_bytes_used(db, "user-1") == 1500


async def test_second_asset_for_same_owner_conflicts(db) -> None:
    await create_asset(db, params(ProductOwner("p1"), "https://cdn/a.webp", 10))
    await db.commit()

    with pytest.raises(AssetConflictError):
        await create_asset(db, params(ProductOwner("p1"), "https://cdn/b.webp", 10))
    await db.rollback()


async def test_replace_leaves_one_asset_per_owner(db) -> None:
    owner = DocumentOwner("d1")
    first = await replace_asset_for_owner(db, params(owner, "https://cdn/v1.pdf", 4000))
    await db.commit()
    second = await replace_asset_for_owner(db, params(owner, "https://cdn/v2.pdf", 2500))
    await db.commit()

    assert first.superseded_id is None
    assert second.superseded_id == first.asset_id
    assert second.superseded_url == "https://cdn/v1.pdf"
    assert await get_asset_id_by_owner(db, owner) == second.asset_id
    count = (
        await db.execute(select(func.count()).select_from(Asset).where(Asset.owner_id == "d1"))
    ).scalar_one()
    assert count == 1
    assert await get_bytes_used(db, "user-1") == 2500


async def test_delete_asset_by_id(db) -> None:
    asset_id = await create_asset(db, params(SpaceImageOwner("s1"), "https://cdn/s.webp", 900))
    await db.commit()

    assert await delete_asset_by_id(db, asset_id) is True
    assert await delete_asset_by_id(db, "missing") is False
    await db.commit()
    assert await get_bytes_used(db, "user-1") == 0


async def test_usage_never_goes_negative(db) -> None:
    await adjust_usage(db, "user-1", 100)
    await adjust_usage(db, "user-1", -500)
    await db.commit()

    assert (await db.get(StorageUsage, "user-1")).bytes_used == 0


async def test_delete_assets_for_user_only_touches_that_user(db) -> None:
    await create_asset(db, params(ProductOwner("p1"), "https://cdn/a.webp", 10))
    await create_asset(db, params(ProductOwner("p2"), "https://cdn/b.webp", 20, user_id="user-2"))
    await db.commit()

    await delete_assets_for_user(db, "user-1")
    await db.commit()

    remaining = (await db.execute(select(Asset.user_id))).scalars().all()
    assert remaining == ["user-2"]
    assert await get_bytes_used(db, "user-1") == 0
    assert await get_bytes_used(db, "user-2") == 20
