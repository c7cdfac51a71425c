from __future__ import annotations

from assetvault.models.account import StorageUsage
from assetvault.services.registry import RegistryError


async def test_health(client) -> None:
    res = await client.get("/health")

    assert res.status_code == 200
    assert res.json() == {"status": "ok"}


async def test_upload_requires_token(client, product, png_bytes) -> None:
    res = await client.post(
        "/api/v1/upload/product-image",
        data={"productId": product.id},
        files={"file": ("lamp.png", png_bytes, "image/png")},
    )

    assert res.status_code == 401
    assert res.json() == {"detail": "Not authenticated"}


async def test_invalid_token(client) -> None:
    res = await client.get("/api/v1/storage/usage", headers={"Authorization": "Bearer not-a-jwt"})

    assert res.status_code == 401
    assert res.json()["detail"] == "Invalid token"


async def test_upload_product_image(client, store, auth_headers, product, png_bytes) -> None:
    res = await client.post(
        "/api/v1/upload/product-image",
        headers=auth_headers,
        data={"productId": product.id},
        files={"file": ("lamp.png", png_bytes, "image/png")},
    )

    assert res.status_code == 200
    body = res.json()
    assert body["url"].startswith("https://f001.backblazeb2.com/file/test-bucket/test-assets/user-1/catalog/")
    assert body["bytes"] == store.uploads[0][2]
    assert body["assetId"]


async def test_upload_missing_fields(client, auth_headers) -> None:
    res = await client.post("/api/v1/upload/space-image", headers=auth_headers, data={"projectId": "p"})

    assert res.status_code == 400
    assert res.json()["detail"] == "Missing file, spaceId, imageId"


async def test_upload_to_foreign_product(client, other_headers, product, png_bytes) -> None:
    res = await client.post(
        "/api/v1/upload/product-image",
        headers=other_headers,
        data={"productId": product.id},
        files={"file": ("lamp.png", png_bytes, "image/png")},
    )

    assert res.status_code == 403


async def test_upload_over_quota(client, db, store, user, auth_headers, project, document) -> None:
    db.add(StorageUsage(user_id=user.user_id, bytes_used=500 * 1024 * 1024))
    await db.commit()

    res = await client.post(
        "/api/v1/upload/document",
        headers=auth_headers,
        data={"projectId": project.id, "documentId": document.id},
        files={"file": ("quote.pdf", b"%PDF-1.7", "application/pdf")},
    )

    assert res.status_code == 413
    body = res.json()
    assert body["limit_mb"] == 500
    assert body["current_used"] == 500 * 1024 * 1024
    assert body["upgrade_url"] == "/settings/plan"
    assert store.uploads == []


async def test_upload_store_unavailable(client, store, auth_headers, product, png_bytes) -> None:
    store.fail_uploads = True

    res = await client.post(
        "/api/v1/upload/product-image",
        headers=auth_headers,
        data={"productId": product.id},
        files={"file": ("lamp.png", png_bytes, "image/png")},
    )

    assert res.status_code == 502
    assert res.json()["detail"] == "File storage is unavailable, please try again later"


async def test_delete_image_requires_url(client, auth_headers) -> None:
    res = await client.delete("/api/v1/upload/product-image", headers=auth_headers)

    assert res.status_code == 400
    assert res.json()["detail"] == "Missing url"


async def test_delete_unknown_image(client, auth_headers) -> None:
    res = await client.delete(
        "/api/v1/upload/space-image",
        headers=auth_headers,
        params={"url": "https://f001.backblazeb2.com/file/test-bucket/test-assets/user-1/x.webp"},
    )

    assert res.status_code == 404
    assert res.json()["detail"] == "Image not found"


async def test_upload_then_delete_document(client, store, auth_headers, project, document) -> None:
    res = await client.post(
        "/api/v1/upload/document",
        headers=auth_headers,
        data={"projectId": project.id, "documentId": document.id},
        files={"file": ("quote.pdf", b"%PDF-1.7 quote", "application/pdf")},
    )
    url = res.json()["url"]

    res = await client.delete("/api/v1/upload/document", headers=auth_headers, params={"url": url})

    assert res.status_code == 200
    assert res.json() == {"ok": True}
    assert store.objects == {}


async def test_storage_usage(client, db, user, auth_headers) -> None:
    db.add(StorageUsage(user_id=user.user_id, bytes_used=2048))
    await db.commit()

    res = await client.get("/api/v1/storage/usage", headers=auth_headers)

    assert res.status_code == 200
    assert res.json() == {
        "bytes_used": 2048,
        "limit_bytes": 500 * 1024 * 1024,
        "limit_mb": 500,
        "unlimited": False,
    }


async def test_account_delete_email_mismatch(client, auth_headers, project) -> None:
    res = await client.post("/api/v1/account/delete", headers=auth_headers, json={"email": "someone@example.com"})

    assert res.status_code == 400
    assert res.json()["detail"] == "The email does not match the account"


async def test_upload_registry_failure(client, auth_headers, product, png_bytes, monkeypatch) -> None:
    async def failing_replace(*args, **kwargs):
        raise RegistryError("insert failed")

    monkeypatch.setattr("assetvault.services.uploads.replace_asset_for_owner", failing_replace)

    res = await client.post(
        "/api/v1/upload/product-image",
        headers=auth_headers,
        data={"productId": product.id},
        files={"file": ("lamp.png", png_bytes, "image/png")},
    )

    assert res.status_code == 500
    assert res.json() == {"detail": "Could not save the file, please retry"}
