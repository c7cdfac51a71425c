"""Backblaze B2 native API client.

The client is stateless apart from its configuration: every logical operation
authorizes again, and no token is cached between calls. One instance per
process is built lazily by ``get_object_store()`` and handed to the upload
pipeline as a FastAPI dependency.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Any, Protocol
from urllib.parse import quote

import httpx

from assetvault.core.config import Settings, settings
from assetvault.services.object_keys import object_key_from_url, public_url

logger = logging.getLogger(__name__)

B2_API_VERSION = "v2"
LIST_PAGE_SIZE = 1000


class ObjectStoreError(Exception):
    """A call to the object store failed."""


class ObjectStoreConfigError(RuntimeError):
    """Required object store settings are missing."""


class DeleteResult(str, Enum):
    DELETED = "deleted"
    NOT_FOUND = "not_found"
    # URL does not point into our bucket; nothing was touched.
    SKIPPED = "skipped"


@dataclass(slots=True, frozen=True)
class B2Authorization:
    token: str
    api_url: str
    download_url: str


@dataclass(slots=True, frozen=True)
class UploadTarget:
    upload_url: str
    token: str


@dataclass(slots=True, frozen=True)
class StoredObject:
    url: str
    key: str
    file_id: str
    size: int


@dataclass(slots=True, frozen=True)
class ObjectEntry:
    file_id: str
    file_name: str


@dataclass(slots=True)
class ObjectPage:
    files: list[ObjectEntry] = field(default_factory=list)
    next_file_name: str | None = None


class ObjectStore(Protocol):
    async def upload_object(self, data: bytes, mime_type: str, key: str) -> StoredObject: ...

    async def delete_object_by_url(self, url: str) -> DeleteResult: ...

    async def delete_all_by_prefix(self, prefix: str) -> int: ...


def _error_message(res: httpx.Response, action: str) -> str:
    try:
        body = res.json()
    except ValueError:
        body = {}
    message = str(body.get("message") or "").strip() if isinstance(body, dict) else ""
    return message or f"B2 {action} failed: {res.status_code} {res.reason_phrase}"


def _sha1_hex(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()


class B2ObjectStore:
    def __init__(
        self,
        *,
        key_id: str,
        key: str,
        bucket_id: str,
        bucket_name: str,
        download_url: str,
        api_base_url: str = "https://api.backblazeb2.com",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.key_id = key_id
        self.key = key
        self.bucket_id = bucket_id
        self.bucket_name = bucket_name
        self.download_url = download_url.rstrip("/")
        self.api_base_url = api_base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, cfg: Settings | None = None, **kwargs: Any) -> "B2ObjectStore":
        cfg = cfg or settings
        return cls(
            key_id=cfg.b2_application_key_id,
            key=cfg.b2_application_key,
            bucket_id=cfg.b2_bucket_id,
            bucket_name=cfg.b2_bucket_name,
            download_url=cfg.b2_download_url,
            api_base_url=cfg.b2_api_base_url,
            timeout=cfg.b2_timeout_seconds,
            **kwargs,
        )

    def _check_config(self) -> None:
        missing = [
            name
            for name, value in (
                ("B2_APPLICATION_KEY_ID", self.key_id),
                ("B2_APPLICATION_KEY", self.key),
                ("B2_BUCKET_ID", self.bucket_id),
                ("B2_BUCKET_NAME", self.bucket_name),
                ("B2_DOWNLOAD_URL", self.download_url),
            )
            if not str(value or "").strip()
        ]
        if missing:
            raise ObjectStoreConfigError(f"Object store is not configured, missing: {', '.join(missing)}")

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    def _api(self, auth: B2Authorization, operation: str) -> str:
        return f"{auth.api_url}/b2api/{B2_API_VERSION}/{operation}"

    async def _post_json(
        self,
        client: httpx.AsyncClient,
        url: str,
        token: str,
        body: dict[str, Any],
        action: str,
    ) -> dict[str, Any]:
        try:
            res = await client.post(url, json=body, headers={"Authorization": token})
        except httpx.HTTPError as exc:
            raise ObjectStoreError(f"B2 {action} failed: {exc}") from exc
        if res.is_error:
            raise ObjectStoreError(_error_message(res, action))
        return res.json() if res.content else {}

    async def _authorize(self, client: httpx.AsyncClient) -> B2Authorization:
        self._check_config()
        url = f"{self.api_base_url}/b2api/{B2_API_VERSION}/b2_authorize_account"
        try:
            res = await client.get(url, auth=(self.key_id, self.key))
        except httpx.HTTPError as exc:
            raise ObjectStoreError(f"B2 authorize failed: {exc}") from exc
        if res.is_error:
            raise ObjectStoreError(_error_message(res, "authorize"))

        payload = res.json()
        # Newer accounts nest the endpoints under apiInfo.storageApi.
        storage_api = (payload.get("apiInfo") or {}).get("storageApi") or {}
        api_url = str(storage_api.get("apiUrl") or payload.get("apiUrl") or "").rstrip("/")
        download_url = str(storage_api.get("downloadUrl") or payload.get("downloadUrl") or "").rstrip("/")
        token = str(payload.get("authorizationToken") or "")
        if not api_url or not token:
            raise ObjectStoreError("B2 authorize returned no API URL or token")
        return B2Authorization(token=token, api_url=api_url, download_url=download_url)

    async def authorize(self) -> B2Authorization:
        async with self._client() as client:
            return await self._authorize(client)

    async def _get_upload_target(self, client: httpx.AsyncClient, auth: B2Authorization) -> UploadTarget:
        data = await self._post_json(
            client,
            self._api(auth, "b2_get_upload_url"),
            auth.token,
            {"bucketId": self.bucket_id},
            "get upload URL",
        )
        return UploadTarget(upload_url=str(data["uploadUrl"]), token=str(data["authorizationToken"]))

    async def get_upload_target(self, auth: B2Authorization) -> UploadTarget:
        async with self._client() as client:
            return await self._get_upload_target(client, auth)

    async def upload_object(self, data: bytes, mime_type: str, key: str) -> StoredObject:
        async with self._client() as client:
            auth = await self._authorize(client)
            target = await self._get_upload_target(client, auth)
            headers = {
                "Authorization": target.token,
                "X-Bz-File-Name": quote(key, safe="/"),
                "Content-Type": mime_type,
                "Content-Length": str(len(data)),
                "X-Bz-Content-Sha1": _sha1_hex(data),
            }
            try:
                res = await client.post(target.upload_url, content=data, headers=headers)
            except httpx.HTTPError as exc:
                raise ObjectStoreError(f"B2 upload failed: {exc}") from exc
            if res.is_error:
                raise ObjectStoreError(_error_message(res, "upload"))

        body = res.json()
        file_name = str(body.get("fileName") or key)
        logger.info("Uploaded %s (%d bytes) to bucket %s", file_name, len(data), self.bucket_name)
        return StoredObject(
            url=public_url(self.download_url, self.bucket_name, file_name),
            key=file_name,
            file_id=str(body.get("fileId") or ""),
            size=len(data),
        )

    def key_from_url(self, url: str) -> str | None:
        return object_key_from_url(url, self.download_url, self.bucket_name)

    async def _list_file_names(
        self,
        client: httpx.AsyncClient,
        auth: B2Authorization,
        prefix: str,
        start_file_name: str | None,
        max_count: int,
    ) -> ObjectPage:
        data = await self._post_json(
            client,
            self._api(auth, "b2_list_file_names"),
            auth.token,
            {
                "bucketId": self.bucket_id,
                "prefix": prefix,
                "startFileName": start_file_name,
                "maxFileCount": max_count,
            },
            "list file names",
        )
        files = [
            ObjectEntry(file_id=str(f["fileId"]), file_name=str(f["fileName"]))
            for f in (data.get("files") or [])
            if isinstance(f, dict) and f.get("fileId") and f.get("fileName")
        ]
        return ObjectPage(files=files, next_file_name=data.get("nextFileName") or None)

    async def list_objects_by_prefix(
        self,
        auth: B2Authorization,
        prefix: str,
        *,
        start_file_name: str | None = None,
        max_count: int = LIST_PAGE_SIZE,
    ) -> ObjectPage:
        async with self._client() as client:
            return await self._list_file_names(client, auth, prefix, start_file_name, max_count)

    async def _delete_file_version(self, client: httpx.AsyncClient, auth: B2Authorization, entry: ObjectEntry) -> None:
        await self._post_json(
            client,
            self._api(auth, "b2_delete_file_version"),
            auth.token,
            {"fileId": entry.file_id, "fileName": entry.file_name},
            "delete file version",
        )

    async def delete_object_by_url(self, url: str) -> DeleteResult:
        self._check_config()
        key = self.key_from_url(url)
        if not key:
            logger.info("Skipping delete of URL outside bucket %s", self.bucket_name)
            return DeleteResult.SKIPPED

        async with self._client() as client:
            auth = await self._authorize(client)
            page = await self._list_file_names(client, auth, key, None, 1)
            # The listing is by prefix, so a longer name may come back.
            match = next((f for f in page.files if f.file_name == key), None)
            if match is None:
                return DeleteResult.NOT_FOUND
            await self._delete_file_version(client, auth, match)

        logger.info("Deleted %s from bucket %s", key, self.bucket_name)
        return DeleteResult.DELETED

    async def delete_all_by_prefix(self, prefix: str) -> int:
        if not str(prefix or "").strip("/"):
            raise ValueError("Refusing to delete with an empty prefix")

        deleted = 0
        async with self._client() as client:
            auth = await self._authorize(client)
            start: str | None = None
            while True:
                page = await self._list_file_names(client, auth, prefix, start, LIST_PAGE_SIZE)
                for entry in page.files:
                    await self._delete_file_version(client, auth, entry)
                    deleted += 1
                if page.next_file_name is None:
                    break
                start = page.next_file_name
        return deleted


@lru_cache(maxsize=1)
def get_object_store() -> B2ObjectStore:
    return B2ObjectStore.from_settings()


def reset_object_store() -> None:
    get_object_store.cache_clear()
