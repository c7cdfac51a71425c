from __future__ import annotations

import uuid
from urllib.parse import quote, unquote, urlparse

from assetvault.core.config import settings


def _token() -> str:
    return uuid.uuid4().hex[:12]


def _ext(extension: str) -> str:
    clean = str(extension or "").strip().lower()
    if not clean:
        return ""
    return clean if clean.startswith(".") else f".{clean}"


def user_prefix(user_id: str) -> str:
    return f"{settings.storage_root}/{user_id}/"


def product_image_key(user_id: str, product_id: str, extension: str, project_id: str | None = None) -> str:
    if project_id:
        return f"{settings.storage_root}/{user_id}/projects/{project_id}/img/{product_id}-{_token()}{_ext(extension)}"
    return f"{settings.storage_root}/{user_id}/catalog/{product_id}-{_token()}{_ext(extension)}"


def space_image_key(user_id: str, project_id: str, image_id: str, extension: str) -> str:
    return f"{settings.storage_root}/{user_id}/projects/{project_id}/img/{image_id}-{_token()}{_ext(extension)}"


def document_key(user_id: str, project_id: str, document_id: str, extension: str) -> str:
    return f"{settings.storage_root}/{user_id}/projects/{project_id}/doc/{document_id}-{_token()}{_ext(extension)}"


def public_url(download_url: str, bucket_name: str, object_key: str) -> str:
    return f"{download_url.rstrip('/')}/file/{bucket_name}/{quote(object_key, safe='/')}"


def object_key_from_url(url: str, download_url: str, bucket_name: str) -> str | None:
    """Return the object key of a public URL, or None when it is not ours.

    Only URLs of the form ``<download_url>/file/<bucket_name>/<key>`` on the
    configured download host are accepted.
    """
    raw = str(url or "").strip()
    if not raw or not bucket_name or not download_url:
        return None
    try:
        parsed = urlparse(raw)
        expected = urlparse(download_url)
    except ValueError:
        return None
    if parsed.scheme not in {"http", "https"} or not parsed.hostname:
        return None
    if parsed.hostname.lower() != (expected.hostname or "").lower():
        return None

    parts = [p for p in parsed.path.split("/") if p]
    if len(parts) < 3 or parts[0] != "file" or parts[1] != bucket_name:
        return None
    return unquote("/".join(parts[2:]))

