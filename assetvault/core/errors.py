"""Error taxonomy shared by the upload pipeline and the HTTP layer.

Services raise these; ``assetvault.main`` renders them as ``{"detail": ...}``
responses with the matching status code.
"""

from __future__ import annotations

from typing import Any


class AssetVaultError(Exception):
    status_code = 500

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail

    def payload(self) -> dict[str, Any]:
        return {"detail": self.detail}


class AuthenticationError(AssetVaultError):
    status_code = 401


class AuthorizationError(AssetVaultError):
    status_code = 403


class NotFoundError(AssetVaultError):
    status_code = 404


class ValidationError(AssetVaultError):
    status_code = 400


class ConflictError(AssetVaultError):
    status_code = 409


class CapacityError(AssetVaultError):
    status_code = 413

    def __init__(self, detail: str, *, current_used: int, limit_bytes: int, limit_mb: int, upgrade_url: str = "") -> None:
        super().__init__(detail)
        self.current_used = current_used
        self.limit_bytes = limit_bytes
        self.limit_mb = limit_mb
        self.upgrade_url = upgrade_url

    def payload(self) -> dict[str, Any]:
        return {
            "detail": self.detail,
            "current_used": self.current_used,
            "limit_bytes": self.limit_bytes,
            "limit_mb": self.limit_mb,
            "upgrade_url": self.upgrade_url,
        }


class UpstreamStoreError(AssetVaultError):
    status_code = 502

    def __init__(self, detail: str = "File storage is unavailable, please try again later") -> None:
        super().__init__(detail)


class StorageWriteError(AssetVaultError):
    status_code = 500

    def __init__(self, detail: str = "Could not save the file, please retry") -> None:
        super().__init__(detail)
