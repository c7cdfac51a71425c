from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class UploadOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    url: str
    bytes: int
    asset_id: str = Field(alias="assetId")


class OkOut(BaseModel):
    ok: bool = True


class StorageUsageOut(BaseModel):
    bytes_used: int
    limit_bytes: int
    limit_mb: int
    unlimited: bool


class BackfillOut(BaseModel):
    updated: int


class AccountDeleteIn(BaseModel):
    email: str = Field(min_length=3, max_length=255)
