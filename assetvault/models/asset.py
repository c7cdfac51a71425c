from __future__ import annotations

from sqlalchemy import BigInteger, CheckConstraint, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from assetvault.db.base import Base
from assetvault.models.common import TimestampMixin, new_id

ASSET_SOURCES = ("native_store", "external_link")
ASSET_KINDS = ("product_image", "space_image", "document")
OWNER_TABLES = ("products", "space_images", "project_documents")


class Asset(TimestampMixin, Base):
    __tablename__ = "assets"
    __table_args__ = (
        UniqueConstraint("owner_table", "owner_id", name="uq_assets_owner"),
        CheckConstraint("source in ('native_store','external_link')", name="ck_assets_source"),
        CheckConstraint("kind in ('product_image','space_image','document')", name="ck_assets_kind"),
        CheckConstraint(
            "owner_table in ('products','space_images','project_documents')",
            name="ck_assets_owner_table",
        ),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    # No FK to users: accounts live in the external auth provider.
    user_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    source: Mapped[str] = mapped_column(String(20), nullable=False)
    url: Mapped[str] = mapped_column(String(1200), nullable=False)
    storage_path: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    bytes: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    mime_type: Mapped[str | None] = mapped_column(String(150), nullable=True)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    owner_table: Mapped[str] = mapped_column(String(40), nullable=False)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False)
