from __future__ import annotations

from sqlalchemy import BigInteger, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from assetvault.db.base import Base
from assetvault.models.common import TimestampMixin


class Plan(TimestampMixin, Base):
    __tablename__ = "plans"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    # -1 means unlimited.
    storage_limit_mb: Mapped[int] = mapped_column(Integer, nullable=False)


class Profile(TimestampMixin, Base):
    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    plan_id: Mapped[str | None] = mapped_column(ForeignKey("plans.id", ondelete="SET NULL"), nullable=True)
    storage_limit_mb_override: Mapped[int | None] = mapped_column(Integer, nullable=True)


class StorageUsage(TimestampMixin, Base):
    __tablename__ = "user_storage_usage"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    bytes_used: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
