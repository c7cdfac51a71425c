from __future__ import annotations

from assetvault.core.errors import ValidationError


def clean(value: str | None) -> str:
    return str(value or "").strip()


def require_fields(**fields: object) -> None:
    missing = [name for name, value in fields.items() if not value]
    if missing:
        raise ValidationError(f"Missing {', '.join(missing)}")
