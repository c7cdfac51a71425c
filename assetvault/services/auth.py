from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from assetvault.core.config import settings
from assetvault.core.errors import AuthenticationError


bearer = HTTPBearer(auto_error=False)


@dataclass(slots=True)
class AuthUser:
    user_id: str
    email: str


def _decode_token(token: str) -> dict[str, Any]:
    kwargs: dict[str, Any] = {
        "algorithms": [settings.jwt_algorithm],
        "leeway": settings.jwt_exp_leeway_seconds,
    }

    if settings.jwt_audience:
        kwargs["audience"] = settings.jwt_audience
    else:
        kwargs["options"] = {"verify_aud": False}

    if settings.jwt_issuer:
        kwargs["issuer"] = settings.jwt_issuer

    try:
        payload = jwt.decode(token, settings.jwt_secret, **kwargs)
    except jwt.PyJWTError as exc:
        raise AuthenticationError("Invalid token") from exc

    return payload


def _parse_payload(payload: dict[str, Any]) -> AuthUser:
    user_id = str(payload.get("sub") or payload.get("user_id") or "").strip()
    if not user_id:
        raise AuthenticationError("Invalid sub claim")

    email = str(payload.get("email") or "").strip().lower()
    return AuthUser(user_id=user_id, email=email)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
) -> AuthUser:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Not authenticated")
    return _parse_payload(_decode_token(credentials.credentials))
