import jwt
import pytest

from assetvault.core.errors import AuthenticationError
from assetvault.services.auth import _decode_token, _parse_payload


def test_parse_payload_success() -> None:
    user = _parse_payload({"sub": "b3f1c2", "email": " U@Example.com "})
    assert user.user_id == "b3f1c2"
    assert user.email == "u@example.com"


def test_parse_payload_accepts_user_id_claim() -> None:
    assert _parse_payload({"user_id": "42"}).user_id == "42"


def test_parse_payload_requires_subject() -> None:
    with pytest.raises(AuthenticationError):
        _parse_payload({"email": "u@example.com"})


def test_decode_token_rejects_wrong_secret() -> None:
    token = jwt.encode({"sub": "u1"}, "another-secret", algorithm="HS256")
    with pytest.raises(AuthenticationError, match="Invalid token"):
        _decode_token(token)
