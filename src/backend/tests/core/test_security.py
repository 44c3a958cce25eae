"""
Tests for token verification and domain errors.
"""

from datetime import timedelta

import pytest
from jose import jwt

from core.config import settings
from core.errors import ConflictError, NotFoundError, TransientStoreError, ValidationError
from core.security import TOKEN_AUDIENCE, create_access_token, decode_token


@pytest.mark.unit
class TestTokens:
    """Test JWT creation and validation."""

    def test_round_trip_claims(self) -> None:
        token = create_access_token({"sub": "user-1", "role": "admin"})

        payload = decode_token(token)

        assert payload is not None
        assert payload["sub"] == "user-1"
        assert payload["aud"] == TOKEN_AUDIENCE
        assert payload["type"] == "access"

    def test_expired(self) -> None:
        token = create_access_token({"sub": "user-1"}, expires_delta=timedelta(seconds=-1))
        assert decode_token(token) is None

    def test_wrong_type(self) -> None:
        token = create_access_token({"sub": "user-1", "type": "refresh"})
        # Standard claims override the caller's type
        assert decode_token(token)["type"] == "access"
        assert decode_token(token, expected_type="refresh") is None

    def test_foreign_signature(self) -> None:
        token = jwt.encode({"sub": "user-1", "aud": TOKEN_AUDIENCE}, "other-key", algorithm=settings.JWT_ALGORITHM)
        assert decode_token(token) is None


@pytest.mark.unit
class TestDomainErrors:
    """Test error payloads rendered to callers."""

    def test_payload_carries_field_and_details(self) -> None:
        error = ConflictError("tables already assigned", field="table_numbers", details={"tables": [2, 5]})

        assert error.status_code == 409
        assert error.to_dict() == {
            "detail": "tables already assigned",
            "code": "conflict",
            "field": "table_numbers",
            "tables": [2, 5],
        }

    def test_payload_without_field(self) -> None:
        assert NotFoundError("assignment not found").to_dict() == {
            "detail": "assignment not found",
            "code": "not_found",
        }

    @pytest.mark.parametrize(
        "error_cls,status",
        [(ValidationError, 400), (NotFoundError, 404), (ConflictError, 409), (TransientStoreError, 503)],
    )
    def test_status_codes(self, error_cls, status) -> None:
        assert error_cls("x").status_code == status
