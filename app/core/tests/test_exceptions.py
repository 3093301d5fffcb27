"""
Tests for the application exception hierarchy.
"""

import pytest

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    ValidationError,
)


class TestHttpMapping:
    @pytest.mark.parametrize(
        "exc_class, status, code",
        [
            (BaseApplicationError, 500, "APPLICATION_ERROR"),
            (ValidationError, 400, "VALIDATION_ERROR"),
            (NotFoundError, 404, "NOT_FOUND"),
            (ConflictError, 409, "CONFLICT"),
            (ExternalServiceError, 502, "EXTERNAL_SERVICE_ERROR"),
        ],
    )
    def test_defaults(self, exc_class, status, code):
        exc = exc_class("Something happened")

        assert exc.http_status == status
        assert exc.error_code == code
        assert isinstance(exc, BaseApplicationError)


class TestToDict:
    def test_without_details(self):
        exc = NotFoundError("Business not found.", error_code="LISTING_NOT_FOUND")

        assert exc.to_dict() == {"error": "Business not found.", "error_code": "LISTING_NOT_FOUND"}

    def test_with_details(self):
        exc = ConflictError("Stale policy.", details={"current_version": 3})

        assert exc.to_dict()["details"] == {"current_version": 3}

    def test_str_includes_code(self):
        assert str(ValidationError("Bad input")) == "[VALIDATION_ERROR] Bad input"
