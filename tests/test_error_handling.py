"""
Tests for error handling and field validation helpers.
Covers error response formatting, model error translation and ValidationUtils.
"""

import pytest
from sqlalchemy.exc import IntegrityError
from unittest.mock import Mock
from datetime import datetime, timezone
import json

from marketplace.models.lifecycle import StatusTransitionError
from marketplace.models.listing import ListingStatus
from marketplace.models.payment import PaymentStatus
from marketplace.services.error_handler import ErrorHandlerService
from marketplace.utils.exceptions import (
    ValidationError,
    NotFoundError,
    InvalidStatusTransitionError,
    BusinessRuleViolationError,
    ResourceLimitExceededError
)
from marketplace.utils.validators import ValidationUtils


class TestErrorHandlerService:
    """Test error handler service functionality."""

    def test_format_error_response(self):
        response = ErrorHandlerService.format_error_response(
            error_code="TEST_ERROR",
            message="Test error message",
            details=[{"field": "test", "message": "Test field error"}],
            request_id="test123"
        )

        assert response["error"]["code"] == "TEST_ERROR"
        assert response["error"]["message"] == "Test error message"
        assert response["error"]["request_id"] == "test123"
        assert response["error"]["details"][0]["field"] == "test"
        assert response["error"]["timestamp"].endswith("Z")

    def test_format_error_response_omits_empty_details(self):
        response = ErrorHandlerService.format_error_response("NOT_FOUND", "Missing")

        assert "details" not in response["error"]
        assert "request_id" not in response["error"]

    def test_handle_api_exception(self):
        response = ErrorHandlerService.handle_api_exception(NotFoundError("Listing", "abc"))

        assert response.status_code == 404
        response_data = json.loads(response.body)
        assert response_data["error"]["code"] == "NOT_FOUND"
        assert "abc" in response_data["error"]["message"]

    def test_handle_validation_error(self):
        mock_error = Mock()
        mock_error.errors.return_value = [
            {"loc": ("body", "listing_price"), "msg": "Input should be greater than or equal to 0",
             "type": "greater_than_equal"},
            {"loc": ("body", "marketing_description"), "msg": "Field required", "type": "missing"},
        ]

        response = ErrorHandlerService.handle_validation_error(mock_error)

        assert response.status_code == 422
        details = json.loads(response.body)["error"]["details"]
        assert [d["field"] for d in details] == ["body -> listing_price", "body -> marketing_description"]

    def test_handle_integrity_error(self):
        integrity_error = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: listings.mls_number"))
        response = ErrorHandlerService.handle_database_error(integrity_error)

        assert response.status_code == 409
        response_data = json.loads(response.body)
        assert response_data["error"]["code"] == "INTEGRITY_ERROR"
        assert response_data["error"]["message"] == "Constraint violation: Duplicate value for unique field"

    def test_handle_unexpected_error(self):
        response = ErrorHandlerService.handle_unexpected_error(Exception("boom"))

        assert response.status_code == 500
        response_data = json.loads(response.body)
        assert response_data["error"]["code"] == "INTERNAL_SERVER_ERROR"
        assert "boom" not in response_data["error"]["message"]


class TestModelErrorTranslation:
    """Model ValueErrors map to 422, illegal status moves to 409."""

    def test_value_error_becomes_validation_error(self):
        translated = ErrorHandlerService.translate_model_error(ValueError("Listing price cannot be negative"))

        assert isinstance(translated, ValidationError)
        assert translated.status_code == 422
        assert translated.detail == "Listing price cannot be negative"

    def test_status_transition_becomes_conflict(self):
        error = StatusTransitionError("listing", ListingStatus.SOLD, ListingStatus.ACTIVE)
        translated = ErrorHandlerService.translate_model_error(error)

        assert isinstance(translated, InvalidStatusTransitionError)
        assert translated.status_code == 409
        assert translated.previous == "SOLD"
        assert translated.current == "ACTIVE"

    def test_status_transition_error_is_value_error(self):
        error = StatusTransitionError("payment", PaymentStatus.REFUNDED, PaymentStatus.SETTLED)

        assert isinstance(error, ValueError)
        assert str(error) == "Invalid payment status transition from REFUNDED to SETTLED"

    def test_business_rule_errors_are_bad_requests(self):
        assert BusinessRuleViolationError("refund cannot exceed the original amount").status_code == 400
        assert ResourceLimitExceededError("listings", 2).status_code == 400


class TestValidationUtils:
    """Test validation utilities."""

    def test_non_empty_strips(self):
        assert ValidationUtils.non_empty("  Lekki  ", "required") == "Lekki"

    def test_non_empty_rejects_blank(self):
        with pytest.raises(ValueError, match="required"):
            ValidationUtils.non_empty("   ", "required")

    def test_non_empty_optional(self):
        assert ValidationUtils.non_empty(None, "required", required=False) is None

    def test_number_range(self):
        assert ValidationUtils.number_range(5, "Priority", min_value=1, max_value=10) == 5
        with pytest.raises(ValueError, match="at least 1"):
            ValidationUtils.number_range(0, "Priority", min_value=1, max_value=10)
        with pytest.raises(ValueError, match="cannot exceed 10"):
            ValidationUtils.number_range(11, "Priority", min_value=1, max_value=10)

    def test_to_enum_accepts_values(self):
        assert ValidationUtils.to_enum("ACTIVE", ListingStatus, "listing status") == ListingStatus.ACTIVE

    def test_to_enum_rejects_unknown(self):
        with pytest.raises(ValueError, match="Allowed values"):
            ValidationUtils.to_enum("ARCHIVED", ListingStatus, "listing status")

    def test_url(self):
        assert ValidationUtils.url("https://tour.example.com/123") == "https://tour.example.com/123"
        with pytest.raises(ValueError):
            ValidationUtils.url("ftp://example.com/file")
        with pytest.raises(ValueError):
            ValidationUtils.url("not a url")

    def test_ip_address(self):
        assert ValidationUtils.ip_address("192.168.0.1") == "192.168.0.1"
        assert ValidationUtils.ip_address("::1") == "::1"
        with pytest.raises(ValueError, match="Invalid IP address"):
            ValidationUtils.ip_address("999.1.1.1")

    def test_phone_number_normalised(self):
        assert ValidationUtils.phone_number("+234 801-234-5678") == "+2348012345678"
        with pytest.raises(ValueError):
            ValidationUtils.phone_number("12")

    def test_ensure_aware(self):
        naive = datetime(2026, 1, 1, 12, 0)
        assert ValidationUtils.ensure_aware(naive).tzinfo == timezone.utc

    def test_required_keys(self):
        address = {"street": "1 Marina", "city": "Lagos", "state": "LA", "zip_code": "101001", "country": "NG"}
        keys = ("street", "city", "state", "zip_code", "country")
        assert ValidationUtils.required_keys(address, keys, "billing address") == address

        with pytest.raises(ValueError, match="zip_code, country"):
            ValidationUtils.required_keys({"street": "1 Marina", "city": "Lagos", "state": "LA"},
                                          keys, "billing address")
