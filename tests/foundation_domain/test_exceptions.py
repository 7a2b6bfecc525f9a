"""Tests for domain exception hierarchy."""

from __future__ import annotations

import pytest

from taxprotest.foundation.domain.exceptions import (
    ConflictError,
    DomainError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
    WorkflowStepError,
)


@pytest.mark.unit
class TestDomainError:
    """Tests for base DomainError."""

    def test_message_and_code(self) -> None:
        err = DomainError("Something failed")
        assert err.message == "Something failed"
        assert err.error_code == "DOMAIN_ERROR"
        assert err.context == {}

    def test_str_without_context(self) -> None:
        assert str(DomainError("Simple failure")) == "Simple failure"

    def test_str_with_context(self) -> None:
        err = DomainError("Failed", context={"a": "1"})
        assert str(err) == "Failed (a=1)"

    def test_repr(self) -> None:
        err = DomainError("Failed", context={"a": "1"})
        assert "DomainError" in repr(err)
        assert "Failed" in repr(err)


@pytest.mark.unit
class TestNotFoundError:
    def test_error_code(self) -> None:
        assert NotFoundError("Profile", "u1").error_code == "RESOURCE_NOT_FOUND"

    def test_message_format(self) -> None:
        err = NotFoundError("Protest", "p-1")
        assert str(err).startswith("Protest not found: p-1")
        assert err.resource_type == "Protest"
        assert err.context["resource_id"] == "p-1"

    def test_extra_context(self) -> None:
        err = NotFoundError("Profile", "u1", source="admin")
        assert err.context["source"] == "admin"


@pytest.mark.unit
class TestValidationError:
    def test_message_and_fields(self) -> None:
        err = ValidationError("email", "Email is required")
        assert err.error_code == "VALIDATION_ERROR"
        assert err.message == "Validation failed for 'email': Email is required"
        assert err.field == "email"
        assert err.reason == "Email is required"
        assert err.context == {"field": "email", "reason": "Email is required"}


@pytest.mark.unit
class TestConflictError:
    def test_message_prefix(self) -> None:
        err = ConflictError("Property already registered", situs_address="1 Main St")
        assert err.message == "Conflict: Property already registered"
        assert err.reason == "Property already registered"
        assert err.context == {"situs_address": "1 Main St"}

    def test_invalid_transition_is_conflict(self) -> None:
        err = InvalidStateTransitionError("Cannot accept without an offer")
        assert isinstance(err, ConflictError)
        assert err.error_code == "INVALID_STATE_TRANSITION"


@pytest.mark.unit
class TestWorkflowStepError:
    def test_step_and_reason(self) -> None:
        err = WorkflowStepError("insert_owner", "connection reset")
        assert err.step == "insert_owner"
        assert err.reason == "connection reset"
        assert str(err) == "Step 'insert_owner' failed: connection reset"
        assert err.error_code == "WORKFLOW_STEP_FAILED"

    def test_not_a_domain_error(self) -> None:
        assert not issubclass(WorkflowStepError, DomainError)
