"""Tests for customer value objects."""

from __future__ import annotations

import pytest

from taxprotest.foundation.domain.customer_value_objects import Email, PersonName, SitusAddress


@pytest.mark.unit
class TestEmail:
    def test_valid(self) -> None:
        assert Email("a@x.com").value == "a@x.com"

    def test_lower_cased(self) -> None:
        assert Email("Ann.Lee@Example.COM").value == "ann.lee@example.com"

    @pytest.mark.parametrize("raw", ["", "no-at-sign", "a@b", "a b@x.com", " a@x.com"])
    def test_invalid(self, raw: str) -> None:
        with pytest.raises(ValueError):
            Email(raw)

    def test_too_long(self) -> None:
        with pytest.raises(ValueError, match="too long"):
            Email("a" * 250 + "@x.com")

    def test_matches_is_case_insensitive(self) -> None:
        email = Email("Ann@Example.com")
        assert email.matches("ann@example.com")
        assert email.matches("  ANN@EXAMPLE.COM ")
        assert not email.matches("bob@example.com")
        assert not email.matches(None)


@pytest.mark.unit
class TestPersonName:
    def test_full(self) -> None:
        assert PersonName(" Ann ", "Lee").full == "Ann Lee"

    def test_blank_part_rejected(self) -> None:
        with pytest.raises(ValueError, match="Last name"):
            PersonName("Ann", "  ")


@pytest.mark.unit
class TestSitusAddress:
    def test_strips(self) -> None:
        assert SitusAddress("  1 Main St ").value == "1 Main St"

    def test_blank_rejected(self) -> None:
        with pytest.raises(ValueError, match="blank"):
            SitusAddress("   ")

    def test_too_long(self) -> None:
        with pytest.raises(ValueError, match="too long"):
            SitusAddress("x" * 501)
