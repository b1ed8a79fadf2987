"""Tests for shared/validation.py."""

import pytest

from shared.exceptions import ValidationError
from shared.validation import (
    PASSWORD_RULES_MESSAGE,
    check_otp_code,
    check_password_strength,
    is_blank,
    is_strong_password,
    is_valid_email,
    is_valid_phone,
    is_valid_zip_code,
    require_fields,
)


class TestPredicates:
    @pytest.mark.parametrize("email", ["user@example.com", "a.b+c@shop.co.uk"])
    def test_valid_emails(self, email):
        """Well-formed emails should pass."""
        assert is_valid_email(email)

    @pytest.mark.parametrize("email", ["", "user", "user@", "user@example", "us er@example.com"])
    def test_invalid_emails(self, email):
        """Malformed emails should fail."""
        assert not is_valid_email(email)

    @pytest.mark.parametrize(
        "password,expected",
        [
            ("SecurePass123", True),
            ("Abcdefg1", True),
            ("Abc1", False),
            ("alllowercase1", False),
            ("ALLUPPERCASE1", False),
            ("NoDigitsHere", False),
        ],
    )
    def test_password_strength(self, password, expected):
        """Passwords need 8+ chars with upper, lower and a digit."""
        assert is_strong_password(password) is expected

    @pytest.mark.parametrize("phone", ["+1234567890", "(555) 123-4567", "+1-555-1234567"])
    def test_valid_phones(self, phone):
        """Common phone formats should pass."""
        assert is_valid_phone(phone)

    @pytest.mark.parametrize("phone", ["", "phone", "12-34-56-78-90-12"])
    def test_invalid_phones(self, phone):
        """Non-numeric or over-segmented numbers should fail."""
        assert not is_valid_phone(phone)

    @pytest.mark.parametrize(
        "zip_code,expected",
        [("10001", True), ("110001", True), ("10001-1234", True), ("1000", False), ("ABCDE", False)],
    )
    def test_zip_codes(self, zip_code, expected):
        """Zip codes are 5 or 6 digits with an optional +4 suffix."""
        assert is_valid_zip_code(zip_code) is expected

    @pytest.mark.parametrize("value,expected", [(None, True), ("", True), ("   ", True), ("x", False), (0, False)])
    def test_is_blank(self, value, expected):
        """is_blank should treat None and whitespace as blank."""
        assert is_blank(value) is expected


class TestChecks:
    def test_require_fields_reports_first_missing(self):
        """require_fields should name the first missing field."""
        with pytest.raises(ValidationError) as exc_info:
            require_fields({"email": "a@b.co", "password": "  "}, ["email", "password", "first_name"])
        assert exc_info.value.field == "password"
        assert exc_info.value.message == "password is required"

    def test_require_fields_passes(self):
        """require_fields should accept complete input."""
        require_fields({"email": "a@b.co"}, ["email"])

    def test_password_check_uses_rules_message(self):
        """Weak passwords should be rejected with the rules message."""
        with pytest.raises(ValidationError) as exc_info:
            check_password_strength("weak", field="new_password")
        assert exc_info.value.message == PASSWORD_RULES_MESSAGE
        assert exc_info.value.field == "new_password"

    @pytest.mark.parametrize("code", ["12345", "1234567", "abcdef", ""])
    def test_otp_must_be_six_digits(self, code):
        """OTP codes must be exactly six digits."""
        with pytest.raises(ValidationError) as exc_info:
            check_otp_code(code)
        assert exc_info.value.message == "OTP must be 6 digits"

    def test_otp_accepted(self):
        """A six-digit code should be returned unchanged."""
        assert check_otp_code("123456") == "123456"
