import pytest

from restaurant_queue.models.mobile import (
    format_mobile_for_display,
    is_valid_mobile,
    normalize_mobile,
)


class TestIsValidMobile:
    @pytest.mark.parametrize("mobile", ["0512345678", "+966512345678", "0599999999"])
    def test_valid(self, mobile):
        assert is_valid_mobile(mobile)

    @pytest.mark.parametrize(
        "mobile",
        ["", "512345678", "0412345678", "05123456789", "966512345678", "+96651234567", "05abcdefgh"],
    )
    def test_invalid(self, mobile):
        assert not is_valid_mobile(mobile)


class TestNormalizeMobile:
    def test_local_to_international(self):
        assert normalize_mobile("0512345678") == "+966512345678"

    def test_international_unchanged(self):
        assert normalize_mobile("+966512345678") == "+966512345678"

    def test_strips_whitespace(self):
        assert normalize_mobile(" 0512345678 ") == "+966512345678"

    def test_invalid_raises(self):
        with pytest.raises(ValueError, match="Invalid mobile number"):
            normalize_mobile("12345")


class TestFormatForDisplay:
    def test_international_to_local(self):
        assert format_mobile_for_display("+966512345678") == "0512345678"

    def test_other_passthrough(self):
        assert format_mobile_for_display("0512345678") == "0512345678"
