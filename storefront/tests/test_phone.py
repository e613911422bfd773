from storefront.phone import (
    format_phone,
    is_display_phone,
    is_loose_phone,
    normalize_phone,
    phones_match,
)


class TestNormalizePhone:
    def test_display_and_plain_forms_share_digits(self):
        assert normalize_phone("+7 (777) 123-45-67") == normalize_phone("77771234567")
        assert normalize_phone("+7 (777) 123-45-67") == "77771234567"

    def test_empty_and_none(self):
        assert normalize_phone(None) == ""
        assert normalize_phone("") == ""
        assert normalize_phone("+() --") == ""

    def test_idempotent(self):
        once = normalize_phone("8 (701) 234 56 78")
        assert normalize_phone(once) == once

    def test_country_prefixes_are_not_unified(self):
        assert not phones_match("87012345678", "+7 (701) 234-56-78")
        assert phones_match("77012345678", "+7 (701) 234-56-78")

    def test_blank_phones_never_match(self):
        assert not phones_match("", "")
        assert not phones_match(None, "---")


class TestFormatPhone:
    def test_formats_eleven_digits(self):
        assert format_phone("77771234567") == "+7 (777) 123-45-67"
        assert format_phone("8 777 123 45 67") == "+7 (777) 123-45-67"

    def test_formats_ten_digits(self):
        assert format_phone("7771234567") == "+7 (777) 123-45-67"

    def test_other_input_unchanged(self):
        assert format_phone("12345") == "12345"
        assert format_phone("+1 555 0100 2233") == "+1 555 0100 2233"

    def test_patterns(self):
        assert is_display_phone("+7 (777) 123-45-67")
        assert not is_display_phone("77771234567")
        assert is_loose_phone("+7 (777) 123-45-67")
        assert is_loose_phone("8 777 1234567")
        assert not is_loose_phone("call me: 8777")
        assert not is_loose_phone("")
