"""Tests for shared utilities."""

from callback_queue.utils import is_dialable_phone, normalize_phone


class TestNormalizePhone:
    def test_strips_formatting(self):
        assert normalize_phone("(555) 123-4567") == "5551234567"

    def test_keeps_leading_plus(self):
        assert normalize_phone("+1 (555) 123-4567") == "+15551234567"

    def test_strips_whitespace(self):
        assert normalize_phone("  0412 345 678  ") == "0412345678"

    def test_empty_string(self):
        assert normalize_phone("") == ""


class TestDialablePhone:
    def test_full_number(self):
        assert is_dialable_phone("+1 (555) 123-4567")

    def test_too_short(self):
        assert not is_dialable_phone("+1 23")

    def test_letters_only(self):
        assert not is_dialable_phone("call me maybe")
