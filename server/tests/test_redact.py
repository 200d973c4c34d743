"""Tests for log redaction."""

from polo_core.redact import mask


class TestMask:
    def test_keeps_prefix(self):
        assert mask("GABCDEFGHIJKLMNOP") == "GABCDEFG..."

    def test_short_values_fully_masked(self):
        assert mask("abc") == "***"

    def test_empty(self):
        assert mask(None) == "<none>"
        assert mask("") == "<none>"

    def test_custom_length(self):
        assert mask("pk_live_abcdef", keep=3) == "pk_..."
