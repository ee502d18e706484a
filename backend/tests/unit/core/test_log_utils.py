# backend/tests/unit/core/test_log_utils.py
"""Unit tests for log_utils module - log sanitization utilities."""

from hopecare.core.log_utils import mask_email, sanitize_for_log


class TestSanitizeForLog:
    """Tests for the sanitize_for_log function."""

    # ==================== Basic Functionality ====================

    def test_basic_string_passthrough(self) -> None:
        assert sanitize_for_log("alice@example.com") == "alice@example.com"

    def test_none_handling(self) -> None:
        """None should return <None> marker."""
        assert sanitize_for_log(None) == "<None>"

    def test_non_string_conversion(self) -> None:
        assert sanitize_for_log(123) == "123"
        assert sanitize_for_log(True) == "True"

    # ==================== Log Injection Prevention ====================

    def test_newline_escaping(self) -> None:
        """Newlines should be escaped to prevent log forging."""
        result = sanitize_for_log("alice@example.com\nFAILED_LOGIN] ip=1.2.3.4")
        assert "\n" not in result
        assert "\\n" in result

    def test_carriage_return_and_tab_escaping(self) -> None:
        result = sanitize_for_log("a\rb\tc")
        assert result == "a\\rb\\tc"

    def test_backslash_escaped_first(self) -> None:
        """A literal backslash-n must stay distinguishable from an escaped newline."""
        assert sanitize_for_log("a\\nb") == "a\\\\nb"
        assert sanitize_for_log("a\nb") == "a\\nb"

    def test_unicode_line_separators_escaped(self) -> None:
        result = sanitize_for_log("a\u2028b\u2029c")
        assert result == "a\\u2028b\\u2029c"

    def test_control_characters_removed(self) -> None:
        assert sanitize_for_log("a\x00b\x07c\x1bd\x7f") == "abcd"

    # ==================== Terminal / Visual Spoofing ====================

    def test_ansi_sequences_removed(self) -> None:
        assert sanitize_for_log("\x1b[31mred\x1b[0m") == "red"

    def test_bidi_controls_removed(self) -> None:
        assert sanitize_for_log("admin\u202e@evil.com") == "admin@evil.com"

    def test_zero_width_characters_removed(self) -> None:
        assert sanitize_for_log("ad\u200bmin") == "admin"

    # ==================== Length Limits ====================

    def test_truncation(self) -> None:
        result = sanitize_for_log("x" * 500, max_length=50)
        assert len(result) == 50
        assert result.endswith("...[truncated]")

    def test_no_limit(self) -> None:
        assert len(sanitize_for_log("x" * 500, max_length=None)) == 500


class TestMaskEmail:
    def test_long_local_part(self) -> None:
        assert mask_email("alice@example.com") == "ali***@example.com"

    def test_short_local_part(self) -> None:
        assert mask_email("al@example.com") == "a***@example.com"

    def test_empty_local_part(self) -> None:
        assert mask_email("@example.com") == "***@example.com"

    def test_non_email_identifier_is_sanitized(self) -> None:
        assert mask_email("username\nforged") == "username\\nforged"

    def test_empty(self) -> None:
        assert mask_email(None) == "unknown"
        assert mask_email("") == "unknown"

    def test_domain_is_sanitized(self) -> None:
        assert "\n" not in mask_email("alice@example.com\nFAKE")
