# backend/tests/unit/core/test_security_logger.py
"""
Unit tests for security_logger login guard events.
"""

import logging
from logging.handlers import RotatingFileHandler
from unittest.mock import patch

from hopecare.core.security_logger import SecurityLogger, sanitize, security_log


def test_failed_login_logs_correctly():
    """Test that failed_login logs the correct format for fail2ban."""
    with patch.object(security_log.logger, "info") as mock_info:
        security_log.failed_login("192.168.1.100", "alice@example.com", "BAD_CREDENTIALS")

        mock_info.assert_called_once()
        call_args = mock_info.call_args[0][0]

        assert call_args.startswith("FAILED_LOGIN]")
        assert "ip=192.168.1.100" in call_args
        assert "email=ali***@example.com" in call_args
        assert "reason=BAD_CREDENTIALS" in call_args
        # full address never reaches the log
        assert "alice@example.com" not in call_args


def test_failed_login_sanitizes_ip():
    """Test that failed_login sanitizes malicious IP input."""
    with patch.object(security_log.logger, "info") as mock_info:
        security_log.failed_login("192.168.1.100\n2026-01-01 SECURITY [FAKE", "a@b.c", "X")

        call_args = mock_info.call_args[0][0]
        assert "\n" not in call_args


def test_successful_login_logs_correctly():
    with patch.object(security_log.logger, "info") as mock_info:
        security_log.successful_login("10.0.0.1", "alice@example.com")

        call_args = mock_info.call_args[0][0]
        assert "LOGIN_SUCCESS]" in call_args
        assert "ip=10.0.0.1" in call_args


def test_account_locked_logs_attempts_and_duration():
    with patch.object(security_log.logger, "info") as mock_info:
        security_log.account_locked("alice@example.com", 5, 900)

        call_args = mock_info.call_args[0][0]
        assert "ACCOUNT_LOCKED]" in call_args
        assert "attempts=5" in call_args
        assert "duration=900s" in call_args


def test_lockout_cleared_default_actor():
    with patch.object(security_log.logger, "info") as mock_info:
        security_log.lockout_cleared("alice@example.com")

        call_args = mock_info.call_args[0][0]
        assert "LOCKOUT_CLEARED]" in call_args
        assert "actor=admin" in call_args


def test_rate_limited_truncates_endpoint():
    with patch.object(security_log.logger, "info") as mock_info:
        security_log.rate_limited("10.0.0.1", "/api/v1/auth/login" + "x" * 500)

        call_args = mock_info.call_args[0][0]
        assert "RATE_LIMIT]" in call_args
        assert "...[truncated]" in call_args


def test_sanitize_empty_value():
    assert sanitize(None) == "unknown"
    assert sanitize("   ") == ""
    assert sanitize("") == "unknown"


def test_security_logger_is_singleton():
    assert SecurityLogger() is security_log


def test_security_logger_does_not_propagate():
    assert security_log.logger.name == "security"
    assert security_log.logger.propagate is False


def test_file_handler_format(tmp_path):
    """A fresh logger with a path writes fail2ban-parsable lines."""
    log_file = tmp_path / "logs" / "security.log"

    with (
        patch.object(SecurityLogger, "_instance", None),
        patch.object(SecurityLogger, "_initialized", False),
        patch("hopecare.core.security_logger.logging.getLogger") as mock_get_logger,
    ):
        mock_get_logger.return_value = logging.Logger("security-test")
        instance = SecurityLogger(log_file)
        instance.account_locked("alice@example.com", 5, 900)

        handlers = instance.logger.handlers
        assert any(isinstance(h, RotatingFileHandler) for h in handlers)
        for handler in handlers:
            handler.flush()
            handler.close()

    line = log_file.read_text().strip()
    assert " SECURITY [ACCOUNT_LOCKED] email=ali***@example.com attempts=5 duration=900s" in line


def test_csrf_rejected_logs_path():
    with patch.object(security_log.logger, "info") as mock_info:
        security_log.csrf_rejected("10.0.0.1", "/api/v1/auth/login\nCSRF_REJECTED] ip=1.1.1.1")

        mock_info.assert_called_once()
        call_args = mock_info.call_args[0][0]
        assert call_args.startswith("CSRF_REJECTED]")
        assert "ip=10.0.0.1" in call_args
        assert "path=/api/v1/auth/login" in call_args
        # forged second entry stays on the same line
        assert "\n" not in call_args
