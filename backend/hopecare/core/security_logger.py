# backend/hopecare/core/security_logger.py
"""
Dedicated security logger for fail2ban integration.

Writes login guard events in a format that fail2ban can parse.
User-controlled fields are sanitized and e-mails are masked.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from hopecare.core.config import settings
from hopecare.core.log_utils import mask_email, sanitize_for_log


def sanitize(value: str | None, max_length: int = 255) -> str:
    """Sanitize a field value, mapping empty input to "unknown"."""
    if not value:
        return "unknown"
    return sanitize_for_log(str(value).strip(), max_length=max_length)


class SecurityLogger:
    """
    Thread-safe security event logger for fail2ban integration.

    Log format compatible with fail2ban datepattern:
        2026-01-05 10:15:30 SECURITY [EVENT_TYPE] ip=x.x.x.x field=value ...

    When no log path is configured, events still go to the "security" logger
    but no file handler is attached.
    """

    _instance = None
    _initialized = False

    def __new__(cls, log_path: Path | None = None):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, log_path: Path | None = None):
        if SecurityLogger._initialized:
            return

        self.logger = logging.getLogger("security")
        self.logger.setLevel(logging.INFO)
        self.logger.propagate = False

        if log_path is not None:
            log_path.parent.mkdir(parents=True, exist_ok=True)

            # Rotating file handler: 50MB max, keep 10 backups
            handler = RotatingFileHandler(
                str(log_path),
                maxBytes=50 * 1024 * 1024,
                backupCount=10,
            )
            # The message carries the closing bracket: EVENT_TYPE] ip=...
            handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s SECURITY [%(message)s",
                    datefmt="%Y-%m-%d %H:%M:%S",
                )
            )
            self.logger.addHandler(handler)
        else:
            self.logger.addHandler(logging.NullHandler())

        SecurityLogger._initialized = True

    def failed_login(self, ip: str, email: str, reason: str) -> None:
        """
        Log a failed login attempt.

        Args:
            ip: Client IP address
            email: Identifier that was attempted
            reason: BAD_CREDENTIALS, ACCOUNT_LOCKED, ...
        """
        self.logger.info(
            f"FAILED_LOGIN] ip={sanitize(ip)} email={mask_email(email)} reason={sanitize(reason)}"
        )

    def successful_login(self, ip: str, email: str) -> None:
        self.logger.info(f"LOGIN_SUCCESS] ip={sanitize(ip)} email={mask_email(email)}")

    def account_locked(self, email: str, failed_attempts: int, lockout_seconds: int) -> None:
        """
        Log the transition of an identifier into a lockout window.

        Args:
            email: Locked identifier
            failed_attempts: Consecutive failures that triggered the lockout
            lockout_seconds: Length of the lockout window
        """
        self.logger.info(
            f"ACCOUNT_LOCKED] email={mask_email(email)} attempts={int(failed_attempts)} "
            f"duration={int(lockout_seconds)}s"
        )

    def lockout_cleared(self, email: str, actor: str = "admin") -> None:
        self.logger.info(f"LOCKOUT_CLEARED] email={mask_email(email)} actor={sanitize(actor)}")

    def rate_limited(self, ip: str, endpoint: str) -> None:
        self.logger.info(
            f"RATE_LIMIT] ip={sanitize(ip)} endpoint={sanitize(endpoint, max_length=100)}"
        )

    def csrf_rejected(self, ip: str, path: str) -> None:
        """
        Log a state-changing request whose CSRF header did not match its cookie.

        Args:
            ip: Client IP address
            path: Request path
        """
        self.logger.info(f"CSRF_REJECTED] ip={sanitize(ip)} path={sanitize(path, max_length=100)}")


# Singleton instance for easy import
security_log = SecurityLogger(settings.SECURITY_LOG_PATH)
