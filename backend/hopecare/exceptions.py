import math


class LoginGuardError(Exception):
    """Base exception for login guard policy rejections."""

    pass


class AccountLockedError(LoginGuardError):
    """Raised when an identifier is inside an active lockout window."""

    default_message = "Account temporarily locked. Please try again later."

    def __init__(
        self,
        identifier: str,
        retry_after_seconds: int | None = None,
        message: str | None = None,
    ):
        self.identifier = identifier
        self.retry_after_seconds = retry_after_seconds
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def retry_after_minutes(self) -> int | None:
        if self.retry_after_seconds is None:
            return None
        return max(1, math.ceil(self.retry_after_seconds / 60))
