# backend/hopecare/core/log_utils.py
"""Utilities for safe logging of user-supplied identifiers.

Login identifiers arrive straight from request bodies, so anything that ends
up in a log line goes through sanitize_for_log first:
- ANSI escape sequence removal (terminal manipulation)
- Control character neutralization (log injection/forging)
- Bidirectional control and zero-width character stripping (visual spoofing)
- Length limits (log flooding)

WARNING: This sanitizer does NOT prevent format-string injection.
Always use: logger.info("%s", user_input) NOT logger.info(user_input)
"""

from __future__ import annotations

import re
from typing import Any

_ANSI_RE = re.compile(
    r"""
    \x1B
    (?:
        [@-Z\\-_]                          # 7-bit C1 control (Fe)
      | \[ [0-?]* [ -/]* [@-~]             # CSI ... Cmd (ECMA-48)
      | \] (?: [^\x07\x1B]* (?:\x07|\x1B\\))  # OSC ... BEL or ST
    )
    """,
    re.VERBOSE,
)

# Control characters other than \t, \n, \r (those are escaped, not dropped)
_UNSAFE_CTRL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")

_BIDI_RE = re.compile(r"[\u202A-\u202E\u2066-\u2069\u200E\u200F]")

_INVISIBLE_RE = re.compile(r"[\u200B-\u200D\u2060\u00AD]")

_TRUNCATED_SUFFIX = "...[truncated]"


def sanitize_for_log(value: Any, max_length: int | None = 255) -> str:
    """Sanitize a user-controlled value for line-oriented logging.

    Args:
        value: Any value to sanitize (will be converted to string)
        max_length: Maximum output length. None for no limit.

    Returns:
        A single-line string with whitespace escaped and unsafe characters removed.

    Examples:
        >>> sanitize_for_log("alice@example.com\\nFAKE ENTRY")
        'alice@example.com\\\\nFAKE ENTRY'
        >>> sanitize_for_log(None)
        '<None>'
    """
    if value is None:
        return "<None>"

    try:
        text = str(value)
    except Exception:
        return f"<unprintable {type(value).__name__}>"

    text = _ANSI_RE.sub("", text)

    # Backslashes first so the escapes below stay unambiguous
    text = (
        text.replace("\\", "\\\\")
        .replace("\r", "\\r")
        .replace("\n", "\\n")
        .replace("\t", "\\t")
        .replace("\u2028", "\\u2028")
        .replace("\u2029", "\\u2029")
    )

    text = _UNSAFE_CTRL_RE.sub("", text)
    text = _BIDI_RE.sub("", text)
    text = _INVISIBLE_RE.sub("", text)

    if max_length is not None and len(text) > max_length:
        keep = max(0, max_length - len(_TRUNCATED_SUFFIX))
        text = text[:keep] + _TRUNCATED_SUFFIX

    return text


def mask_email(email: str | None) -> str:
    """Mask the local part of an e-mail, keeping the domain for debugging.

    Non e-mail identifiers are only sanitized.
    """
    if not email or "@" not in email:
        return sanitize_for_log(email or "unknown")

    local, domain = email.rsplit("@", 1)
    if len(local) > 3:
        masked_local = local[:3] + "***"
    else:
        masked_local = local[0] + "***" if local else "***"

    return f"{sanitize_for_log(masked_local)}@{sanitize_for_log(domain)}"
