"""Security utilities for Smart Router.

This module provides:
- Redaction of secrets before they reach log output or the terminal:
  database URL passwords, wallet private keys and signatures, and fields
  named like credentials
- Size limits for prompt and context text handed to the analyzer

Wallet addresses are identifiers, not secrets, and are logged as-is.
Request text comes from untrusted agents, so the analyzer only ever sees
text that has passed through ``truncate_input``; it is never logged.
"""

import re
from typing import Any

# Maximum sizes for request text (DoS prevention)
MAX_PROMPT_LENGTH = 200_000
MAX_CONTEXT_LENGTH = 400_000

REDACTED = "<REDACTED>"

# Key names (or ``_``-suffixes of key names) whose values are never logged
SENSITIVE_FIELD_NAMES = frozenset(
    {
        "password",
        "passwd",
        "secret",
        "api_key",
        "access_token",
        "auth_token",
        "authorization",
        "private_key",
        "mnemonic",
        "seed_phrase",
        "signature",
        "payment_proof",
    }
)

# user:password@ in a URL such as postgresql://router:pw@db/smart_router
_URL_PASSWORD = re.compile(r"(?P<head>[a-z][a-z0-9+.\-]*://[^/\s:@]+:)[^/\s@]+@", re.IGNORECASE)

# 32-byte keys and 65-byte signatures in hex; 20-byte wallet addresses stay visible
_HEX_SECRET = re.compile(r"^(0x)?([0-9a-f]{64}|[0-9a-f]{130})$", re.IGNORECASE)


def redact_url_password(url: str) -> str:
    """Replace the password of any credentialed URL in ``url`` with ``***``.

    Example:
        >>> redact_url_password("postgresql://router:hunter2@db:5432/smart_router")
        'postgresql://router:***@db:5432/smart_router'
    """
    return _URL_PASSWORD.sub(r"\g<head>***@", url)


def mask_secret(value: str, visible_chars: int = 4) -> str:
    """Mask key material, keeping a ``0x`` prefix and the last characters.

    Example:
        >>> mask_secret("0x" + "ab" * 32)
        '0x...abab'
    """
    if not value:
        return "<empty>"
    if len(value) <= visible_chars + 4:
        return "*" * len(value)
    prefix = "0x" if value[:2].lower() == "0x" else ""
    return f"{prefix}...{value[-visible_chars:]}"


def is_sensitive_field(field_name: str) -> bool:
    """Check if a key names a credential.

    Matches whole names and ``_``-suffixes (``db_password``, ``OPENAI_API_KEY``)
    so counters like ``estimated_tokens`` are left alone.
    """
    if not field_name:
        return False
    name = field_name.lower().replace("-", "_")
    return any(name == s or name.endswith(f"_{s}") for s in SENSITIVE_FIELD_NAMES)


def is_sensitive_value(value: Any) -> bool:
    """Check if a value is key material or carries a URL password."""
    if not isinstance(value, str):
        return False
    return bool(_HEX_SECRET.match(value) or _URL_PASSWORD.search(value))


def redact_value(value: str) -> str:
    """Loggable form of a string value."""
    if _HEX_SECRET.match(value):
        return mask_secret(value)
    return redact_url_password(value)


def sanitize_for_logging(data: dict[str, Any]) -> dict[str, Any]:
    """Create a copy of data with sensitive values masked, recursing into dicts.

    Example:
        >>> sanitize_for_logging({"password": "pw", "wallet": "0xabc"})
        {'password': '<REDACTED>', 'wallet': '0xabc'}
    """
    result = {}
    for key, value in data.items():
        if is_sensitive_field(key):
            result[key] = REDACTED
        elif isinstance(value, str) and is_sensitive_value(value):
            result[key] = redact_value(value)
        elif isinstance(value, dict):
            result[key] = sanitize_for_logging(value)
        else:
            result[key] = value
    return result


def truncate_input(text: str | None, max_length: int) -> str:
    """Bound request text before analysis.

    ``None`` becomes the empty string; text longer than ``max_length`` is cut.
    No suffix is appended because the analyzer counts characters.
    """
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    return text[:max_length]
