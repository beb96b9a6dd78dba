"""Credential redaction for config output and failure reasons.

Provider and Shopify credentials live in the same config tree that
`trackmaster config show` prints, and storefront error bodies sometimes
echo request headers back. Both pass through here before they reach a
terminal or the failure ledger.
"""

import re
from typing import Any

# Substrings matched case-insensitively against mapping keys
SENSITIVE_KEY_PATTERNS = frozenset({
    "api_key", "access_token", "token", "secret", "password", "authorization",
})

REDACTED = "***REDACTED***"


def _is_sensitive_key(key: str, patterns: frozenset[str]) -> bool:
    key_lower = key.lower()
    return any(pattern in key_lower for pattern in patterns)


def redact_for_logging(
    obj: dict[str, Any],
    patterns: frozenset[str] = SENSITIVE_KEY_PATTERNS,
) -> dict[str, Any]:
    """Return a copy of a mapping with credential values replaced.

    Empty values are left alone so an unset credential still reads as unset.
    Nested mappings and lists of mappings are handled recursively.

    Args:
        obj: Mapping to redact. Not mutated.
        patterns: Key substrings whose values are hidden.

    Returns:
        New dict with sensitive values replaced by REDACTED.
    """
    redacted: dict[str, Any] = {}
    for key, value in obj.items():
        if _is_sensitive_key(str(key), patterns) and value:
            redacted[key] = REDACTED
        elif isinstance(value, dict):
            redacted[key] = redact_for_logging(value, patterns)
        elif isinstance(value, list):
            redacted[key] = [
                redact_for_logging(item, patterns) if isinstance(item, dict) else item
                for item in value
            ]
        else:
            redacted[key] = value
    return redacted


_SENSITIVE_KEYWORDS = r"api_key|access_token|token|secret|password"
_SENSITIVE_VALUE_PATTERNS = re.compile(
    r"(?i)"
    r"(?:"
    # Authorization: Bearer <token>
    r"Authorization\s*:\s*Bearer\s+\S+"
    r"|"
    # X-Shopify-Access-Token: <token>
    r"X-Shopify-Access-Token\s*:\s*\S+"
    r"|"
    # "key": "value"
    r'"(?:' + _SENSITIVE_KEYWORDS + r')"\s*:\s*"[^"]*"'
    r"|"
    # key=value
    r"\b(?:" + _SENSITIVE_KEYWORDS + r")\s*=\s*[^\s&]+"
    r")",
)


def sanitize_error_message(msg: str | None, max_length: int = 2000) -> str | None:
    """Redact credential-looking fragments and truncate a free-text message.

    Args:
        msg: Message to sanitize (None passes through).
        max_length: Maximum length of the result.

    Returns:
        Sanitized message, or None.
    """
    if msg is None:
        return None
    sanitized = _SENSITIVE_VALUE_PATTERNS.sub(REDACTED, msg)
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length - 3] + "..."
    return sanitized
