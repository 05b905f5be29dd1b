"""Logging redaction utilities to prevent leaking credentials."""

from urllib.parse import urlsplit, parse_qsl, urlencode, urlunsplit
from typing import Dict
import re

SENSITIVE_KEYS = {
    "api_key", "apikey", "key", "token", "authorization",
    "secret", "password", "auth", "access_token",
    "api-key", "x-api-key", "cx",
}

# Google API keys in path or free text
API_KEY_PATTERNS = [
    r'AIza[0-9A-Za-z_\-]{35}',
    r'(?:api[_-]?key|token)[=:]\s*["\']?([A-Za-z0-9_\-]{20,})["\']?',
]

REDACTED = "***REDACTED***"


def redact_url(url: str) -> str:
    """Redact sensitive query parameters and key-like substrings from a URL."""
    if not url:
        return url

    try:
        parts = urlsplit(url)
        if parts.query:
            params = [
                (k, REDACTED if k.lower() in SENSITIVE_KEYS else v)
                for k, v in parse_qsl(parts.query, keep_blank_values=True)
            ]
            redacted = urlunsplit(parts._replace(query=urlencode(params, safe="*")))
        else:
            redacted = url
    except ValueError:
        redacted = url

    for pattern in API_KEY_PATTERNS:
        redacted = re.sub(pattern, REDACTED, redacted)
    return redacted


def redact_headers(headers: Dict[str, str]) -> Dict[str, str]:
    """Redact sensitive headers."""
    if not headers:
        return headers
    return {
        k: (REDACTED if k.lower() in SENSITIVE_KEYS else v)
        for k, v in headers.items()
    }
