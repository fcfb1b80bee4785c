"""
Error taxonomy shared by the proxy and the capture client.
Each error carries the HTTP status it maps to at the request boundary.
"""

import re
from typing import Iterable, Optional

# Google API keys: "AIza" followed by 35 URL-safe characters
API_KEY_PATTERN = re.compile(r"AIza[0-9A-Za-z_\-]{35}")

REDACTED = "[REDACTED]"


def redact_secrets(message: str, secrets: Iterable[str] = ()) -> str:
    """Strip key-shaped substrings and any known secret values from a message."""
    text = str(message)
    for secret in secrets:
        if secret:
            text = text.replace(secret, REDACTED)
    return API_KEY_PATTERN.sub(REDACTED, text)


class ERProxyError(Exception):
    """Base class for all proxy errors."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ERProxyError):
    """Bad or missing request fields."""
    status_code = 400


class ResponseParseError(ERProxyError):
    """Model reply was neither JSON nor JSON inside a fenced block, or had the wrong shape."""
    status_code = 500

    def __init__(self, message: str, raw_text: Optional[str] = None):
        super().__init__(message)
        self.raw_text = raw_text


class InferenceError(ERProxyError):
    """Upstream model call failed."""
    status_code = 500


class TokenIssuanceError(ERProxyError):
    """Ephemeral token could not be issued."""
    status_code = 500
