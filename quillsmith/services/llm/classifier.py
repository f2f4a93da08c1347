"""
Provider error classification.

Completion backends sometimes report failures as ordinary response text
instead of an error status. These helpers recognise such text and map it to
the typed ``AIProviderError`` hierarchy. The patterns are versioned so a
change in provider wording can be tracked alongside the classifier.
"""

import re
from enum import Enum
from typing import Optional

from quillsmith.utils.exceptions import (
    AIProviderError,
    AuthenticationError,
    ProviderRuntimeError,
    UnclassifiedProviderError,
    UsageCapError,
)

CLASSIFIER_VERSION = "1"


class ProviderErrorKind(str, Enum):
    """Category of a provider-reported failure."""
    USAGE_CAP = "usage_cap"
    SERVER_ERROR = "server_error"
    AUTH_ERROR = "authentication"
    UNKNOWN = "unknown"


PASSTHROUGH_PATTERNS = [
    re.compile(r"Interrupted before the model replied", re.IGNORECASE),
    re.compile(r"error: The error above was an exception we were not able to handle", re.IGNORECASE),
]

USAGE_CAP_PATTERNS = [
    re.compile(r"usage limits|quota|limit exceeded|rate limit", re.IGNORECASE),
    re.compile(r"You have reached your specified API usage limits", re.IGNORECASE),
    re.compile(r"regain access on \d{4}-\d{2}-\d{2}", re.IGNORECASE),
    re.compile(r"invalid_request_error.*usage", re.IGNORECASE),
]

AUTH_PATTERNS = [
    re.compile(r"authentication|unauthorized|invalid.*key|api.*key.*invalid", re.IGNORECASE),
]

SERVER_PATTERNS = [
    re.compile(r"500|502|503|504|timeout|server.*error|internal.*error", re.IGNORECASE),
    re.compile(r"network.*error|connection.*error", re.IGNORECASE),
    re.compile(r"Failed to parse response", re.IGNORECASE),
    re.compile(r"Interrupted before the model replied", re.IGNORECASE),
]

RESUME_DATE_PATTERN = re.compile(r"regain access on (\d{4}-\d{2}-\d{2})", re.IGNORECASE)

# Substrings of exception messages that mark a failure as worth retrying
# with the next model.
RECOVERABLE_MARKERS = (
    "Interrupted before the model replied",
    "connection",
    "timeout",
    "rate limit",
    "server error",
    "service unavailable",
)


def _matches(patterns: list[re.Pattern], text: str) -> bool:
    return any(p.search(text) for p in patterns)


def is_provider_error_text(text: str) -> bool:
    """True if a completion response is really a provider error report."""
    return _matches(PASSTHROUGH_PATTERNS, text)


def classify_provider_error(text: str) -> ProviderErrorKind:
    """
    Classify provider error text.

    Usage caps take precedence over authentication, which takes precedence
    over server errors.
    """
    if _matches(USAGE_CAP_PATTERNS, text):
        return ProviderErrorKind.USAGE_CAP
    if _matches(AUTH_PATTERNS, text):
        return ProviderErrorKind.AUTH_ERROR
    if _matches(SERVER_PATTERNS, text):
        return ProviderErrorKind.SERVER_ERROR
    return ProviderErrorKind.UNKNOWN


def extract_resume_date(text: str) -> Optional[str]:
    match = RESUME_DATE_PATTERN.search(text)
    return match.group(1) if match else None


def error_from_text(text: str) -> AIProviderError:
    """Build the typed exception for provider error text."""
    kind = classify_provider_error(text)
    first_line = text.strip().split("\n")[0]

    if kind == ProviderErrorKind.USAGE_CAP:
        resume_date = extract_resume_date(text)
        if resume_date:
            return UsageCapError(
                f"API usage limit reached. Access will be restored on {resume_date}",
                resume_date=resume_date,
            )
        return UsageCapError(first_line)
    if kind == ProviderErrorKind.SERVER_ERROR:
        return ProviderRuntimeError(first_line, details=text[:1000])
    if kind == ProviderErrorKind.AUTH_ERROR:
        return AuthenticationError(first_line, details=text[:1000])
    return UnclassifiedProviderError(
        f"AI provider failed: {first_line}", details=text[:1000]
    )


def is_recoverable(error: Exception) -> bool:
    """Whether a failed attempt should fall through to the next model."""
    if isinstance(error, AIProviderError):
        return error.recoverable
    message = str(error)
    if message.startswith("USAGE_CAP:") or message.startswith("RUNTIME_ERROR:"):
        return True
    return any(marker in message for marker in RECOVERABLE_MARKERS)
