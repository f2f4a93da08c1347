"""
Custom exceptions for Quillsmith.

All application-specific exceptions inherit from QuillsmithError.
"""

from typing import Optional


class QuillsmithError(Exception):
    """Base exception for all Quillsmith errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[str] = None,
        recoverable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__.upper()
        self.details = details
        self.recoverable = recoverable

    def to_dict(self, safe: bool = False) -> dict:
        """Convert exception to dictionary for reports and batch results.

        Args:
            safe: If True, omit internal details.
        """
        result = {
            "error": {
                "code": self.code,
                "message": self.message,
                "recoverable": self.recoverable,
            }
        }
        if not safe and self.details:
            result["error"]["details"] = self.details
        return result


class ConfigError(QuillsmithError):
    """Invalid or inconsistent configuration."""
    pass


# --- Store Errors ---

class StoreError(QuillsmithError):
    """Errors related to the content record store."""
    pass


class StoreIOError(StoreError):
    """The store file could not be read, parsed or written."""

    def __init__(self, path: str, reason: str, details: Optional[str] = None):
        super().__init__(
            message=f"Content store I/O failed for {path}: {reason}",
            code="STORE_IO_ERROR",
            details=details,
            recoverable=False,
        )
        self.path = path


class EntryNotFoundError(StoreError):
    """No record exists for the requested document."""

    def __init__(self, path: str):
        super().__init__(
            message=f"Content not found in database: {path}",
            code="ENTRY_NOT_FOUND",
            details=f"Path: {path}",
            recoverable=False,
        )
        self.path = path


class AlreadyReviewedError(StoreError):
    """The document has already been scored once."""

    def __init__(self, path: str, status: str):
        super().__init__(
            message=f"Content has already been reviewed: {path}",
            code="ALREADY_REVIEWED",
            details=f"Current status: {status}",
            recoverable=False,
        )
        self.path = path
        self.status = status


# --- Scan Errors ---

class ScanError(QuillsmithError):
    """Content discovery failed."""

    def __init__(self, directory: str, reason: str):
        super().__init__(
            message=f"Content directory not available: {directory}",
            code="SCAN_ERROR",
            details=reason,
            recoverable=False,
        )
        self.directory = directory


# --- AI Provider Errors ---

class AIProviderError(QuillsmithError):
    """Errors reported by the text-completion capability."""
    pass


class UsageCapError(AIProviderError):
    """The provider refused the request because a usage cap was reached."""

    def __init__(self, message: str, resume_date: Optional[str] = None):
        details = f"Access resumes on {resume_date}" if resume_date else None
        super().__init__(
            message=f"USAGE_CAP: {message}",
            code="USAGE_CAP",
            details=details,
            recoverable=True,
        )
        self.resume_date = resume_date


class ProviderRuntimeError(AIProviderError):
    """Transient provider failure: timeouts, connection loss, 5xx."""

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(
            message=f"RUNTIME_ERROR: {message}",
            code="RUNTIME_ERROR",
            details=details,
            recoverable=True,
        )


class AuthenticationError(AIProviderError):
    """The provider rejected the credentials."""

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(
            message=f"AUTH_ERROR: {message}",
            code="AUTH_ERROR",
            details=details,
            recoverable=False,
        )


class UnclassifiedProviderError(AIProviderError):
    """A provider error that matched no known signature."""

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(
            message=message,
            code="PROVIDER_ERROR",
            details=details,
            recoverable=False,
        )


# --- Content Integrity Errors ---

class ContentIntegrityError(QuillsmithError):
    """The improved text failed an integrity check."""
    pass


class EmptyOutputError(ContentIntegrityError):
    """The provider returned nothing usable."""

    def __init__(self, model: Optional[str] = None):
        super().__init__(
            message="AI returned empty content",
            code="EMPTY_OUTPUT",
            details=f"Model: {model}" if model else None,
            recoverable=False,
        )


class SuspiciouslyShortOutputError(ContentIntegrityError):
    """The improved text is far shorter than the original."""

    def __init__(self, original_length: int, final_length: int, ratio: float):
        super().__init__(
            message=(
                f"AI returned suspiciously short content "
                f"({final_length} chars vs original {original_length} chars)"
            ),
            code="SUSPICIOUSLY_SHORT_OUTPUT",
            details=f"Length ratio: {ratio:.2f}",
            recoverable=False,
        )
        self.original_length = original_length
        self.final_length = final_length
        self.ratio = ratio


class ChunkImprovementError(ContentIntegrityError):
    """Improving one chunk of a large document failed."""

    def __init__(self, index: int, total: int, cause: Exception):
        super().__init__(
            message=f"Failed to improve chunk {index + 1}/{total}: {cause}",
            code="CHUNK_IMPROVEMENT_ERROR",
            recoverable=getattr(cause, "recoverable", False),
        )
        self.index = index
        self.cause = cause
