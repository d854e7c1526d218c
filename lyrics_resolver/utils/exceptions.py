"""
Exception classes for lyrics-resolver.

This module defines the custom exceptions used throughout the engine.
Most "nothing found" situations are NOT exceptions here: adapters return
a ProviderFailure value, the resolver returns NotFound and verification
falls back to an unverified outcome. Exceptions are reserved for caller
errors (an empty query), broken configuration and failures inside an
adapter that the adapter boundary converts into a ProviderFailure.

Exception Hierarchy:
    LyricsResolverError (base)
        ConfigError - Configuration file or value issues
        InvalidQueryError - Empty or malformed (artist, title) pair
        ProviderError - One provider call did not produce lyrics
            RateLimitedError - Provider answered "too many requests"
        CacheUnavailableError - Durable cache tier read/write failure
        VerificationError - A verifier could not complete its check
"""

from enum import Enum
from typing import Any, Dict, Optional


class FailureReason(Enum):
    """
    Why a provider call did not produce a usable candidate.

    The values are stable strings so they can be logged, serialized and
    compared from configuration or tests.
    """
    NOT_CONFIGURED = "not_configured"        # Missing credential or optional library
    NOT_FOUND = "not_found"                  # Provider answered but had no match
    TOO_SHORT = "too_short"                  # Payload below the viability threshold
    INVALID_CONTENT = "invalid_content"      # Error page, meta text, too few lines
    HTTP_ERROR = "http_error"                # Non-2xx response
    RATE_LIMITED = "rate_limited"            # 429 even after the single retry
    TIMEOUT = "timeout"                      # Provider-level request timeout
    NETWORK_ERROR = "network_error"          # Connection or transport failure
    DEADLINE_EXCEEDED = "deadline_exceeded"  # Abandoned by the fan-out deadline
    ERROR = "error"                          # Any other unexpected exception


class LyricsResolverError(Exception):
    """
    Base exception for all lyrics-resolver errors.

    Attributes:
        message: Human-readable error description.
        details: Dictionary with additional context (provider, query, status code).

    Example:
        try:
            query = Query(artist, title)
        except LyricsResolverError as e:
            logger.error(f"Invalid request: {e.message}")
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class ConfigError(LyricsResolverError):
    """
    Raised when the configuration file cannot be read or holds invalid values.

    Example:
        raise ConfigError(
            "Invalid priority tier entry in config.yaml",
            details={'entry': {'match': 'genius'}}
        )
    """
    pass


class InvalidQueryError(LyricsResolverError):
    """Raised when a Query is built from an empty artist or title."""
    pass


class ProviderError(LyricsResolverError):
    """
    Raised inside a provider adapter when a call fails.

    Never escapes BaseLyricsProvider.fetch(): the adapter boundary turns it
    into a ProviderFailure carrying the same reason.

    Attributes:
        reason: FailureReason classifying the failure.
        status_code: HTTP status when the failure came from a response.
    """

    def __init__(
        self,
        message: str,
        reason: FailureReason = FailureReason.ERROR,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(message, details)
        self.reason = reason
        self.status_code = status_code


class RateLimitedError(ProviderError):
    """
    Raised when a provider signals "too many requests".

    The adapter backs off briefly and retries once; only the adapter that
    hit the limit waits, the other concurrent calls are unaffected.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = 429,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(message, FailureReason.RATE_LIMITED, status_code, details)


class CacheUnavailableError(LyricsResolverError):
    """
    Raised by a durable store when a read or write fails.

    The cache layer catches it, logs a warning and carries on with the
    fast tier only. It never fails a resolution.
    """
    pass


class VerificationError(LyricsResolverError):
    """Raised by a verifier client when the knowledge source call fails."""
    pass
