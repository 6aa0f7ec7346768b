"""
Exception classes for mixtape-matcher.

This module defines all custom exceptions used throughout the application.
Each exception carries a human-readable message plus an optional details
dictionary so failures can be logged with context.

Exception Hierarchy:
    MixtapeMatcherError (base)
        ConfigError - Configuration file issues
        DatabaseError - Durable cache store issues
            CacheUnavailable - Durable tier failed at runtime (degrade, continue)
            DuplicateCacheEntry - Concurrent insert of an existing key (ignored)
        YouTubeError - Search provider issues
            QuotaExceeded - Active API key reported quota exhaustion
            TransportError - Network/HTTP failure unrelated to quota
            AllKeysExhausted - Every configured key reported quota exhaustion

Propagation:
    Only ConfigError and DatabaseError raised during startup are fatal.
    Everything raised while resolving a single track is handled inside the
    resolver or pipeline and turns into an unmatched track.
"""


class MixtapeMatcherError(Exception):
    """
    Base exception for all mixtape-matcher errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (e.g., track info, URLs).

    Example:
        try:
            resolver.resolve(query)
        except MixtapeMatcherError as e:
            logger.error(f"Operation failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description that will be shown to the user.
            details: Optional dictionary containing additional context about the error.
                     Common keys include:
                     - 'query': The search query involved in the error
                     - 'url': URL that caused the error
                     - 'original_error': The underlying exception if wrapping another error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(MixtapeMatcherError):
    """
    Raised when there's an issue with the configuration file.

    This is a CRITICAL error that should stop program execution.

    Common causes:
        - Explicit config path does not exist
        - config.yaml has invalid YAML syntax
        - Invalid field values (e.g., negative delay, unknown throttle scope)

    Example:
        raise ConfigError(
            "'pipeline.delay_ms' must be a non-negative integer",
            details={'field': 'pipeline.delay_ms', 'value': -5}
        )
    """
    pass


class DatabaseError(MixtapeMatcherError):
    """
    Raised when the durable cache database cannot be opened or has
    an unexpected schema.

    This is a CRITICAL error at startup. At runtime the narrower
    CacheUnavailable subclass is used instead and is never fatal.
    """
    pass


class CacheUnavailable(DatabaseError):
    """
    Raised when a read or write against the durable cache tier fails.

    NON-CRITICAL: the cache store logs it and continues with the
    in-memory tier only. Resolution proceeds to a live provider search.
    """
    pass


class DuplicateCacheEntry(DatabaseError):
    """
    Raised when inserting a cache row whose (artist, track) key already exists.

    This is the expected outcome of two writers racing to cache the same
    track and is silently treated as success by the cache store.
    """
    pass


class YouTubeError(MixtapeMatcherError):
    """
    Raised when there's an issue talking to a YouTube search provider.

    This is a NON-CRITICAL error - the pipeline continues with other
    tracks if one fails to resolve.
    """
    pass


class QuotaExceeded(YouTubeError):
    """
    Raised when the YouTube Data API reports quota exhaustion for the active key.

    Triggers key rotation in the resolver.

    Attributes:
        key_position: 1-based slot of the key that was exhausted, if known.

    Example:
        raise QuotaExceeded(
            "Quota exceeded",
            details={'reason': 'quotaExceeded', 'status_code': 403},
            key_position=2
        )
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        key_position: int | None = None
    ) -> None:
        super().__init__(message, details)
        self.key_position = key_position


class TransportError(YouTubeError):
    """
    Raised for network or HTTP failures that are not quota related.

    Not retried within the same query.

    Attributes:
        status_code: HTTP status code, or None for connection-level failures.
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        status_code: int | None = None
    ) -> None:
        super().__init__(message, details)
        self.status_code = status_code


class AllKeysExhausted(YouTubeError):
    """
    Raised when no API key remains to retry a quota-exceeded search.

    Terminal for the current query only; the batch continues.
    """
    pass
