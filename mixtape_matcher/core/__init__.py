"""
Core module for mixtape-matcher.

This module provides the foundational components used throughout the application:
    - exceptions: Custom exception classes for error handling
    - config: Configuration loading and validation
    - database: Thread-safe SQLite store for the durable cache tier
    - logger: Logging system with multiple outputs
    - pacing: Rate limiting and cancellation for batches

Usage:
    from mixtape_matcher.core import (
        Config, load_config,
        CacheDatabase,
        setup_logging, get_logger,
        MixtapeMatcherError, ConfigError, DatabaseError
    )
"""

from mixtape_matcher.core.config import (
    CacheConfig,
    Config,
    OutputConfig,
    PipelineConfig,
    YouTubeConfig,
    load_config,
)
from mixtape_matcher.core.database import CacheDatabase
from mixtape_matcher.core.exceptions import (
    AllKeysExhausted,
    CacheUnavailable,
    ConfigError,
    DatabaseError,
    DuplicateCacheEntry,
    MixtapeMatcherError,
    QuotaExceeded,
    TransportError,
    YouTubeError,
)
from mixtape_matcher.core.logger import (
    get_logger,
    log_unmatched_track,
    setup_logging,
    shutdown_logging,
)
from mixtape_matcher.core.pacing import CancellationToken, RateLimiter

__all__ = [
    # Config
    "Config",
    "YouTubeConfig",
    "CacheConfig",
    "PipelineConfig",
    "OutputConfig",
    "load_config",
    # Database
    "CacheDatabase",
    # Exceptions
    "MixtapeMatcherError",
    "ConfigError",
    "DatabaseError",
    "CacheUnavailable",
    "DuplicateCacheEntry",
    "YouTubeError",
    "QuotaExceeded",
    "TransportError",
    "AllKeysExhausted",
    # Logger
    "setup_logging",
    "get_logger",
    "log_unmatched_track",
    "shutdown_logging",
    # Pacing
    "RateLimiter",
    "CancellationToken",
]
