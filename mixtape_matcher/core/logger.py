"""
Logging configuration for mixtape-matcher.

This module sets up the logging system with multiple outputs:
    - Console: Real-time messages with tqdm-compatible formatting
    - log_full_{timestamp}.log: Complete log of all events (DEBUG and above)
    - log_errors_{timestamp}.log: Only ERROR and CRITICAL level messages
    - unmatched_tracks_{timestamp}.log: Tracks that could not be resolved

Everything shown on screen is also saved to file, then filtered into
specialized files.

Usage:
    from mixtape_matcher.core.logger import setup_logging, get_logger

    setup_logging(log_dir)  # Call once at startup
    logger = get_logger(__name__)  # Get logger for each module

    logger.info("Starting batch")
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TextIO

from tqdm import tqdm


# Log file name prefixes (created in log_dir/logs)
LOG_FULL_PREFIX = "log_full"
LOG_ERRORS_PREFIX = "log_errors"
UNMATCHED_TRACKS_PREFIX = "unmatched_tracks"

# Log format for file output (detailed with timestamp)
FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class Colors:
    """ANSI color codes for terminal output."""
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"
    BOLD = "\033[1m"


class ColoredConsoleFormatter(logging.Formatter):
    """
    Formatter that colors the level name on console output.

    Colors:
        - DEBUG: Blue
        - INFO: Green
        - WARNING: Yellow
        - ERROR: Red
        - CRITICAL: Bold Red
    """

    LEVEL_COLORS = {
        logging.DEBUG: Colors.BLUE,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BOLD + Colors.RED,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, Colors.WHITE)
        colored_levelname = f"{color}{record.levelname}{Colors.RESET}"
        return f"{colored_levelname}: {record.getMessage()}"


class TqdmLoggingHandler(logging.Handler):
    """
    Logging handler that writes to console without breaking progress bars.

    Uses tqdm.write() so messages appear above any active progress bar
    instead of corrupting it.
    """

    def __init__(self, stream: TextIO = sys.stderr) -> None:
        super().__init__()
        self.stream = stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            tqdm.write(msg, file=self.stream)
        except Exception:
            self.handleError(record)


class UnmatchedTrackHandler(logging.Handler):
    """
    Handler that writes unresolved tracks to the unmatched report file.

    Listens for log records carrying unmatched track information and writes
    them in a simple, human-readable format:

        3-Song Title-Artist Name
        No usable candidates

        7-Another Song-Another Artist
        All API keys exhausted

    The handler looks for these extra fields:
        - 'unmatched_track_name': The track title
        - 'unmatched_track_artist': The artist name
        - 'unmatched_reason': Why the track was not resolved
        - 'unmatched_position': 1-based position in the batch (optional)

    Records without 'unmatched_track_name' are ignored.
    """

    def __init__(self, report_path: Path) -> None:
        super().__init__()
        self.report_path = report_path
        self.report_file: TextIO | None = None

    def open(self) -> None:
        """Open the report file for writing (overwrites existing content)."""
        self.report_file = open(self.report_path, "w", encoding="utf-8")

    def emit(self, record: logging.LogRecord) -> None:
        if not hasattr(record, "unmatched_track_name"):
            return

        if self.report_file is None:
            return

        try:
            track_name = getattr(record, "unmatched_track_name", "Unknown")
            artist = getattr(record, "unmatched_track_artist", "Unknown")
            reason = getattr(record, "unmatched_reason", "")
            position = getattr(record, "unmatched_position", None)

            if position is not None:
                label = f"{position}-{track_name}-{artist}"
            else:
                label = f"{track_name}-{artist}"

            self.report_file.write(f"{label}\n")
            self.report_file.write(f"{reason}\n\n")
            self.report_file.flush()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        """Close the report file handle. Safe to call multiple times."""
        if self.report_file is not None:
            try:
                self.report_file.close()
            except OSError:
                pass
            self.report_file = None
        super().close()


class ErrorOnlyFilter(logging.Filter):
    """Filter that only allows ERROR and CRITICAL level records."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def setup_logging(log_dir: Path, console_level: int = logging.INFO) -> Path:
    """
    Configure the logging system for the application.

    Call ONCE at application startup, after the configuration is loaded.

    Args:
        log_dir: Directory where log files will be created.
                 Logs are stored in a 'logs' subdirectory.
        console_level: Minimum level shown on the console.

    Returns:
        Path of the logs subdirectory.

    Behavior:
        1. Create log_dir/logs if it doesn't exist
        2. Configure root logger level to DEBUG, dropping old handlers
        3. Console handler (TqdmLoggingHandler), colored, console_level
        4. Full log file handler, DEBUG
        5. Error log file handler, filtered to ERROR+
        6. Unmatched tracks report handler
    """
    logs_dir = log_dir / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    console_handler = TqdmLoggingHandler()
    console_handler.setLevel(console_level)
    console_handler.setFormatter(ColoredConsoleFormatter())
    root_logger.addHandler(console_handler)

    full_handler = logging.FileHandler(
        logs_dir / f"{LOG_FULL_PREFIX}_{timestamp}.log", mode="w", encoding="utf-8"
    )
    full_handler.setLevel(logging.DEBUG)
    full_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    root_logger.addHandler(full_handler)

    error_handler = logging.FileHandler(
        logs_dir / f"{LOG_ERRORS_PREFIX}_{timestamp}.log", mode="w", encoding="utf-8"
    )
    error_handler.setLevel(logging.DEBUG)  # Filter handles the level restriction
    error_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    error_handler.addFilter(ErrorOnlyFilter())
    root_logger.addHandler(error_handler)

    unmatched_handler = UnmatchedTrackHandler(
        logs_dir / f"{UNMATCHED_TRACKS_PREFIX}_{timestamp}.log"
    )
    unmatched_handler.open()
    root_logger.addHandler(unmatched_handler)

    # urllib3 retries are noisy at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    return logs_dir


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: The logger name, typically __name__ of the calling module.

    Note:
        Loggers obtained before setup_logging() is called have no handlers
        of their own and propagate to whatever the root logger has.
    """
    return logging.getLogger(name)


def format_matched_message(artist: str, name: str, video_id: str) -> str:
    """Format a 'Matched' message with colors."""
    return (
        f"{Colors.GREEN}Matched{Colors.RESET}: "
        f"{artist} - {name} -> "
        f"{Colors.CYAN}{video_id}{Colors.RESET}"
    )


def format_cache_hit_message(artist: str, name: str) -> str:
    """Format a cache hit message."""
    return f"{Colors.MAGENTA}Cache hit{Colors.RESET}: {artist} - {name}"


def format_no_match_message(artist: str, name: str, reason: str) -> str:
    """Format a 'No match' message with colors."""
    return (
        f"{Colors.RED}No match{Colors.RESET}: "
        f"{artist} - {name} "
        f"({reason})"
    )


def log_unmatched_track(
    logger: logging.Logger,
    track_name: str,
    artist: str,
    reason: str,
    position: int | None = None
) -> None:
    """
    Log a track that could not be resolved.

    Logs a WARNING and attaches the extra fields UnmatchedTrackHandler
    uses to write to unmatched_tracks.log.

    Example:
        log_unmatched_track(
            logger,
            track_name="Song Title",
            artist="Artist Name",
            reason="No usable candidates",
            position=3
        )
    """
    logger.warning(
        format_no_match_message(artist, track_name, reason),
        extra={
            "unmatched_track_name": track_name,
            "unmatched_track_artist": artist,
            "unmatched_reason": reason,
            "unmatched_position": position,
        }
    )


def shutdown_logging() -> None:
    """
    Flush, close and remove all root logger handlers.

    Typically called in a finally block at application exit.
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        try:
            handler.flush()
            handler.close()
        except OSError:
            pass
        root_logger.removeHandler(handler)
