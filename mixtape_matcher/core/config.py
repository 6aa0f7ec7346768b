"""
Configuration management for mixtape-matcher.

This module handles loading, validating, and providing access to the
application configuration stored in config.yaml, plus the YouTube API
keys supplied through the environment.

The configuration file contains:
    - YouTube Data API settings and an optional list of API keys
    - Fallback mirror (Invidious) endpoints
    - Durable cache database location and lookup mode
    - Batch pipeline pacing
    - Log directory

Configuration File Location:
    config.yaml is read from the current working directory when present.
    If it is missing, defaults are used. An explicitly passed path must exist.

API Keys:
    Keys are collected in this order, duplicates dropped:
        1. youtube.api_keys from config.yaml
        2. YOUTUBE_API_KEY_1 .. YOUTUBE_API_KEY_10 environment variables
        3. YOUTUBE_API_KEY (legacy single-key format), only when no
           numbered slot is set
    A .env file in the working directory is loaded with python-dotenv.

Example config.yaml:
    youtube:
      api_keys: []
      request_timeout: 10
      mirrors:
        - "https://invidious.fdn.fr"
      mirror_timeout: 5
      use_mirrors: true

    cache:
      database: "~/.mixtape-matcher/cache.db"
      substring_lookup: false

    pipeline:
      delay_ms: 100
      throttle_scope: "provider"   # or "all"

    output:
      log_directory: "~/.mixtape-matcher"
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv

from mixtape_matcher.core.exceptions import ConfigError


# Default configuration file name (looked up in current working directory)
CONFIG_FILENAME = "config.yaml"

YOUTUBE_API_BASE = "https://www.googleapis.com/youtube/v3"

# Public Invidious instances, tried in order until one answers
DEFAULT_MIRRORS = (
    "https://invidious.fdn.fr",
    "https://inv.riverside.rocks",
    "https://invidious.slipfox.xyz",
    "https://invidious.protokolla.fi",
    "https://iv.ggtyler.dev",
)

# Numbered key slots: YOUTUBE_API_KEY_1 .. YOUTUBE_API_KEY_10
API_KEY_ENV_PREFIX = "YOUTUBE_API_KEY_"
API_KEY_ENV_LEGACY = "YOUTUBE_API_KEY"
MAX_API_KEY_SLOTS = 10

DEFAULT_HOME = "~/.mixtape-matcher"

THROTTLE_SCOPES = ("provider", "all")


@dataclass(frozen=True)
class YouTubeConfig:
    """
    YouTube search provider configuration.

    Attributes:
        api_keys: Ordered tuple of Data API keys. May be empty, in which case
                  only the mirror pool is used.
        api_base: Base URL of the Data API.
        request_timeout: Timeout in seconds for Data API calls.
        mirrors: Ordered tuple of mirror base URLs.
        mirror_timeout: Independent timeout in seconds for each mirror.
        use_mirrors: Whether the mirror pool is used as fallback.
    """
    api_keys: tuple[str, ...]
    api_base: str
    request_timeout: float
    mirrors: tuple[str, ...]
    mirror_timeout: float
    use_mirrors: bool


@dataclass(frozen=True)
class CacheConfig:
    """
    Durable cache configuration.

    Attributes:
        database: Path of the SQLite file backing the durable tier.
        substring_lookup: Match stored rows containing the query artist/track
                          instead of exact normalized equality. Off by default
                          because it can return false hits ("Love" matching
                          "I Love You").
    """
    database: Path
    substring_lookup: bool


@dataclass(frozen=True)
class PipelineConfig:
    """
    Batch pipeline pacing.

    Attributes:
        delay_ms: Minimum interval between paced calls, in milliseconds.
        throttle_scope: "provider" paces only live provider calls,
                        "all" paces every query including cache hits.
    """
    delay_ms: int
    throttle_scope: str


@dataclass(frozen=True)
class OutputConfig:
    """
    Output configuration.

    Attributes:
        log_directory: Directory that receives the logs/ subdirectory.
    """
    log_directory: Path


@dataclass(frozen=True)
class Config:
    """
    Complete application configuration.

    Created by load_config() and treated as immutable.

    Example:
        config = load_config()
        print(f"{len(config.youtube.api_keys)} key(s) loaded")
    """
    youtube: YouTubeConfig
    cache: CacheConfig
    pipeline: PipelineConfig
    output: OutputConfig


def load_config(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None
) -> Config:
    """
    Load and validate configuration from config.yaml and the environment.

    Args:
        config_path: Optional explicit path to config file.
                     If None, looks for config.yaml in current working directory
                     and falls back to defaults when it is absent.
        environ: Environment mapping used for API key slots. Defaults to
                 os.environ after loading .env.

    Returns:
        Config: A frozen dataclass containing all configuration values.

    Raises:
        ConfigError: If an explicit config file is not found, has invalid YAML
                     syntax, or contains invalid values.

    Thread Safety:
        Call once at application startup, before any threads are created.
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    raw_config = _read_config_file(config_path)

    youtube_section = _get_section(raw_config, "youtube")
    cache_section = _get_section(raw_config, "cache")
    pipeline_section = _get_section(raw_config, "pipeline")
    output_section = _get_section(raw_config, "output")

    return Config(
        youtube=_parse_youtube_config(youtube_section, environ),
        cache=_parse_cache_config(cache_section),
        pipeline=_parse_pipeline_config(pipeline_section),
        output=_parse_output_config(output_section),
    )


def _read_config_file(config_path: Path | None) -> dict[str, Any]:
    """Read config.yaml into a dict; an absent default file yields {}."""
    explicit = config_path is not None
    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILENAME

    if not config_path.exists():
        if explicit:
            raise ConfigError(
                f"Configuration file not found: {config_path}",
                details={"file_path": str(config_path)}
            )
        return {}

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()
    except IOError as e:
        raise ConfigError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    try:
        raw_config = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML syntax in configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    # Empty file
    if raw_config is None:
        return {}

    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(config_path)}
        )

    return raw_config


def _get_section(raw_config: dict[str, Any], name: str) -> dict[str, Any]:
    section = raw_config.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(
            f"Section '{name}' must be a dictionary",
            details={"section": name}
        )
    return section


def load_api_keys(environ: Mapping[str, str]) -> list[str]:
    """
    Collect API keys from numbered environment slots.

    Args:
        environ: Environment mapping.

    Returns:
        Keys from YOUTUBE_API_KEY_1..10 in slot order. If none are set,
        a single-element list with YOUTUBE_API_KEY, or an empty list.

    Example:
        load_api_keys({"YOUTUBE_API_KEY_1": "a", "YOUTUBE_API_KEY_3": "c"})
        -> ["a", "c"]
    """
    keys = []
    for slot in range(1, MAX_API_KEY_SLOTS + 1):
        key = environ.get(f"{API_KEY_ENV_PREFIX}{slot}", "").strip()
        if key:
            keys.append(key)

    # Fallback to old single key format
    if not keys:
        legacy = environ.get(API_KEY_ENV_LEGACY, "").strip()
        if legacy:
            keys.append(legacy)

    return keys


def _parse_youtube_config(
    section: dict[str, Any],
    environ: Mapping[str, str]
) -> YouTubeConfig:
    """
    Parse the 'youtube' section and merge environment keys.

    Raises:
        ConfigError: If api_keys/mirrors are not lists of strings, or
                     timeouts are not positive numbers.
    """
    raw_keys = section.get("api_keys") or []
    if not isinstance(raw_keys, list) or not all(isinstance(k, str) for k in raw_keys):
        raise ConfigError(
            "'youtube.api_keys' must be a list of strings",
            details={"field": "youtube.api_keys"}
        )

    keys: list[str] = []
    for key in [k.strip() for k in raw_keys] + load_api_keys(environ):
        if key and key not in keys:
            keys.append(key)

    api_base = section.get("api_base", YOUTUBE_API_BASE)
    if not isinstance(api_base, str) or not api_base.strip():
        raise ConfigError(
            "'youtube.api_base' must be a non-empty string",
            details={"field": "youtube.api_base"}
        )

    raw_mirrors = section.get("mirrors")
    if raw_mirrors is None:
        mirrors = DEFAULT_MIRRORS
    else:
        if not isinstance(raw_mirrors, list) or not all(isinstance(m, str) for m in raw_mirrors):
            raise ConfigError(
                "'youtube.mirrors' must be a list of URLs",
                details={"field": "youtube.mirrors"}
            )
        mirrors = tuple(m.strip().rstrip("/") for m in raw_mirrors if m.strip())

    use_mirrors = section.get("use_mirrors", True)
    if not isinstance(use_mirrors, bool):
        raise ConfigError(
            "'youtube.use_mirrors' must be true or false",
            details={"field": "youtube.use_mirrors", "value": use_mirrors}
        )

    return YouTubeConfig(
        api_keys=tuple(keys),
        api_base=api_base.strip().rstrip("/"),
        request_timeout=_positive_number(section, "request_timeout", 10, "youtube"),
        mirrors=mirrors,
        mirror_timeout=_positive_number(section, "mirror_timeout", 5, "youtube"),
        use_mirrors=use_mirrors,
    )


def _positive_number(section: dict[str, Any], name: str, default: float, prefix: str) -> float:
    value = section.get(name, default)
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(
            f"'{prefix}.{name}' must be a positive number",
            details={"field": f"{prefix}.{name}", "value": value}
        )
    return float(value)


def _parse_cache_config(section: dict[str, Any]) -> CacheConfig:
    """
    Parse the 'cache' section.

    Expands ~ in the database path. Does NOT create the parent directory
    (that happens when the database is opened).
    """
    database = section.get("database", f"{DEFAULT_HOME}/cache.db")
    if not isinstance(database, str) or not database.strip():
        raise ConfigError(
            "'cache.database' must be a non-empty string",
            details={"field": "cache.database"}
        )

    substring_lookup = section.get("substring_lookup", False)
    if not isinstance(substring_lookup, bool):
        raise ConfigError(
            "'cache.substring_lookup' must be true or false",
            details={"field": "cache.substring_lookup", "value": substring_lookup}
        )

    return CacheConfig(
        database=Path(database.strip()).expanduser().resolve(),
        substring_lookup=substring_lookup,
    )


def _parse_pipeline_config(section: dict[str, Any]) -> PipelineConfig:
    delay_ms = section.get("delay_ms", 100)
    if isinstance(delay_ms, bool) or not isinstance(delay_ms, int) or delay_ms < 0:
        raise ConfigError(
            "'pipeline.delay_ms' must be a non-negative integer",
            details={"field": "pipeline.delay_ms", "value": delay_ms}
        )

    throttle_scope = section.get("throttle_scope", "provider")
    if throttle_scope not in THROTTLE_SCOPES:
        raise ConfigError(
            f"'pipeline.throttle_scope' must be one of {', '.join(THROTTLE_SCOPES)}",
            details={"field": "pipeline.throttle_scope", "value": throttle_scope}
        )

    return PipelineConfig(delay_ms=delay_ms, throttle_scope=throttle_scope)


def _parse_output_config(section: dict[str, Any]) -> OutputConfig:
    directory = section.get("log_directory", DEFAULT_HOME)
    if not isinstance(directory, str) or not directory.strip():
        raise ConfigError(
            "'output.log_directory' must be a non-empty string",
            details={"field": "output.log_directory"}
        )
    return OutputConfig(log_directory=Path(directory.strip()).expanduser().resolve())
