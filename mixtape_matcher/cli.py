"""
Command-line interface for mixtape-matcher.

This module implements the CLI using Click, resolving track lists
(title, artist, duration) to YouTube videos.
rich-click is used for the output colors.

Commands:
    mixtape-match resolve <tracks.json>       Resolve every track in a JSON list
    mixtape-match lookup <artist> <track>     Look a track up in the cache only
    mixtape-match keys                        Show configured API keys and mirrors

Usage:
    # Resolve a track list and write the annotated list to a file
    mixtape-match resolve mixtape.json -o resolved.json

    # Pace every track, cache hits included
    mixtape-match resolve mixtape.json --throttle-all

    # Check whether a track is already cached
    mixtape-match lookup "Rick Astley" "Never Gonna Give You Up"

Input Format:
    A JSON list of objects with 'name', 'artist' and 'duration_ms'
    (or 'durationMs'), for example:
        [{"name": "Track", "artist": "Artist", "duration_ms": 200000}]

Configuration:
    config.yaml in the current directory is optional; API keys can come
    from YOUTUBE_API_KEY_1 .. YOUTUBE_API_KEY_10 in the environment or .env.

Exit Codes:
    0 on success (even when some tracks stay unmatched), 1 on configuration,
    database or input errors, 130 when interrupted before any output.
"""

import json
import signal
import sys
from pathlib import Path
from typing import Optional

import rich_click as click

# Configure rich-click for better help formatting
click.rich_click.USE_RICH_MARKUP = True
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.ERRORS_SUGGESTION = ""
click.rich_click.MAX_WIDTH = 100

from mixtape_matcher import __version__
from mixtape_matcher.core import (
    CacheDatabase,
    CancellationToken,
    Config,
    ConfigError,
    DatabaseError,
    RateLimiter,
    get_logger,
    load_config,
    setup_logging,
    shutdown_logging,
)
from mixtape_matcher.core.progress import MatchingProgressBar
from mixtape_matcher.youtube import (
    BatchPipeline,
    CacheKey,
    Resolver,
    TrackCache,
    TrackQuery,
    summarize,
)


logger = get_logger(__name__)


@click.group()
@click.version_option(__version__, "--version", "-v", prog_name="mixtape-matcher")
def cli() -> None:
    """
    [bold]mixtape-matcher[/bold]: find the YouTube video for every track of a mixtape.

    Tracks are looked up in a local cache first, then searched with the
    YouTube Data API (rotating through your API keys as quotas run out),
    then on public Invidious mirrors.
    """


# =============================================================================
# resolve
# =============================================================================

@cli.command()
@click.argument(
    "tracks_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--output", "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write resolved tracks here instead of stdout.",
)
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to config.yaml (default: ./config.yaml if present).",
)
@click.option(
    "--throttle-all",
    is_flag=True,
    default=False,
    help="Pace every track, including cache hits.",
)
def resolve(
    tracks_file: Path,
    output: Optional[Path],
    config_path: Optional[Path],
    throttle_all: bool
) -> None:
    """Resolve every track in [bold]TRACKS_FILE[/bold] to a YouTube video."""
    database: CacheDatabase | None = None

    try:
        config = load_config(config_path)
        setup_logging(config.output.log_directory)
        logger.info("mixtape-matcher starting")

        queries = _read_tracks(tracks_file)
        logger.info(f"Loaded {len(queries)} track(s) from {tracks_file}")

        database = CacheDatabase(config.cache.database)
        cache = TrackCache(database, substring_lookup=config.cache.substring_lookup)
        resolver = Resolver.from_config(config, cache)

        throttle_scope = "all" if throttle_all else config.pipeline.throttle_scope
        pipeline = BatchPipeline(
            resolver,
            RateLimiter.from_milliseconds(config.pipeline.delay_ms),
            throttle_scope=throttle_scope,
        )

        token = CancellationToken()
        previous_handler = signal.signal(signal.SIGINT, lambda *_: token.cancel())
        try:
            results = _run_pipeline(pipeline, queries, token, show_progress=output is not None)
        finally:
            signal.signal(signal.SIGINT, previous_handler)

        payload = json.dumps([track.to_dict() for track in results], indent=2, ensure_ascii=False)
        if output is not None:
            output.write_text(payload + "\n", encoding="utf-8")
            logger.info(f"Wrote {len(results)} track(s) to {output}")
        else:
            click.echo(payload)

        summary = summarize(results)
        logger.info("=" * 60)
        logger.info(f"Tracks:     {summary.total}/{len(queries)}")
        logger.info(f"Matched:    {summary.matched}")
        logger.info(f"Unmatched:  {summary.unmatched}")
        logger.info(f"Match rate: {summary.match_rate:.0%}")
        logger.info("=" * 60)

        if token.cancelled:
            logger.warning("Interrupted by user, output is partial")

    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)

    except DatabaseError as e:
        click.echo(f"Database error: {e.message}", err=True)
        logger.error(f"Database error: {e.message}", exc_info=True)
        sys.exit(1)

    except ValueError as e:
        click.echo(f"Invalid tracks file: {e}", err=True)
        sys.exit(1)

    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        sys.exit(130)

    finally:
        if database is not None:
            database.close()
        shutdown_logging()


def _read_tracks(tracks_file: Path) -> list[TrackQuery]:
    """
    Parse the input JSON into TrackQuery objects.

    Raises:
        ValueError: If the file is not a JSON list of valid track objects.
    """
    try:
        data = json.loads(tracks_file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ValueError(f"cannot read {tracks_file}: {e}") from e

    if not isinstance(data, list):
        raise ValueError("expected a JSON list of tracks")

    queries = []
    for index, entry in enumerate(data, 1):
        if not isinstance(entry, dict):
            raise ValueError(f"entry {index} is not an object")
        try:
            queries.append(TrackQuery.from_dict(entry))
        except ValueError as e:
            raise ValueError(f"entry {index}: {e}") from e
    return queries


def _run_pipeline(
    pipeline: BatchPipeline,
    queries: list[TrackQuery],
    token: CancellationToken,
    show_progress: bool
):
    # The progress bar draws on stdout, so it is only shown when the
    # results go to a file.
    if not show_progress:
        return pipeline.resolve_all(queries, cancel_token=token)

    with MatchingProgressBar(total=len(queries)) as progress:
        return pipeline.resolve_all(queries, cancel_token=token, progress_bar=progress)


# =============================================================================
# lookup
# =============================================================================

@cli.command()
@click.argument("artist")
@click.argument("track")
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to config.yaml (default: ./config.yaml if present).",
)
def lookup(artist: str, track: str, config_path: Optional[Path]) -> None:
    """Look [bold]ARTIST[/bold] - [bold]TRACK[/bold] up in the cache, without searching."""
    database: CacheDatabase | None = None

    try:
        config = load_config(config_path)
        database = CacheDatabase(config.cache.database)
        cache = TrackCache(database, substring_lookup=config.cache.substring_lookup)

        match = cache.lookup(CacheKey.for_track(track, artist))
        if match is None:
            click.echo(f"Not cached: {artist} - {track}")
            return

        click.echo(f"{match.title}")
        click.echo(f"  {match.watch_url}")
        if match.channel_title:
            click.echo(f"  Channel: {match.channel_title}")

    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)

    except DatabaseError as e:
        click.echo(f"Database error: {e.message}", err=True)
        sys.exit(1)

    finally:
        if database is not None:
            database.close()


# =============================================================================
# keys
# =============================================================================

@cli.command()
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to config.yaml (default: ./config.yaml if present).",
)
def keys(config_path: Optional[Path]) -> None:
    """Show how many API keys and mirrors are configured."""
    try:
        config = load_config(config_path)
    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)

    _print_provider_summary(config)


def _print_provider_summary(config: Config) -> None:
    youtube = config.youtube

    click.echo(f"API keys: {len(youtube.api_keys)}")
    if not youtube.api_keys:
        click.echo("  Set YOUTUBE_API_KEY_1 .. YOUTUBE_API_KEY_10 or youtube.api_keys")

    if youtube.use_mirrors and youtube.mirrors:
        click.echo(f"Mirrors:  {len(youtube.mirrors)}")
        for mirror in youtube.mirrors:
            click.echo(f"  {mirror}")
    else:
        click.echo("Mirrors:  disabled")

    click.echo(f"Cache:    {config.cache.database}")


def main() -> None:
    """
    Entry point for the CLI.

    This function is called when running `mixtape-match` from the command line.
    It invokes the Click CLI group.
    """
    cli()


if __name__ == "__main__":
    main()
