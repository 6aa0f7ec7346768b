"""
mixtape-matcher: resolve track lists to YouTube videos.

Each track (title, artist, duration) is looked up in a two-tier cache,
then searched with the YouTube Data API using a rotating pool of API keys,
then on public Invidious mirrors when no key is usable.

Packages:
    - core: Configuration, exceptions, logging, database, pacing
    - youtube: Models, key pool, cache, scoring, providers, resolver, pipeline
"""

__version__ = "0.1.0"
__author__ = "mixtape-matcher contributors"

__all__ = ["__version__", "__author__"]
