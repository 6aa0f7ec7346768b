"""
Rotating pool of YouTube Data API keys.

Each key has its own daily quota. When the active key reports quota
exhaustion the resolver calls rotate(key) to move to the next one. The cursor
only moves forward (wrapping) and is never reset for the life of the pool.
"""

import threading
from typing import Iterable

from mixtape_matcher.core.config import Config
from mixtape_matcher.core.logger import get_logger


logger = get_logger(__name__)


class KeyPool:
    """
    Ordered API keys with a shared cursor.

    Thread Safety:
        The cursor is guarded by a lock so one pool can be shared by
        several resolvers. rotate(exhausted_key) is compare-and-advance:
        the cursor moves at most one slot per exhausted key, however many
        workers report it.

    Example:
        pool = KeyPool(["key-a", "key-b"])
        pool.current()   # "key-a"
        pool.rotate()    # True
        pool.current()   # "key-b"
    """

    def __init__(self, keys: Iterable[str] = ()) -> None:
        self._keys: tuple[str, ...] = tuple(keys)
        self._cursor = 0
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: Config) -> "KeyPool":
        pool = cls(config.youtube.api_keys)
        logger.info(f"Loaded {len(pool)} YouTube API key(s)")
        return pool

    def __len__(self) -> int:
        return len(self._keys)

    @property
    def position(self) -> int:
        """1-based slot of the active key, 0 when the pool is empty."""
        with self._lock:
            return self._cursor + 1 if self._keys else 0

    def current(self) -> str | None:
        """Return the active key, or None if no keys are configured."""
        with self._lock:
            if not self._keys:
                return None
            return self._keys[self._cursor]

    def rotate(self, exhausted_key: str | None = None) -> bool:
        """
        Advance to the next key.

        Args:
            exhausted_key: The key the caller saw fail. When given, the
                           cursor only moves if that key is still active, so
                           several workers reporting the same key move it
                           once.

        Returns:
            False (cursor unchanged) when there is no other key to move to,
            True otherwise, including when another worker already moved
            past exhausted_key.
        """
        with self._lock:
            if len(self._keys) <= 1:
                logger.warning("No additional API keys available for rotation")
                return False

            if exhausted_key is not None and self._keys[self._cursor] != exhausted_key:
                logger.debug(f"API key already rotated to #{self._cursor + 1}")
                return True

            self._cursor = (self._cursor + 1) % len(self._keys)
            logger.info(f"Rotated to API key #{self._cursor + 1}")
            return True

    def position_of(self, key: str) -> int:
        """1-based slot of a key, 0 if it is not in the pool."""
        try:
            return self._keys.index(key) + 1
        except ValueError:
            return 0
