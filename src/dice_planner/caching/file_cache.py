"""File-based store for heuristic values that should outlive a single run."""

import gzip
import hashlib
import json
import logging
import pickle
import time
from pathlib import Path
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)


class FileCache:
    """File-based cache implementation."""

    def __init__(self,
                 cache_dir: Union[str, Path] = ".cache/dice_planner",
                 default_ttl: int = 0,
                 compression: bool = True):
        """Initialize file cache.

        Args:
            cache_dir: Directory to store cache files
            default_ttl: Default time-to-live in seconds (0 disables expiry)
            compression: Whether to compress cache files
        """
        self.cache_dir = Path(cache_dir)
        self.default_ttl = default_ttl
        self.compression = compression

        self.cache_dir.mkdir(parents=True, exist_ok=True)

        self.hits = 0
        self.misses = 0
        self.errors = 0

        logger.info(f"File cache initialized: {self.cache_dir} (compression: {compression})")

    def _get_cache_path(self, key: str) -> Path:
        # Hash key to create safe filename, fanned out by its first 2 characters
        key_hash = hashlib.sha256(key.encode()).hexdigest()
        subdir = self.cache_dir / key_hash[:2]
        subdir.mkdir(exist_ok=True)

        ext = ".pkl.gz" if self.compression else ".pkl"
        return subdir / f"{key_hash}{ext}"

    def _get_metadata_path(self, cache_path: Path) -> Path:
        return cache_path.with_suffix(cache_path.suffix + ".meta")

    def _is_expired(self, cache_path: Path, ttl: Optional[int] = None) -> bool:
        if not cache_path.exists():
            return True

        ttl = ttl or self.default_ttl
        if ttl <= 0:
            return False

        file_age = time.time() - cache_path.stat().st_mtime
        return file_age > ttl

    def get(self, key: str, ttl: Optional[int] = None) -> Optional[Any]:
        """Get value from cache.

        Args:
            key: Cache key
            ttl: Time-to-live in seconds (uses default if None)

        Returns:
            Cached value or None if not found/expired
        """
        try:
            cache_path = self._get_cache_path(key)

            if self._is_expired(cache_path, ttl):
                self.misses += 1
                return None

            opener = gzip.open if self.compression else open
            with opener(cache_path, 'rb') as f:
                value = pickle.load(f)

            self.hits += 1
            logger.debug(f"File cache hit: {key}")
            return value

        except Exception as e:
            logger.warning(f"File cache get error for key '{key}': {e}")
            self.errors += 1
            return None

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Set value in cache.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time-to-live in seconds (uses default if None)

        Returns:
            True if successful
        """
        try:
            cache_path = self._get_cache_path(key)
            metadata_path = self._get_metadata_path(cache_path)

            opener = gzip.open if self.compression else open
            with opener(cache_path, 'wb') as f:
                pickle.dump(value, f)

            metadata = {
                'key': key,
                'created_at': time.time(),
                'ttl': ttl or self.default_ttl,
                'size': cache_path.stat().st_size
            }
            with open(metadata_path, 'w') as f:
                json.dump(metadata, f)

            logger.debug(f"File cache set: {key}")
            return True

        except Exception as e:
            logger.warning(f"File cache set error for key '{key}': {e}")
            self.errors += 1
            return False

    def delete(self, key: str) -> bool:
        cache_path = self._get_cache_path(key)
        metadata_path = self._get_metadata_path(cache_path)

        deleted = cache_path.exists()
        if deleted:
            cache_path.unlink()
        if metadata_path.exists():
            metadata_path.unlink()

        return deleted

    def exists(self, key: str, ttl: Optional[int] = None) -> bool:
        return not self._is_expired(self._get_cache_path(key), ttl)

    def clear(self) -> int:
        """Remove every cache file.

        Returns:
            Number of files deleted
        """
        deleted_count = 0
        for item in self.cache_dir.rglob("*"):
            if item.is_file():
                item.unlink()
                deleted_count += 1

        for item in sorted(self.cache_dir.rglob("*"), reverse=True):
            if item.is_dir() and not any(item.iterdir()):
                item.rmdir()

        logger.info(f"Cleared {deleted_count} cache files")
        return deleted_count

    def get_stats(self) -> Dict[str, Any]:
        file_count = sum(
            1 for item in self.cache_dir.rglob("*.pkl*")
            if item.is_file() and not item.name.endswith('.meta')
        )
        return {
            'hits': self.hits,
            'misses': self.misses,
            'errors': self.errors,
            'hit_rate': self.hits / max(self.hits + self.misses, 1),
            'cache_dir': str(self.cache_dir),
            'file_count': file_count,
            'compression': self.compression
        }
