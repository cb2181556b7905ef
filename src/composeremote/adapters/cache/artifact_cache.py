"""Digest-keyed artifact cache on the local filesystem."""

from __future__ import annotations

import contextlib
import logging
import os
import re
import shutil
import tempfile
import threading
import time
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from composeremote.core.exceptions import CacheError
from composeremote.core.models import CacheEntry


if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator
    from typing import BinaryIO


logger = logging.getLogger(__name__)

DOCUMENT_NAME = "compose.yaml"
STAGING_PREFIX = ".tmp-"

_KEY_RE = re.compile(r"^[A-Za-z0-9=_-]+$")


def _dir_size(path: Path) -> int:
    """Total size of regular files under path."""
    total = 0
    for file_path in path.rglob("*"):
        if file_path.is_file():
            with contextlib.suppress(OSError):
                total += file_path.stat().st_size
    return total


class ArtifactCache:
    """Composed documents stored under the hex digest of their manifest.

    Each entry is a directory ``<cache_dir>/<hex>/`` holding a single
    ``compose.yaml``. An entry directory only ever appears through an atomic
    rename of a fully written staging directory, so its existence means the
    document is complete.

    The directory mtime records the last time an entry was served and drives
    least-recently-used eviction.

    Attributes:
        cache_dir: Directory holding the cache entries.
        max_bytes: Optional size bound enforced after each new entry.
    """

    def __init__(self, cache_dir: Path, max_bytes: int | None = None) -> None:
        """Initialize the cache with a directory path.

        Args:
            cache_dir: Directory where entries are stored. Created on first
                write.
            max_bytes: If set, least-recently-used entries are evicted after
                each population until the cache fits.
        """
        self.cache_dir = cache_dir
        self.max_bytes = max_bytes
        # digest -> (lock, number of threads holding or waiting for it)
        self._locks: dict[str, tuple[threading.Lock, int]] = {}
        self._locks_guard = threading.Lock()

    def entry_dir(self, digest_hex: str) -> Path:
        """Get the directory of the entry for a manifest digest."""
        if not _KEY_RE.match(digest_hex):
            raise ValueError(f"invalid cache key: {digest_hex!r}")
        return self.cache_dir / digest_hex

    def document_path(self, digest_hex: str) -> Path:
        """Get the composed document path for a manifest digest."""
        return self.entry_dir(digest_hex) / DOCUMENT_NAME

    def lookup(self, digest_hex: str) -> Path | None:
        """Return the document path if the entry exists, else None.

        Presence is a directory existence test only; contents are not
        re-verified.
        """
        entry = self.entry_dir(digest_hex)
        if not entry.is_dir():
            return None
        with contextlib.suppress(OSError):
            os.utime(entry)
        return entry / DOCUMENT_NAME

    @contextlib.contextmanager
    def _locked(self, digest_hex: str) -> Iterator[None]:
        """Hold the per-digest lock, dropping it from the map once unused."""
        with self._locks_guard:
            lock, users = self._locks.get(digest_hex, (None, 0))
            if lock is None:
                lock = threading.Lock()
            self._locks[digest_hex] = (lock, users + 1)
        try:
            with lock:
                yield
        finally:
            with self._locks_guard:
                lock, users = self._locks[digest_hex]
                if users == 1:
                    del self._locks[digest_hex]
                else:
                    self._locks[digest_hex] = (lock, users - 1)

    def _ensure_root(self) -> None:
        try:
            self.cache_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
        except OSError as e:
            raise CacheError(
                f"Cannot create cache directory {self.cache_dir}: {e}",
                path=str(self.cache_dir),
            ) from e

    def populate(self, digest_hex: str, write: Callable[[BinaryIO], None]) -> Path:
        """Create the entry for digest_hex by calling write, atomically.

        The document is written into a uniquely named staging directory
        and renamed into place only after write returns and the data is
        flushed to disk. Concurrent callers in this process wait for each
        other; a caller that finds the entry already present returns it
        without calling write. If another process publishes the same entry
        first, the staged copy is discarded.

        Args:
            digest_hex: Hex digest of the manifest.
            write: Callable writing the complete document to a binary stream.

        Returns:
            Path to the composed document.

        Raises:
            CacheError: If the cache directory cannot be created, the document
                cannot be written, or the entry cannot be published.
            Exception: Anything raised by write propagates after the staging
                directory is removed.
        """
        with self._locked(digest_hex):
            existing = self.lookup(digest_hex)
            if existing is not None:
                logger.debug("Cache entry %s appeared while waiting", digest_hex)
                return existing

            self._ensure_root()
            staging = self._staging_dir(f"{digest_hex[:12]}-")
            try:
                with (staging / DOCUMENT_NAME).open("wb") as f:
                    write(f)
                    f.flush()
                    os.fsync(f.fileno())
                published = self._publish(staging, digest_hex)
            except OSError as e:
                shutil.rmtree(staging, ignore_errors=True)
                raise CacheError(
                    f"Cannot write cache entry {digest_hex}: {e}", path=str(staging)
                ) from e
            except BaseException:
                shutil.rmtree(staging, ignore_errors=True)
                raise

        if published and self.max_bytes is not None:
            self.prune(self.max_bytes, keep=(digest_hex,))
        return self.document_path(digest_hex)

    def _staging_dir(self, suffix: str) -> Path:
        try:
            return Path(
                tempfile.mkdtemp(prefix=f"{STAGING_PREFIX}{suffix}", dir=self.cache_dir)
            )
        except OSError as e:
            raise CacheError(
                f"Cannot create staging directory in {self.cache_dir}: {e}",
                path=str(self.cache_dir),
            ) from e

    def _publish(self, staging: Path, digest_hex: str) -> bool:
        """Rename staging into the entry slot. Returns False if it lost a race."""
        final = self.entry_dir(digest_hex)
        try:
            staging.rename(final)
        except OSError as e:
            if final.is_dir():
                shutil.rmtree(staging, ignore_errors=True)
                logger.debug("Cache entry %s published by another process", digest_hex)
                return False
            raise CacheError(
                f"Cannot publish cache entry {digest_hex}: {e}", path=str(final)
            ) from e
        logger.info("Cached artifact %s in %s", digest_hex, final)
        return True

    def get(self, digest_hex: str) -> CacheEntry | None:
        """Describe the entry for digest_hex, or None if not cached."""
        entry = self.entry_dir(digest_hex)
        if not entry.is_dir():
            return None
        return self._describe(entry)

    def _describe(self, entry: Path) -> CacheEntry | None:
        try:
            mtime = entry.stat().st_mtime
        except OSError:
            return None  # Removed concurrently
        return CacheEntry(
            digest_hex=entry.name,
            path=entry / DOCUMENT_NAME,
            size=_dir_size(entry),
            last_used=datetime.fromtimestamp(mtime, tz=UTC),
        )

    def entries(self) -> list[CacheEntry]:
        """List all entries, most recently used first."""
        if not self.cache_dir.is_dir():
            return []

        result = []
        for entry in self.cache_dir.iterdir():
            if entry.name.startswith(STAGING_PREFIX) or not entry.is_dir():
                continue
            described = self._describe(entry)
            if described is not None:
                result.append(described)
        result.sort(key=lambda e: e.last_used, reverse=True)
        return result

    def remove(self, digest_hex: str) -> bool:
        """Remove one entry. Returns True if this call removed it.

        The entry is first renamed out of its slot into a staging directory,
        so lookups never see a partially deleted entry. Leftovers of an
        interrupted deletion are ordinary staging directories and are
        reclaimed by clean_staging().
        """
        entry = self.entry_dir(digest_hex)
        if not entry.is_dir():
            return False

        graveyard = self._staging_dir(f"evict-{digest_hex[:12]}-")
        try:
            entry.rename(graveyard / digest_hex)
        except FileNotFoundError:
            graveyard.rmdir()
            return False  # Removed concurrently
        except OSError as e:
            graveyard.rmdir()
            raise CacheError(
                f"Cannot remove cache entry {digest_hex}: {e}", path=str(entry)
            ) from e
        shutil.rmtree(graveyard, ignore_errors=True)
        return True

    def clear(self) -> int:
        """Remove every entry.

        Returns:
            Number of entries removed.
        """
        count = 0
        for entry in self.entries():
            if self.remove(entry.digest_hex):
                count += 1
        return count

    def prune(self, max_bytes: int, keep: Iterable[str] = ()) -> list[CacheEntry]:
        """Evict least-recently-used entries until the cache fits max_bytes.

        Args:
            max_bytes: Target upper bound for the total size.
            keep: Digests that must not be evicted.

        Returns:
            The evicted entries, oldest first.
        """
        protected = set(keep)
        entries = self.entries()
        total = sum(e.size for e in entries)

        evicted: list[CacheEntry] = []
        for entry in reversed(entries):
            if total <= max_bytes:
                break
            if entry.digest_hex in protected:
                continue
            if self.remove(entry.digest_hex):
                total -= entry.size
                evicted.append(entry)
                logger.info(
                    "Evicted cache entry %s (%d bytes)", entry.digest_hex, entry.size
                )
        return evicted

    def clean_staging(self, older_than: float = 3600.0) -> int:
        """Remove staging directories abandoned by interrupted processes.

        Args:
            older_than: Minimum age in seconds. Younger directories may belong
                to a population still in progress.

        Returns:
            Number of staging directories removed.
        """
        if not self.cache_dir.is_dir():
            return 0

        cutoff = time.time() - older_than
        count = 0
        for path in self.cache_dir.glob(f"{STAGING_PREFIX}*"):
            try:
                if path.stat().st_mtime > cutoff:
                    continue
            except OSError:
                continue
            shutil.rmtree(path, ignore_errors=True)
            count += 1
        return count

    def size(self) -> int:
        """Calculate total cache size in bytes."""
        return sum(e.size for e in self.entries())

    def statistics(self) -> dict[str, int]:
        """Get cache statistics.

        Returns:
            Dictionary with 'total_size' (bytes) and 'entry_count'.
        """
        entries = self.entries()
        return {
            "total_size": sum(e.size for e in entries),
            "entry_count": len(entries),
        }
