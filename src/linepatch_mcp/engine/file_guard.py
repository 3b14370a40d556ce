"""Same-file exclusion for patch operations.

At most one patch may be in flight per file. The staleness check only means
something if nobody else can write the file between the check and the
write-back, so a second request for a held file is rejected immediately
(not queued, not merged) and the agent is told to retry.

Usage:
    guard = FileGuard()
    with guard.hold(str(resolved_path)):
        content = read(...)
        write(apply_batch(content, batch).content)
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from .exceptions import ResourceBusyError

logger = logging.getLogger(__name__)


class FileGuard:
    """Non-blocking advisory hold keyed by resolved file path.

    Thread-safe: the tool layer runs file I/O in worker threads, so holds may
    be taken and released from different threads.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._held: set[str] = set()
        self._stats = {
            "acquired": 0,
            "rejected": 0,
        }

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        """Hold ``key`` for the duration of the block.

        Raises:
            ResourceBusyError: ``key`` is already held
        """
        with self._lock:
            if key in self._held:
                self._stats["rejected"] += 1
                logger.warning(f"Rejected concurrent edit of {key}")
                raise ResourceBusyError(key)
            self._held.add(key)
            self._stats["acquired"] += 1

        try:
            yield
        finally:
            with self._lock:
                self._held.discard(key)

    def is_busy(self, key: str) -> bool:
        with self._lock:
            return key in self._held

    def get_stats(self) -> dict[str, int]:
        """Get guard statistics."""
        with self._lock:
            return {
                **self._stats,
                "held": len(self._held),
            }
