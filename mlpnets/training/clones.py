"""Per-thread inference clones of a trained network."""

from __future__ import annotations

import threading
from typing import Callable

from ..core.network import Network


class CloneCache:
    """Hand out a private :class:`Network` clone to every calling thread.

    ``source`` returns the canonical network, which must no longer be trained
    when the first clone is requested. A thread keeps its clone until it calls
    :meth:`drop` or anyone calls :meth:`invalidate`; either way the next
    :meth:`get` recreates it from ``source``. With ``enabled=False`` a fresh
    clone is built on every call.
    """

    def __init__(self, source: Callable[[], Network], *, enabled: bool = True) -> None:
        self._source = source
        self.enabled = enabled
        self._local = threading.local()
        self._lock = threading.Lock()
        self._generation = 0

    def get(self) -> Network:
        if not self.enabled:
            return self._create()
        entry = getattr(self._local, "entry", None)
        if entry is None or entry[0] != self._generation:
            generation = self._generation
            entry = (generation, self._create())
            self._local.entry = entry
        return entry[1]

    def _create(self) -> Network:
        with self._lock:
            return self._source().clone()

    def drop(self) -> None:
        """Forget the calling thread's clone."""

        self._local.entry = None

    def invalidate(self) -> None:
        """Force every thread to rebuild its clone on next use."""

        with self._lock:
            self._generation += 1

    def cached(self) -> bool:
        """Whether the calling thread currently holds a valid clone."""

        entry = getattr(self._local, "entry", None)
        return entry is not None and entry[0] == self._generation


__all__ = ["CloneCache"]
