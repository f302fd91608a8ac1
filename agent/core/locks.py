from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator


@dataclass
class _LockEntry:
    lock: threading.Lock = field(default_factory=threading.Lock)
    # threads holding or waiting on ``lock``
    waiters: int = 0


class KeyedLock:
    """One mutex per key, created on demand and dropped when unused.

    Webhook handlers run on the server's worker threads; holding the sender's
    lock keeps two deliveries for the same sender from interleaving.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: Dict[str, _LockEntry] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._entries.setdefault(key, _LockEntry())
            entry.waiters += 1
        entry.lock.acquire()
        try:
            yield
        finally:
            entry.lock.release()
            with self._guard:
                entry.waiters -= 1
                if entry.waiters == 0:
                    del self._entries[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)
