# managers/save_lock.py
"""Shared "save in progress" flag used by automatic and manual saves.

:class:`SaveLock` wraps a single boolean behind a :class:`threading.Lock`.
Every check, set and reset happens inside the lock's critical section, and
the flag only moves ``idle -> saving`` through :meth:`SaveLock.try_acquire`
and ``saving -> idle`` through :meth:`SaveLock.release`.  One instance is
created per application and handed to both the autosave manager and the
campaign session so the two save paths contend for the same resource.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from threading import Lock
from typing import Iterator

from ..errors import SaveInProgressError

LOGGER = logging.getLogger(__name__)


class SaveLock:
    """Mutex-guarded boolean marking whether a save is running."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._saving = False

    @property
    def is_saving(self) -> bool:
        with self._lock:
            return self._saving

    def try_acquire(self) -> bool:
        """Atomically flip the flag to saving; return ``False`` if already held."""
        with self._lock:
            if self._saving:
                return False
            self._saving = True
            return True

    def release(self) -> None:
        with self._lock:
            self._saving = False

    def force_reset(self) -> bool:
        """Reset the flag to idle, returning whether it was held."""
        with self._lock:
            was_saving = self._saving
            self._saving = False
        if was_saving:
            LOGGER.warning("save flag was held unexpectedly; forced back to idle")
        return was_saving

    @contextmanager
    def hold(self) -> Iterator[None]:
        """Hold the flag for the duration of the block.

        Raises :class:`SaveInProgressError` when another save owns the flag.
        The flag is released on every exit path.
        """
        if not self.try_acquire():
            raise SaveInProgressError("Another save is already in progress")
        try:
            yield
        finally:
            self.release()
