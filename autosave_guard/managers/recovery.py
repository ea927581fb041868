# managers/recovery.py
"""
RecoveryManager: offers the leftover autosave file after an unclean shutdown
and removes the file once it is no longer needed.
"""
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from .. import config

LOGGER = logging.getLogger(__name__)


class RecoveryManager:
    """Detects, restores and tidies the autosave artifact."""
    def __init__(
        self,
        session,
        confirm: Callable[[datetime], bool],
        load: Callable[[Path], None],
        path: Optional[Path] = None,
    ):
        self.session = session
        self.confirm = confirm
        self.load = load
        self.path = Path(path) if path is not None else config.AUTOSAVE_PATH

    def has_artifact(self) -> bool:
        return self.path.exists()

    def last_modified(self) -> Optional[datetime]:
        try:
            return datetime.fromtimestamp(os.path.getmtime(self.path))
        except OSError:
            return None

    def check(self) -> bool:
        """Ask the user whether to recover a leftover autosave; load it if so."""
        modified = self.last_modified()
        if modified is None:
            return False
        LOGGER.info("Autosave found at %s (modified %s)", self.path, modified)
        if not self.confirm(modified):
            LOGGER.info("Autosave recovery declined")
            return False
        self.load(self.path)
        LOGGER.info("Recovered campaign from autosave")
        return True

    def purge(self) -> bool:
        """Delete the autosave file; return whether anything was removed."""
        try:
            os.remove(self.path)
        except FileNotFoundError:
            return False
        except OSError as e:
            LOGGER.error("Could not remove autosave %s: %s", self.path, e)
            raise
        LOGGER.info("Removed autosave %s", self.path)
        return True

    def tidy(self) -> None:
        """Detach a recovered campaign from the autosave file, then purge it."""
        current = getattr(self.session, "path", None)
        if current is not None and Path(current) == self.path:
            self.session.clear_identity()
        self.purge()
