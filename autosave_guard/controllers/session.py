"""Session controller for campaign state management.

This module introduces :class:`CampaignSession`, a small service layer that
owns the live campaign mapping and mediates between UI widgets and
persistence workflows.  It exposes the snapshot producer and ownership
predicate the autosave manager consults on every attempt, and the manual
save path that contends with autosave for the shared :class:`SaveLock`.
Widgets never touch the lock directly, so alternative front ends (CLI tools
or automated tests) get the same mutual exclusion for free.
"""

from __future__ import annotations

import copy
import enum
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

from .. import config
from ..errors import SaveAsRequiredError
from ..managers.save_lock import SaveLock
from ..serialization.campaign import CampaignSnapshot, load_campaign, save_campaign

LOGGER = logging.getLogger(__name__)

PathLike = Union[str, Path]


class SessionMode(enum.Enum):
    """How this process relates to the campaign it is showing."""

    PERSONAL = "personal"
    HOSTING = "hosting"
    CLIENT = "client"


class CampaignSession:
    """Manage the live campaign independently of UI widgets."""

    def __init__(
        self,
        save_lock: SaveLock,
        *,
        state: Optional[Dict[str, Any]] = None,
        mode: SessionMode = SessionMode.PERSONAL,
        writer: Callable[[CampaignSnapshot, PathLike], Any] = save_campaign,
        reader: Callable[[PathLike], CampaignSnapshot] = load_campaign,
        autosave_path: Optional[PathLike] = None,
    ) -> None:
        self.save_lock = save_lock
        self.state: Dict[str, Any] = state if state is not None else {}
        self.mode = mode
        self.path: Optional[Path] = None
        self.dirty = False
        self._writer = writer
        self._reader = reader
        self.autosave_path = Path(autosave_path) if autosave_path is not None else config.AUTOSAVE_PATH

    def is_authoritative(self) -> bool:
        """Return whether this process owns the campaign and may save it."""

        return self.mode in (SessionMode.PERSONAL, SessionMode.HOSTING)

    @property
    def is_recovered(self) -> bool:
        """True while the active identity is the autosave artifact."""

        return self.path is not None and Path(self.path) == self.autosave_path

    def snapshot(self) -> CampaignSnapshot:
        """Return an independent copy of the live campaign."""

        return CampaignSnapshot.capture(self.state)

    def update(self, **values: Any) -> None:
        self.state.update(values)
        self.dirty = True

    def replace_state(self, state: Dict[str, Any]) -> None:
        self.state = copy.deepcopy(state)
        self.dirty = True

    def clear_identity(self) -> None:
        self.path = None

    def new(self) -> None:
        """Start an empty, unnamed campaign."""

        self.state = {}
        self.path = None
        self.dirty = False

    def load(self, path: PathLike) -> None:
        """Replace the live campaign with the contents of ``path``."""

        snapshot = self._reader(path)
        self.state = copy.deepcopy(snapshot.state)
        self.path = Path(path)
        self.dirty = False
        LOGGER.info("Loaded campaign from %s", self.path)

    def save(self, path: Optional[PathLike] = None) -> Path:
        """Manually save the campaign.

        Without ``path`` the current identity is reused; an unnamed or
        recovered campaign raises :class:`SaveAsRequiredError`.  While an
        autosave holds the shared lock this raises
        :class:`~autosave_guard.errors.SaveInProgressError` and writes nothing.
        """

        if path is None:
            if self.path is None or self.is_recovered:
                raise SaveAsRequiredError("Choose a file name for this campaign")
            path = self.path
        target = Path(path)
        snapshot = self.snapshot()
        with self.save_lock.hold():
            self._writer(snapshot, target)
        self.path = target
        self.dirty = False
        LOGGER.info("Saved campaign to %s", target)
        return target
