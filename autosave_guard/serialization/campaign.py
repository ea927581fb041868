"""Campaign snapshot type and the JSON file writer/reader."""
from __future__ import annotations

import copy
import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Mapping, Union

from .. import config
from ..errors import CampaignFormatError

LOGGER = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CampaignSnapshot:
    """Point-in-time copy of a campaign, safe to persist from another thread."""

    state: Dict[str, Any]
    taken_at: datetime = field(default_factory=_utcnow)

    # ``state`` is a dict, so snapshots compare by value but are unhashable.
    __hash__ = None  # type: ignore[assignment]

    @classmethod
    def capture(cls, state: Mapping[str, Any]) -> "CampaignSnapshot":
        """Deep-copy ``state`` so later mutation of the live model is invisible."""
        return cls(state=copy.deepcopy(dict(state)))

    def to_payload(self) -> Dict[str, Any]:
        return {
            "format": config.CAMPAIGN_FORMAT_VERSION,
            "saved_at": self.taken_at.isoformat(),
            "campaign": self.state,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "CampaignSnapshot":
        if not isinstance(payload, Mapping):
            raise CampaignFormatError("Campaign payload must be a JSON object")
        version = payload.get("format")
        if version != config.CAMPAIGN_FORMAT_VERSION:
            raise CampaignFormatError(f"Unsupported campaign format: {version!r}")
        state = payload.get("campaign")
        if not isinstance(state, dict):
            raise CampaignFormatError("Campaign payload is missing its 'campaign' object")
        saved_at = payload.get("saved_at")
        try:
            taken_at = datetime.fromisoformat(saved_at) if saved_at else _utcnow()
        except (TypeError, ValueError) as exc:
            raise CampaignFormatError(f"Invalid saved_at timestamp: {saved_at!r}") from exc
        return cls(state=state, taken_at=taken_at)


def save_campaign(snapshot: CampaignSnapshot, path: PathLike) -> Path:
    """Write ``snapshot`` to ``path`` as UTF-8 JSON.

    The payload goes to a sibling temporary file first and is moved into
    place with :func:`os.replace`, so readers never see a half-written file.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    tmp = target.with_name(target.name + ".tmp")
    try:
        with open(tmp, "w", encoding="utf-8") as handle:
            json.dump(snapshot.to_payload(), handle)
        os.replace(tmp, target)
    except BaseException:
        try:
            os.remove(tmp)
        except OSError:
            pass
        raise
    LOGGER.debug("Campaign written to %s", target)
    return target


def load_campaign(path: PathLike) -> CampaignSnapshot:
    """Read a campaign file written by :func:`save_campaign`."""
    with open(path, "r", encoding="utf-8") as handle:
        try:
            payload = json.load(handle)
        except json.JSONDecodeError as exc:
            raise CampaignFormatError(f"Campaign file {path} is not valid JSON") from exc
    return CampaignSnapshot.from_payload(payload)
