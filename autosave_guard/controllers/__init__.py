"""Controller layer for decoupling campaign state management from widgets."""

from .session import (
    CampaignSession,
    SessionMode,
)

__all__ = [
    "CampaignSession",
    "SessionMode",
]
