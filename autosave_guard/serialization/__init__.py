"""Serialization helpers for Autosave Guard."""

from .campaign import (
    CampaignSnapshot,
    load_campaign,
    save_campaign,
)

__all__ = [
    "CampaignSnapshot",
    "load_campaign",
    "save_campaign",
]
