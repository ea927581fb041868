"""Autosave Guard: crash-recovery autosave for campaign documents."""

__version__ = "0.1.0"
