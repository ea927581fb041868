"""Exception types shared by the autosave, session and serialization layers."""


class AutosaveGuardError(RuntimeError):
    """Base class for errors raised by Autosave Guard."""


class AutosaveError(AutosaveGuardError):
    """Raised when an autosave attempt fails to snapshot or persist."""


class InconsistentSaveStateError(AutosaveError):
    """Raised when the save flag is found held on a path that never set it."""


class SaveInProgressError(AutosaveGuardError):
    """Raised when a manual save is requested while another save holds the lock."""


class SaveAsRequiredError(AutosaveGuardError):
    """Raised when a save needs an explicit destination path."""


class CampaignFormatError(ValueError):
    """Raised when a campaign file cannot be parsed."""
