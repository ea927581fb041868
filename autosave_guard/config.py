"""
Application configuration constants for Autosave Guard
"""
from pathlib import Path

# Application home
APP_HOME = Path.home() / ".autosave_guard"

# Campaign files
CAMPAIGN_FILE_EXTENSION = ".cmpgn"
CAMPAIGN_FORMAT_VERSION = 1

# Autosave settings
AUTOSAVE_DIR = APP_HOME / "autosave"
AUTOSAVE_FILENAME = "AutoSave"
AUTOSAVE_PATH = AUTOSAVE_DIR / f"{AUTOSAVE_FILENAME}{CAMPAIGN_FILE_EXTENSION}"
DEFAULT_AUTOSAVE_INTERVAL_MINUTES = 5  # <= 0 disables autosave
AUTOSAVE_IDLE_TIMEOUT_SECS = 30  # how long shutdown waits for an in-flight save

# Preferences
PREFERENCES_PATH = APP_HOME / "preferences.json"

# Logging
LOG_PATH = APP_HOME / "autosave_guard.log"
LOG_MAX_BYTES = 1_048_576
LOG_BACKUP_COUNT = 5

# Recovery prompt
RECOVERY_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# Save dialog defaults
SAVE_SHORTCUT = "Ctrl+S"
SAVE_AS_SHORTCUT = "Ctrl+Shift+S"
OPEN_SHORTCUT = "Ctrl+O"
