"""Background managers: autosave coordination, scheduling and recovery."""
