"""ADB Trigger daemon package initialisation."""

__version__ = "1.0.0"
