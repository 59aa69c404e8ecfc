"""Configuration helpers for the ADB Trigger daemon."""

from .settings import RuntimeConfig, get_default_config, load_runtime_config

__all__ = ["RuntimeConfig", "get_default_config", "load_runtime_config"]
