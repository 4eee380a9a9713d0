"""Configuration management for Patchbay."""

from .loader import SettingsLoader, load_settings
from .schema import PatchbaySettings

__all__ = ["PatchbaySettings", "SettingsLoader", "load_settings"]
