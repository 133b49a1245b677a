"""Configuration module -- settings and masking flags."""

from profilegate.config.masking import MaskingFlags, load_masking_flags
from profilegate.config.settings import LauncherSettings

__all__ = [
    "LauncherSettings",
    "MaskingFlags",
    "load_masking_flags",
]
