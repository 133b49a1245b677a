"""Masking flag models and YAML loader.

Every fingerprint surface of a provisioned profile has an independent
masking mode. The defaults below are the fixed configuration sent with each
provisioning request; an optional YAML file can override individual flags:

    flags:
      canvas_noise: mask
      webrtc_masking: natural
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError

from profilegate.errors import ConfigError

logger = logging.getLogger(__name__)

MaskMode = Literal["mask", "natural", "custom"]
NoiseMode = Literal["mask", "natural"]
PopupMode = Literal["prompt", "allow", "block"]


class MaskingFlags(BaseModel):
    """Per-surface masking modes for a provisioned profile."""

    model_config = ConfigDict(extra="forbid")

    audio_masking: MaskMode = "mask"
    canvas_noise: NoiseMode = "natural"
    fonts_masking: MaskMode = "mask"
    geolocation_masking: MaskMode = "mask"
    geolocation_popup: PopupMode = "prompt"
    graphics_masking: MaskMode = "mask"
    graphics_noise: NoiseMode = "mask"
    localization_masking: MaskMode = "mask"
    media_devices_masking: MaskMode = "mask"
    navigator_masking: MaskMode = "mask"
    ports_masking: MaskMode = "mask"
    proxy_masking: MaskMode = "custom"
    screen_masking: MaskMode = "mask"
    timezone_masking: MaskMode = "mask"
    webrtc_masking: MaskMode = "mask"


def load_masking_flags(yaml_path: str | None) -> MaskingFlags:
    """Parse masking flag overrides from YAML on top of the defaults.

    A missing path (``None``) yields the defaults. A path that does not
    exist, does not parse, or holds invalid values is a ``ConfigError``:
    the operator asked for specific flags and silently ignoring them would
    provision a differently shaped profile.
    """
    if not yaml_path:
        return MaskingFlags()

    path = Path(yaml_path)
    if not path.exists():
        raise ConfigError(f"Masking flags file not found at {yaml_path}", path=yaml_path)

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse masking flags YAML at {yaml_path}: {exc}")

    if not isinstance(raw, dict):
        raise ConfigError(f"Masking flags YAML at {yaml_path} must be a mapping")

    overrides = raw.get("flags", raw)
    try:
        flags = MaskingFlags.model_validate(overrides)
    except ValidationError as exc:
        raise ConfigError(f"Invalid masking flags in {yaml_path}: {exc}")

    logger.debug("Loaded %d masking flag override(s) from %s", len(overrides), yaml_path)
    return flags
