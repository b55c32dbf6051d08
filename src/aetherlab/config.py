"""
Render configuration.

The engine and scheduler take a plain nested dict (same shape as
DEFAULT_CONFIG). load_config() merges user overrides on top of the
defaults so callers only need to spell out what they change.
"""

import copy
import logging
import math
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# Rows rasterized between two cooperative yields. Independent of image size.
CHUNK_ROWS = 50

# Seconds of input quiet time before a queued request starts rendering.
SETTLE_DELAY = 0.15

# 'scale' is defined against this many pixels on the short side of the image.
REFERENCE_EXTENT = 600

# Max dimension (pixels) of each resolution tier.
RESOLUTION_TIERS = {
    "preview": 600,
    "hd": 1920,
}

DEFAULT_CONFIG: Dict[str, Any] = {
    "render": {
        "chunk_rows": CHUNK_ROWS,
        "settle_delay": SETTLE_DELAY,
        "reference_extent": REFERENCE_EXTENT,
    },
    "resolution": {
        "tiers": dict(RESOLUTION_TIERS),
        "default_tier": "preview",
        "default_aspect": "1:1",
    },
    "logging": {
        "log_dir": "logs",
        "log_name": "aether_render",
    },
}

# Keys whose override must be a positive number
_NUMERIC_KEYS = {
    ("render", "chunk_rows"),
    ("render", "settle_delay"),
    ("render", "reference_extent"),
}


def _merge(base: Dict[str, Any], overrides: Dict[str, Any], path: tuple = ()) -> None:
    for key, value in overrides.items():
        key_path = path + (key,)
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value, key_path)
            continue

        if key_path in _NUMERIC_KEYS:
            try:
                number = float(value)
            except (TypeError, ValueError):
                logger.warning(f"Ignoring config override {'.'.join(key_path)}={value!r} (not a number)")
                continue
            if not math.isfinite(number):
                logger.warning(f"Ignoring config override {'.'.join(key_path)}={value!r} (not finite)")
                continue
            if key in ("chunk_rows", "reference_extent"):
                number = int(number)
            # settle_delay may be zero (no debounce); the others must be positive
            if number < 0 or (number == 0 and key != "settle_delay"):
                logger.warning(f"Ignoring config override {'.'.join(key_path)}={value!r} (out of range)")
                continue
            value = number

        base[key] = value


def load_config(overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Returns a fresh copy of DEFAULT_CONFIG with 'overrides' deep-merged in.

    Unknown keys are kept as-is. Malformed values for the known numeric
    render keys are logged and dropped so the default stays in effect.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    if overrides:
        _merge(config, overrides)
    return config
