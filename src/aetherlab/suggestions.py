"""
Intake for parameter sets proposed by an external suggestion service
(e.g. a language model turning "toxic neon sludge" into numbers).

The service itself lives outside this package. Whatever it returns is
validated here; anything unusable means "no change" and the current
parameters are kept.
"""

import json
import logging
import math
from typing import Any, Callable, Dict, Optional, Union

import numpy as np

from .params import HEX_PATTERN, TextureParams

logger = logging.getLogger(__name__)

# Keys a suggestion must carry. The seed is never taken from a suggestion.
SUGGESTION_KEYS = (
    "baseColor",
    "secondaryColor",
    "accentColor",
    "scale",
    "distortion",
    "detail",
    "phase",
    "contrast",
    "brightness",
)

# JSON schema handed to the suggestion service, with the guidance ranges
SUGGESTION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "baseColor": {"type": "string", "description": "Hex color for the darkest/base tone (e.g. #001220)"},
        "secondaryColor": {"type": "string", "description": "Hex color for the mid-tone (e.g. #005588)"},
        "accentColor": {"type": "string", "description": "Hex color for the brightest highlights (e.g. #88ccff)"},
        "scale": {"type": "number", "description": "Zoom scale of noise (0.0002 to 0.02). Lower is smoother."},
        "distortion": {"type": "number", "description": "Domain warp strength (0 to 10). Higher is more liquid."},
        "detail": {"type": "integer", "description": "Octave count (1 to 8). 1 is smooth blobs, 8 is gritty."},
        "phase": {"type": "number", "description": "Banding (0 to 20). 0 is smooth clouds, 5+ is agate-like."},
        "contrast": {"type": "number", "description": "Contrast multiplier (0.5 to 3.0)"},
        "brightness": {"type": "number", "description": "Brightness offset (-0.5 to 0.5)"},
    },
    "required": list(SUGGESTION_KEYS),
}

Payload = Union[None, str, bytes, Dict[str, Any]]
PayloadSource = Union[Payload, Callable[[], Payload]]


class SuggestionError(ValueError):
    """Raised by validate_suggestion when a payload cannot be used."""


def _decode(payload: Payload) -> Dict[str, Any]:
    if payload is None:
        raise SuggestionError("suggestion service returned nothing")
    if isinstance(payload, (bytes, bytearray)):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise SuggestionError(f"suggestion body is not UTF-8: {exc}") from exc
    if isinstance(payload, str):
        if not payload.strip():
            raise SuggestionError("suggestion service returned an empty body")
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise SuggestionError(f"suggestion is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise SuggestionError(f"suggestion must be an object, got {type(payload).__name__}")
    return payload


def validate_suggestion(payload: Payload) -> Dict[str, Any]:
    """
    Decodes and checks a suggestion payload.

    Returns the SUGGESTION_KEYS entries of it (types checked, extras dropped).
    Raises SuggestionError on anything structurally wrong. Out-of-range
    numbers are not an error here; TextureParams clamps them.
    """
    data = _decode(payload)

    missing = [key for key in SUGGESTION_KEYS if key not in data]
    if missing:
        raise SuggestionError(f"suggestion is missing keys: {', '.join(missing)}")

    clean = {}
    for key in SUGGESTION_KEYS:
        value = data[key]
        if key.endswith("Color"):
            if not isinstance(value, str) or not HEX_PATTERN.match(value.strip()):
                raise SuggestionError(f"{key}={value!r} is not a hex color")
            clean[key] = value.strip()
        else:
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                raise SuggestionError(f"{key}={value!r} is not a finite number")
            clean[key] = value
    return clean


def apply_suggestion(
    current: TextureParams,
    source: PayloadSource,
    rng: Optional[np.random.Generator] = None
) -> TextureParams:
    """
    Merges a suggestion into new parameters, or keeps 'current'.

    Args:
        current: Parameters in effect now.
        source: The payload (dict / JSON text / None) or a zero-argument
                callable that fetches it. Exceptions raised by the callable
                count as a failed suggestion.
        rng: Source for the fresh seed given to every accepted suggestion.

    Returns:
        New clamped TextureParams, or 'current' unchanged on any failure.
    """
    try:
        payload = source() if callable(source) else source
        clean = validate_suggestion(payload)
    except Exception as exc:
        logger.warning(f"Parameter suggestion rejected, keeping current parameters: {exc}")
        return current

    rng = rng if rng is not None else np.random.default_rng()
    clean["seed"] = int(math.floor(rng.uniform(0, 10000)))
    suggested = TextureParams.from_dict(clean)
    logger.info(f"Applied parameter suggestion (seed={suggested.seed})")
    return suggested
