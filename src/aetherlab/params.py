import logging
import math
import re
from dataclasses import dataclass, fields, replace as dc_replace
from typing import Any, Dict, Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)

RGB = Tuple[int, int, int]

BLACK: RGB = (0, 0, 0)

HEX_PATTERN = re.compile(r"^#?([0-9a-f]{2})([0-9a-f]{2})([0-9a-f]{2})$", re.IGNORECASE)

# Valid interval for every numeric field. Out-of-range inputs are clamped.
PARAM_RANGES: Dict[str, Tuple[float, float]] = {
    "scale": (0.0002, 0.02),
    "distortion": (0.0, 10.0),
    "contrast": (0.5, 3.0),
    "brightness": (-0.5, 0.5),
    "phase": (0.0, 20.0),
    "detail": (1, 8),
}

SEED_MODULUS = 2 ** 32

# camelCase names used by the control surface and the suggestion service
_ALIASES = {
    "baseColor": "base_color",
    "secondaryColor": "secondary_color",
    "accentColor": "accent_color",
}


def parse_hex_color(value: Any) -> RGB:
    """
    Parses '#rrggbb' (or 'rrggbb', any case) into an (r, g, b) tuple.

    Anything else resolves to black so a render can always complete.
    """
    if isinstance(value, str):
        match = HEX_PATTERN.match(value.strip())
        if match:
            return tuple(int(group, 16) for group in match.groups())
    logger.warning(f"Malformed color {value!r}; falling back to black.")
    return BLACK


def _clamp(name: str, value: Any, default: float) -> float:
    low, high = PARAM_RANGES[name]
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.warning(f"Parameter '{name}'={value!r} is not numeric; using default {default}.")
        return default
    if not math.isfinite(number):
        logger.warning(f"Parameter '{name}'={value!r} is not finite; using default {default}.")
        return default
    if number < low or number > high:
        clamped = min(max(number, low), high)
        logger.warning(f"Parameter '{name}'={number} outside [{low}, {high}]; clamped to {clamped}.")
        return clamped
    return number


def _normalize_seed(value: Any, default: int) -> int:
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.warning(f"Seed {value!r} is not numeric; using default {default}.")
        return default
    if not math.isfinite(number):
        logger.warning(f"Seed {value!r} is not finite; using default {default}.")
        return default
    return int(math.floor(number)) % SEED_MODULUS


@dataclass(frozen=True)
class TextureParams:
    """
    Immutable parameter snapshot for one render.

    Construct through TextureParams(...) or TextureParams.from_dict(...);
    both clamp every numeric field into PARAM_RANGES, floor the seed and
    keep colors as the raw strings the caller supplied (they are parsed
    lazily, see 'ramp_colors').

    Attributes:
        base_color: Hex color at the dark end of the ramp (normalized value 0.0).
        secondary_color: Hex color in the middle of the ramp (0.5).
        accent_color: Hex color at the bright end of the ramp (1.0).
        scale: Sampling frequency per reference pixel. Lower = zoomed in / smoother.
        distortion: Domain warp strength. 0 disables warping.
        contrast: Multiplier around mid-grey applied before color mapping.
        brightness: Offset applied after contrast.
        phase: Banding frequency. 0 disables banding (smooth clouds).
        detail: fBm octave count (1-8).
        seed: Integer driving the permutation table.
    """
    base_color: str = "#0f172a"
    secondary_color: str = "#3b82f6"
    accent_color: str = "#bfdbfe"
    scale: float = 0.003
    distortion: float = 4.5
    contrast: float = 1.2
    brightness: float = 0.0
    phase: float = 0.0
    detail: int = 4
    seed: int = 12345

    def __post_init__(self):
        # Frozen dataclass: normalized values are written through object.__setattr__
        defaults = _DEFAULTS
        for name in ("scale", "distortion", "contrast", "brightness", "phase"):
            object.__setattr__(self, name, _clamp(name, getattr(self, name), getattr(defaults, name)))

        detail = _clamp("detail", self.detail, defaults.detail)
        object.__setattr__(self, "detail", int(round(detail)))
        object.__setattr__(self, "seed", _normalize_seed(self.seed, defaults.seed))

        for name in ("base_color", "secondary_color", "accent_color"):
            value = getattr(self, name)
            if not isinstance(value, str):
                object.__setattr__(self, name, str(value))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TextureParams":
        """
        Builds params from a loose mapping (camelCase or snake_case keys).
        Unknown keys are ignored; missing keys keep their defaults.
        """
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in data.items():
            name = _ALIASES.get(key, key)
            if name in known:
                kwargs[name] = value
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def replace(self, **changes) -> "TextureParams":
        """Returns a new (re-validated) snapshot with 'changes' applied."""
        return dc_replace(self, **changes)

    @property
    def field_key(self) -> Tuple[int, float, float, int, float]:
        """The fields the scalar field depends on (colors/contrast excluded)."""
        return (self.seed, self.scale, self.distortion, self.detail, self.phase)

    @property
    def ramp_colors(self) -> Tuple[RGB, RGB, RGB]:
        return (
            parse_hex_color(self.base_color),
            parse_hex_color(self.secondary_color),
            parse_hex_color(self.accent_color),
        )


# Built without validation side effects: every default is in range.
_DEFAULTS = TextureParams.__new__(TextureParams)
for _f in fields(TextureParams):
    object.__setattr__(_DEFAULTS, _f.name, _f.default)
del _f


def randomize_seed(params: TextureParams, rng: Optional[np.random.Generator] = None) -> TextureParams:
    """Returns a copy of 'params' with a fresh seed in [0, 10000)."""
    rng = rng if rng is not None else np.random.default_rng()
    new_seed = int(math.floor(rng.uniform(0, 10000)))
    logger.info(f"Randomized seed: {params.seed} -> {new_seed}")
    return params.replace(seed=new_seed)
