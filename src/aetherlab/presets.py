from dataclasses import dataclass
from typing import Dict, List

from .params import TextureParams


@dataclass(frozen=True)
class Preset:
    """A named, ready-to-render parameter set."""
    name: str
    params: TextureParams


# Deep blue liquid smoke: the look a fresh session opens with
ABYSSAL_FLOW = Preset(
    "Abyssal Flow",
    TextureParams(
        base_color="#0f172a",
        secondary_color="#3b82f6",
        accent_color="#bfdbfe",
        scale=0.003,
        distortion=4.5,
        contrast=1.2,
        brightness=0.0,
        detail=4,
        phase=0.0,
        seed=12345,
    ),
)

PRESETS: Dict[str, Preset] = {
    preset.name: preset
    for preset in (
        ABYSSAL_FLOW,
        Preset(
            "Banded Agate",
            TextureParams(
                base_color="#1c0f0a", secondary_color="#b45309", accent_color="#fde68a",
                scale=0.0025, distortion=3.0, contrast=1.1, brightness=0.0,
                detail=5, phase=9.0, seed=4242,
            ),
        ),
        Preset(
            "Toxic Sludge",
            TextureParams(
                base_color="#052e16", secondary_color="#65a30d", accent_color="#d9f99d",
                scale=0.006, distortion=7.5, contrast=1.6, brightness=-0.05,
                detail=6, phase=0.0, seed=666,
            ),
        ),
        Preset(
            "Morning Mist",
            TextureParams(
                base_color="#94a3b8", secondary_color="#e2e8f0", accent_color="#ffffff",
                scale=0.0015, distortion=2.0, contrast=0.8, brightness=0.1,
                detail=2, phase=0.0, seed=7,
            ),
        ),
        Preset(
            "Volcanic Strata",
            TextureParams(
                base_color="#0c0a09", secondary_color="#dc2626", accent_color="#fbbf24",
                scale=0.004, distortion=5.5, contrast=1.8, brightness=0.0,
                detail=8, phase=14.0, seed=9001,
            ),
        ),
    )
}


def list_presets() -> List[str]:
    return list(PRESETS)


def get_preset(name: str) -> TextureParams:
    """Parameters of preset 'name' (exact match, then case-insensitive)."""
    if name in PRESETS:
        return PRESETS[name].params
    lowered = {key.lower(): preset for key, preset in PRESETS.items()}
    if name.lower() in lowered:
        return lowered[name.lower()].params
    raise ValueError(f"Unknown preset '{name}'. Must be one of {list_presets()}")
