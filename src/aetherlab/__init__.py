from .params import TextureParams, PARAM_RANGES, parse_hex_color, randomize_seed
from .noise_kernel import NoiseKernel, build_permutation
from .field import FieldSampler, fbm, warp, band
from .colors import ColorRamp, colorize, colorize_field
from .geometry import RenderGeometry, resolve_geometry, parse_aspect
from .texture_engine import TextureEngine, render_texture
from .scheduler import (
    RenderScheduler,
    RenderGeneration,
    RenderResult,
    RenderState,
    RenderStatus,
    BackgroundRenderer
)
from .suggestions import apply_suggestion, validate_suggestion, SuggestionError, SUGGESTION_SCHEMA
from .presets import Preset, PRESETS, get_preset, list_presets
from .config import load_config, DEFAULT_CONFIG
from .logger import setup_logger

__version__ = "0.1.0"
