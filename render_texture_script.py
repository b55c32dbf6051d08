# --- SCRIPT TO RENDER A PROCEDURAL TEXTURE ---

from aetherlab import (
    RenderScheduler,
    TextureParams,
    get_preset,
    setup_logger,
)
from aetherlab.diagnostics import describe_params, preview_texture

# --- PARAMETERS TO CHANGE ---

# 1. Start from a named preset (see aetherlab.presets.PRESETS) or None for defaults
PRESET_NAME = "Abyssal Flow"

# 2. Per-field overrides applied on top of the preset
OVERRIDES = {
    "phase": 5.0,         # 0 = smooth clouds, 5+ = agate bands
    "detail": 4,          # Octaves (1-8)
    "distortion": 4.5,    # Domain warp strength (0-10)
}

# 3. Output size
RESOLUTION_TIER = "preview"   # "preview" (600px) or "hd" (1920px)
ASPECT_RATIO = "1:1"          # e.g. "16:9", "9:16", "4:3"

# 4. Rendering
SHOW_PROGRESS = True
LOG_DIR = "logs"

# --- END OF PARAMETERS ---


setup_logger(log_dir=LOG_DIR, log_name="aether_render")

base = get_preset(PRESET_NAME) if PRESET_NAME else TextureParams()
params = base.replace(**OVERRIDES)

scheduler = RenderScheduler()
scheduler.submit(params, tier=RESOLUTION_TIER, aspect=ASPECT_RATIO, immediate=True)
result = scheduler.run_until_complete(progress=SHOW_PROGRESS)

print(f"Render complete: {result.width}x{result.height} (generation {result.generation})")
describe_params(result.params, result.geometry)
preview_texture(result)
