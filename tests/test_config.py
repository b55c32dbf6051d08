"""
Config merging, presets, logging setup and the diagnostics helpers.
"""

import logging

import numpy as np
import pytest

from aetherlab import (
    DEFAULT_CONFIG,
    PRESETS,
    RenderGeometry,
    RenderScheduler,
    TextureParams,
    get_preset,
    list_presets,
    load_config,
    setup_logger,
)
from aetherlab.diagnostics import describe_params, field_stats, preview_texture, roughness, sample_window
from aetherlab.params import HEX_PATTERN


class TestLoadConfig:

    def test_defaults(self):
        config = load_config()
        assert config["render"]["chunk_rows"] == 50
        assert config["render"]["settle_delay"] == 0.15
        assert config["render"]["reference_extent"] == 600
        assert config["resolution"]["tiers"] == {"preview": 600, "hd": 1920}

    def test_returns_independent_copy(self):
        config = load_config()
        config["render"]["chunk_rows"] = 1
        config["resolution"]["tiers"]["preview"] = 1
        assert DEFAULT_CONFIG["render"]["chunk_rows"] == 50
        assert DEFAULT_CONFIG["resolution"]["tiers"]["preview"] == 600

    def test_deep_merge_keeps_siblings(self):
        config = load_config({"render": {"chunk_rows": 8}, "resolution": {"tiers": {"uhd": 3840}}})
        assert config["render"]["chunk_rows"] == 8
        assert config["render"]["settle_delay"] == 0.15
        assert config["resolution"]["tiers"] == {"preview": 600, "hd": 1920, "uhd": 3840}

    @pytest.mark.parametrize("value", ["many", None, float("inf"), -4, 0, 0.5])
    def test_bad_chunk_rows_ignored(self, value):
        assert load_config({"render": {"chunk_rows": value}})["render"]["chunk_rows"] == 50

    def test_zero_settle_delay_allowed(self):
        assert load_config({"render": {"settle_delay": 0}})["render"]["settle_delay"] == 0

    def test_numeric_strings_are_converted(self):
        config = load_config({"render": {"chunk_rows": "25", "settle_delay": "0.3"}})
        assert config["render"]["chunk_rows"] == 25
        assert config["render"]["settle_delay"] == pytest.approx(0.3)

    def test_scheduler_reads_config(self):
        scheduler = RenderScheduler(config={"render": {"chunk_rows": 10, "settle_delay": 0.5}})
        assert scheduler.chunk_rows == 10
        assert scheduler.settle_delay == 0.5


class TestPresets:

    def test_default_preset_matches_fresh_params(self):
        assert get_preset("Abyssal Flow") == TextureParams()

    def test_lookup_is_case_insensitive(self):
        assert get_preset("banded agate") is PRESETS["Banded Agate"].params

    def test_unknown_preset(self):
        with pytest.raises(ValueError, match="Unknown preset"):
            get_preset("Plaid")

    def test_every_preset_is_in_range(self):
        assert len(list_presets()) == 5
        for name in list_presets():
            params = get_preset(name)
            assert params == TextureParams.from_dict(params.to_dict())
            for color in (params.base_color, params.secondary_color, params.accent_color):
                assert HEX_PATTERN.match(color)


class TestLogger:

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = list(root.handlers), root.level
        yield
        for handler in root.handlers:
            if handler not in handlers:
                handler.close()
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_writes_log_file(self, tmp_path):
        logger = setup_logger(log_dir=str(tmp_path), log_name="unit")
        logging.getLogger("aetherlab.test").info("hello from the renderer")
        for handler in logger.handlers:
            handler.flush()

        files = list(tmp_path.glob("unit_*.log"))
        assert len(files) == 1
        assert "hello from the renderer" in files[0].read_text()

    def test_console_only_and_no_stacking(self):
        setup_logger(log_dir=None)
        logger = setup_logger(log_dir=None, level=logging.DEBUG)
        assert len(logger.handlers) == 1
        assert logger.level == logging.DEBUG


class TestDiagnostics:

    def test_field_stats(self):
        stats = field_stats(np.array([[-1.0, 1.0], [0.0, 0.0]]))
        assert stats["min"] == -1.0
        assert stats["max"] == 1.0
        assert stats["mean"] == 0.0
        assert stats["std"] == pytest.approx(np.sqrt(0.5))

    def test_roughness_of_constant_field(self):
        assert roughness(np.zeros((8, 8))) == 0.0

    def test_roughness_noise_beats_ramp(self):
        ramp = np.tile(np.linspace(0, 1, 32), (32, 1))
        noise = np.random.default_rng(1).uniform(-1, 1, (32, 32))
        assert roughness(noise) > roughness(ramp)

    def test_sample_window_range(self):
        window = sample_window(TextureParams(phase=6.0), size=32)
        assert window.shape == (32, 32)
        assert np.all(np.abs(window) <= 1.0)

    def test_describe_params(self, small_geometry):
        stats = describe_params(TextureParams(), small_geometry, size=16)
        assert set(stats) == {"min", "max", "mean", "std", "roughness"}
        assert stats["min"] <= stats["mean"] <= stats["max"]

    def test_preview_texture_headless(self):
        import matplotlib.pyplot as plt

        scheduler = RenderScheduler(config={"render": {"settle_delay": 0}})
        scheduler.submit(TextureParams(), geometry=RenderGeometry(24, 16), immediate=True)
        result = scheduler.run_until_complete()

        fig = preview_texture(result, show=False)
        assert fig.axes[0].images[0].get_array().shape == (16, 24, 4)
        plt.close(fig)
