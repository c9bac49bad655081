"""
Tests for pipeline configuration.
"""

import pytest
import dataclasses
import sys
from pathlib import Path

# Add repository root to path
sys.path.insert(0, str(Path(__file__).parent.parent))


class TestPipelineConfig:
    """Test preprocessing profiles."""

    def test_standard_preset(self):
        from scan_ocr.config import PipelineConfig, Profile

        config = PipelineConfig.standard()

        assert config.profile is Profile.STANDARD
        assert config.contrast == 1.3
        assert config.brightness == 15.0
        assert config.grayscale is True
        assert config.sharpen_intensity == 1.0
        assert not (config.binarize or config.denoise or config.remove_borders)
        assert config.dilate_iterations == 0

    def test_enhanced_preset(self):
        from scan_ocr.config import PipelineConfig, Profile

        config = PipelineConfig.enhanced()

        assert config.profile is Profile.ENHANCED
        assert config.contrast == 1.5
        assert config.brightness == 25.0
        assert config.sharpen_intensity == 1.5
        assert config.binarize and config.denoise
        assert config.remove_borders is False

    def test_overrides(self):
        from scan_ocr.config import PipelineConfig, Profile

        config = PipelineConfig.for_profile(Profile.ENHANCED, dilate_iterations=2)

        assert config.profile is Profile.ENHANCED
        assert config.dilate_iterations == 2

    def test_immutable(self):
        from scan_ocr.config import PipelineConfig

        config = PipelineConfig.standard()

        with pytest.raises(dataclasses.FrozenInstanceError):
            config.contrast = 2.0

    @pytest.mark.parametrize("overrides", [
        {"pre_scale": 0.0},
        {"pre_scale": -1.0},
        {"dilate_iterations": -1},
    ])
    def test_invalid_values(self, overrides):
        from scan_ocr.config import PipelineConfig

        with pytest.raises(ValueError):
            PipelineConfig.standard(**overrides)


class TestAppConfig:
    """Test the top-level configuration and environment overrides."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for name in ("SCAN_OCR_LANG", "SCAN_OCR_PROFILE", "SCAN_OCR_RENDER_SCALE", "SCAN_OCR_DEBUG"):
            monkeypatch.delenv(name, raising=False)

    def test_defaults(self):
        from scan_ocr.config import get_config, Profile, SourceKind

        config = get_config()

        assert config.ocr.languages == "tha+eng"
        assert config.ocr.oem == 1
        assert config.ocr.modes == (3, 4, 6)
        assert config.ocr.fallback_mode == 6
        assert config.ocr.tesseract_variables["preserve_interword_spaces"] == "1"
        assert config.render.scale == 4.0
        assert config.render.dpi == 288
        assert config.pipeline_for(SourceKind.IMAGE).profile is Profile.STANDARD
        assert config.pipeline_for(SourceKind.RENDERED_PAGE).profile is Profile.STANDARD
        assert config.debug_mode is False

    def test_instances_independent(self):
        from scan_ocr.config import get_config

        a = get_config()
        a.ocr.tesseract_variables["foo"] = "bar"

        assert "foo" not in get_config().ocr.tesseract_variables

    def test_pipeline_for_source_kind(self):
        from scan_ocr.config import AppConfig, PipelineConfig, SourceKind

        config = AppConfig(rendered_page_pipeline=PipelineConfig.enhanced())

        assert config.pipeline_for(SourceKind.IMAGE).binarize is False
        assert config.pipeline_for(SourceKind.RENDERED_PAGE).binarize is True

    def test_environment_overrides(self, monkeypatch):
        from scan_ocr.config import get_config, Profile, SourceKind

        monkeypatch.setenv("SCAN_OCR_LANG", "eng")
        monkeypatch.setenv("SCAN_OCR_PROFILE", "Enhanced")
        monkeypatch.setenv("SCAN_OCR_RENDER_SCALE", "2.5")
        monkeypatch.setenv("SCAN_OCR_DEBUG", "true")

        config = get_config()

        assert config.ocr.languages == "eng"
        assert config.pipeline_for(SourceKind.IMAGE).profile is Profile.ENHANCED
        assert config.render.scale == 2.5
        assert config.render.dpi == 180
        assert config.debug_mode is True

    def test_invalid_environment_ignored(self, monkeypatch):
        from scan_ocr.config import get_config, Profile, SourceKind

        monkeypatch.setenv("SCAN_OCR_PROFILE", "turbo")
        monkeypatch.setenv("SCAN_OCR_RENDER_SCALE", "big")

        config = get_config()

        assert config.pipeline_for(SourceKind.IMAGE).profile is Profile.STANDARD
        assert config.render.scale == 4.0
