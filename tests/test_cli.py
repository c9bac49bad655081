"""
Tests for the command-line interface.
"""

import pytest
import numpy as np
import json
import sys
from pathlib import Path

# Add repository root to path
sys.path.insert(0, str(Path(__file__).parent.parent))


class FakeEngine:
    """Engine returning the same text for every mode."""

    def __init__(self, text="Invoice 2024\nTotal 1,250.00"):
        self.text = text
        self.release_count = 0

    def recognize(self, image, mode, languages=None):
        from scan_ocr.utils.ocr_text import RecognitionResult
        return RecognitionResult(text=self.text, confidence=80.0)

    def release(self):
        self.release_count += 1


class TestArgParsing:
    """Test argument parsing and config overrides."""

    def test_defaults(self):
        from scan_ocr.cli import setup_argparser

        args = setup_argparser().parse_args(["--input", "scan.png"])

        assert args.input == "scan.png"
        assert args.page == 1
        assert args.profile is None
        assert args.json is False

    def test_parse_modes(self):
        from scan_ocr.cli import parse_modes

        assert parse_modes("3, 4,6") == [3, 4, 6]
        assert parse_modes("11") == [11]

    @pytest.mark.parametrize("value", ["", "5", "3,x"])
    def test_parse_modes_invalid(self, value):
        import argparse
        from scan_ocr.cli import parse_modes

        with pytest.raises(argparse.ArgumentTypeError):
            parse_modes(value)

    def test_build_config(self, monkeypatch):
        from scan_ocr.cli import build_config, setup_argparser
        from scan_ocr.config import Profile, SourceKind

        monkeypatch.delenv("SCAN_OCR_PROFILE", raising=False)
        args = setup_argparser().parse_args([
            "--input", "scan.png",
            "--profile", "enhanced",
            "--lang", "eng",
            "--modes", "6,11",
            "--scale", "2",
            "--remove-borders",
            "--dilate", "1",
        ])
        config = build_config(args)

        pipeline = config.pipeline_for(SourceKind.IMAGE)
        assert pipeline.profile is Profile.ENHANCED
        assert pipeline.remove_borders is True
        assert pipeline.dilate_iterations == 1
        assert config.pipeline_for(SourceKind.RENDERED_PAGE).remove_borders is True
        assert config.ocr.languages == "eng"
        assert config.ocr.modes == (6, 11)
        assert config.render.scale == 2.0


class TestRunPipeline:
    """Test running the CLI pipeline with a fake engine."""

    @pytest.fixture
    def scan_file(self, tmp_path):
        import cv2

        img = np.ones((60, 120, 3), dtype=np.uint8) * 255
        cv2.putText(img, "Hi", (10, 40), cv2.FONT_HERSHEY_SIMPLEX, 1.0, (0, 0, 0), 2)
        path = tmp_path / "scan.png"
        cv2.imwrite(str(path), img)
        return path

    @pytest.fixture
    def fake_engine(self, monkeypatch):
        from scan_ocr.utils.ocr_text import TesseractEngine

        engine = FakeEngine()
        monkeypatch.setattr(TesseractEngine, "from_config", classmethod(lambda cls, config: engine))
        return engine

    def test_text_output(self, scan_file, fake_engine, tmp_path):
        from scan_ocr.cli import run_pipeline, setup_argparser

        output = tmp_path / "out" / "result.txt"
        args = setup_argparser().parse_args(["--input", str(scan_file), "--output", str(output), "-q"])

        assert run_pipeline(args) == 0
        assert output.read_text(encoding="utf-8") == "Invoice 2024\nTotal 1,250.00\n"
        assert fake_engine.release_count == 1

    def test_json_output(self, scan_file, fake_engine, tmp_path):
        from scan_ocr.cli import run_pipeline, setup_argparser

        output = tmp_path / "result.json"
        args = setup_argparser().parse_args([
            "--input", str(scan_file), "--json", "--output", str(output), "--modes", "3,6"
        ])

        assert run_pipeline(args) == 0
        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["text"] == "Invoice 2024\nTotal 1,250.00"
        assert [c["mode"] for c in data["candidates"]] == [3, 6]

    def test_stdout(self, scan_file, fake_engine, capsys):
        from scan_ocr.cli import run_pipeline, setup_argparser

        args = setup_argparser().parse_args(["--input", str(scan_file), "-q"])

        assert run_pipeline(args) == 0
        assert capsys.readouterr().out == "Invoice 2024\nTotal 1,250.00\n"

    def test_save_preprocessed(self, scan_file, fake_engine, tmp_path):
        from scan_ocr.cli import run_pipeline, setup_argparser

        preprocessed = tmp_path / "pre.png"
        args = setup_argparser().parse_args([
            "--input", str(scan_file), "--save-preprocessed", str(preprocessed), "-q"
        ])

        assert run_pipeline(args) == 0
        assert preprocessed.exists()

    def test_unsupported_input(self, tmp_path, fake_engine):
        from scan_ocr.cli import run_pipeline, setup_argparser

        bad = tmp_path / "notes.txt"
        bad.write_text("not a scan")
        args = setup_argparser().parse_args(["--input", str(bad), "-q"])

        assert run_pipeline(args) == 1

    def test_invalid_modes(self, scan_file):
        from scan_ocr.cli import run_pipeline, setup_argparser

        args = setup_argparser().parse_args(["--input", str(scan_file), "--modes", "42", "-q"])

        assert run_pipeline(args) == 2
