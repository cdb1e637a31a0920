"""Tests for the preview CLI."""

import pytest

from sparkstorm.visual.cli import _progress_bar, build_parser, main
from sparkstorm.visual.preview import load_png


class TestParser:
    def test_defaults(self):
        args = build_parser().parse_args(["spark_storm"])
        assert args.frames == 300
        assert args.fps == 60
        assert args.output is None
        assert not args.no_glow

    def test_unknown_preset(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["rossler_cloud"])


class TestMain:
    def test_renders_png(self, tmp_path, capsys):
        out = tmp_path / "system.png"
        main([
            "lorenz_system", "-o", str(out), "-n", "3",
            "--width", "64", "--height", "48", "--seed", "1",
        ])
        assert out.exists()
        assert load_png(out).shape == (48, 64, 3)
        assert "Output:" in capsys.readouterr().out

    def test_storm_with_rotation(self, tmp_path):
        out = tmp_path / "storm.png"
        main([
            "spark_storm", "-o", str(out), "-n", "5", "--seed", "2",
            "--width", "40", "--height", "40", "--azimuth", "30", "--no-glow",
        ])
        assert out.exists()

    def test_rejects_non_positive_frames(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as info:
            main(["spark_storm", "-o", str(tmp_path / "x.png"), "-n", "0"])
        assert info.value.code == 1
        assert "--frames" in capsys.readouterr().err


class TestFpsValidation:
    def test_rejects_zero_fps(self, tmp_path, capsys):
        out = tmp_path / "x.png"
        with pytest.raises(SystemExit) as info:
            main(["spark_storm", "-o", str(out), "-n", "2", "--fps", "0"])
        assert info.value.code == 1
        assert "fps" in capsys.readouterr().err
        assert not out.exists()


class TestProgressBar:
    def test_reports_completion(self, capsys):
        for i in range(1, 41):
            _progress_bar(i, 40)
        out = capsys.readouterr().out
        assert "(40/40 frames)" in out
