"""Tests for the robot-forage command line and its settings."""

from __future__ import annotations

import pytest

from forage_app.config import Settings
from forage_app.main import main, parse_args


pytestmark = pytest.mark.unit


class TestSettings:
    def test_defaults_match_simulation_defaults(self):
        config = Settings(_env_file=None).to_simulation_config()
        assert (config.width, config.height, config.seed) == (150, 50, 42)
        assert config.roster == ("explorer", "miner", "miner")
        assert config.miner_capacity == 5

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("FORAGE_WIDTH", "40")
        monkeypatch.setenv("FORAGE_MINERS", "4")
        s = Settings(_env_file=None)
        assert s.width == 40
        assert s.to_simulation_config().roster.count("miner") == 4


class TestParseArgs:
    def test_defaults_come_from_settings(self):
        defaults = Settings(_env_file=None, seed=9, miners=3)
        args = parse_args([], defaults=defaults)
        assert args.seed == 9
        assert args.miners == 3
        assert args.max_ticks == 0
        assert not args.until_done

    def test_flags(self):
        args = parse_args(["--width", "30", "--capacity", "2", "--until-done", "--no-render"])
        assert args.width == 30
        assert args.capacity == 2
        assert args.until_done and args.no_render


class TestMain:
    def test_invalid_config_exits_2(self, capsys):
        code = main(["--width", "0", "--no-render", "--log-level", "ERROR"])
        assert code == 2
        assert "ERROR:" in capsys.readouterr().err

    def test_negative_robot_count_exits_2(self, capsys):
        code = main(["--miners", "-3", "--no-render", "--log-level", "ERROR"])
        assert code == 2
        assert "miner count must not be negative" in capsys.readouterr().err

    def test_bounded_headless_run(self, capsys):
        code = main(["--width", "20", "--height", "10", "--tick-interval", "0",
                     "--max-ticks", "20", "--no-render", "--log-level", "ERROR"])
        assert code == 0
        out = capsys.readouterr().out
        assert out.startswith("Stopped after ")

    def test_until_done_on_empty_map(self, capsys):
        code = main(["--width", "12", "--height", "8", "--resource-density", "0",
                     "--tick-interval", "0", "--until-done", "--no-render", "--log-level", "ERROR"])
        assert code == 0
        assert "Base inventory {}" in capsys.readouterr().out

    def test_rendered_frames_printed(self, capsys):
        main(["--width", "8", "--height", "4", "--tick-interval", "0",
              "--max-ticks", "1", "--log-level", "ERROR"])
        out = capsys.readouterr().out
        assert "+--------+" in out
        assert "tick " in out
