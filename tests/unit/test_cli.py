"""
Unit tests for the command-line entry point.
"""

import pytest

from gamestate_api.__main__ import build_config, build_parser, main


class TestArguments:
    def test_flags_override_env(self, monkeypatch):
        monkeypatch.setenv("GAMESTATE_API_PORT", "9000")
        monkeypatch.setenv("GAMESTATE_API_HOST", "0.0.0.0")

        args = build_parser().parse_args(["-p", "7000", "--origin", "https://dash", "-w", "1"])
        config = build_config(args)

        assert config.port == 7000
        assert config.host == "0.0.0.0"
        assert config.allowed_origin == "https://dash"
        assert config.max_workers == config.min_workers == 1

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args(["--version"])

        assert exc_info.value.code == 0
        assert "gamestate-api" in capsys.readouterr().out

    def test_invalid_port_exits(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--port", "70000"])

        assert exc_info.value.code == 2
        assert "Invalid port" in capsys.readouterr().err

    def test_missing_snapshot_exits(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--port", "0", "--snapshot", str(tmp_path / "missing.json")])

        assert exc_info.value.code == 1
        assert "cannot load snapshot" in capsys.readouterr().err
