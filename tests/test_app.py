"""Tests for command-line parsing and logging level selection."""

import logging

import pytest

pytest.importorskip("PySide6.QtWebEngineWidgets")

from mdview.app import LOG_LEVEL_ENV_VAR, build_parser, resolve_log_level  # noqa: E402


@pytest.fixture(autouse=True)
def _clear_log_env(monkeypatch):
    monkeypatch.delenv(LOG_LEVEL_ENV_VAR, raising=False)


class TestParser:
    def test_path_is_optional(self):
        args = build_parser().parse_args([])
        assert args.path is None

    def test_path_argument(self):
        args = build_parser().parse_args(["notes/readme.md"])
        assert args.path == "notes/readme.md"

    def test_log_level_is_case_insensitive(self):
        args = build_parser().parse_args(["--log-level", "info", "a.md"])
        assert args.log_level == "INFO"

    def test_unknown_log_level_is_rejected(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--log-level", "chatty"])


class TestResolveLogLevel:
    def test_default_is_warning(self):
        assert resolve_log_level(build_parser().parse_args([])) == logging.WARNING

    def test_verbose_flag(self):
        assert resolve_log_level(build_parser().parse_args(["-v"])) == logging.DEBUG

    def test_explicit_level_wins_over_verbose(self):
        args = build_parser().parse_args(["-v", "--log-level", "ERROR"])
        assert resolve_log_level(args) == logging.ERROR

    def test_environment_variable(self, monkeypatch):
        monkeypatch.setenv(LOG_LEVEL_ENV_VAR, "info")
        assert resolve_log_level(build_parser().parse_args([])) == logging.INFO

    def test_bad_environment_value_is_ignored(self, monkeypatch):
        monkeypatch.setenv(LOG_LEVEL_ENV_VAR, "loud")
        assert resolve_log_level(build_parser().parse_args([])) == logging.WARNING
