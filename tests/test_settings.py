"""Tests for settings resolution."""

import os
from pathlib import Path

from lazycli.lib.executor import DEFAULT_SHELL
from lazycli.lib.settings import LazySettings, apply_search_path, expand_search_path


class TestLazySettings:
    def test_defaults(self):
        settings = LazySettings.from_env(environ={})
        assert settings.config_dir == Path("~/.config/lazy").expanduser()
        assert settings.shell == DEFAULT_SHELL
        assert settings.path is None
        assert settings.debug is False

    def test_environment(self, tmp_path):
        settings = LazySettings.from_env(
            environ={"LAZY_CONFIG_DIR": str(tmp_path), "LAZY_SHELL": "/bin/sh", "LAZY_DEBUG": "1"}
        )
        assert settings.config_dir == tmp_path
        assert settings.shell == "/bin/sh"
        assert settings.debug is True

    def test_overrides_beat_environment(self, tmp_path):
        settings = LazySettings.from_env(
            environ={"LAZY_SHELL": "/bin/zsh"}, shell="/bin/sh", config_dir=tmp_path, path=None
        )
        assert settings.shell == "/bin/sh"
        assert settings.config_dir == tmp_path

    def test_config_dir_tilde_expanded(self):
        settings = LazySettings.from_env(environ={"LAZY_CONFIG_DIR": "~/packages"})
        assert not str(settings.config_dir).startswith("~")


class TestSearchPath:
    def test_expand_leading_tilde_only(self):
        home = os.path.expanduser("~")
        expanded = expand_search_path(os.pathsep.join(["~/bin", "/usr/bin", "/opt/~x"]))
        assert expanded.split(os.pathsep) == [f"{home}/bin", "/usr/bin", "/opt/~x"]

    def test_apply_exports_path(self, monkeypatch):
        monkeypatch.setenv("PATH", "/usr/bin")
        assert apply_search_path("~/bin:/bin") == os.environ["PATH"]
        assert os.environ["PATH"].endswith(":/bin")

    def test_apply_without_preference_keeps_path(self, monkeypatch):
        monkeypatch.setenv("PATH", "/usr/bin")
        assert apply_search_path(None) == "/usr/bin"
