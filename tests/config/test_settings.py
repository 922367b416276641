"""Tests for flowstate settings and the flowstate.yaml source."""

import os

import pytest

from flowstate.config.settings import FlowStateSettings, YamlConfigSource
from flowstate.core.gate import DEFAULT_STATUS_MESSAGE
from flowstate.core.store import STORAGE_KEY


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Run each test from an empty directory with no FLOWSTATE_ variables."""
    monkeypatch.chdir(tmp_path)
    for name in list(os.environ):
        if name.startswith("FLOWSTATE_"):
            monkeypatch.delenv(name)


class TestDefaults:
    def test_defaults(self):
        settings = FlowStateSettings()
        assert settings.debug is False
        assert settings.flow.config_path == "config.json"
        assert settings.flow.landing_page == "index.html"
        assert settings.storage.backend == "file"
        assert settings.storage.key == STORAGE_KEY
        assert settings.webhook.timeout is None
        assert settings.status.default_message == DEFAULT_STATUS_MESSAGE


class TestYamlConfig:
    def test_flat_keys(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text(
            "config: flows/journal/config.json\n"
            "base_url: http://localhost:8080/journal/\n"
            "storage: memory\n"
            "storage_dir: .state\n"
            "timeout: 12\n"
            "waiting_message: Hold on...\n"
            "log_level: DEBUG\n"
        )
        settings = FlowStateSettings(_config_path=str(path))
        assert settings.flow.config_path == "flows/journal/config.json"
        assert settings.flow.base_url == "http://localhost:8080/journal/"
        assert settings.storage.backend == "memory"
        assert settings.storage.directory == ".state"
        assert settings.webhook.timeout == 12
        assert settings.status.default_message == "Hold on..."
        assert settings.log_level == "DEBUG"

    def test_sections(self, tmp_path):
        path = tmp_path / "flowstate.yaml"
        path.write_text(
            "archive:\n"
            "  flow_name: dream-log\n"
            "webhook:\n"
            "  headers:\n"
            "    X-Flow: journal\n"
            "storage:\n"
            "  backend: memory\n"
        )
        settings = FlowStateSettings()
        assert settings.archive.flow_name == "dream-log"
        assert settings.webhook.headers == {"X-Flow": "journal"}
        assert settings.storage.backend == "memory"

    def test_flat_key_overrides_section(self):
        source = YamlConfigSource.__new__(YamlConfigSource)
        source._yaml_data = {"flow": {"landing_page": "a.html"}, "landing_page": "b.html"}
        assert source._map_to_settings()["flow"]["landing_page"] == "b.html"

    def test_env_config_path(self, tmp_path, monkeypatch):
        path = tmp_path / "elsewhere.yml"
        path.write_text("landing_page: start.html\n")
        monkeypatch.setenv("FLOWSTATE_CONFIG", str(path))
        assert FlowStateSettings().flow.landing_page == "start.html"

    def test_missing_file_uses_defaults(self, tmp_path):
        settings = FlowStateSettings(_config_path=str(tmp_path / "absent.yaml"))
        assert settings.flow.config_path == "config.json"

    def test_invalid_yaml_ignored(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("config: [unclosed\n")
        settings = FlowStateSettings(_config_path=str(path))
        assert settings.flow.config_path == "config.json"


class TestEnvOverrides:
    def test_nested_env(self, monkeypatch):
        monkeypatch.setenv("FLOWSTATE_FLOW__BASE_URL", "http://env.test/")
        monkeypatch.setenv("FLOWSTATE_DEBUG", "true")
        settings = FlowStateSettings()
        assert settings.flow.base_url == "http://env.test/"
        assert settings.debug is True

    def test_yaml_beats_env(self, tmp_path, monkeypatch):
        path = tmp_path / "flowstate.yaml"
        path.write_text("base_url: http://yaml.test/\n")
        monkeypatch.setenv("FLOWSTATE_FLOW__BASE_URL", "http://env.test/")
        assert FlowStateSettings().flow.base_url == "http://yaml.test/"

    def test_init_beats_yaml(self, tmp_path):
        path = tmp_path / "flowstate.yaml"
        path.write_text("debug: false\n")
        assert FlowStateSettings(debug=True).debug is True
