"""Tests for flow config parsing and loading."""

import httpx
import pytest

from flowstate.core.errors import ConfigLoadError, MissingWebhook
from flowstate.flow.parser import FlowConfigLoader, FlowConfigParser, is_url
from flowstate.flow.schema import FlowConfig, StepConfig


class TestFlowConfig:
    def test_from_dict(self, flow_config_dict):
        config = FlowConfig.model_validate(flow_config_dict)
        assert config.route == "i-ching-journal"
        assert config.require_webhook() == "/hook"
        assert config.step_for("reading-form.html").next_step_fallback == "summary.html"

    def test_unknown_page_gets_empty_step(self):
        assert FlowConfig().step_for("nope.html") == StepConfig()

    def test_null_sections(self):
        config = FlowConfig.model_validate({"initialization": None, "steps_by_page": None})
        assert config.steps_by_page == {}
        assert config.webhook_url is None

    def test_missing_webhook(self):
        with pytest.raises(MissingWebhook) as exc_info:
            FlowConfig.model_validate({"initialization": {"webhook_url": ""}}).require_webhook()
        assert "webhook_url is missing" in str(exc_info.value)

    def test_extra_keys_allowed(self):
        config = FlowConfig.model_validate({"title": "Journal", "steps_by_page": {"a.html": {"x": 1}}})
        assert config.step_for("a.html").request_variables is None


class TestFlowConfigParser:
    def test_parse_json_string(self):
        config = FlowConfigParser.parse_string('{"initialization": {"webhook_url": "/h"}}')
        assert config.webhook_url == "/h"

    def test_parse_yaml_string(self):
        content = """
initialization:
  webhook_url: /h
  start_page: step1.html
"""
        config = FlowConfigParser.parse_string(content, format="yaml")
        assert config.initialization.start_page == "step1.html"

    def test_invalid_json(self):
        with pytest.raises(ConfigLoadError):
            FlowConfigParser.parse_string("{nope")

    def test_non_object(self):
        with pytest.raises(ConfigLoadError, match="must be an object"):
            FlowConfigParser.parse_string("[]")

    def test_invalid_types(self):
        with pytest.raises(ConfigLoadError, match="Invalid flow config"):
            FlowConfigParser.parse_dict({"steps_by_page": ["a"]})

    def test_parse_file(self, config_file):
        assert FlowConfigParser.parse_file(config_file).route == "i-ching-journal"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigLoadError, match="Unable to load config.json"):
            FlowConfigParser.parse_file(tmp_path / "config.json")

    def test_validate_file(self, config_file, tmp_path):
        assert FlowConfigParser.validate_file(config_file)[0] is True

        no_hook = tmp_path / "nohook.json"
        no_hook.write_text("{}")
        valid, message = FlowConfigParser.validate_file(no_hook)
        assert valid is False
        assert "webhook_url" in message


class TestFlowConfigLoader:
    def test_is_url(self):
        assert is_url("https://x.test/config.json")
        assert not is_url("flows/config.json")

    def test_location(self, tmp_path):
        assert FlowConfigLoader("config.json", base_url="http://x.test/flow/").location == (
            "http://x.test/flow/config.json"
        )
        assert FlowConfigLoader("/config.json", base_url=str(tmp_path)).location == str(
            tmp_path / "config.json"
        )
        assert FlowConfigLoader("config.json").location == "config.json"

    async def test_load_file(self, config_file):
        loader = FlowConfigLoader("config.json", base_url=str(config_file.parent))
        config = await loader.load()
        assert config.webhook_url == "/hook"

    async def test_load_reads_fresh(self, config_file):
        loader = FlowConfigLoader(config_file)
        await loader.load()
        config_file.write_text('{"initialization": {"webhook_url": "/changed"}}')
        assert (await loader.load()).webhook_url == "/changed"

    async def test_load_url(self, webhook):
        async with httpx.AsyncClient(transport=webhook.transport) as http:
            loader = FlowConfigLoader("config.json", base_url="http://flow.test/", http=http)
            config = await loader.load()
            await loader.load()
        assert config.route == "i-ching-journal"
        assert webhook.config_fetches == 2

    async def test_load_url_not_found(self, webhook):
        webhook.config = None
        async with httpx.AsyncClient(transport=webhook.transport) as http:
            loader = FlowConfigLoader("config.json", base_url="http://flow.test/", http=http)
            with pytest.raises(ConfigLoadError, match="Unable to load config.json"):
                await loader.load()
