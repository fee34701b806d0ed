"""Tests for config/config_loader.py."""

from pathlib import Path

import pytest
import yaml

from config.config_loader import AppConfig, CaptureConfig, DispatchConfig, load_config


@pytest.fixture
def minimal_settings(tmp_path: Path) -> Path:
    """Write a minimal valid settings.yaml to a temp path."""
    settings = {
        "defaults": {
            "output_dir": "./output",
            "state_file": "./state.yaml",
            "default_targets": ["claude"],
        },
        "agents": {
            "claude": {
                "sdk": "anthropic",
                "model": "claude-sonnet-4-20250514",
                "api_key_env": "TEST_CLAUDE_KEY",
                "timeout_sec": 120,
                "max_tokens": 8192,
            },
            "chatglm": {
                "sdk": "openai",
                "model": "glm-4-plus",
                "api_key_env": "TEST_ZHIPU_KEY",
                "base_url": "https://open.bigmodel.cn/api/paas/v4/",
                "timeout_sec": 60,
                "max_tokens": 4096,
            },
        },
        "prompts": {
            "opening": "Topic: {topic}",
            "cross_eval": "{other_name} on {topic}: {other_response}",
            "summary": "Summarize: {history}",
            "mutual_header": "Others said:",
            "mutual_default": "Evaluate.",
            "interject": "{message} {other_name} {other_response}",
        },
    }
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.dump(settings, sort_keys=False), encoding="utf-8")
    return path


def test_load_config_returns_app_config(minimal_settings):
    config = load_config(minimal_settings)
    assert isinstance(config, AppConfig)


def test_load_config_defaults(minimal_settings):
    config = load_config(minimal_settings)
    assert isinstance(config.defaults.output_dir, Path)
    assert config.defaults.state_file == Path("./state.yaml")
    assert config.defaults.default_targets == ["claude"]


def test_capture_and_dispatch_sections_are_optional(minimal_settings):
    config = load_config(minimal_settings)
    assert config.capture == CaptureConfig(poll_interval_sec=0.5, stable_threshold=4, max_wait_sec=600.0)
    assert config.dispatch == DispatchConfig(max_attempts=3, retry_delay_sec=1.0, submit_timeout_sec=2.0)


def test_capture_section_overrides(minimal_settings):
    raw = yaml.safe_load(minimal_settings.read_text(encoding="utf-8"))
    raw["capture"] = {"poll_interval_sec": 0.25, "stable_threshold": 6}
    minimal_settings.write_text(yaml.dump(raw, sort_keys=False), encoding="utf-8")

    config = load_config(minimal_settings)

    assert config.capture.poll_interval_sec == 0.25
    assert config.capture.stable_threshold == 6
    assert config.capture.max_wait_sec == 600.0


def test_agent_fields(minimal_settings):
    config = load_config(minimal_settings)
    claude = config.agents["claude"]
    assert claude.sdk == "anthropic"
    assert claude.timeout_sec == 120
    assert claude.base_url is None
    assert config.agents["chatglm"].base_url == "https://open.bigmodel.cn/api/paas/v4/"
    assert config.agent_ids == ["claude", "chatglm"]


def test_prompts_loaded(minimal_settings):
    config = load_config(minimal_settings)
    assert "{topic}" in config.prompts.opening
    assert "{history}" in config.prompts.summary
    assert config.prompts.mutual_default == "Evaluate."


def test_available_agents_follow_api_keys(minimal_settings, monkeypatch):
    monkeypatch.setenv("TEST_CLAUDE_KEY", "sk-test")
    monkeypatch.delenv("TEST_ZHIPU_KEY", raising=False)
    config = load_config(minimal_settings)
    assert config.available_agents == {"claude"}


def test_blank_api_key_is_unavailable(minimal_settings, monkeypatch):
    monkeypatch.setenv("TEST_CLAUDE_KEY", "   ")
    monkeypatch.delenv("TEST_ZHIPU_KEY", raising=False)
    config = load_config(minimal_settings)
    assert config.available_agents == set()


def test_missing_settings_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.yaml")


def test_shipped_settings_load():
    config = load_config()
    assert set(config.agents) == {"claude", "chatgpt", "gemini", "chatglm", "aistudio"}
    assert config.capture.stable_threshold == 4
    for template in ("opening", "cross_eval", "summary", "interject"):
        assert getattr(config.prompts, template)
