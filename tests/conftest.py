"""Shared pytest fixtures."""

import asyncio
from pathlib import Path

import pytest

from config.config_loader import (
    AgentConfig,
    AppConfig,
    CaptureConfig,
    DefaultsConfig,
    DispatchConfig,
    PromptsConfig,
)
from src.adapters.base import AgentAdapter
from src.orchestrator import Orchestrator


class FakeClock:
    """Virtual time. sleep() advances the clock and yields to the loop once."""

    def __init__(self, start: float = 0.0) -> None:
        self.time = start
        self.sleeps: list[float] = []

    def now(self) -> float:
        return self.time

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.time += seconds
        await asyncio.sleep(0)


class ScriptedAdapter(AgentAdapter):
    """Test double chat session.

    polls: values returned by successive extraction calls; once used up,
        extraction keeps returning the latest value.
    responses: reply that appears after each submit, in order.
    ready: bool, or a list of bools consumed one per is_ready() call
        (the last value sticks).
    """

    def __init__(
        self,
        agent_id: str,
        polls: list[str | None] | None = None,
        responses: list[str] | None = None,
        ready: bool | list[bool] = True,
        has_input: bool = True,
        has_submit: bool = True,
    ) -> None:
        self._agent_id = agent_id
        self.polls = list(polls or [])
        self.responses = list(responses or [])
        self.ready = ready
        self.has_input = has_input
        self.has_submit = has_submit
        self.current: str | None = None
        self.hint = False
        self.extract_error: Exception | None = None
        self.submit_error: Exception | None = None
        self.sent: list[str] = []
        self.extract_calls = 0
        self._draft = ""

    def name(self) -> str:
        return self._agent_id

    async def is_ready(self) -> bool:
        if isinstance(self.ready, list):
            return self.ready.pop(0) if len(self.ready) > 1 else self.ready[0]
        return self.ready

    async def locate_input(self) -> bool:
        return self.has_input

    async def inject_text(self, text: str) -> None:
        self._draft = text

    async def locate_submit(self) -> bool:
        return self.has_submit

    async def wait_until_enabled(self, timeout_sec: float) -> None:
        return None

    async def activate_submit(self) -> None:
        if self.submit_error is not None:
            raise self.submit_error
        self.sent.append(self._draft)
        if self.responses:
            self.current = self.responses.pop(0)

    async def extract_latest_reply_text(self) -> str | None:
        self.extract_calls += 1
        if self.extract_error is not None:
            raise self.extract_error
        if self.polls:
            self.current = self.polls.pop(0)
        return self.current

    async def detect_completion_hint(self) -> bool:
        return self.hint


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sample_agent_config() -> AgentConfig:
    return AgentConfig(
        name="test_agent",
        sdk="test",
        model="test-model-1",
        api_key_env="TEST_API_KEY",
        timeout_sec=30,
        max_tokens=1024,
        base_url=None,
    )


@pytest.fixture
def sample_prompts_config() -> PromptsConfig:
    return PromptsConfig(
        opening="Opening: {topic}",
        cross_eval="{other_name} said about {topic}:\n{other_response}\nYour view?",
        summary="Summarize:\n{history}",
        mutual_header="Here are the other answers:",
        mutual_default="Evaluate them.",
        interject="{message}\n\n{other_name} said:\n{other_response}",
    )


@pytest.fixture
def sample_defaults_config(tmp_path: Path) -> DefaultsConfig:
    return DefaultsConfig(
        output_dir=tmp_path / "output",
        state_file=tmp_path / "state.yaml",
        default_targets=["claude", "chatgpt"],
    )


@pytest.fixture
def sample_app_config(
    sample_defaults_config: DefaultsConfig,
    sample_prompts_config: PromptsConfig,
) -> AppConfig:
    agents = {
        name: AgentConfig(
            name=name,
            sdk=sdk,
            model=f"{name}-model",
            api_key_env=env,
            timeout_sec=60,
            max_tokens=4096,
        )
        for name, sdk, env in [
            ("claude", "anthropic", "ANTHROPIC_API_KEY"),
            ("chatgpt", "openai", "OPENAI_API_KEY"),
            ("gemini", "gemini", "GEMINI_API_KEY"),
        ]
    }
    return AppConfig(
        defaults=sample_defaults_config,
        agents=agents,
        prompts=sample_prompts_config,
        capture=CaptureConfig(),
        dispatch=DispatchConfig(),
        available_agents={"claude", "chatgpt", "gemini"},
    )


@pytest.fixture
def two_adapters() -> dict[str, ScriptedAdapter]:
    return {
        "claude": ScriptedAdapter("claude", responses=["Claude round 1", "Claude round 2", "Claude summary"]),
        "chatgpt": ScriptedAdapter("chatgpt", responses=["GPT round 1", "GPT round 2", "GPT summary"]),
    }


def make_orchestrator(
    adapters: dict[str, ScriptedAdapter],
    clock: FakeClock | None = None,
    agent_ids: list[str] | None = None,
    **kwargs,
) -> Orchestrator:
    """Orchestrator on virtual time with the given adapters registered."""
    orchestrator = Orchestrator(
        agent_ids if agent_ids is not None else list(adapters),
        clock=clock or FakeClock(),
        **kwargs,
    )
    for agent_id, adapter in adapters.items():
        orchestrator.register_adapter(agent_id, adapter)
    return orchestrator
