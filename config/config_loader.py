"""Load settings.yaml into typed dataclasses. Checks API keys at startup."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"


@dataclass
class AgentConfig:
    name: str
    sdk: str
    model: str
    api_key_env: str
    timeout_sec: int
    max_tokens: int
    base_url: str | None = None


@dataclass
class CaptureConfig:
    poll_interval_sec: float = 0.5
    stable_threshold: int = 4
    max_wait_sec: float = 600.0


@dataclass
class DispatchConfig:
    max_attempts: int = 3
    retry_delay_sec: float = 1.0
    submit_timeout_sec: float = 2.0


@dataclass
class PromptsConfig:
    opening: str
    cross_eval: str
    summary: str
    mutual_header: str
    mutual_default: str
    interject: str


@dataclass
class DefaultsConfig:
    output_dir: Path
    state_file: Path
    default_targets: list[str] = field(default_factory=list)


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    agents: dict[str, AgentConfig]
    prompts: PromptsConfig
    capture: CaptureConfig = field(default_factory=CaptureConfig)
    dispatch: DispatchConfig = field(default_factory=DispatchConfig)
    available_agents: set[str] = field(default_factory=set)

    @property
    def agent_ids(self) -> list[str]:
        return list(self.agents)


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing.
    Logs agents without an API key but does not raise — callers check
    available_agents.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    defaults = DefaultsConfig(
        output_dir=Path(defaults_raw["output_dir"]),
        state_file=Path(defaults_raw["state_file"]),
        default_targets=list(defaults_raw.get("default_targets", [])),
    )

    capture_raw = raw.get("capture", {})
    capture = CaptureConfig(
        poll_interval_sec=float(capture_raw.get("poll_interval_sec", 0.5)),
        stable_threshold=int(capture_raw.get("stable_threshold", 4)),
        max_wait_sec=float(capture_raw.get("max_wait_sec", 600)),
    )

    dispatch_raw = raw.get("dispatch", {})
    dispatch = DispatchConfig(
        max_attempts=int(dispatch_raw.get("max_attempts", 3)),
        retry_delay_sec=float(dispatch_raw.get("retry_delay_sec", 1.0)),
        submit_timeout_sec=float(dispatch_raw.get("submit_timeout_sec", 2.0)),
    )

    prompts_raw = raw["prompts"]
    prompts = PromptsConfig(
        opening=prompts_raw["opening"],
        cross_eval=prompts_raw["cross_eval"],
        summary=prompts_raw["summary"],
        mutual_header=prompts_raw["mutual_header"],
        mutual_default=prompts_raw["mutual_default"],
        interject=prompts_raw["interject"],
    )

    agents: dict[str, AgentConfig] = {}
    available_agents: set[str] = set()

    for agent_id, agent_raw in raw["agents"].items():
        agent_cfg = AgentConfig(
            name=agent_id,
            sdk=agent_raw["sdk"],
            model=agent_raw["model"],
            api_key_env=agent_raw["api_key_env"],
            timeout_sec=int(agent_raw["timeout_sec"]),
            max_tokens=int(agent_raw["max_tokens"]),
            base_url=agent_raw.get("base_url"),
        )
        agents[agent_id] = agent_cfg

        api_key = os.environ.get(agent_raw["api_key_env"], "").strip()
        if api_key:
            available_agents.add(agent_id)
            logger.info("Agent available: %s", agent_id)
        else:
            logger.info(
                "Agent skipped (no API key): %s — set %s in .env",
                agent_id,
                agent_raw["api_key_env"],
            )

    return AppConfig(
        defaults=defaults,
        agents=agents,
        prompts=prompts,
        capture=capture,
        dispatch=dispatch,
        available_agents=available_agents,
    )
