"""YAML state file: last captured reply per agent and the saved target selection."""

import logging
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)


class StateStore:
    """Small key-value file that survives restarts.

    Layout:
        replies: {agent_id: text | null}
        selected_agents: [agent_id, ...]
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def load_replies(self) -> dict[str, str | None]:
        return dict(self._read().get("replies") or {})

    def save_reply(self, agent_id: str, content: str | None) -> None:
        data = self._read()
        replies = data.get("replies") or {}
        replies[agent_id] = content
        data["replies"] = replies
        self._write(data)

    def load_selection(self) -> list[str]:
        return list(self._read().get("selected_agents") or [])

    def save_selection(self, agent_ids: list[str]) -> None:
        data = self._read()
        data["selected_agents"] = list(agent_ids)
        self._write(data)

    def _read(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            with self._path.open("r", encoding="utf-8") as f:
                raw = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            logger.warning("State file %s is unreadable, starting empty: %s", self._path, exc)
            return {}
        return raw if isinstance(raw, dict) else {}

    def _write(self, data: dict) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, allow_unicode=True, sort_keys=True)
