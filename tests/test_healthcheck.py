"""Unit tests for src/healthcheck.py — no real API calls."""

import asyncio
from unittest.mock import AsyncMock

from src.healthcheck import publish_connectivity, run_health_checks
from src.models import ConnectionState
from tests.conftest import ScriptedAdapter, make_orchestrator


class HangingAdapter(ScriptedAdapter):
    async def probe(self) -> None:
        await asyncio.sleep(10)


async def test_all_agents_pass():
    adapters = {"claude": ScriptedAdapter("claude"), "gemini": ScriptedAdapter("gemini")}

    results = await run_health_checks(adapters)

    assert results == {"claude": (True, ""), "gemini": (True, "")}


async def test_one_agent_fails():
    """An adapter whose probe raises returns ok=False with the error message."""
    adapters = {"claude": ScriptedAdapter("claude"), "gemini": ScriptedAdapter("gemini", ready=False)}

    results = await run_health_checks(adapters)

    assert results["claude"] == (True, "")
    ok, err = results["gemini"]
    assert ok is False
    assert "gemini is not ready" in err


async def test_probe_error_message_is_reported():
    adapter = ScriptedAdapter("chatglm")
    adapter.probe = AsyncMock(side_effect=RuntimeError("403 Forbidden"))

    results = await run_health_checks({"chatglm": adapter})

    assert results["chatglm"] == (False, "403 Forbidden")
    adapter.probe.assert_awaited_once()


async def test_slow_agent_times_out(monkeypatch):
    monkeypatch.setattr("src.healthcheck._TIMEOUT_SEC", 0.01)

    results = await run_health_checks({"claude": HangingAdapter("claude")})

    ok, err = results["claude"]
    assert ok is False
    assert "No answer within" in err


async def test_empty_adapters():
    assert await run_health_checks({}) == {}


async def test_publish_connectivity_updates_agents():
    adapters = {"claude": ScriptedAdapter("claude"), "gemini": ScriptedAdapter("gemini")}
    orchestrator = make_orchestrator(adapters)

    await publish_connectivity(orchestrator, {"claude": (True, ""), "gemini": (False, "403 Forbidden")})

    assert orchestrator.registry.get("claude").connection_state is ConnectionState.CONNECTED
    assert orchestrator.registry.get("gemini").connection_state is ConnectionState.DISCONNECTED
