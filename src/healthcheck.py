"""Agent connectivity probe — ping each session before the panel starts."""

import asyncio
import logging

from src.adapters.base import AgentAdapter
from src.models import ConnectivityChanged
from src.orchestrator import Orchestrator

logger = logging.getLogger(__name__)

_TIMEOUT_SEC = 15.0


async def _check_one(name: str, adapter: AgentAdapter) -> tuple[str, bool, str]:
    """Probe a single adapter. Returns (name, ok, error_message)."""
    try:
        await asyncio.wait_for(adapter.probe(), timeout=_TIMEOUT_SEC)
        return name, True, ""
    except TimeoutError:
        return name, False, f"No answer within {_TIMEOUT_SEC:.0f}s"
    except Exception as exc:
        return name, False, str(exc)


async def run_health_checks(
    adapters: dict[str, AgentAdapter],
) -> dict[str, tuple[bool, str]]:
    """Probe all adapters in parallel.

    Returns:
        Dict mapping agent id -> (ok, error_message).
        error_message is "" when ok is True.
    """
    results = await asyncio.gather(*(_check_one(n, a) for n, a in adapters.items()))
    return {name: (ok, err) for name, ok, err in results}


async def publish_connectivity(
    orchestrator: Orchestrator,
    results: dict[str, tuple[bool, str]],
) -> None:
    """Report each probe result to the orchestrator as ConnectivityChanged."""
    for name, (ok, err) in results.items():
        if not ok:
            logger.warning("%s unreachable: %s", name, err)
        await orchestrator.handle(ConnectivityChanged(agent_id=name, connected=ok))
