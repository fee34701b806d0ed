"""Capture engine: decide when an agent's streamed reply is final, emit it once."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from config.config_loader import CaptureConfig
from src.adapters.base import AgentAdapter
from src.clock import Clock, SystemClock
from src.models import CaptureSession, ReplyCaptured
from src.registry import AgentRegistry

logger = logging.getLogger(__name__)


class CaptureEngine:
    """Runs at most one polling session per agent.

    A session polls the adapter every poll_interval_sec. It concludes after
    stable_threshold consecutive polls of identical non-empty text, or at once
    when the adapter reports a completion hint. Sessions older than
    max_wait_sec are abandoned without emitting anything.
    """

    def __init__(
        self,
        registry: AgentRegistry,
        emit: Callable[[ReplyCaptured], Awaitable[object]],
        clock: Clock | None = None,
        settings: CaptureConfig | None = None,
        is_context_valid: Callable[[], bool] | None = None,
    ) -> None:
        self._registry = registry
        self._emit = emit
        self._clock = clock or SystemClock()
        self._settings = settings or CaptureConfig()
        self._is_context_valid = is_context_valid or (lambda: True)
        self._sessions: dict[str, CaptureSession] = {}
        self._tasks: dict[str, asyncio.Task] = {}

    def is_capturing(self, agent_id: str) -> bool:
        return agent_id in self._sessions

    def active_agents(self) -> list[str]:
        return list(self._sessions)

    def start_capture(self, agent_id: str) -> asyncio.Task | None:
        """Start polling agent_id. Returns None if a session is already live."""
        if agent_id in self._sessions:
            logger.debug("%s already capturing, skipping", agent_id)
            return None

        adapter = self._registry.adapter_for(agent_id)
        if adapter is None:
            logger.warning("Cannot capture %s: no adapter registered", agent_id)
            return None

        session = CaptureSession(
            agent_id=agent_id,
            start_time=self._clock.now(),
            stable_threshold=self._settings.stable_threshold,
        )
        self._sessions[agent_id] = session
        task = asyncio.create_task(self._run(session, adapter))
        self._tasks[agent_id] = task
        logger.debug("%s starting capture loop", agent_id)
        return task

    def cancel_all(self) -> None:
        for task in list(self._tasks.values()):
            task.cancel()
        # A task cancelled before its first step never reaches its finally block
        self._sessions.clear()
        self._tasks.clear()

    async def drain(self) -> None:
        """Wait until every live capture session has ended."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

    async def _run(self, session: CaptureSession, adapter: AgentAdapter) -> None:
        agent_id = session.agent_id
        try:
            while self._clock.now() - session.start_time < self._settings.max_wait_sec:
                await self._clock.sleep(self._settings.poll_interval_sec)

                if not self._is_context_valid():
                    logger.info("Context invalidated, stopping %s capture", agent_id)
                    return

                content, hint = await self._poll(adapter)
                if session.observe(content, hint):
                    await self._conclude(agent_id, content)
                    return

            logger.debug(
                "%s capture timeout after %ds, no reply emitted",
                agent_id, self._settings.max_wait_sec,
            )
        finally:
            self._sessions.pop(agent_id, None)
            self._tasks.pop(agent_id, None)
            logger.debug("%s capture loop ended", agent_id)

    async def _poll(self, adapter: AgentAdapter) -> tuple[str, bool]:
        try:
            content = await adapter.extract_latest_reply_text() or ""
            hint = await adapter.detect_completion_hint()
        except Exception as exc:
            logger.warning("%s extraction failed, treating poll as empty: %s", adapter.name(), exc)
            return "", False
        return content, hint

    async def _conclude(self, agent_id: str, content: str) -> None:
        agent = self._registry.get(agent_id)
        if agent is None:
            return
        if content == agent.last_captured_reply:
            logger.info("%s content same as last capture, skipping", agent_id)
            return

        agent.last_captured_reply = content
        logger.debug("%s capturing response, length: %d", agent_id, len(content))
        try:
            await self._emit(ReplyCaptured(agent_id=agent_id, content=content))
        except Exception:
            logger.exception("%s captured reply could not be delivered", agent_id)
