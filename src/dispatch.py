"""Dispatch channel: deliver one message to one agent with bounded retry."""

import logging
from collections.abc import Callable

from config.config_loader import DispatchConfig
from src.adapters.base import AgentAdapter
from src.clock import Clock, SystemClock
from src.errors import (
    AgentNotFound,
    ChannelError,
    InputNotFound,
    PermanentChannelError,
    SubmitNotFound,
    TransientChannelError,
)
from src.models import DispatchRequest, DispatchResult
from src.registry import AgentRegistry

logger = logging.getLogger(__name__)


class DispatchChannel:
    def __init__(
        self,
        registry: AgentRegistry,
        clock: Clock | None = None,
        settings: DispatchConfig | None = None,
    ) -> None:
        self._registry = registry
        self._clock = clock or SystemClock()
        self._settings = settings or DispatchConfig()
        self._observers: list[Callable[[DispatchResult], None]] = []

    def add_observer(self, observer: Callable[[DispatchResult], None]) -> None:
        self._observers.append(observer)

    async def dispatch(self, agent_id: str, text: str) -> DispatchResult:
        """Deliver text to agent_id.

        Never raises — delivery failures come back in DispatchResult.error.
        AgentNotFound fails with zero attempts; TransientChannelError is retried
        until max_attempts; every other error fails on the spot.
        """
        adapter = self._registry.resolve(agent_id)
        if adapter is None:
            result = DispatchResult(agent_id=agent_id, success=False, error=AgentNotFound(agent_id))
        else:
            request = DispatchRequest(
                agent_id=agent_id,
                text=text,
                max_attempts=self._settings.max_attempts,
            )
            result = await self._deliver_with_retry(adapter, request)

        if result.success:
            logger.info("%s: Message sent", agent_id)
        else:
            logger.error("%s: Failed - %s", agent_id, result.error)

        for observer in self._observers:
            observer(result)
        return result

    async def _deliver_with_retry(self, adapter: AgentAdapter, request: DispatchRequest) -> DispatchResult:
        while True:
            request.attempt += 1
            try:
                await self._deliver(adapter, request)
            except TransientChannelError as exc:
                if request.attempt < request.max_attempts:
                    logger.warning(
                        "Retry %d/%d for %s: %s",
                        request.attempt, request.max_attempts - 1, request.agent_id, exc,
                    )
                    await self._clock.sleep(self._settings.retry_delay_sec)
                    continue
                return DispatchResult(request.agent_id, False, exc, request.attempt)
            except ChannelError as exc:
                return DispatchResult(request.agent_id, False, exc, request.attempt)
            except Exception as exc:
                err = PermanentChannelError(request.agent_id, f"Unexpected error: {exc}")
                return DispatchResult(request.agent_id, False, err, request.attempt)
            else:
                return DispatchResult(request.agent_id, True, None, request.attempt)

    async def _deliver(self, adapter: AgentAdapter, request: DispatchRequest) -> None:
        agent_id = request.agent_id
        if not await adapter.is_ready():
            raise TransientChannelError(agent_id, "Receiving end does not exist")
        if not await adapter.locate_input():
            raise InputNotFound(agent_id)
        await adapter.inject_text(request.text)
        if not await adapter.locate_submit():
            raise SubmitNotFound(agent_id)
        await adapter.wait_until_enabled(self._settings.submit_timeout_sec)
        await adapter.activate_submit()
