"""Orchestrator: the single owner of agent state and router of panel messages."""

import asyncio
import logging
from collections.abc import Callable

from config.config_loader import CaptureConfig, DispatchConfig
from src.adapters.base import AgentAdapter
from src.capture import CaptureEngine
from src.clock import Clock, SystemClock
from src.dispatch import DispatchChannel
from src.models import (
    Agent,
    AgentReady,
    ConnectionState,
    ConnectivityChanged,
    Dispatch,
    DispatchResult,
    GetLatestReply,
    Message,
    ReplyCaptured,
)
from src.protocols.base import ProtocolMachine
from src.registry import AgentRegistry
from src.store import StateStore

logger = logging.getLogger(__name__)


class Orchestrator:
    """Indexes agent state and routes every message kind through handle().

    Captured replies update the per-agent cache and are forwarded to each
    attached protocol machine that is waiting on that agent. A successful
    dispatch starts a capture session for the receiving agent.
    """

    def __init__(
        self,
        agent_ids: list[str],
        capture_settings: CaptureConfig | None = None,
        dispatch_settings: DispatchConfig | None = None,
        clock: Clock | None = None,
        store: StateStore | None = None,
    ) -> None:
        self._clock = clock or SystemClock()
        self._store = store
        self._closed = False
        self._protocols: list[ProtocolMachine] = []
        self._capture_listeners: list[Callable[[str, str], None]] = []

        seed = store.load_replies() if store else {}
        self.registry = AgentRegistry(agent_ids, seed)
        self.capture = CaptureEngine(
            self.registry,
            self.handle,
            clock=self._clock,
            settings=capture_settings,
            is_context_valid=lambda: not self._closed,
        )
        self.channel = DispatchChannel(self.registry, clock=self._clock, settings=dispatch_settings)
        self.channel.add_observer(self._on_dispatch_result)

        self._handlers = {
            AgentReady: self._on_agent_ready,
            Dispatch: self._on_dispatch,
            GetLatestReply: self._on_get_latest_reply,
            ReplyCaptured: self._on_reply_captured,
            ConnectivityChanged: self._on_connectivity_changed,
        }

    @property
    def agents(self) -> list[Agent]:
        return self.registry.agents()

    @property
    def protocols(self) -> list[ProtocolMachine]:
        return list(self._protocols)

    def register_adapter(self, agent_id: str, adapter: AgentAdapter) -> None:
        self.registry.register_adapter(agent_id, adapter)

    async def handle(self, message: Message) -> object:
        handler = self._handlers.get(type(message))
        if handler is None:
            raise TypeError(f"Unhandled message kind: {type(message).__name__}")
        return await handler(message)

    async def dispatch(self, agent_id: str, text: str) -> DispatchResult:
        return await self.handle(Dispatch(agent_id=agent_id, text=text))

    async def get_latest_reply(self, agent_id: str) -> str | None:
        return await self.handle(GetLatestReply(agent_id=agent_id))

    async def broadcast(self, targets: list[str], text: str) -> list[DispatchResult]:
        """Send text to each target in order, waiting only for delivery, not replies."""
        logger.info("Sending to: %s", ", ".join(targets))
        return [await self.dispatch(target, text) for target in targets]

    def add_capture_listener(self, listener: Callable[[str, str], None]) -> None:
        """Call listener(agent_id, content) for every captured reply."""
        self._capture_listeners.append(listener)

    def attach(self, protocol: ProtocolMachine) -> None:
        if protocol not in self._protocols:
            self._protocols.append(protocol)

    def detach(self, protocol: ProtocolMachine) -> None:
        if protocol in self._protocols:
            self._protocols.remove(protocol)

    def notify_activity(self, agent_id: str) -> asyncio.Task | None:
        """A session showed new output; make sure a capture is running for it."""
        return self.capture.start_capture(agent_id)

    def close(self) -> None:
        """Tear down the hosting context. Live captures stop without emitting."""
        self._closed = True
        self.capture.cancel_all()

    async def _on_agent_ready(self, message: AgentReady) -> None:
        self._set_connection(message.agent_id, ConnectionState.CONNECTED)

    async def _on_connectivity_changed(self, message: ConnectivityChanged) -> None:
        state = ConnectionState.CONNECTED if message.connected else ConnectionState.DISCONNECTED
        self._set_connection(message.agent_id, state)

    async def _on_dispatch(self, message: Dispatch) -> DispatchResult:
        return await self.channel.dispatch(message.agent_id, message.text)

    async def _on_get_latest_reply(self, message: GetLatestReply) -> str | None:
        agent = self.registry.get(message.agent_id)
        if agent is None:
            return None

        adapter = self.registry.resolve(message.agent_id)
        if adapter is not None:
            try:
                live = await adapter.extract_latest_reply_text()
            except Exception as exc:
                logger.info("Failed to get %s response from session: %s", message.agent_id, exc)
            else:
                if live:
                    return live
        return agent.last_captured_reply

    async def _on_reply_captured(self, message: ReplyCaptured) -> None:
        agent = self.registry.get(message.agent_id)
        if agent is None:
            logger.warning("Reply captured for unknown agent %s, dropping", message.agent_id)
            return

        agent.last_captured_reply = message.content
        logger.info("%s: Response captured (%d chars)", message.agent_id, len(message.content))

        for protocol in list(self._protocols):
            if not protocol.expects(message.agent_id):
                continue
            try:
                protocol.on_capture(message.agent_id, message.content)
            except Exception:
                logger.exception("%s failed to handle %s's reply", type(protocol).__name__, message.agent_id)
        self._protocols = [p for p in self._protocols if not p.is_finished]

        if self._store is not None:
            try:
                self._store.save_reply(message.agent_id, message.content)
            except OSError as exc:
                logger.error("Failed to save %s's reply: %s", message.agent_id, exc)
        for listener in self._capture_listeners:
            try:
                listener(message.agent_id, message.content)
            except Exception:
                logger.exception("Capture listener failed for %s", message.agent_id)

    def _on_dispatch_result(self, result: DispatchResult) -> None:
        if result.success:
            self.capture.start_capture(result.agent_id)

    def _set_connection(self, agent_id: str, state: ConnectionState) -> None:
        agent = self.registry.get(agent_id)
        if agent is None:
            logger.warning("Connectivity update for unknown agent %s", agent_id)
            return
        if agent.connection_state is not state:
            logger.info("%s: %s", agent_id, state.value)
        agent.connection_state = state
