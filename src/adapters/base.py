"""Abstract base for all agent adapters."""

from abc import ABC, abstractmethod


class AgentAdapter(ABC):
    """One chat session the panel can write into and read replies from.

    Delivery methods may raise ChannelError subclasses:
    TransientChannelError when the session is not ready yet,
    PermanentChannelError for anything retrying will not fix.
    """

    @abstractmethod
    def name(self) -> str:
        """Return the agent id this adapter serves (e.g. 'claude')."""
        ...

    @abstractmethod
    async def is_ready(self) -> bool:
        """Whether the session can accept a message right now."""
        ...

    @abstractmethod
    async def locate_input(self) -> bool:
        ...

    @abstractmethod
    async def inject_text(self, text: str) -> None:
        ...

    @abstractmethod
    async def locate_submit(self) -> bool:
        ...

    @abstractmethod
    async def wait_until_enabled(self, timeout_sec: float) -> None:
        ...

    @abstractmethod
    async def activate_submit(self) -> None:
        ...

    @abstractmethod
    async def extract_latest_reply_text(self) -> str | None:
        """Return the latest rendered reply, or None when there is none."""
        ...

    @abstractmethod
    async def detect_completion_hint(self) -> bool:
        """True when the session signals the current reply is finished."""
        ...

    async def probe(self) -> None:
        """Connectivity check. Raises on failure; the default only checks readiness."""
        if not await self.is_ready():
            raise ConnectionError(f"{self.name()} is not ready")
