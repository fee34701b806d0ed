"""Chat-session adapter over a streaming completion API.

The session behaves like a chat page: injected text is a draft, submitting
starts a streamed completion in the background, and the rendered reply is
whatever has streamed so far. The capture engine polls it like any other page.
"""

import asyncio
import logging
import time
from abc import abstractmethod
from collections.abc import AsyncIterator

from config.config_loader import AgentConfig
from src.adapters.base import AgentAdapter
from src.errors import PermanentChannelError

logger = logging.getLogger(__name__)

_PING_PROMPT = "Reply with the word OK only."


class StreamingChatAdapter(AgentAdapter):
    """Base for SDK-backed sessions. Subclasses implement _stream()."""

    def __init__(self, config: AgentConfig) -> None:
        self._config = config
        self._history: list[dict[str, str]] = []
        self._draft = ""
        self._reply = ""
        self._finished = False
        self._stream_task: asyncio.Task | None = None

    def name(self) -> str:
        return self._config.name

    @property
    def is_streaming(self) -> bool:
        return self._stream_task is not None and not self._stream_task.done()

    @property
    def history(self) -> list[dict[str, str]]:
        return list(self._history)

    async def is_ready(self) -> bool:
        return True

    async def locate_input(self) -> bool:
        return True

    async def inject_text(self, text: str) -> None:
        self._draft = text

    async def locate_submit(self) -> bool:
        return True

    async def wait_until_enabled(self, timeout_sec: float) -> None:
        # The send button of a chat page stays disabled while the input is empty
        if not self._draft.strip():
            raise PermanentChannelError(self.name(), "Send button stayed disabled: empty message")

    async def activate_submit(self) -> None:
        if self.is_streaming:
            raise PermanentChannelError(self.name(), "Already sending a message")

        prompt, self._draft = self._draft, ""
        self._history.append({"role": "user", "content": prompt})
        self._reply = ""
        self._finished = False
        self._stream_task = asyncio.create_task(self._run_stream(list(self._history)))

    async def extract_latest_reply_text(self) -> str | None:
        text = self._reply.strip()
        return text or None

    async def detect_completion_hint(self) -> bool:
        return self._finished

    async def probe(self) -> None:
        """Stream a one-word ping outside the session history."""
        async for _ in self._stream([{"role": "user", "content": _PING_PROMPT}]):
            pass

    async def _run_stream(self, messages: list[dict[str, str]]) -> None:
        start = time.monotonic()
        try:
            await asyncio.wait_for(self._collect(messages), timeout=self._config.timeout_sec)
        except TimeoutError:
            logger.warning(
                "%s stream timed out after %ds (%d chars so far)",
                self.name(), self._config.timeout_sec, len(self._reply),
            )
            self._discard_turn()
        except Exception as exc:
            logger.warning("%s stream failed: %s", self.name(), exc)
            self._discard_turn()
        else:
            self._history.append({"role": "assistant", "content": self._reply})
            logger.info(
                "%s reply streamed: %.2fs, %d chars",
                self.name(), time.monotonic() - start, len(self._reply),
            )
        finally:
            self._finished = True

    async def _collect(self, messages: list[dict[str, str]]) -> None:
        async for chunk in self._stream(messages):
            self._reply += chunk

    def _discard_turn(self) -> None:
        # A truncated reply is never rendered; chat APIs expect user/assistant turns to alternate
        self._reply = ""
        if self._history and self._history[-1]["role"] == "user":
            self._history.pop()

    @abstractmethod
    def _stream(self, messages: list[dict[str, str]]) -> AsyncIterator[str]:
        """Yield reply text chunks for the given conversation."""
        ...
