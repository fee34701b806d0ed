"""Anthropic Claude session using anthropic SDK streaming."""

import os
from collections.abc import AsyncIterator

import anthropic as anthropic_sdk

from config.config_loader import AgentConfig
from src.adapters.chat import StreamingChatAdapter
from src.errors import PermanentChannelError


class AnthropicAdapter(StreamingChatAdapter):
    """Claude chat session via anthropic SDK."""

    def __init__(self, config: AgentConfig) -> None:
        super().__init__(config)
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise PermanentChannelError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = anthropic_sdk.AsyncAnthropic(api_key=api_key)

    async def _stream(self, messages: list[dict[str, str]]) -> AsyncIterator[str]:
        async with self._client.messages.stream(
            model=self._config.model,
            max_tokens=self._config.max_tokens,
            messages=messages,
        ) as stream:
            async for text in stream.text_stream:
                yield text
