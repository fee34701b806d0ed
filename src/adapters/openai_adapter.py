"""OpenAI session using openai SDK streaming. Also serves OpenAI-compatible APIs."""

import os
from collections.abc import AsyncIterator

from openai import AsyncOpenAI

from config.config_loader import AgentConfig
from src.adapters.chat import StreamingChatAdapter
from src.errors import PermanentChannelError


class OpenAIAdapter(StreamingChatAdapter):
    """Chat session via openai SDK; base_url selects a compatible endpoint."""

    def __init__(self, config: AgentConfig) -> None:
        super().__init__(config)
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise PermanentChannelError(config.name, f"Missing API key: {config.api_key_env}")
        if config.base_url:
            self._client = AsyncOpenAI(api_key=api_key, base_url=config.base_url)
        else:
            self._client = AsyncOpenAI(api_key=api_key)

    async def _stream(self, messages: list[dict[str, str]]) -> AsyncIterator[str]:
        stream = await self._client.chat.completions.create(
            model=self._config.model,
            messages=messages,
            max_tokens=self._config.max_tokens,
            stream=True,
        )
        async for chunk in stream:
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta.content
            if delta:
                yield delta
