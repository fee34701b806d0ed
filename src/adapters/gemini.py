"""Gemini session using google-genai SDK streaming."""

import os
from collections.abc import AsyncIterator

from google import genai
from google.genai import types as genai_types

from config.config_loader import AgentConfig
from src.adapters.chat import StreamingChatAdapter
from src.errors import PermanentChannelError


def _to_contents(messages: list[dict[str, str]]) -> list[genai_types.Content]:
    return [
        genai_types.Content(
            role="model" if m["role"] == "assistant" else "user",
            parts=[genai_types.Part(text=m["content"])],
        )
        for m in messages
    ]


class GeminiAdapter(StreamingChatAdapter):
    """Google Gemini chat session via google-genai SDK."""

    def __init__(self, config: AgentConfig) -> None:
        super().__init__(config)
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise PermanentChannelError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = genai.Client(api_key=api_key)

    async def _stream(self, messages: list[dict[str, str]]) -> AsyncIterator[str]:
        stream = await self._client.aio.models.generate_content_stream(
            model=self._config.model,
            contents=_to_contents(messages),
            config=genai_types.GenerateContentConfig(
                max_output_tokens=self._config.max_tokens,
            ),
        )
        async for chunk in stream:
            if chunk.text:
                yield chunk.text
