# src/core/recommender.py
"""
Produces the streamed game recommendations.

The prompt is chosen from the identified collection and the user's preferences,
then a streaming chat completion is opened against Gemini's OpenAI-compatible
endpoint. Every text delta is forwarded as a TextFrame as soon as it arrives.
"""

import logging
from typing import AsyncIterator

from openai import AsyncOpenAI

from src.core.prompts import build_recommendation_prompt
from src.models.schemas import RecommendationRequest, TextFrame


class RecommendationStreamProducer:
    """Opens the upstream token stream and turns it into TextFrame events."""

    def __init__(self, client: AsyncOpenAI, model: str, temperature: float = 0.6, max_tokens: int = 300):
        self.client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    @classmethod
    def from_config(cls, config) -> "RecommendationStreamProducer":
        client = AsyncOpenAI(
            api_key=config.api_keys.gemini,
            base_url=config.gemini.openai_base_url,
            timeout=config.gemini.timeout_seconds,
            max_retries=0,
        )
        return cls(
            client,
            model=config.models.recommendation,
            temperature=config.generation.recommendation_temperature,
            max_tokens=config.generation.recommendation_max_tokens,
        )

    async def open_stream(self, request: RecommendationRequest) -> AsyncIterator[TextFrame]:
        """
        Starts the completion and returns an async iterator of text events.

        Errors while opening the stream (bad key, unknown model, ...) are raised
        here, before any byte of the response has been sent.
        """
        prompt = build_recommendation_prompt(request.game_names, request.playerCount, request.playingTime)
        branch = "filtered" if request.game_names else "general"
        logging.info(
            f"Requesting {branch} recommendations from '{self.model}' for "
            f"{request.playerCount} players, {request.playingTime}, {len(request.game_names)} games.")

        stream = await self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            stream=True,
        )
        return self._text_events(stream)

    async def _text_events(self, stream) -> AsyncIterator[TextFrame]:
        try:
            async for chunk in stream:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    yield TextFrame(text=delta)
        finally:
            await stream.close()
