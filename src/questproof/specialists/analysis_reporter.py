"""QuestProof free-form analysis report (OpenAI-compatible vision endpoint)."""

from __future__ import annotations

import logging

from openai import AsyncOpenAI, OpenAIError

from questproof.core.judge.base import to_data_uri
from questproof.exceptions import SpecialistError

logger = logging.getLogger(__name__)

ANALYSIS_PROMPT = (
    "Analyze this quest submission image. Provide a detailed report on: "
    "1) Any anomalies or suspicious elements, 2) Image quality and authenticity indicators, "
    "3) Potential faults or issues, 4) Merits and positive aspects. Be thorough and specific."
)


class AnalysisReporter:
    def __init__(
        self,
        api_key: str,
        model: str = "meta-llama/llama-4-maverick-17b-128e-instruct",
        base_url: str = "https://api.groq.com/openai/v1",
        timeout: float = 60.0,
        max_tokens: int = 1000,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self.model = model
        self.max_tokens = max_tokens
        self.api_key = api_key
        self.client = client
        if self.client is None and api_key:
            self.client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)

    async def report(self, image: bytes) -> str:
        if self.client is None:
            raise SpecialistError("Analysis API key not configured")
        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": ANALYSIS_PROMPT},
                    {"type": "image_url", "image_url": {"url": to_data_uri(image)}},
                ],
            }
        ]
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=self.max_tokens,
            )
        except OpenAIError as exc:
            raise SpecialistError(f"Analysis request failed: {exc}") from exc

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise SpecialistError("Analysis response was empty")
        logger.info("Analysis report from %s (%d chars)", self.model, len(content))
        return content.strip()
