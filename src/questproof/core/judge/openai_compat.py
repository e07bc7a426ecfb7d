"""QuestProof vision judge for OpenAI-compatible chat endpoints (Groq, AI gateway)."""

from __future__ import annotations

import logging

from openai import AsyncOpenAI

from questproof.core.judge.base import VisionJudge, to_data_uri
from questproof.exceptions import JudgeResponseError

logger = logging.getLogger(__name__)


class OpenAICompatibleVisionJudge(VisionJudge):
    """Chat-completions judge. Instructions go in the system role, the photo as a data URI."""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str,
        timeout: float = 20.0,
        client: AsyncOpenAI | None = None,
    ) -> None:
        super().__init__(model=model, timeout=timeout)
        self.base_url = base_url
        # No client-side retries
        self.client = client or AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)

    async def _generate(self, system_prompt: str, user_prompt: str, image: bytes, mime_type: str) -> str:
        response = await self.client.chat.completions.create(
            model=self.model,
            temperature=0.2,
            messages=[
                {"role": "system", "content": system_prompt},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": user_prompt},
                        {"type": "image_url", "image_url": {"url": to_data_uri(image)}},
                    ],
                },
            ],
        )
        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise JudgeResponseError(f"Empty reply from {self.model}")
        return content
