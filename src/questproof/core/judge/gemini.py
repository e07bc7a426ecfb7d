"""QuestProof Gemini vision judge."""

from __future__ import annotations

import logging

from questproof.core.judge.base import VisionJudge

logger = logging.getLogger(__name__)


class GeminiVisionJudge(VisionJudge):
    """Google Gemini multimodal judge. The image is sent inline, not by URL."""

    def __init__(self, api_key: str, model: str = "gemini-1.5-flash", timeout: float = 20.0) -> None:
        super().__init__(model=model, timeout=timeout)
        import google.generativeai as genai

        genai.configure(api_key=api_key)
        self.client = genai.GenerativeModel(
            model,
            generation_config={
                "temperature": 0.2,
                "response_mime_type": "application/json",
            },
        )

    async def _generate(self, system_prompt: str, user_prompt: str, image: bytes, mime_type: str) -> str:
        # Gemini has no system role; the instructions lead the first user turn
        response = await self.client.generate_content_async(
            [
                system_prompt + "\n\n" + user_prompt,
                {"mime_type": mime_type, "data": image},
            ]
        )
        return response.text

