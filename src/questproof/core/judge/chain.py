"""QuestProof multi-provider vision judge.

Providers are tried in a fixed order: Gemini, Groq vision, then the AI
gateway. The first provider that answers wins. The attempt only fails when
every configured provider has failed.
"""

from __future__ import annotations

import logging

from questproof.core.judge.base import JudgeContext, VisionJudge
from questproof.core.judge.gemini import GeminiVisionJudge
from questproof.core.judge.openai_compat import OpenAICompatibleVisionJudge
from questproof.exceptions import JudgeError, JudgeTimeoutError
from questproof.models.schemas import PipelineConfig, VerificationRequest, VisionJudgment

logger = logging.getLogger(__name__)


class ChainedVisionJudge:
    """Falls through an ordered list of provider judges."""

    def __init__(self, judges: list[VisionJudge]) -> None:
        if not judges:
            raise ValueError("ChainedVisionJudge needs at least one provider")
        self.judges = list(judges)

    @property
    def name(self) -> str:
        return " > ".join(j.name for j in self.judges)

    async def judge(self, request: VerificationRequest, image: bytes | None, context: JudgeContext) -> VisionJudgment:
        if not image:
            raise JudgeError("Photo bytes unavailable for vision judge")

        failures: list[JudgeError] = []
        for provider in self.judges:
            try:
                return await provider.judge(request, image, context)
            except JudgeError as exc:
                logger.warning("[%s] Judge %s failed, trying next provider: %s", request.submission_id, provider.name, exc)
                failures.append(exc)

        summary = "; ".join(str(f) for f in failures)
        if all(isinstance(f, JudgeTimeoutError) for f in failures):
            raise JudgeTimeoutError(f"All vision judge providers timed out: {summary}")
        raise JudgeError(f"All vision judge providers failed: {summary}")


def build_provider_judges(config: PipelineConfig) -> list[VisionJudge]:
    judges: list[VisionJudge] = []
    if config.gemini_api_key:
        judges.append(
            GeminiVisionJudge(
                api_key=config.gemini_api_key,
                model=config.judge_model,
                timeout=config.judge_timeout_s,
            )
        )
    if config.groq_api_key:
        judges.append(
            OpenAICompatibleVisionJudge(
                api_key=config.groq_api_key,
                model=config.groq_judge_model,
                base_url=config.groq_base_url,
                timeout=config.judge_timeout_s,
            )
        )
    if config.gateway_api_key:
        judges.append(
            OpenAICompatibleVisionJudge(
                api_key=config.gateway_api_key,
                model=config.gateway_judge_model,
                base_url=config.gateway_base_url,
                timeout=config.judge_timeout_s,
            )
        )
    return judges


def build_vision_judge(config: PipelineConfig) -> VisionJudge | ChainedVisionJudge | None:
    """Return a judge when a credential is configured, else None (heuristic-only mode)."""
    judges = build_provider_judges(config)
    if not judges:
        logger.warning("No vision judge credential configured, running heuristic-only verification")
        return None
    if len(judges) == 1:
        return judges[0]
    logger.info("Vision judge providers in order: %s", ", ".join(j.name for j in judges))
    return ChainedVisionJudge(judges)
