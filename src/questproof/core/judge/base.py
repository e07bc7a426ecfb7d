"""QuestProof remote vision judge contract.

Every judge provider inherits from VisionJudge. The base class builds the
prompts, bounds the provider call with a fixed timeout and validates the reply;
subclasses only implement _generate().
"""

from __future__ import annotations

import asyncio
import base64
import json
import logging
import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from questproof.exceptions import JudgeError, JudgeResponseError, JudgeTimeoutError
from questproof.models.schemas import PhotoMetadata, VerificationRequest, VisionJudgment

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 20.0  # seconds

SCORE_FIELDS = ("quest_match", "visual_scene_match", "ai_authenticity", "scene_relevance")

SYSTEM_PROMPT = """You are an AI photo verification system for a real-world discovery game.
Your task is to analyze photos submitted by users as proof of completing quests.

SECURITY CONTEXT:
- EXIF GPS: {exif_gps}
- Geofence Check: {geofence_reason}
- Anti-spoofing Flags: {flags}

Analyze the image based on these criteria:
1. Context Match: Does the photo content match the quest theme and description?
2. Visual Scene Match: Does the visual scene align with the claimed location?
3. Authenticity: Is this a real photo? Look for AI generation artifacts and stock photo characteristics.
4. Scene Relevance: How relevant is the photo to the quest objectives?

Respond ONLY with valid JSON in this exact format:
{{
  "quest_match": 0.0-1.0,
  "visual_scene_match": 0.0-1.0,
  "ai_authenticity": 0.0-1.0,
  "scene_relevance": 0.0-1.0,
  "reason": "brief explanation"
}}"""


@dataclass(frozen=True)
class JudgeContext:
    """Heuristic findings shared with the judge as security context."""

    metadata: PhotoMetadata
    geofence_reason: str
    authenticity_flags: list[str]


class VisionJudge(ABC):
    def __init__(self, model: str, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.model = model
        self.timeout = timeout

    @property
    def name(self) -> str:
        return self.model

    async def judge(self, request: VerificationRequest, image: bytes | None, context: JudgeContext) -> VisionJudgment:
        """Ask the provider for the four sub-scores. Raises JudgeError on any failure."""
        if not image:
            raise JudgeError("Photo bytes unavailable for vision judge")

        system_prompt = build_system_prompt(context)
        user_prompt = build_user_prompt(request)
        start = time.perf_counter()
        try:
            text = await asyncio.wait_for(
                self._generate(system_prompt, user_prompt, image, guess_mime_type(image)),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as exc:
            raise JudgeTimeoutError(f"Vision judge {self.name} timed out after {self.timeout:.0f}s") from exc
        except JudgeError:
            raise
        except Exception as exc:
            raise JudgeError(f"Vision judge {self.name} failed: {exc}") from exc

        judgment = parse_judgment(text)
        logger.info(
            "[%s] Judge %s answered in %.0fms (quest=%.2f scene=%.2f auth=%.2f rel=%.2f)",
            request.submission_id,
            self.name,
            (time.perf_counter() - start) * 1000,
            judgment.quest_match,
            judgment.visual_scene_match,
            judgment.ai_authenticity,
            judgment.scene_relevance,
        )
        return judgment.model_copy(update={"provider": self.name})

    @abstractmethod
    async def _generate(self, system_prompt: str, user_prompt: str, image: bytes, mime_type: str) -> str:
        """Send prompts plus inline image to the provider and return its raw text."""
        ...


def build_system_prompt(context: JudgeContext) -> str:
    meta = context.metadata
    exif_gps = f"{meta.latitude}, {meta.longitude}" if meta.has_gps else "Not available"
    return SYSTEM_PROMPT.format(
        exif_gps=exif_gps,
        geofence_reason=context.geofence_reason,
        flags=", ".join(context.authenticity_flags) or "None",
    )


def build_user_prompt(request: VerificationRequest) -> str:
    lines = [
        f'Quest Title: "{request.quest_title}"',
        f'Quest Description: "{request.quest_description}"',
        f'Quest Location: "{request.quest_location}"',
    ]
    if request.quest_latitude is not None and request.quest_longitude is not None:
        lines.append(f"Quest Coordinates: {request.quest_latitude}, {request.quest_longitude}")
    if request.user_latitude is not None and request.user_longitude is not None:
        lines.append(f"User Coordinates: {request.user_latitude}, {request.user_longitude}")
    lines.append("")
    lines.append("The photo is attached. Analyze it and determine if it is valid proof of quest completion.")
    return "\n".join(lines)


def find_first_json_object(text: str) -> dict[str, Any] | None:
    """Return the first well-formed JSON object embedded in text, if any."""
    decoder = json.JSONDecoder()
    idx = text.find("{")
    while idx != -1:
        try:
            obj, _ = decoder.raw_decode(text, idx)
        except json.JSONDecodeError:
            idx = text.find("{", idx + 1)
            continue
        if isinstance(obj, dict):
            return obj
        idx = text.find("{", idx + 1)
    return None


def parse_judgment(text: str) -> VisionJudgment:
    """Validate and clamp a provider reply. Raises JudgeResponseError."""
    obj = find_first_json_object(text or "")
    if obj is None:
        raise JudgeResponseError("No JSON object in vision judge response")

    scores: dict[str, float] = {}
    for key in SCORE_FIELDS:
        value = obj.get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise JudgeResponseError(f"Field {key!r} missing or not numeric")
        if not math.isfinite(value):
            raise JudgeResponseError(f"Field {key!r} is not finite")
        scores[key] = max(0.0, min(1.0, float(value)))

    reason = obj.get("reason")
    if not isinstance(reason, str):
        raise JudgeResponseError("Field 'reason' missing or not a string")

    return VisionJudgment(**scores, rationale=reason.strip())


def to_data_uri(image: bytes) -> str:
    encoded = base64.b64encode(image).decode("ascii")
    return f"data:{guess_mime_type(image)};base64,{encoded}"


def guess_mime_type(image: bytes) -> str:
    if image.startswith(b"\x89PNG"):
        return "image/png"
    if image[:4] == b"RIFF" and image[8:12] == b"WEBP":
        return "image/webp"
    if image[4:12] in (b"ftypheic", b"ftypheix", b"ftypmif1"):
        return "image/heic"
    return "image/jpeg"
