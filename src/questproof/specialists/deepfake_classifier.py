"""QuestProof deepfake classifier (Hugging Face router image-classification)."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from questproof.exceptions import SpecialistError

logger = logging.getLogger(__name__)

HF_ROUTER_URL = "https://router.huggingface.co/hf-inference/models/{model}/pipeline/image-classification"
FAKE_KEYWORDS = ("fake", "deepfake", "ai")


@dataclass(frozen=True)
class DeepfakeResult:
    label: str
    score: float
    is_deepfake: bool

    def to_dict(self) -> dict[str, Any]:
        return {"label": self.label, "score": self.score, "is_deepfake": self.is_deepfake}


def label_is_fake(label: str) -> bool:
    lowered = label.lower()
    return any(k in lowered for k in FAKE_KEYWORDS)


def parse_classification(status: int, content_type: str, text: str) -> DeepfakeResult:
    """Interpret a router reply: a JSON list of {label, score} entries."""
    if 300 <= status < 400:
        raise SpecialistError(f"Deepfake model redirected ({status}); model not served by the router")
    if status >= 400 or "text/html" in content_type or text.lstrip().startswith("<!"):
        raise SpecialistError(f"Deepfake API error {status}: {text[:500]}")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SpecialistError(f"Deepfake API returned invalid JSON: {text[:200]}") from exc
    entries = [d for d in data if isinstance(d, dict)] if isinstance(data, list) else []
    if not entries:
        raise SpecialistError(f"Unexpected deepfake response format: {text[:200]}")

    top = max(entries, key=lambda d: float(d.get("score") or 0.0))
    label = str(top.get("label") or "Unknown")
    score = float(top.get("score") or 0.0)
    return DeepfakeResult(label=label, score=score, is_deepfake=label_is_fake(label))


class DeepfakeClassifier:
    def __init__(
        self,
        token: str,
        model: str = "Ateeqq/ai-vs-human-image-detector",
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.token = token
        self.model = model
        self.timeout = timeout
        self._client = client

    @property
    def url(self) -> str:
        return HF_ROUTER_URL.format(model=self.model)

    async def classify(self, image: bytes) -> DeepfakeResult:
        if not self.token:
            raise SpecialistError("HF token not configured")
        headers = {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/octet-stream",
            "Accept": "application/json",
            "X-Wait-For-Model": "true",
        }
        try:
            if self._client is not None:
                resp = await self._client.post(self.url, content=image, headers=headers, follow_redirects=False)
            else:
                async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=False) as client:
                    resp = await client.post(self.url, content=image, headers=headers)
        except httpx.HTTPError as exc:
            raise SpecialistError(f"Deepfake request failed: {exc}") from exc

        result = parse_classification(resp.status_code, resp.headers.get("content-type", ""), resp.text)
        logger.info("Deepfake %s: label=%s score=%.3f", self.model, result.label, result.score)
        return result
