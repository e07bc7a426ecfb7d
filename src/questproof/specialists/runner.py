"""QuestProof specialist check runner.

Deepfake classification and the analysis report are enrichments of a stored
verification outcome. Each check is idempotent (skipped when a result already
exists), individually resettable, discarded when the submission has been
purged, and never touches the submission lifecycle.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Awaitable, Callable

from questproof.core.image_fetcher import ImageFetcher
from questproof.exceptions import SpecialistError, VerificationNotFoundError
from questproof.models.enums import DeepfakeVerdict
from questproof.models.schemas import SpecialistReport, VerificationOutcome
from questproof.specialists.analysis_reporter import AnalysisReporter
from questproof.specialists.deepfake_classifier import DeepfakeClassifier, DeepfakeResult
from questproof.storage.repository import VerificationStore

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0  # seconds per check


class SpecialistRunner:
    def __init__(
        self,
        store: VerificationStore,
        fetcher: ImageFetcher,
        deepfake: DeepfakeClassifier | None = None,
        reporter: AnalysisReporter | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.store = store
        self.fetcher = fetcher
        self.deepfake = deepfake
        self.reporter = reporter
        self.timeout = timeout
        self._tasks: set[asyncio.Task[Any]] = set()
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}
        self._lock_users: Counter[tuple[str, str]] = Counter()

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    # ── Individual checks ──

    async def run_deepfake(self, verification_id: str) -> DeepfakeResult | None:
        """Classify the photo. Returns None when skipped or discarded."""
        async with self._exclusive("deepfake", verification_id):
            return await self._run_deepfake(verification_id)

    async def _run_deepfake(self, verification_id: str) -> DeepfakeResult | None:
        outcome = await self._load(verification_id)
        if outcome.deepfake_verdict is not None:
            logger.info("[%s] Deepfake result already present, skipping", verification_id)
            return None
        if self.deepfake is None:
            raise SpecialistError("Deepfake classifier not configured")
        if not await self._submission_alive(outcome, "deepfake"):
            return None

        image = await self._image(outcome)
        result = await self._bounded(self.deepfake.classify(image), "deepfake")

        if not await self._submission_alive(outcome, "deepfake"):
            return None
        await self.store.update_enrichment(
            verification_id,
            deepfake_verdict=DeepfakeVerdict.FAKE if result.is_deepfake else DeepfakeVerdict.REAL,
            deepfake_label=result.label,
            deepfake_confidence=result.score,
            analyzed_at=datetime.now(timezone.utc),
        )
        return result

    async def run_analysis(self, verification_id: str) -> str | None:
        """Generate the analysis report. Returns None when skipped or discarded."""
        async with self._exclusive("analysis", verification_id):
            return await self._run_analysis(verification_id)

    async def _run_analysis(self, verification_id: str) -> str | None:
        outcome = await self._load(verification_id)
        if outcome.analysis_report is not None:
            logger.info("[%s] Analysis report already present, skipping", verification_id)
            return None
        if self.reporter is None:
            raise SpecialistError("Analysis reporter not configured")
        if not await self._submission_alive(outcome, "analysis"):
            return None

        image = await self._image(outcome)
        report = await self._bounded(self.reporter.report(image), "analysis")

        if not await self._submission_alive(outcome, "analysis"):
            return None
        await self.store.update_enrichment(
            verification_id,
            analysis_report=report,
            analyzed_at=datetime.now(timezone.utc),
        )
        return report

    async def reset_deepfake(self, verification_id: str) -> VerificationOutcome:
        logger.info("[%s] Clearing deepfake result", verification_id)
        return await self.store.update_enrichment(
            verification_id, deepfake_verdict=None, deepfake_label=None, deepfake_confidence=None
        )

    async def reset_analysis(self, verification_id: str) -> VerificationOutcome:
        logger.info("[%s] Clearing analysis report", verification_id)
        return await self.store.update_enrichment(verification_id, analysis_report=None)

    # ── Both checks ──

    async def run_all(self, verification_id: str) -> SpecialistReport:
        """Run both checks concurrently; one failing does not affect the other."""
        deepfake, analysis = await asyncio.gather(
            self.run_deepfake(verification_id),
            self.run_analysis(verification_id),
            return_exceptions=True,
        )
        report = SpecialistReport(verification_id=verification_id)
        if isinstance(deepfake, BaseException):
            logger.error("[%s] Deepfake check failed: %s", verification_id, deepfake)
            report.deepfake_error = str(deepfake)
        elif deepfake is not None:
            report.deepfake = deepfake.to_dict()
        if isinstance(analysis, BaseException):
            logger.error("[%s] Analysis check failed: %s", verification_id, analysis)
            report.analysis_error = str(analysis)
        else:
            report.analysis_report = analysis
        return report

    def dispatch(self, verification_id: str) -> list[asyncio.Task[Any]]:
        """Start both checks as detached tasks. Must be called from a running loop."""
        tasks = [
            asyncio.create_task(self._guarded("deepfake", self.run_deepfake, verification_id)),
            asyncio.create_task(self._guarded("analysis", self.run_analysis, verification_id)),
        ]
        for task in tasks:
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        logger.info("[%s] Dispatched specialist checks", verification_id)
        return tasks

    async def drain(self) -> None:
        """Wait for every dispatched check to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ── Helpers ──

    @asynccontextmanager
    async def _exclusive(self, name: str, verification_id: str) -> AsyncIterator[None]:
        """One run of a given check per outcome at a time; later callers see its result and skip."""
        key = (name, verification_id)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]

    async def _guarded(self, name: str, check: Callable[[str], Awaitable[Any]], verification_id: str) -> Any:
        try:
            return await check(verification_id)
        except Exception as exc:
            logger.error("[%s] Background %s check failed: %s", verification_id, name, exc)
            return None

    async def _load(self, verification_id: str) -> VerificationOutcome:
        outcome = await self.store.get_verification(verification_id)
        if outcome is None:
            raise VerificationNotFoundError(verification_id)
        return outcome

    async def _submission_alive(self, outcome: VerificationOutcome, name: str) -> bool:
        if await self.store.submission_exists(outcome.submission_id):
            return True
        logger.info("[%s] Submission %s was purged, discarding %s check", outcome.id, outcome.submission_id, name)
        return False

    async def _image(self, outcome: VerificationOutcome) -> bytes:
        image = await self.fetcher.fetch(outcome.photo_url) if outcome.photo_url else None
        if not image:
            raise SpecialistError(f"Photo unavailable for verification {outcome.id}")
        return image

    async def _bounded(self, coro: Awaitable[Any], name: str) -> Any:
        try:
            return await asyncio.wait_for(coro, timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            raise SpecialistError(f"{name} check timed out after {self.timeout:.0f}s") from exc


def build_specialist_runner(settings: Any, store: VerificationStore, fetcher: ImageFetcher) -> SpecialistRunner:
    """Wire the checks that have credentials configured."""
    deepfake = None
    if settings.hf_token:
        deepfake = DeepfakeClassifier(
            token=settings.hf_token, model=settings.deepfake_model, timeout=settings.specialist_timeout
        )
    reporter = None
    if settings.groq_api_key:
        reporter = AnalysisReporter(
            api_key=settings.groq_api_key,
            model=settings.analysis_model,
            base_url=settings.groq_base_url,
            timeout=settings.specialist_timeout,
        )
    return SpecialistRunner(store, fetcher, deepfake=deepfake, reporter=reporter, timeout=settings.specialist_timeout)
