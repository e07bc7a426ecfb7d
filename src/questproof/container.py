"""QuestProof service wiring shared by the HTTP API and scripts."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from questproof.config import Settings
from questproof.core.image_fetcher import ImageFetcher
from questproof.core.judge.base import VisionJudge
from questproof.core.judge.chain import ChainedVisionJudge
from questproof.core.orchestrator import VerificationPipeline
from questproof.specialists.runner import SpecialistRunner, build_specialist_runner
from questproof.storage.database import Database
from questproof.storage.object_storage import HttpObjectStorage, InMemoryObjectStorage, ObjectStorage
from questproof.storage.repository import VerificationStore

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    database: Database
    store: VerificationStore
    storage: ObjectStorage
    fetcher: ImageFetcher
    specialists: SpecialistRunner
    pipeline: VerificationPipeline

    async def startup(self) -> None:
        await self.database.create_all()

    async def shutdown(self) -> None:
        await self.specialists.drain()
        await self.database.dispose()


def build_object_storage(settings: Settings) -> ObjectStorage:
    if not settings.storage_url:
        logger.warning("No storage URL configured, photo objects are kept in memory")
        return InMemoryObjectStorage(settings.storage_bucket)
    return HttpObjectStorage(
        base_url=settings.storage_url,
        bucket=settings.storage_bucket,
        service_key=settings.storage_service_key,
        timeout=settings.fetch_timeout,
    )


def build_services(
    settings: Settings,
    *,
    storage: ObjectStorage | None = None,
    fetcher: ImageFetcher | None = None,
    judge: VisionJudge | ChainedVisionJudge | None = None,
    specialists: SpecialistRunner | None = None,
) -> Services:
    """Wire every collaborator from settings; explicit arguments win."""
    config = settings.pipeline_config
    database = Database(settings.database_url, echo=settings.debug)
    store = VerificationStore(database)
    storage = storage or build_object_storage(settings)
    fetcher = fetcher or ImageFetcher(timeout=settings.fetch_timeout)
    specialists = specialists or build_specialist_runner(settings, store, fetcher)
    pipeline = VerificationPipeline(
        config,
        store,
        storage,
        fetcher=fetcher,
        judge=judge,
        specialists=specialists,
    )
    return Services(
        settings=settings,
        database=database,
        store=store,
        storage=storage,
        fetcher=fetcher,
        specialists=specialists,
        pipeline=pipeline,
    )
