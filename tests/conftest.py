"""Shared fixtures: temporary sqlite store, stub judge, stub fetcher and EXIF photos."""

from __future__ import annotations

import io
import os
from datetime import datetime, timezone
from typing import Any

import pytest
import pytest_asyncio

os.environ["QUESTPROOF_ENV"] = "test"
_PROVIDER_ENV = (
    "GEMINI_API_KEY",
    "HF_TOKEN",
    "GROQ_API_KEY",
    "LOVABLE_API_KEY",
    "DATABASE_URL",
    "STORAGE_URL",
    "STORAGE_SERVICE_KEY",
)
for _key in _PROVIDER_ENV:
    os.environ.pop(_key, None)

BUCKET = "quest-submissions"
PUBLIC_BASE = f"https://proj.example.co/storage/v1/object/public/{BUCKET}"


def _dms(value: float) -> tuple[float, float, float]:
    value = abs(value)
    degrees = int(value)
    minutes = int((value - degrees) * 60)
    seconds = round((value - degrees - minutes / 60) * 3600, 4)
    return float(degrees), float(minutes), seconds


def make_photo(
    lat: float | None = None,
    lon: float | None = None,
    taken: datetime | str | None = None,
    make: str | None = None,
    model: str | None = None,
    offset: str | None = None,
) -> bytes:
    """Small JPEG carrying only the requested EXIF fields."""
    from PIL import Image

    img = Image.new("RGB", (64, 48), (90, 140, 60))
    exif = Image.Exif()
    if make:
        exif[0x010F] = make
    if model:
        exif[0x0110] = model

    exif_ifd: dict[int, Any] = {}
    if taken is not None:
        exif_ifd[0x9003] = taken if isinstance(taken, str) else taken.strftime("%Y:%m:%d %H:%M:%S")
    if offset:
        exif_ifd[0x9011] = offset
    if exif_ifd:
        exif[0x8769] = exif_ifd

    if lat is not None and lon is not None:
        exif[0x8825] = {
            1: "N" if lat >= 0 else "S",
            2: _dms(lat),
            3: "E" if lon >= 0 else "W",
            4: _dms(lon),
        }

    buf = io.BytesIO()
    img.save(buf, format="JPEG", exif=exif)
    return buf.getvalue()


@pytest.fixture
def photo_factory():
    return make_photo


@pytest.fixture
def settings(database_url):
    from questproof.config import Settings

    return Settings(database_url=database_url, gemini_api_key="", admin_api_key="secret-admin", storage_url="")


# ── Stubs ──


class StubFetcher:
    """Serves photos from a dict keyed by URL; unknown URLs fail like a 404."""

    def __init__(self) -> None:
        self.photos: dict[str, bytes] = {}
        self.calls: list[str] = []

    async def fetch(self, url: str) -> bytes | None:
        self.calls.append(url)
        return self.photos.get(url)


class StubJudge:
    """VisionJudge double returning canned scores or raising a given error."""

    def __init__(self, scores: dict[str, float] | None = None, rationale: str = "Looks right", error: Exception | None = None) -> None:
        self.scores = scores or {
            "quest_match": 0.9,
            "visual_scene_match": 0.9,
            "ai_authenticity": 0.9,
            "scene_relevance": 0.9,
        }
        self.rationale = rationale
        self.error = error
        self.calls = 0

    @property
    def name(self) -> str:
        return "stub-judge"

    async def judge(self, request, image, context):
        from questproof.exceptions import JudgeError
        from questproof.models.schemas import VisionJudgment

        self.calls += 1
        if self.error is not None:
            raise self.error
        if not image:
            raise JudgeError("Photo bytes unavailable for vision judge")
        return VisionJudgment(**self.scores, rationale=self.rationale)


@pytest.fixture
def fetcher():
    return StubFetcher()


@pytest.fixture
def stub_judge_cls():
    return StubJudge


@pytest.fixture
def object_storage():
    from questproof.storage.object_storage import InMemoryObjectStorage

    return InMemoryObjectStorage(BUCKET)


# ── Database ──


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'questproof.db'}"


@pytest_asyncio.fixture
async def database(database_url):
    from questproof.storage.database import Database

    db = Database(database_url)
    await db.create_all()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def store(database):
    from questproof.storage.repository import VerificationStore

    return VerificationStore(database)


class Seeder:
    """Inserts quests, submissions and social rows owned by the outer application."""

    def __init__(self, database) -> None:
        self.database = database

    async def quest(self, quest_id: str = "q1", **fields: Any) -> None:
        from questproof.storage.tables import QuestRow

        values = {"title": "Visit the old lighthouse", "description": "Photograph the lighthouse", "location": "Harbor"}
        values.update(fields)
        async with self.database.sessionmaker() as session, session.begin():
            session.add(QuestRow(id=quest_id, **values))

    async def submission(self, submission_id: str = "sub1", **fields: Any) -> None:
        from questproof.storage.tables import SubmissionRow

        values: dict[str, Any] = {
            "user_id": "user1",
            "photo_url": f"{PUBLIC_BASE}/user1/{submission_id}.jpg",
            "image_urls": [],
            "status": "pending",
            "created_at": datetime.now(timezone.utc),
        }
        values.update(fields)
        async with self.database.sessionmaker() as session, session.begin():
            session.add(SubmissionRow(id=submission_id, **values))

    async def social(self, submission_id: str = "sub1") -> None:
        from questproof.storage.tables import PostCommentRow, PostLikeRow, PostShareRow

        async with self.database.sessionmaker() as session, session.begin():
            session.add(PostLikeRow(submission_id=submission_id, user_id="fan"))
            session.add(PostCommentRow(submission_id=submission_id, user_id="fan", body="nice"))
            session.add(PostShareRow(submission_id=submission_id, user_id="fan"))


@pytest.fixture
def seeder_cls():
    return Seeder


@pytest.fixture
def seed(database):
    return Seeder(database)


@pytest.fixture
def pipeline_factory(store, object_storage, fetcher):
    from questproof.core.orchestrator import VerificationPipeline
    from questproof.models.schemas import PipelineConfig

    def build(judge=None, specialists=None, **config: Any) -> VerificationPipeline:
        return VerificationPipeline(
            PipelineConfig(**config),
            store,
            object_storage,
            fetcher=fetcher,
            judge=judge,
            specialists=specialists,
        )

    return build
