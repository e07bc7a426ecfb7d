"""Tests for the deepfake classifier, analysis reporter and specialist runner."""

import asyncio
import json

import httpx
import pytest

from questproof.models.enums import DeepfakeVerdict, Verdict

PHOTO_URL = "https://proj.example.co/storage/v1/object/public/quest-submissions/user1/sub1.jpg"


class FakeClassifier:
    def __init__(self, label="human", score=0.97, error=None):
        from questproof.specialists.deepfake_classifier import DeepfakeResult, label_is_fake

        self.result = DeepfakeResult(label=label, score=score, is_deepfake=label_is_fake(label))
        self.error = error
        self.calls = 0

    async def classify(self, image):
        self.calls += 1
        if self.error:
            raise self.error
        return self.result


class FakeReporter:
    def __init__(self, text="No anomalies found.", error=None, delay=0.0):
        self.text = text
        self.error = error
        self.delay = delay
        self.calls = 0

    async def report(self, image):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.text


async def _stored_outcome(store, verdict=Verdict.VERIFIED):
    from questproof.models.schemas import VerificationOutcome

    return await store.add_verification(
        VerificationOutcome(
            submission_id="sub1",
            user_id="user1",
            photo_url=PHOTO_URL,
            geofence_score=1.0,
            authenticity_score=1.0,
            quest_match=0.9,
            visual_scene_match=0.9,
            ai_authenticity=0.9,
            scene_relevance=0.9,
            final_confidence=0.955,
            verdict=verdict,
            reason="ok",
            model_used="stub-judge",
        )
    )


@pytest.fixture
def runner_factory(store, fetcher):
    from questproof.specialists.runner import SpecialistRunner

    fetcher.photos[PHOTO_URL] = b"\xff\xd8\xffphoto"

    def build(deepfake=None, reporter=None, timeout=5.0):
        return SpecialistRunner(store, fetcher, deepfake=deepfake, reporter=reporter, timeout=timeout)

    return build


class TestParseClassification:
    def test_top_label_wins(self):
        from questproof.specialists.deepfake_classifier import parse_classification

        body = json.dumps([{"label": "human", "score": 0.2}, {"label": "ai", "score": 0.8}])
        result = parse_classification(200, "application/json", body)
        assert result.label == "ai"
        assert result.score == 0.8
        assert result.is_deepfake

    def test_real_label(self):
        from questproof.specialists.deepfake_classifier import parse_classification

        result = parse_classification(200, "application/json", '[{"label": "Real", "score": 0.91}]')
        assert not result.is_deepfake

    @pytest.mark.parametrize(
        "status,ctype,body",
        [
            (302, "text/plain", ""),
            (503, "application/json", '{"error": "loading"}'),
            (200, "text/html", "<html></html>"),
            (200, "application/json", "<!DOCTYPE html>"),
            (200, "application/json", "[]"),
            (200, "application/json", '{"label": "ai"}'),
            (200, "application/json", "not json"),
        ],
    )
    def test_bad_replies(self, status, ctype, body):
        from questproof.exceptions import SpecialistError
        from questproof.specialists.deepfake_classifier import parse_classification

        with pytest.raises(SpecialistError):
            parse_classification(status, ctype, body)


class TestDeepfakeClassifier:
    @pytest.mark.asyncio
    async def test_posts_raw_bytes(self):
        from questproof.specialists.deepfake_classifier import DeepfakeClassifier

        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = request.content
            return httpx.Response(200, json=[{"label": "hum", "score": 0.99}])

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            classifier = DeepfakeClassifier("hf-token", model="org/model", client=client)
            result = await classifier.classify(b"bytes")

        assert seen["url"] == "https://router.huggingface.co/hf-inference/models/org/model/pipeline/image-classification"
        assert seen["auth"] == "Bearer hf-token"
        assert seen["body"] == b"bytes"
        assert result.label == "hum"

    @pytest.mark.asyncio
    async def test_requires_token(self):
        from questproof.exceptions import SpecialistError
        from questproof.specialists.deepfake_classifier import DeepfakeClassifier

        with pytest.raises(SpecialistError):
            await DeepfakeClassifier("").classify(b"bytes")


class TestAnalysisReporter:
    def test_data_uri(self):
        from questproof.specialists.analysis_reporter import to_data_uri

        assert to_data_uri(b"\x89PNG....").startswith("data:image/png;base64,")

    @pytest.mark.asyncio
    async def test_requires_key(self):
        from questproof.exceptions import SpecialistError
        from questproof.specialists.analysis_reporter import AnalysisReporter

        with pytest.raises(SpecialistError):
            await AnalysisReporter(api_key="").report(b"bytes")


class TestSpecialistRunner:
    @pytest.mark.asyncio
    async def test_deepfake_writes_enrichment_only(self, runner_factory, store, seed):
        await seed.submission("sub1", status="approved")
        stored = await _stored_outcome(store)
        runner = runner_factory(deepfake=FakeClassifier(label="ai", score=0.88))

        result = await runner.run_deepfake(stored.id)

        assert result.is_deepfake
        updated = await store.get_verification(stored.id)
        assert updated.deepfake_verdict == DeepfakeVerdict.FAKE
        assert updated.deepfake_confidence == 0.88
        assert updated.analyzed_at is not None
        # Primary verdict and lifecycle untouched
        assert updated.verdict == Verdict.VERIFIED
        assert (await store.get_submission("sub1")).status == "approved"

    @pytest.mark.asyncio
    async def test_idempotent_until_reset(self, runner_factory, store, seed):
        await seed.submission("sub1", status="approved")
        stored = await _stored_outcome(store)
        classifier = FakeClassifier()
        runner = runner_factory(deepfake=classifier)

        assert await runner.run_deepfake(stored.id) is not None
        assert await runner.run_deepfake(stored.id) is None
        assert classifier.calls == 1

        cleared = await runner.reset_deepfake(stored.id)
        assert cleared.deepfake_verdict is None
        assert await runner.run_deepfake(stored.id) is not None
        assert classifier.calls == 2

        assert len(await store.list_verifications(submission_id="sub1")) == 1
        assert (await store.get_verification(stored.id)).verdict == Verdict.VERIFIED
        assert (await store.get_submission("sub1")).status == "approved"

    @pytest.mark.asyncio
    async def test_analysis_reset_and_rerun(self, runner_factory, store, seed):
        await seed.submission("sub1")
        stored = await _stored_outcome(store, verdict=Verdict.UNCERTAIN)
        reporter = FakeReporter()
        runner = runner_factory(reporter=reporter)

        assert await runner.run_analysis(stored.id) == "No anomalies found."
        assert await runner.run_analysis(stored.id) is None
        await runner.reset_analysis(stored.id)
        reporter.text = "Second opinion."
        assert await runner.run_analysis(stored.id) == "Second opinion."
        assert (await store.get_verification(stored.id)).analysis_report == "Second opinion."
        assert (await store.get_submission("sub1")).status == "pending"

    @pytest.mark.asyncio
    async def test_discarded_when_submission_purged(self, runner_factory, store):
        stored = await _stored_outcome(store, verdict=Verdict.REJECTED)
        classifier = FakeClassifier()
        runner = runner_factory(deepfake=classifier)

        assert await runner.run_deepfake(stored.id) is None
        assert classifier.calls == 0
        assert (await store.get_verification(stored.id)).deepfake_verdict is None

    @pytest.mark.asyncio
    async def test_discarded_when_purged_mid_flight(self, runner_factory, store, seed):
        await seed.submission("sub1")
        stored = await _stored_outcome(store)

        class PurgingReporter(FakeReporter):
            async def report(self, image):
                await store.delete_submission("sub1")
                return "too late"

        runner = runner_factory(reporter=PurgingReporter())
        assert await runner.run_analysis(stored.id) is None
        assert (await store.get_verification(stored.id)).analysis_report is None

    @pytest.mark.asyncio
    async def test_run_all_isolates_failures(self, runner_factory, store, seed):
        from questproof.exceptions import SpecialistError

        await seed.submission("sub1")
        stored = await _stored_outcome(store)
        runner = runner_factory(
            deepfake=FakeClassifier(error=SpecialistError("HF down")),
            reporter=FakeReporter(text="Looks genuine."),
        )

        report = await runner.run_all(stored.id)

        assert report.deepfake is None
        assert report.deepfake_error == "HF down"
        assert report.analysis_report == "Looks genuine."
        assert report.analysis_error is None

    @pytest.mark.asyncio
    async def test_timeout(self, runner_factory, store, seed):
        from questproof.exceptions import SpecialistError

        await seed.submission("sub1")
        stored = await _stored_outcome(store)
        runner = runner_factory(reporter=FakeReporter(delay=1.0), timeout=0.05)

        with pytest.raises(SpecialistError):
            await runner.run_analysis(stored.id)

    @pytest.mark.asyncio
    async def test_dispatch_runs_detached(self, runner_factory, store, seed):
        await seed.submission("sub1")
        stored = await _stored_outcome(store)
        runner = runner_factory(deepfake=FakeClassifier(), reporter=FakeReporter(error=RuntimeError("boom")))

        tasks = runner.dispatch(stored.id)
        assert len(tasks) == 2
        await runner.drain()

        assert runner.pending_tasks == 0
        updated = await store.get_verification(stored.id)
        assert updated.deepfake_verdict == DeepfakeVerdict.REAL
        assert updated.analysis_report is None

    @pytest.mark.asyncio
    async def test_unconfigured_check(self, runner_factory, store, seed):
        from questproof.exceptions import SpecialistError

        await seed.submission("sub1")
        stored = await _stored_outcome(store)
        with pytest.raises(SpecialistError):
            await runner_factory().run_deepfake(stored.id)

    @pytest.mark.asyncio
    async def test_unknown_verification(self, runner_factory):
        from questproof.exceptions import VerificationNotFoundError

        with pytest.raises(VerificationNotFoundError):
            await runner_factory(deepfake=FakeClassifier()).run_deepfake("ver_missing")

    @pytest.mark.asyncio
    async def test_concurrent_runs_call_remote_once(self, runner_factory, store, seed):
        await seed.submission("sub1")
        stored = await _stored_outcome(store)

        class SlowClassifier(FakeClassifier):
            async def classify(self, image):
                await asyncio.sleep(0.05)
                return await super().classify(image)

        classifier = SlowClassifier()
        reporter = FakeReporter(delay=0.05)
        runner = runner_factory(deepfake=classifier, reporter=reporter)

        background_deepfake, background_analysis = runner.dispatch(stored.id)
        results = await asyncio.gather(
            background_deepfake,
            runner.run_deepfake(stored.id),
            runner.run_deepfake(stored.id),
            background_analysis,
            runner.run_analysis(stored.id),
        )

        assert classifier.calls == 1
        assert reporter.calls == 1
        assert sum(r is not None for r in results[:3]) == 1
        assert sum(r is not None for r in results[3:]) == 1
        assert (await store.get_verification(stored.id)).deepfake_verdict == DeepfakeVerdict.REAL
        assert runner._locks == {}
