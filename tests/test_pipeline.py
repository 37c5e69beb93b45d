"""Tests for pipeline orchestration."""

from datetime import datetime, timezone

import pytest

from ytdigest.core.pipeline import STAGES, DigestPipeline, digest_video
from ytdigest.errors import (
    CaptionsUnavailableError,
    GenerationError,
    InvalidIdentifierError,
    SchemaValidationError,
)
from ytdigest.models.schemas import DigestDocument
from ytdigest.models.video import PipelineState

from conftest import VIDEO_ID

FIXED_NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)
STAGE_NAMES = ["resolve", "fetch", "transcript", "clean", "digest", "chapters", "finalize"]


@pytest.fixture
def make_pipeline(settings, bundle, fake_generator, digest_payload, chapter_payload):
    """Build a pipeline with a fake fetcher and canned generation responses."""

    def _make(responses=None, fetcher=None):
        if responses is None:
            responses = ["Hello there. It's a test. Second minute.", digest_payload, chapter_payload]
        gen = fake_generator(responses)
        fetched = []

        def fake_fetch(video_id, s):
            fetched.append(video_id)
            return bundle

        pipeline = DigestPipeline(
            settings,
            generator=gen,
            fetcher=fetcher or fake_fetch,
            clock=lambda: FIXED_NOW,
        )
        pipeline.fetched = fetched
        return pipeline

    return _make


class TestStageOrder:
    def test_stage_names(self):
        assert [s.name for s in STAGES] == STAGE_NAMES

    def test_states_follow_lifecycle(self):
        assert [s.state for s in STAGES] == [
            PipelineState.RESOLVED,
            PipelineState.FETCHED,
            PipelineState.TRANSCRIPT_ASSEMBLED,
            PipelineState.CLEANED,
            PipelineState.DIGESTED,
            PipelineState.CHAPTERED,
            PipelineState.FINALIZED,
        ]


class TestDigestPipelineSuccess:
    def test_produces_document(self, make_pipeline):
        pipeline = make_pipeline()

        doc = pipeline.run(f"https://youtu.be/{VIDEO_ID}")

        assert isinstance(doc, DigestDocument)
        assert doc.video_id == VIDEO_ID
        assert doc.fetched_at == FIXED_NOW
        assert doc.cleaned_transcript == "Hello there. It's a test. Second minute."
        assert doc.transcript_text == "hello there it's a test second minute"
        assert doc.timestamped_utterances == "00:00 hello there\n00:31 it's a test\n01:15 second minute"
        assert doc.digest.sentence_summary == "A rabbit gets even."
        assert doc.chapters.chapters[0].offset_seconds == 0
        assert pipeline.fetched == [VIDEO_ID]

    def test_generation_inputs(self, make_pipeline):
        pipeline = make_pipeline()

        pipeline.run(VIDEO_ID)

        calls = pipeline.generator.calls
        assert len(calls) == 3
        # cleanup sees the flat text, chapters see the timestamped log
        assert calls[0]["messages"][-1]["content"] == "hello there it's a test second minute"
        assert calls[1]["messages"][-1]["content"] == "Hello there. It's a test. Second minute."
        assert calls[2]["messages"][-1]["content"].startswith("00:00 hello there")

    def test_report(self, make_pipeline):
        pipeline = make_pipeline()

        pipeline.run(VIDEO_ID)

        report = pipeline.report
        assert report.success is True
        assert report.state == PipelineState.FINALIZED
        assert report.video_id == VIDEO_ID
        assert report.error is None
        assert report.failed_stage is None
        assert report.completed_at is not None
        assert [s.stage for s in report.stages] == STAGE_NAMES
        assert all(s.status == "success" for s in report.stages)

    def test_cost_accounting(self, make_pipeline):
        pipeline = make_pipeline()

        pipeline.run(VIDEO_ID)

        by_stage = {s.stage: s for s in pipeline.report.stages}
        for name in ("clean", "digest", "chapters"):
            assert by_stage[name].input_tokens == 100
            assert by_stage[name].output_tokens == 50
            assert by_stage[name].cost_usd == pytest.approx(0.001)
        for name in ("resolve", "fetch", "transcript", "finalize"):
            assert by_stage[name].cost_usd == 0.0
        assert pipeline.report.total_cost_usd == pytest.approx(0.003)

    def test_stage_callback(self, make_pipeline):
        pipeline = make_pipeline()
        seen = []

        pipeline.run(VIDEO_ID, stage_callback=seen.append)

        assert seen == STAGE_NAMES

    def test_digest_video(self, settings, bundle, fake_generator, digest_payload, chapter_payload, monkeypatch):
        monkeypatch.setattr("ytdigest.core.pipeline.fetch_transcript", lambda vid, s: bundle)
        gen = fake_generator(["Cleaned.", digest_payload, chapter_payload])

        doc = digest_video(VIDEO_ID, settings, generator=gen)

        assert doc.video_id == VIDEO_ID
        assert doc.cleaned_transcript == "Cleaned."


class TestDigestPipelineFailure:
    def test_invalid_identifier_halts_before_fetch(self, make_pipeline):
        pipeline = make_pipeline()

        with pytest.raises(InvalidIdentifierError) as exc_info:
            pipeline.run("https://example.com/watch")

        assert exc_info.value.stage == "resolve"
        assert exc_info.value.video_id is None
        assert pipeline.fetched == []
        assert pipeline.generator.calls == []
        report = pipeline.report
        assert report.success is False
        assert report.state == PipelineState.PENDING
        assert report.failed_stage == "resolve"
        assert report.video_id is None

    def test_fetch_failure_is_annotated(self, make_pipeline):
        def broken_fetch(video_id, settings):
            raise CaptionsUnavailableError("No transcripts available for this video.")

        pipeline = make_pipeline(fetcher=broken_fetch)

        with pytest.raises(CaptionsUnavailableError) as exc_info:
            pipeline.run(VIDEO_ID)

        err = exc_info.value
        assert err.stage == "fetch"
        assert err.video_id == VIDEO_ID
        assert str(err) == f"[stage=fetch video={VIDEO_ID}] No transcripts available for this video."
        assert pipeline.generator.calls == []
        assert pipeline.report.state == PipelineState.RESOLVED
        assert pipeline.report.video_id == VIDEO_ID

    def test_generation_failure_stops_later_stages(self, make_pipeline):
        pipeline = make_pipeline(responses=[GenerationError("timeout")])

        with pytest.raises(GenerationError) as exc_info:
            pipeline.run(VIDEO_ID)

        assert exc_info.value.stage == "clean"
        assert len(pipeline.generator.calls) == 1
        report = pipeline.report
        assert report.state == PipelineState.TRANSCRIPT_ASSEMBLED
        assert report.failed_stage == "clean"
        assert report.error.startswith("Stage 'clean' failed:")
        assert report.stages[-1].status == "failed"
        assert "timeout" in report.stages[-1].error
        assert [s.stage for s in report.stages] == STAGE_NAMES[:4]

    def test_schema_failure_in_chapters(self, make_pipeline, digest_payload):
        bad_chapters = {
            "chapters": [
                {"name": "a", "timestamp": "00:05", "offset_seconds": 5},
                {"name": "b", "timestamp": "00:30", "offset_seconds": 30},
                {"name": "c", "timestamp": "01:00", "offset_seconds": 60},
            ]
        }
        pipeline = make_pipeline(responses=["Cleaned.", digest_payload, bad_chapters])

        with pytest.raises(SchemaValidationError) as exc_info:
            pipeline.run(VIDEO_ID)

        assert exc_info.value.stage == "chapters"
        assert pipeline.report.state == PipelineState.DIGESTED
        # usage of the failing call still counts
        assert pipeline.report.stages[-1].cost_usd == pytest.approx(0.001)
        assert pipeline.report.total_cost_usd == pytest.approx(0.003)

    def test_unexpected_error_propagates_unchanged(self, make_pipeline):
        def broken_fetch(video_id, settings):
            raise RuntimeError("disk on fire")

        pipeline = make_pipeline(fetcher=broken_fetch)

        with pytest.raises(RuntimeError, match="disk on fire"):
            pipeline.run(VIDEO_ID)
        assert pipeline.report.failed_stage == "fetch"

    def test_existing_annotation_is_kept(self, make_pipeline):
        def broken_fetch(video_id, settings):
            raise CaptionsUnavailableError("gone", stage="captions", video_id="other")

        pipeline = make_pipeline(fetcher=broken_fetch)

        with pytest.raises(CaptionsUnavailableError) as exc_info:
            pipeline.run(VIDEO_ID)
        assert exc_info.value.stage == "captions"
        assert exc_info.value.video_id == "other"
