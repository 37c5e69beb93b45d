"""Pipeline orchestration: the ordered digest stages with per-stage reporting."""

import logging
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Callable

from ytdigest.config import Settings
from ytdigest.core.assembler import assemble_document
from ytdigest.core.fetcher import fetch_transcript
from ytdigest.core.generator import (
    clean_transcript,
    digest_transcript,
    extract_chapters,
)
from ytdigest.core.resolver import resolve_video_id
from ytdigest.core.transcript import assemble_transcript
from ytdigest.errors import DigestError
from ytdigest.models.schemas import (
    ChapterList,
    DigestDocument,
    TranscriptBundle,
    TranscriptDigest,
)
from ytdigest.models.video import PipelineState
from ytdigest.services.generation import Generator, make_generator

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PipelineContext:
    """Outputs accumulated so far. Each stage returns a new copy."""

    source: str
    video_id: str | None = None
    bundle: TranscriptBundle | None = None
    transcript_text: str | None = None
    utterance_log: str | None = None
    cleaned_transcript: str | None = None
    digest: TranscriptDigest | None = None
    chapters: ChapterList | None = None
    document: DigestDocument | None = None


@dataclass(frozen=True)
class Stage:
    name: str
    state: PipelineState  # state reached when the stage succeeds
    run: Callable[["DigestPipeline", PipelineContext], tuple[PipelineContext, str]]


@dataclass
class StageResult:
    stage: str
    status: str  # "success", "failed"
    duration_seconds: float
    detail: str = ""
    error: str | None = None
    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: float = 0.0


@dataclass
class PipelineReport:
    source: str
    video_id: str | None = None
    state: PipelineState = PipelineState.PENDING
    started_at: datetime = field(default_factory=_utcnow)
    completed_at: datetime | None = None
    stages: list[StageResult] = field(default_factory=list)
    total_cost_usd: float = 0.0
    success: bool = False
    error: str | None = None
    failed_stage: str | None = None


def _resolve(pipeline: "DigestPipeline", ctx: PipelineContext):
    video_id = resolve_video_id(ctx.source)
    return replace(ctx, video_id=video_id), video_id


def _fetch(pipeline: "DigestPipeline", ctx: PipelineContext):
    bundle = pipeline.fetcher(ctx.video_id, pipeline.settings)
    lang = bundle.track.language_code if bundle.track else "?"
    return replace(ctx, bundle=bundle), f"{len(bundle.transcript)} segments ({lang})"


def _assemble(pipeline: "DigestPipeline", ctx: PipelineContext):
    assembled = assemble_transcript(ctx.bundle.transcript)
    ctx = replace(
        ctx,
        transcript_text=assembled.flat_text,
        utterance_log=assembled.utterance_log,
    )
    return ctx, f"{len(assembled.flat_text.split())} words"


def _clean(pipeline: "DigestPipeline", ctx: PipelineContext):
    cleaned = clean_transcript(
        ctx.transcript_text, ctx.bundle.metadata, pipeline.generator, pipeline.settings
    )
    return replace(ctx, cleaned_transcript=cleaned), f"{len(cleaned)} chars"


def _digest(pipeline: "DigestPipeline", ctx: PipelineContext):
    digest = digest_transcript(
        ctx.cleaned_transcript, ctx.bundle.metadata, pipeline.generator, pipeline.settings
    )
    detail = (
        f"{len(digest.topics)} topics, {len(digest.keywords)} keywords, "
        f"{len(digest.pull_quotes)} quotes"
    )
    return replace(ctx, digest=digest), detail


def _chapters(pipeline: "DigestPipeline", ctx: PipelineContext):
    chapters = extract_chapters(
        ctx.digest,
        ctx.bundle.metadata,
        ctx.utterance_log,
        ctx.video_id,
        pipeline.generator,
        pipeline.settings,
    )
    return replace(ctx, chapters=chapters), f"{len(chapters.chapters)} chapters"


def _finalize(pipeline: "DigestPipeline", ctx: PipelineContext):
    document = assemble_document(
        metadata=ctx.bundle.metadata,
        bundle=ctx.bundle,
        cleaned_transcript=ctx.cleaned_transcript,
        transcript_text=ctx.transcript_text,
        utterance_log=ctx.utterance_log,
        digest=ctx.digest,
        chapters=ctx.chapters,
        fetched_at=pipeline.clock(),
    )
    return replace(ctx, document=document), document.fetched_at.isoformat()


# Stages in execution order, with the state each one moves the run into
STAGES = [
    Stage("resolve", PipelineState.RESOLVED, _resolve),
    Stage("fetch", PipelineState.FETCHED, _fetch),
    Stage("transcript", PipelineState.TRANSCRIPT_ASSEMBLED, _assemble),
    Stage("clean", PipelineState.CLEANED, _clean),
    Stage("digest", PipelineState.DIGESTED, _digest),
    Stage("chapters", PipelineState.CHAPTERED, _chapters),
    Stage("finalize", PipelineState.FINALIZED, _finalize),
]


class DigestPipeline:
    """Runs one source string through every stage in order.

    The generation backend and the fetcher are injected so stages can be
    exercised with fakes. ``report`` describes the most recent run, including
    a failed one.
    """

    def __init__(
        self,
        settings: Settings,
        generator: Generator | None = None,
        fetcher: Callable[[str, Settings], TranscriptBundle] | None = None,
        clock: Callable[[], datetime] | None = None,
        stages: list[Stage] | None = None,
    ):
        self.settings = settings
        self.generator = generator if generator is not None else make_generator(settings)
        self.fetcher = fetcher or fetch_transcript
        self.clock = clock or _utcnow
        self.stages = list(stages) if stages is not None else list(STAGES)
        self.report: PipelineReport | None = None

    def run(
        self,
        source: str,
        stage_callback: Callable[[str], None] | None = None,
    ) -> DigestDocument:
        """Run all stages for ``source`` (a video id or URL).

        Args:
            stage_callback: Optional callback invoked with the stage name
                before each stage executes.

        Returns:
            The finalized DigestDocument.

        Raises:
            DigestError: The first stage failure, annotated with the stage
                name and video id. No partial document is produced.
        """
        report = PipelineReport(source=source)
        self.report = report
        ctx = PipelineContext(source=source)

        plan = " -> ".join(s.name for s in self.stages)
        logger.info("Pipeline start: %s (%s)", source, plan)

        for stage in self.stages:
            logger.info("  Stage: %s", stage.name)
            if stage_callback:
                stage_callback(stage.name)

            usage_mark = len(self.generator.usage)
            t0 = time.monotonic()
            try:
                ctx, detail = stage.run(self, ctx)
            except Exception as e:
                if isinstance(e, DigestError):
                    e.stage = e.stage or stage.name
                    e.video_id = e.video_id or ctx.video_id
                result = self._stage_result(
                    stage.name, "failed", time.monotonic() - t0, usage_mark, error=str(e)
                )
                report.stages.append(result)
                report.error = f"Stage '{stage.name}' failed: {e}"
                report.failed_stage = stage.name
                self._finish(report)
                logger.error("  Stage %s failed: %s", stage.name, e)
                raise

            report.stages.append(
                self._stage_result(
                    stage.name, "success", time.monotonic() - t0, usage_mark, detail=detail
                )
            )
            report.state = stage.state
            report.video_id = ctx.video_id
            logger.info("  Stage %s: %s", stage.name, detail)

        report.success = True
        self._finish(report)
        return ctx.document

    def _stage_result(
        self,
        name: str,
        status: str,
        elapsed: float,
        usage_mark: int,
        detail: str = "",
        error: str | None = None,
    ) -> StageResult:
        calls = self.generator.usage[usage_mark:]
        return StageResult(
            stage=name,
            status=status,
            duration_seconds=elapsed,
            detail=detail,
            error=error,
            input_tokens=sum(c.input_tokens for c in calls),
            output_tokens=sum(c.output_tokens for c in calls),
            cost_usd=round(sum(c.cost_usd for c in calls), 6),
        )

    def _finish(self, report: PipelineReport) -> None:
        report.completed_at = _utcnow()
        report.total_cost_usd = round(sum(s.cost_usd for s in report.stages), 6)
        logger.info(
            "Pipeline %s: %s (state=%s, cost=$%.4f)",
            "OK" if report.success else "FAILED",
            report.video_id or report.source,
            report.state.value,
            report.total_cost_usd,
        )


def digest_video(
    source: str,
    settings: Settings,
    generator: Generator | None = None,
) -> DigestDocument:
    """Run the full pipeline for one video id or URL."""
    return DigestPipeline(settings, generator=generator).run(source)
