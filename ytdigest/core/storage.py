"""Persistence of finished digests: JSON/HTML files plus run records in the DB."""

import json
import logging
from pathlib import Path

from sqlalchemy.orm import Session

from ytdigest.core.pipeline import PipelineReport
from ytdigest.models.schemas import DigestDocument
from ytdigest.models.video import PipelineRun, PipelineState, RunStatus, VideoRecord

logger = logging.getLogger(__name__)


def digest_paths(video_id: str, output_dir: str) -> dict[str, Path]:
    """Return the JSON and HTML output paths for a video."""
    base = Path(output_dir) / video_id
    return {
        "json": base / f"transcript-digest_ytid-{video_id}.json",
        "html": base / f"transcript-digest_ytid-{video_id}.html",
    }


def write_digest(
    document: DigestDocument,
    output_dir: str,
    html: str | None = None,
) -> dict[str, str]:
    """Write the digest JSON (and the rendered HTML, if given).

    Returns:
        Mapping of "json"/"html" to the written file paths.
    """
    paths = digest_paths(document.video_id, output_dir)
    paths["json"].parent.mkdir(parents=True, exist_ok=True)

    paths["json"].write_text(document.model_dump_json(indent=2), encoding="utf-8")
    written = {"json": str(paths["json"])}
    logger.info("Digest written: %s", paths["json"])

    if html is not None:
        paths["html"].write_text(html, encoding="utf-8")
        written["html"] = str(paths["html"])
        logger.info("HTML written: %s", paths["html"])

    return written


def load_digest(path: str | Path) -> DigestDocument:
    return DigestDocument.model_validate_json(Path(path).read_text(encoding="utf-8"))


def write_report(report: PipelineReport, output_dir: str) -> str:
    """Write a PipelineReport as JSON to output_dir/{video_id}/reports/.

    Returns:
        Path to the written report file.
    """
    key = report.video_id or "unresolved"
    report_dir = Path(output_dir) / key / "reports"
    report_dir.mkdir(parents=True, exist_ok=True)

    timestamp = report.started_at.strftime("%Y%m%d_%H%M%S")
    path = report_dir / f"report_{timestamp}.json"

    data = {
        "source": report.source,
        "video_id": report.video_id,
        "state": report.state.value,
        "started_at": report.started_at.isoformat(),
        "completed_at": report.completed_at.isoformat() if report.completed_at else None,
        "success": report.success,
        "error": report.error,
        "failed_stage": report.failed_stage,
        "total_cost_usd": report.total_cost_usd,
        "stages": [
            {
                "stage": sr.stage,
                "status": sr.status,
                "duration_seconds": sr.duration_seconds,
                "detail": sr.detail,
                "error": sr.error,
                "input_tokens": sr.input_tokens,
                "output_tokens": sr.output_tokens,
                "cost_usd": sr.cost_usd,
            }
            for sr in report.stages
        ],
    }

    path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
    logger.info("Report written: %s", path)

    return str(path)


def record_run(
    session: Session,
    report: PipelineReport,
    document: DigestDocument | None = None,
    paths: dict[str, str] | None = None,
) -> VideoRecord | None:
    """Upsert the video's record and add one PipelineRun row per executed stage.

    Runs that never resolved a video id are not recorded.
    """
    if not report.video_id:
        logger.info("Run for %r has no video id; not recorded", report.source)
        return None

    record = (
        session.query(VideoRecord)
        .filter(VideoRecord.video_id == report.video_id)
        .first()
    )
    if record is None:
        record = VideoRecord(video_id=report.video_id)
        session.add(record)

    record.run_count = (record.run_count or 0) + 1
    record.total_cost_usd = (record.total_cost_usd or 0.0) + report.total_cost_usd

    if report.success:
        record.status = PipelineState.FINALIZED
        record.failed_stage = None
        record.error_message = None
    else:
        record.status = PipelineState.FAILED
        record.failed_stage = report.failed_stage
        record.error_message = report.error

    if document is not None:
        record.title = document.metadata.title
        record.channel_title = document.metadata.channel_title
        record.fetched_at = document.fetched_at
    if paths:
        record.digest_path = paths.get("json", record.digest_path)
        record.html_path = paths.get("html", record.html_path)

    for sr in report.stages:
        record.pipeline_runs.append(
            PipelineRun(
                stage=sr.stage,
                status=RunStatus.SUCCESS if sr.status == "success" else RunStatus.FAILED,
                started_at=report.started_at,
                duration_seconds=sr.duration_seconds,
                input_tokens=sr.input_tokens,
                output_tokens=sr.output_tokens,
                estimated_cost_usd=sr.cost_usd,
                error_message=sr.error,
            )
        )

    session.commit()
    return record
