import logging
import sys

import click

from ytdigest.config import get_settings
from ytdigest.db import get_session_factory, init_db
from ytdigest.models.video import PipelineRun, PipelineState, VideoRecord

STATUS_WIDTH = max(len(s.value) for s in PipelineState)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """ytdigest - YouTube transcript digest pipeline"""
    ctx.ensure_object(dict)
    settings = get_settings()
    ctx.obj["settings"] = settings
    init_db(settings.database_url)
    ctx.obj["session_factory"] = get_session_factory(settings.database_url)


@cli.command()
@click.argument("source")
def resolve(source: str) -> None:
    """Print the canonical video id for an id or URL."""
    from ytdigest.core.resolver import resolve_video_id
    from ytdigest.errors import InvalidIdentifierError

    try:
        click.echo(resolve_video_id(source))
    except InvalidIdentifierError as e:
        click.echo(f"[FAIL] {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument("source")
@click.option("--no-html", is_flag=True, default=False, help="Skip rendering the HTML view.")
@click.option("--no-save", is_flag=True, default=False, help="Do not write files or DB records.")
@click.pass_context
def digest(ctx: click.Context, source: str, no_html: bool, no_save: bool) -> None:
    """Run the full digest pipeline for one video id or URL."""
    from ytdigest.core.pipeline import DigestPipeline
    from ytdigest.core.storage import record_run, write_digest, write_report
    from ytdigest.errors import DigestError
    from ytdigest.render import render_digest_html

    settings = ctx.obj["settings"]
    try:
        pipeline = DigestPipeline(settings)
    except ValueError as e:
        click.echo(f"[FAIL] {e}", err=True)
        sys.exit(1)

    document = None
    paths = None
    try:
        document = pipeline.run(source)
    except DigestError as e:
        click.echo(f"[FAIL] {e}", err=True)

    report = pipeline.report
    for sr in report.stages:
        if sr.status == "success":
            click.echo(f"  {sr.stage}: {sr.detail} ({sr.duration_seconds:.1f}s)")
        else:
            click.echo(f"  {sr.stage}: FAILED - {sr.error}", err=True)

    if not no_save:
        if document is not None:
            html = None
            if settings.render_html and not no_html:
                html = render_digest_html(document)
            paths = write_digest(document, settings.output_dir, html=html)
        write_report(report, settings.output_dir)

        session = ctx.obj["session_factory"]()
        try:
            record_run(session, report, document=document, paths=paths)
        finally:
            session.close()

    if document is None:
        click.echo(f"-> FAILED: {report.error}", err=True)
        sys.exit(1)

    click.echo(f"-> OK {document.video_id} (${report.total_cost_usd:.4f})")
    click.echo(f"   {document.digest.sentence_summary}")
    if paths:
        for kind, path in paths.items():
            click.echo(f"   {kind}: {path}")


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show digest status: counts by status + last 10 videos."""
    session = ctx.obj["session_factory"]()
    try:
        from sqlalchemy import func

        rows = (
            session.query(VideoRecord.status, func.count())
            .group_by(VideoRecord.status)
            .all()
        )
        total = sum(c for _, c in rows)
        click.echo(f"=== Videos: {total} ===")
        for s, c in rows:
            click.echo(f"  {s.value:<{STATUS_WIDTH}} {c}")

        click.echo("")
        click.echo("--- Last 10 videos ---")
        recent = (
            session.query(VideoRecord)
            .order_by(VideoRecord.updated_at.desc())
            .limit(10)
            .all()
        )
        if not recent:
            click.echo("  (none)")
        for rec in recent:
            err = ""
            if rec.error_message:
                err = f"  !! {rec.error_message[:40]}"
            click.echo(
                f"  [{rec.status.value:<{STATUS_WIDTH}}] {rec.video_id}  "
                f"{(rec.title or '???')[:50]}{err}"
            )
    finally:
        session.close()


@cli.command()
@click.option("--video-id", "video_id", type=str, required=True, help="Video to show.")
@click.pass_context
def show(ctx: click.Context, video_id: str) -> None:
    """Show the stored digest for a video."""
    from ytdigest.core.storage import digest_paths, load_digest

    settings = ctx.obj["settings"]
    path = digest_paths(video_id, settings.output_dir)["json"]
    if not path.exists():
        click.echo(f"No digest found for {video_id}")
        return

    document = load_digest(path)
    meta = document.metadata

    click.echo(f"=== Digest: {video_id} ===")
    click.echo(f"  Title:    {meta.title}")
    click.echo(f"  Channel:  {meta.channel_title}")
    click.echo(f"  Fetched:  {document.fetched_at.isoformat()}")
    click.echo(f"  Summary:  {document.digest.sentence_summary}")
    click.echo("  Chapters:")
    for line in document.chapters.index_text.splitlines():
        click.echo(f"    {line}")


@cli.command()
@click.option("--video-id", "video_id", type=str, default=None, help="Filter by video ID")
@click.pass_context
def cost(ctx: click.Context, video_id: str | None) -> None:
    """Show generation usage costs from PipelineRun records."""
    from sqlalchemy import func

    session = ctx.obj["session_factory"]()
    try:
        query = session.query(
            PipelineRun.stage,
            func.count().label("runs"),
            func.sum(PipelineRun.input_tokens).label("input_tokens"),
            func.sum(PipelineRun.output_tokens).label("output_tokens"),
            func.sum(PipelineRun.estimated_cost_usd).label("total_cost"),
        )

        if video_id:
            rec = session.query(VideoRecord).filter(VideoRecord.video_id == video_id).first()
            if not rec:
                click.echo(f"Video not found: {video_id}")
                return
            query = query.filter(PipelineRun.video_pk == rec.id)

        rows = query.group_by(PipelineRun.stage).all()

        if not rows:
            click.echo("No pipeline runs recorded yet.")
            return

        click.echo("=== Generation Usage Costs ===")
        grand_total = 0.0
        for row in rows:
            cost_val = row.total_cost or 0.0
            grand_total += cost_val
            click.echo(
                f"  {row.stage:<12} "
                f"runs={row.runs}  "
                f"in={row.input_tokens or 0:>8}  "
                f"out={row.output_tokens or 0:>8}  "
                f"${cost_val:.4f}"
            )
        click.echo(f"  {'TOTAL':<12} ${grand_total:.4f}")
    finally:
        session.close()


@cli.command(name="init-db")
@click.pass_context
def init_db_cmd(ctx: click.Context) -> None:
    """Initialize the database (create tables)."""
    click.echo("Database initialized successfully.")
