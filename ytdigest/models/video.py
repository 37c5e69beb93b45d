import enum
from datetime import datetime, timezone

from sqlalchemy import DateTime, Enum, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ytdigest.db import Base


class PipelineState(str, enum.Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    FETCHED = "fetched"
    TRANSCRIPT_ASSEMBLED = "transcript_assembled"
    CLEANED = "cleaned"
    DIGESTED = "digested"
    CHAPTERED = "chaptered"
    FINALIZED = "finalized"
    FAILED = "failed"


class RunStatus(str, enum.Enum):
    SUCCESS = "success"
    FAILED = "failed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VideoRecord(Base):
    __tablename__ = "videos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    video_id: Mapped[str] = mapped_column(String(11), unique=True, nullable=False)
    title: Mapped[str | None] = mapped_column(String(500), nullable=True)
    channel_title: Mapped[str | None] = mapped_column(String(200), nullable=True)
    status: Mapped[PipelineState] = mapped_column(
        Enum(PipelineState), nullable=False, default=PipelineState.PENDING
    )
    digest_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    html_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    fetched_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    total_cost_usd: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    run_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    failed_stage: Mapped[str | None] = mapped_column(String(32), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    pipeline_runs: Mapped[list["PipelineRun"]] = relationship(
        back_populates="video", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return (
            f"<VideoRecord(id={self.id}, video_id='{self.video_id}', "
            f"status='{self.status.value}')>"
        )


class PipelineRun(Base):
    __tablename__ = "pipeline_runs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    video_pk: Mapped[int] = mapped_column(
        Integer, ForeignKey("videos.id"), nullable=False
    )
    stage: Mapped[str] = mapped_column(String(32), nullable=False)
    status: Mapped[RunStatus] = mapped_column(Enum(RunStatus), nullable=False)
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    duration_seconds: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    input_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    output_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    estimated_cost_usd: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    video: Mapped["VideoRecord"] = relationship(back_populates="pipeline_runs")

    def __repr__(self) -> str:
        return (
            f"<PipelineRun(id={self.id}, stage='{self.stage}', "
            f"status='{self.status.value}')>"
        )
