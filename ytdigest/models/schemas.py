from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

MIN_CHAPTERS = 3
MIN_CHAPTER_GAP_SECONDS = 10


class CaptionRecord(BaseModel):
    """One timed caption segment as reported by the caption payload."""

    model_config = ConfigDict(frozen=True)

    text: str
    offset_seconds: float = Field(ge=0, allow_inf_nan=False)
    duration_seconds: float = Field(ge=0, allow_inf_nan=False)
    language_code: str


class CaptionTrack(BaseModel):
    """A caption track descriptor embedded in the video page."""

    model_config = ConfigDict(frozen=True)

    base_url: str
    language_code: str
    name: str | None = None
    kind: str | None = None  # "asr" for auto-generated tracks


class VideoMetadata(BaseModel):
    """Best-effort page metadata. Any field may be missing."""

    model_config = ConfigDict(frozen=True)

    video_id: str
    title: str | None = None
    author: str | None = None
    view_count: int | None = None
    description: str | None = None
    published_date: str | None = None
    channel_id: str | None = None
    channel_title: str | None = None
    tags: str | None = None
    like_count: int | None = None
    dislike_count: int | None = None
    comment_count: int | None = None
    duration_seconds: int | None = None
    thumbnail_url: str | None = None


class TranscriptBundle(BaseModel):
    """Everything the fetcher read for one video."""

    model_config = ConfigDict(frozen=True)

    metadata: VideoMetadata
    transcript: tuple[CaptionRecord, ...]
    track: CaptionTrack | None = None


class AssembledTranscript(BaseModel):
    model_config = ConfigDict(frozen=True)

    flat_text: str
    utterance_log: str


class TranscriptDigest(BaseModel):
    """Structured digest of a cleaned transcript.

    Field descriptions are part of the schema sent to the generation
    capability, so they double as instructions.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    page_summary: str = Field(
        description=(
            "A concise but detailed short-form, encyclopedia style article "
            "summarizing the content and concepts in the video, between half a "
            "page and two pages long. Standard markdown starting with a # "
            "heading; prefer concise bulleted notes over full paragraphs. No "
            "quotes, keywords or topic lists, only a structured summary."
        )
    )
    paragraph_summary: str = Field(
        description="A concise summary of the transcript, at most one paragraph."
    )
    sentence_summary: str = Field(
        description="An extremely concise summary of the transcript, at most one sentence."
    )
    topics: list[str] = Field(
        description=(
            "Broad, top-level themes or subjects discussed in the transcript, "
            "giving a high-level overview of what the video covers."
        )
    )
    keywords: list[str] = Field(
        description=(
            "Specific, well-established terms or phrases from the field(s) "
            "discussed, suitable as search keywords for related content."
        )
    )
    concepts: list[str] = Field(
        description=(
            "Educational ideas, principles or theories explored in the "
            "transcript that carry its key lessons."
        )
    )
    pull_quotes: list[str] = Field(
        description=(
            "Significant, memorable or punchy quotes that communicate core "
            "ideas, extracted VERBATIM from the transcript. Correcting obvious "
            "transcription errors is acceptable."
        )
    )


def _check_chapter_offsets(offsets: list[int]) -> None:
    if len(offsets) < MIN_CHAPTERS:
        raise ValueError(
            f"expected at least {MIN_CHAPTERS} chapters, got {len(offsets)}"
        )
    if offsets[0] != 0:
        raise ValueError(f"first chapter must start at 0s, got {offsets[0]}s")
    for prev, cur in zip(offsets, offsets[1:]):
        if cur <= prev:
            raise ValueError(f"chapter offsets not increasing: {prev}s -> {cur}s")
        if cur - prev < MIN_CHAPTER_GAP_SECONDS:
            raise ValueError(
                f"chapters {prev}s and {cur}s are closer than "
                f"{MIN_CHAPTER_GAP_SECONDS}s"
            )


class ChapterDraft(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(description="Name of the chapter.")
    timestamp: str = Field(description="Start timestamp in the format 00:00.")
    offset_seconds: int = Field(
        description="Start time in whole seconds since the beginning of the video."
    )


class ChapterOutline(BaseModel):
    """Chapter list as returned by the generation capability."""

    model_config = ConfigDict(extra="forbid")

    chapters: list[ChapterDraft] = Field(
        description=(
            "Chapter titles in order that break the video into sections. "
            "Concise and descriptive. Must start from 00:00, be listed in "
            f"ascending order, contain at least {MIN_CHAPTERS} chapters and "
            f"leave at least {MIN_CHAPTER_GAP_SECONDS} seconds between chapter starts."
        )
    )

    @model_validator(mode="after")
    def _check_order(self) -> "ChapterOutline":
        _check_chapter_offsets([c.offset_seconds for c in self.chapters])
        return self


class Chapter(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    timestamp: str
    offset_seconds: int = Field(ge=0)
    url: str


class ChapterList(BaseModel):
    """Validated chapters with derived deep links and a flat text index."""

    model_config = ConfigDict(frozen=True)

    chapters: tuple[Chapter, ...]
    index_text: str

    @model_validator(mode="after")
    def _check_order(self) -> "ChapterList":
        _check_chapter_offsets([c.offset_seconds for c in self.chapters])
        return self


class DigestDocument(BaseModel):
    """Terminal pipeline artifact handed to rendering and persistence."""

    model_config = ConfigDict(frozen=True)

    video_id: str
    metadata: VideoMetadata
    fetched_at: datetime
    digest: TranscriptDigest
    chapters: ChapterList
    transcript_text: str
    timestamped_utterances: str
    cleaned_transcript: str
    bundle: TranscriptBundle
