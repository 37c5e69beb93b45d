from datetime import datetime, timezone

from ytdigest.models.schemas import (
    ChapterList,
    DigestDocument,
    TranscriptBundle,
    TranscriptDigest,
    VideoMetadata,
)


def assemble_document(
    metadata: VideoMetadata,
    bundle: TranscriptBundle,
    cleaned_transcript: str,
    transcript_text: str,
    utterance_log: str,
    digest: TranscriptDigest,
    chapters: ChapterList,
    fetched_at: datetime | None = None,
) -> DigestDocument:
    """Merge every stage output into the final document.

    Stamps ``fetched_at`` with the current UTC time unless one is given.
    """
    return DigestDocument(
        video_id=metadata.video_id,
        metadata=metadata,
        fetched_at=fetched_at or datetime.now(timezone.utc),
        digest=digest,
        chapters=chapters,
        transcript_text=transcript_text,
        timestamped_utterances=utterance_log,
        cleaned_transcript=cleaned_transcript,
        bundle=bundle,
    )
