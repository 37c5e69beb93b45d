"""Generation stages: transcript cleanup, digest and chapter extraction."""

import logging
import re

from pydantic import BaseModel, ValidationError

from ytdigest.config import Settings
from ytdigest.core.transcript import format_timestamp
from ytdigest.errors import SchemaValidationError
from ytdigest.models.schemas import (
    Chapter,
    ChapterList,
    ChapterOutline,
    TranscriptDigest,
    VideoMetadata,
)
from ytdigest.prompts import chapters as chapters_prompt
from ytdigest.prompts import cleanup as cleanup_prompt
from ytdigest.prompts import digest as digest_prompt
from ytdigest.services.generation import Generator
from ytdigest.services.youtube_service import watch_url

logger = logging.getLogger(__name__)


def _base_context(metadata: VideoMetadata) -> dict:
    return {
        "title": metadata.title,
        "channel": metadata.channel_title,
        "description": metadata.description,
    }


def _validate(schema: type[BaseModel], text: str):
    """Parse generated JSON into ``schema``; any mismatch is a SchemaValidationError."""
    try:
        return schema.model_validate_json(text)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(p) for p in first["loc"]) or "<root>"
        raise SchemaValidationError(
            f"{schema.__name__} response does not match schema "
            f"({e.error_count()} error(s); {location}: {first['msg']})"
        ) from e


def clean_transcript(
    transcript_text: str,
    metadata: VideoMetadata,
    generator: Generator,
    settings: Settings,
) -> str:
    """Fix grammar, punctuation and spelling of the flat transcript.

    Returns the generated text verbatim; fidelity to the source is not checked.
    """
    messages = cleanup_prompt.build_messages(transcript_text, _base_context(metadata))
    response = generator.generate(
        messages,
        model=settings.cleanup_model,
        temperature=settings.generation_temperature,
    )
    return response.text


def _normalize(text: str) -> str:
    return " ".join(re.sub(r"[^\w\s']", " ", text.lower()).split())


def find_unverified_quotes(digest: TranscriptDigest, source_text: str) -> list[str]:
    """Return pull quotes that do not appear in the source text.

    Matching ignores case, punctuation and whitespace. Diagnostic only.
    """
    haystack = _normalize(source_text)
    return [q for q in digest.pull_quotes if _normalize(q) not in haystack]


def digest_transcript(
    cleaned_text: str,
    metadata: VideoMetadata,
    generator: Generator,
    settings: Settings,
) -> TranscriptDigest:
    """Produce the structured digest of a cleaned transcript.

    Raises:
        GenerationError: If the generation call fails.
        SchemaValidationError: If the response does not match TranscriptDigest.
    """
    context = _base_context(metadata)
    context["date"] = metadata.published_date
    context["duration"] = metadata.duration_seconds

    messages = digest_prompt.build_messages(cleaned_text, context)
    response = generator.generate(
        messages,
        model=settings.digest_model,
        temperature=settings.generation_temperature,
        schema=TranscriptDigest,
    )
    digest = _validate(TranscriptDigest, response.text)

    unverified = find_unverified_quotes(digest, cleaned_text)
    if unverified:
        logger.warning(
            "%d of %d pull quotes not found verbatim in transcript",
            len(unverified), len(digest.pull_quotes),
        )
    return digest


def build_chapter_list(outline: ChapterOutline, video_id: str) -> ChapterList:
    """Derive deep links and the flat "timestamp name" index for a chapter outline."""
    base = watch_url(video_id)
    chapters = tuple(
        Chapter(
            name=draft.name,
            timestamp=format_timestamp(draft.offset_seconds),
            offset_seconds=draft.offset_seconds,
            url=f"{base}&t={draft.offset_seconds}",
        )
        for draft in outline.chapters
    )
    index_text = "\n".join(f"{c.timestamp} {c.name}" for c in chapters)
    return ChapterList(chapters=chapters, index_text=index_text)


def extract_chapters(
    digest: TranscriptDigest,
    metadata: VideoMetadata,
    utterance_log: str,
    video_id: str,
    generator: Generator,
    settings: Settings,
) -> ChapterList:
    """Generate an ordered chapter list grounded in the timestamped utterances.

    Raises:
        GenerationError: If the generation call fails.
        SchemaValidationError: If the response breaks the chapter schema or
            its ordering rules.
    """
    messages = chapters_prompt.build_messages(
        digest.model_dump_json(), utterance_log, _base_context(metadata)
    )
    response = generator.generate(
        messages,
        model=settings.chapter_model,
        temperature=settings.generation_temperature,
        schema=ChapterOutline,
    )
    outline = _validate(ChapterOutline, response.text)
    return build_chapter_list(outline, video_id)
