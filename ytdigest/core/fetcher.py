"""Caption & metadata fetch: page read, track selection, payload read."""
import logging

from ytdigest.config import Settings
from ytdigest.models.schemas import TranscriptBundle, VideoMetadata
from ytdigest.services.youtube_service import (
    extract_caption_tracks,
    extract_metadata,
    fetch_text,
    parse_caption_payload,
    select_caption_track,
    watch_url,
)

logger = logging.getLogger(__name__)


def fetch_transcript(video_id: str, settings: Settings) -> TranscriptBundle:
    """Fetch the watch page and the chosen caption track for a video.

    Two sequential reads: the page, then the caption payload whose URL is
    found in the page. Metadata is extracted per field and never fails the
    fetch.

    Returns:
        TranscriptBundle with metadata and ordered caption records.

    Raises:
        NetworkError: If either read fails.
        CaptionsUnavailableError: If the page lists no caption track.
    """
    page = fetch_text(
        watch_url(video_id), settings.user_agent, timeout=settings.request_timeout
    )

    tracks = extract_caption_tracks(page)
    track = select_caption_track(tracks, settings.caption_languages)
    logger.info(
        "Caption track for %s: %s (%d available)",
        video_id, track.language_code or "?", len(tracks),
    )

    payload = fetch_text(
        track.base_url, settings.user_agent, timeout=settings.request_timeout
    )
    records = parse_caption_payload(payload, track.language_code)
    logger.info("Parsed %d caption segments for %s", len(records), video_id)

    metadata = VideoMetadata(video_id=video_id, **extract_metadata(page))
    missing = [k for k, v in metadata.model_dump().items() if v is None]
    if missing:
        logger.debug("Metadata fields missing for %s: %s", video_id, ", ".join(missing))

    return TranscriptBundle(metadata=metadata, transcript=tuple(records), track=track)
