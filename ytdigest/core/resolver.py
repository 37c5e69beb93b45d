"""Normalize a bare id or video URL into a canonical video id."""
import re

from ytdigest.errors import InvalidIdentifierError

VIDEO_ID_LENGTH = 11

RE_YOUTUBE = re.compile(
    r"(?:youtube\.com/(?:[^/]+/.+/|(?:v|e(?:mbed)?)/|.*[?&]v=)|youtu\.be/)"
    r"([^\"&?/\s]{11})",
    re.IGNORECASE,
)


def resolve_video_id(value: str) -> str:
    """Return the 11-character video id for a bare id or a supported URL.

    Any input of exactly 11 characters is taken to be an id already and is
    returned as-is.

    Raises:
        InvalidIdentifierError: If no supported URL shape matches.
    """
    if len(value) == VIDEO_ID_LENGTH:
        return value

    match = RE_YOUTUBE.search(value)
    if match:
        return match.group(1)

    raise InvalidIdentifierError(f"Invalid YouTube video ID or URL: {value!r}")
