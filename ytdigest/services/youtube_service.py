"""Raw reads and scraping of the public video page and caption payload.

The page carries no stable schema: caption tracks and metadata are found by
textual markers. Keep all knowledge of that layout in this module.
"""

import html
import json
import logging
import re
import urllib.error
import urllib.request

from ytdigest.errors import CaptionsUnavailableError, NetworkError
from ytdigest.models.schemas import CaptionRecord, CaptionTrack

logger = logging.getLogger(__name__)

WATCH_URL = "https://www.youtube.com/watch?v={video_id}"

CAPTIONS_MARKER = '"captions":'
CAPTIONS_END_MARKER = ',"videoDetails'

RE_CAPTION_SEGMENT = re.compile(r'<text start="([^"]*)" dur="([^"]*)">([^<]*)</text>')

# metadata field -> key in the page's embedded player JSON
METADATA_KEYS = {
    "title": "title",
    "author": "author",
    "view_count": "viewCount",
    "description": "shortDescription",
    "published_date": "publishDate",
    "channel_id": "channelId",
    "channel_title": "ownerChannelName",
    "tags": "keywords",
    "like_count": "likeCount",
    "dislike_count": "dislikeCount",
    "comment_count": "commentCount",
    "duration_seconds": "lengthSeconds",
    "thumbnail_url": "thumbnailUrl",
}

INTEGER_FIELDS = frozenset(
    {"view_count", "like_count", "dislike_count", "comment_count", "duration_seconds"}
)


def watch_url(video_id: str) -> str:
    return WATCH_URL.format(video_id=video_id)


def fetch_text(url: str, user_agent: str, timeout: int = 30) -> str:
    """GET a URL and return the decoded body.

    Raises:
        NetworkError: On any transport failure or non-2xx response.
    """
    req = urllib.request.Request(url, headers={"User-Agent": user_agent})
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            charset = resp.headers.get_content_charset() or "utf-8"
            return resp.read().decode(charset, errors="replace")
    except urllib.error.HTTPError as e:
        raise NetworkError(f"GET {url} returned HTTP {e.code}") from e
    except (urllib.error.URLError, TimeoutError, OSError) as e:
        raise NetworkError(f"GET {url} failed: {e}") from e


def extract_caption_tracks(page: str) -> list[CaptionTrack]:
    """Parse the caption-track descriptor embedded in a watch page.

    Raises:
        CaptionsUnavailableError: If the marker is missing, the fragment is
            not valid JSON, or it lists no tracks.
    """
    parts = page.split(CAPTIONS_MARKER, 1)
    if len(parts) < 2:
        raise CaptionsUnavailableError(
            "Transcript not available or video is unavailable."
        )

    fragment = parts[1].split(CAPTIONS_END_MARKER, 1)[0].replace("\n", "")
    try:
        captions = json.loads(fragment)
    except json.JSONDecodeError as e:
        raise CaptionsUnavailableError(f"Caption descriptor is not valid JSON: {e}") from e

    renderer = captions.get("playerCaptionsTracklistRenderer") if isinstance(captions, dict) else None
    raw_tracks = renderer.get("captionTracks") if isinstance(renderer, dict) else None
    if not isinstance(raw_tracks, list):
        raw_tracks = []

    tracks = []
    for raw in raw_tracks:
        if not isinstance(raw, dict) or not raw.get("baseUrl"):
            continue
        name = raw.get("name") or {}
        try:
            track = CaptionTrack(
                base_url=raw["baseUrl"],
                language_code=raw.get("languageCode", ""),
                name=name.get("simpleText") if isinstance(name, dict) else None,
                kind=raw.get("kind"),
            )
        except ValueError:
            logger.debug("Skipping malformed caption track: %r", raw)
            continue
        tracks.append(track)

    if not tracks:
        raise CaptionsUnavailableError("No transcripts available for this video.")
    return tracks


def select_caption_track(
    tracks: list[CaptionTrack], preferred_languages: list[str] | None = None
) -> CaptionTrack:
    """Pick the first track matching the preference order, else the first listed."""
    for lang in preferred_languages or []:
        for track in tracks:
            if track.language_code.lower() == lang.lower():
                return track
    return tracks[0]


def _decode_caption_text(raw: str) -> str:
    # payload text is escaped twice (&amp;#39; -> &#39; -> ')
    text = html.unescape(html.unescape(raw))
    return " ".join(text.split())


def parse_caption_payload(payload: str, language_code: str) -> list[CaptionRecord]:
    """Parse ``<text start dur>`` segments. Malformed segments are skipped."""
    records = []
    for match in RE_CAPTION_SEGMENT.finditer(payload):
        start, dur, raw_text = match.groups()
        try:
            record = CaptionRecord(
                text=_decode_caption_text(raw_text),
                offset_seconds=float(start),
                duration_seconds=float(dur),
                language_code=language_code,
            )
        except ValueError:
            logger.debug("Skipping malformed caption segment: %r", match.group(0))
            continue
        records.append(record)
    return records


def _to_int(value: str) -> int | None:
    try:
        return int(value)
    except ValueError:
        return None


def extract_metadata_field(page: str, key: str) -> str | None:
    """Return the first ``"key":"value"`` string in the page, or None."""
    match = re.search(rf'"{re.escape(key)}":"((?:[^"\\]|\\.)*)"', page)
    if not match:
        return None
    raw = match.group(1)
    try:
        return json.loads(f'"{raw}"')
    except json.JSONDecodeError:
        return raw


def extract_metadata(page: str) -> dict:
    """Extract every known metadata field independently; missing ones are None."""
    fields = {}
    for field, key in METADATA_KEYS.items():
        value = extract_metadata_field(page, key)
        if value is not None and field in INTEGER_FIELDS:
            value = _to_int(value)
        fields[field] = value
    return fields
