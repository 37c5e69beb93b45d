"""Chapter extraction prompt."""
import json

from ytdigest.models.schemas import MIN_CHAPTER_GAP_SECONDS, MIN_CHAPTERS

SYSTEM_PROMPT = f"""\
You are an expert YouTube content editor creating chapter titles for a video \
based on the attached summary and timestamped transcript.
Each transcript line starts with the time (MM:SS, or H:MM:SS past one hour) \
at which it is spoken; take chapter start times from these lines.
The first chapter starts at 00:00. Chapters are listed in ascending order, \
there are at least {MIN_CHAPTERS} of them, and consecutive chapters start at \
least {MIN_CHAPTER_GAP_SECONDS} seconds apart.
Follow the rules closely, but aim for natural and engaging chapter titles.
Avoid chapters that are extraordinarily short or bunched up too closely together.
"""


def build_messages(
    digest_json: str,
    utterance_log: str,
    context: dict,
) -> list[dict]:
    """Build chat messages for the chapter call.

    Args:
        digest_json: The validated digest, serialised as JSON.
        utterance_log: One "MM:SS text" line per caption segment.
        context: {title, channel, description} of the video.
    """
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": json.dumps(context, ensure_ascii=False)},
        {"role": "user", "content": digest_json},
        {"role": "user", "content": utterance_log},
    ]
