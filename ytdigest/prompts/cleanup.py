"""Transcript cleanup prompt."""
import json

SYSTEM_PROMPT = """\
The YouTube transcript provided is in its raw form: a string of words parsed \
from the speech in a video.

Add proper grammar, punctuation and spelling.
Stay as close to verbatim as possible; only clean up grammar, punctuation and spelling.
Use simple unicode characters only, no special characters like m-dashes or \
open/close quotation marks.
Consider the title, channel name and description when cleaning up the transcript, \
especially to get domain terms and names right.
"""


def build_messages(transcript_text: str, context: dict) -> list[dict]:
    """Build chat messages for the cleanup call.

    Args:
        transcript_text: Flat, uncleaned transcript text.
        context: {title, channel, description} of the video.
    """
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": json.dumps(context, ensure_ascii=False)},
        {"role": "user", "content": transcript_text},
    ]
