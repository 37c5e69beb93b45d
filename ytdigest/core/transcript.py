from collections.abc import Iterable

from ytdigest.models.schemas import AssembledTranscript, CaptionRecord


def format_timestamp(offset_seconds: float) -> str:
    """Format an offset as MM:SS, or H:MM:SS from one hour on.

    Fractions are floored: 75.4 -> "01:15".
    """
    total = int(offset_seconds)
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes:02d}:{seconds:02d}"


def assemble_transcript(records: Iterable[CaptionRecord]) -> AssembledTranscript:
    """Build the flat text blob and the timestamped utterance log."""
    records = list(records)
    flat_text = " ".join(r.text for r in records)
    utterance_log = "\n".join(
        f"{format_timestamp(r.offset_seconds)} {r.text}" for r in records
    )
    return AssembledTranscript(flat_text=flat_text, utterance_log=utterance_log)
