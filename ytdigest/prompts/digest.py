"""Digest (multi-granularity summary) prompt."""
import json

SYSTEM_PROMPT = """\
You are an expert summarizer and analyst.
Your task is to read the attached transcript and provide various summaries.
More details can be found in the output schema provided.
Use simple unicode characters only, no special characters like m-dashes or \
open/close quotation marks.
Use the attached metadata to guide the summarization process.
"""


def build_messages(cleaned_text: str, context: dict) -> list[dict]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": json.dumps(context, ensure_ascii=False)},
        {"role": "user", "content": cleaned_text},
    ]
