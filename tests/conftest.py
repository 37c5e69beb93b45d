import json
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import ytdigest.models.video  # noqa: F401  (registers ORM tables)
from ytdigest.config import Settings
from ytdigest.db import Base
from ytdigest.errors import GenerationError
from ytdigest.models.schemas import CaptionRecord, CaptionTrack, TranscriptBundle, VideoMetadata
from ytdigest.services.generation import GenerationResponse, Generator

FIXTURES = Path(__file__).parent / "fixtures"
SAMPLE_PAGE = (FIXTURES / "watch_page.html").read_text()
SAMPLE_CAPTIONS = (FIXTURES / "captions.xml").read_text()

VIDEO_ID = "aqz-KE-bpKQ"

DIGEST_PAYLOAD = {
    "page_summary": "# Big Buck Bunny\n- A giant rabbit\n- Three rodents",
    "paragraph_summary": "A gentle rabbit takes revenge on three bullies.",
    "sentence_summary": "A rabbit gets even.",
    "topics": ["Animation"],
    "keywords": ["Blender", "open movie"],
    "concepts": ["Revenge comedy"],
    "pull_quotes": ["Hello there."],
}

CHAPTER_PAYLOAD = {
    "chapters": [
        {"name": "Intro", "timestamp": "00:00", "offset_seconds": 0},
        {"name": "The test", "timestamp": "00:30", "offset_seconds": 30},
        {"name": "Second minute", "timestamp": "01:15", "offset_seconds": 75},
    ]
}


class FakeGenerator(Generator):
    """Generator that replays canned responses (str, dict or exception)."""

    provider = "fake"

    def __init__(self, responses=None, cost_usd=0.001):
        super().__init__(settings=None)
        self.responses = list(responses or [])
        self.cost_usd = cost_usd
        self.calls = []

    def _generate(self, messages, *, model, temperature, schema):
        self.calls.append(
            {"messages": messages, "model": model, "temperature": temperature, "schema": schema}
        )
        if not self.responses:
            raise GenerationError("no canned response left")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        text = item if isinstance(item, str) else json.dumps(item)
        return GenerationResponse(
            text=text,
            input_tokens=100,
            output_tokens=50,
            cost_usd=self.cost_usd,
            model=model,
        )


@pytest.fixture
def fake_generator():
    """Factory for FakeGenerator instances."""
    return FakeGenerator


@pytest.fixture
def settings(tmp_path):
    return Settings(
        openai_api_key="sk-test",
        database_url="sqlite:///:memory:",
        output_dir=str(tmp_path / "out"),
    )


@pytest.fixture
def metadata():
    return VideoMetadata(
        video_id=VIDEO_ID,
        title="Big Buck Bunny 60fps 4K",
        author="Blender",
        description="Big Buck Bunny tells the story of a giant rabbit.",
        channel_title="Blender Studio",
        published_date="2014-11-10",
        duration_seconds=635,
    )


@pytest.fixture
def bundle(metadata):
    records = (
        CaptionRecord(text="hello there", offset_seconds=0, duration_seconds=1.5, language_code="en"),
        CaptionRecord(text="it's a test", offset_seconds=31.2, duration_seconds=2.0, language_code="en"),
        CaptionRecord(text="second minute", offset_seconds=75.4, duration_seconds=3.0, language_code="en"),
    )
    track = CaptionTrack(base_url="https://example.test/captions", language_code="en")
    return TranscriptBundle(metadata=metadata, transcript=records, track=track)


@pytest.fixture
def digest_payload():
    return json.loads(json.dumps(DIGEST_PAYLOAD))


@pytest.fixture
def chapter_payload():
    return json.loads(json.dumps(CHAPTER_PAYLOAD))


@pytest.fixture
def db_engine():
    """In-memory SQLite engine for tests."""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    """Database session for tests."""
    factory = sessionmaker(bind=db_engine)
    session = factory()
    yield session
    session.close()


@pytest.fixture
def document(metadata, bundle, digest_payload, chapter_payload):
    """A finalized DigestDocument built from the fixtures above."""
    from datetime import datetime, timezone

    from ytdigest.core.assembler import assemble_document
    from ytdigest.core.generator import build_chapter_list
    from ytdigest.core.transcript import assemble_transcript
    from ytdigest.models.schemas import ChapterOutline, TranscriptDigest

    assembled = assemble_transcript(bundle.transcript)
    return assemble_document(
        metadata=metadata,
        bundle=bundle,
        cleaned_transcript="Hello there. It's a test. Second minute.",
        transcript_text=assembled.flat_text,
        utterance_log=assembled.utterance_log,
        digest=TranscriptDigest(**digest_payload),
        chapters=build_chapter_list(ChapterOutline.model_validate(chapter_payload), VIDEO_ID),
        fetched_at=datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc),
    )
