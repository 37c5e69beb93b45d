"""Error kinds raised by the digest pipeline.

Every stage fails fast with one of these. The pipeline fills in ``stage``
and ``video_id`` before re-raising so the caller can tell where a run died.
"""


class DigestError(Exception):
    """Base class for all pipeline failures."""

    retryable = False

    def __init__(
        self,
        message: str,
        *,
        stage: str | None = None,
        video_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.video_id = video_id

    def __str__(self) -> str:
        context = []
        if self.stage:
            context.append(f"stage={self.stage}")
        if self.video_id:
            context.append(f"video={self.video_id}")
        if context:
            return f"[{' '.join(context)}] {self.message}"
        return self.message


class InvalidIdentifierError(DigestError):
    """Input is neither a bare video id nor a recognised video URL."""


class NetworkError(DigestError):
    """Transport failure while reading the video page or caption payload."""

    retryable = True


class CaptionsUnavailableError(DigestError):
    """The page carries no usable caption track (or its layout changed)."""


class GenerationError(DigestError):
    """The generation capability failed or returned empty content."""

    retryable = True


class SchemaValidationError(DigestError):
    """Generated structured data does not satisfy the required schema."""

    retryable = True
