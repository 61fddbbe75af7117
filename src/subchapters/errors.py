"""
Error taxonomy for the subtitle chapters pipeline.

Every failure leaving the package is one of the classes below. Errors from
storage, the generation service or the caption source are wrapped at the
adapter boundary so their own exception types never reach the core.
"""


class ErrorCode:
    INVALID_URL = "ERR_INVALID_URL"
    CAPTIONS_UNAVAILABLE = "ERR_CAPTIONS_UNAVAILABLE"
    COLLABORATOR_UNAVAILABLE = "ERR_COLLABORATOR_UNAVAILABLE"
    MALFORMED_GENERATION_OUTPUT = "ERR_MALFORMED_GENERATION_OUTPUT"
    NOT_FOUND = "ERR_NOT_FOUND"
    UNAUTHENTICATED = "ERR_UNAUTHENTICATED"


RETRYABLE_ERRORS = {
    ErrorCode.COLLABORATOR_UNAVAILABLE,
}


class SubchaptersError(Exception):
    """Base class for all pipeline errors."""

    code: str = ""

    def __init__(self, message: str, *, stage: str | None = None):
        self.message = message
        self.stage = stage
        self.retryable = self.code in RETRYABLE_ERRORS
        prefix = f"[{self.code}]" if not stage else f"[{self.code}] ({stage})"
        super().__init__(f"{prefix} {message}")


class InvalidSourceUrl(SubchaptersError):
    """The input is not a recognized video URL."""

    code = ErrorCode.INVALID_URL

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Not a valid video URL: {url!r}", stage="resolve_video_id")


class CaptionsUnavailable(SubchaptersError):
    """The video exists but has no captions in the requested language."""

    code = ErrorCode.CAPTIONS_UNAVAILABLE

    def __init__(self, video_id: str, language: str):
        self.video_id = video_id
        self.language = language
        super().__init__(
            f"No captions found for video {video_id} in language {language!r}",
            stage="fetch_captions",
        )


class CollaboratorUnavailable(SubchaptersError):
    """Storage, generation or caption source could not be reached."""

    code = ErrorCode.COLLABORATOR_UNAVAILABLE


class MalformedGenerationOutput(SubchaptersError):
    """The generation service answered with output that failed to decode."""

    code = ErrorCode.MALFORMED_GENERATION_OUTPUT

    def __init__(self, message: str, raw: str):
        self.raw = raw
        super().__init__(message, stage="decode")


class NotFound(SubchaptersError):
    """Entity is absent or not owned by the requesting principal."""

    code = ErrorCode.NOT_FOUND


class Unauthenticated(SubchaptersError):
    """No principal was supplied."""

    code = ErrorCode.UNAUTHENTICATED
