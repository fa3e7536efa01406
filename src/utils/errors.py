"""Exception types shared by the continuity and assembly pipeline."""

from typing import Optional


class ContinuityPipelineError(Exception):
    """Base class for every failure raised by the pipeline."""


class ConfigurationError(ContinuityPipelineError):
    """Raised when a required setting (e.g. the remote credential) is missing."""


class NotFoundError(ContinuityPipelineError):
    """Raised when a referenced local media file does not exist."""


class UnsupportedReferenceError(ContinuityPipelineError):
    """Raised when a media reference is neither a remote URL nor a local upload path."""


class RemoteCallError(ContinuityPipelineError):
    """Raised on non-success HTTP status or an unusable remote response."""


class EmptyInputError(ContinuityPipelineError):
    """Raised when final assembly is asked to build a film from zero clips."""


class ProcessFailureError(ContinuityPipelineError):
    """Raised when the external transcoder exits non-zero.

    Attributes:
        exit_code: Transcoder exit status
        stderr_text: Captured standard error
        index: Zero-based clip index when the failure belongs to one clip
    """

    def __init__(
        self,
        message: str,
        exit_code: int = 1,
        stderr_text: str = "",
        index: Optional[int] = None,
    ):
        super().__init__(message)
        self.exit_code = exit_code
        self.stderr_text = stderr_text
        self.index = index
