"""Exception hierarchy for compression runs.

Startup errors (``InputNotFound``) stop the whole run. Everything under
``PipelineError`` belongs to a single job and carries the stage that failed.
"""
from typing import Optional


class CompressionError(Exception):
    """Base class for all ccmp errors."""


class InputNotFound(CompressionError):
    """The input path is missing or cannot be stat'ed."""


class UnknownCodecError(CompressionError):
    """No codec is registered under the requested name."""


class PipelineError(CompressionError):
    stage = "pipeline"

    def __init__(self, message: str, codec: Optional[str] = None):
        super().__init__(message)
        self.codec = codec

    def __str__(self) -> str:
        return f"[{self.stage}] {super().__str__()}"


class InputUnreadable(PipelineError):
    stage = "input"


class CodecFailure(PipelineError):
    stage = "codec"


class OutputWriteFailure(PipelineError):
    stage = "output"


class JobInterrupted(PipelineError):
    stage = "cancel"


class PipelineCrash(PipelineError):
    """Unexpected error outside the codec, input and output calls."""
    stage = "internal"
