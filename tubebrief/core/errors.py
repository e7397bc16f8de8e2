from typing import Optional
from tubebrief.models.transcript import PipelineStage

class TubeBriefError(Exception):
    """Base class for every error raised by tubebrief."""

class ExtractionError(TubeBriefError):
    """Metadata could not be extracted for a URL."""

class CaptionUnavailable(TubeBriefError):
    """No usable caption track. Signals the audio fallback, not a failure."""

class TranscriptionError(TubeBriefError):
    """Audio download or speech-to-text failed."""

class SummaryError(TubeBriefError):
    """The LLM returned no usable summary."""

class PipelineError(TubeBriefError):
    """Terminal transcript pipeline failure. The original error is chained as __cause__."""

    def __init__(self, message: str, stage: PipelineStage, url: Optional[str] = None):
        super().__init__(message)
        self.stage = stage
        self.url = url
