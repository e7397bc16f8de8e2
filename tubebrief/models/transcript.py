from enum import Enum
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, field_validator

TranscriptSource = Literal["subtitle", "whisper"]

class PipelineStage(str, Enum):
    START = "start"
    METADATA_FETCHED = "metadata_fetched"
    CAPTION_ATTEMPTED = "caption_attempted"
    SUBTITLE_SUCCESS = "subtitle_success"
    FALLBACK_TO_AUDIO = "fallback_to_audio"
    DONE = "done"
    FAILED = "failed"

class TranscriptResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    source: TranscriptSource
    language_used: Optional[str] = None

    @field_validator("text")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("transcript text must not be empty")
        return value
