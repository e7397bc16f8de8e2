from typing import Dict, Literal, Optional
from pydantic import BaseModel, ConfigDict

class CaptionTrack(BaseModel):
    model_config = ConfigDict(frozen=True)

    language: str
    url: str
    ext: Literal["vtt", "srt"]
    name: Optional[str] = None

class CaptionChoice(BaseModel):
    model_config = ConfigDict(frozen=True)

    lang: str
    track: CaptionTrack
    is_auto: bool

class VideoMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    url: str
    title: str
    author: str
    duration_seconds: int = 0
    # Insertion order follows the extractor payload; the selector relies on it.
    manual_captions: Dict[str, CaptionTrack] = {}
    auto_captions: Dict[str, CaptionTrack] = {}
    view_count: int = 0
    thumbnail_url: Optional[str] = None
    language: Optional[str] = None
