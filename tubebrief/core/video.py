from abc import ABC, abstractmethod
from typing import Optional
from tubebrief.models.video import CaptionChoice, VideoMetadata

class MetadataProvider(ABC):
    @abstractmethod
    def fetch(self, url: str) -> VideoMetadata:
        """Extract video metadata. Raises ExtractionError."""
        pass

class CaptionDownloader(ABC):
    @abstractmethod
    def download_captions(self, url: str, choice: CaptionChoice, workdir: str) -> str:
        """Download the chosen caption track into workdir and return its path."""
        pass

class AudioDownloader(ABC):
    @abstractmethod
    def download_audio(self, url: str, bitrate: str, workdir: str) -> str:
        """Download an audio-only rendition into workdir and return its path."""
        pass

class MediaDownloader(ABC):
    @abstractmethod
    def download_video(self, url: str, workdir: str, fast: bool = False) -> str:
        """Download a muxed mp4 into workdir and return its path."""
        pass

class SpeechTranscriber(ABC):
    @abstractmethod
    def transcribe(self, audio_path: str, language: Optional[str] = None) -> str:
        """Return the spoken text of an audio file."""
        pass
