import os
from typing import Dict, List, Optional
import pytest
from tubebrief.core.errors import ExtractionError
from tubebrief.core.video import AudioDownloader, CaptionDownloader, MediaDownloader, MetadataProvider, SpeechTranscriber
from tubebrief.models.video import CaptionChoice, CaptionTrack, VideoMetadata

SAMPLE_VTT = """WEBVTT
Kind: captions
Language: en

00:00:00.000 --> 00:00:02.500 align:start position:0%
Hello <c.colorE5E5E5>everyone</c>

00:00:02.500 --> 00:00:05.000
welcome to the <b>show</b>
"""

def track(lang: str, ext: str = "vtt") -> CaptionTrack:
    return CaptionTrack(language=lang, url=f"https://captions.example/{lang}.{ext}", ext=ext)

def make_metadata(manual=(), auto=(), language: Optional[str] = None) -> VideoMetadata:
    return VideoMetadata(
        id="abc123",
        url="https://www.youtube.com/watch?v=abc123",
        title="Test Video",
        author="Tester",
        duration_seconds=95,
        manual_captions={lang: track(lang) for lang in manual},
        auto_captions={lang: track(lang) for lang in auto},
        language=language,
    )

class FakeProvider(MetadataProvider, CaptionDownloader, AudioDownloader, MediaDownloader):
    def __init__(self, metadata: Optional[VideoMetadata] = None, captions: Optional[Dict[str, str]] = None,
                 caption_error: Optional[Exception] = None, audio_error: Optional[Exception] = None):
        self.metadata = metadata or make_metadata()
        self.captions = captions or {}
        self.caption_error = caption_error
        self.audio_error = audio_error
        self.fetch_calls = 0
        self.caption_calls: List[CaptionChoice] = []
        self.audio_calls: List[str] = []
        self.workdirs: List[str] = []

    def fetch(self, url: str) -> VideoMetadata:
        self.fetch_calls += 1
        if self.metadata is None:
            raise ExtractionError("unsupported url")
        return self.metadata

    def download_captions(self, url: str, choice: CaptionChoice, workdir: str) -> str:
        self.caption_calls.append(choice)
        self.workdirs.append(workdir)
        if self.caption_error:
            raise self.caption_error
        path = os.path.join(workdir, f"captions.{choice.lang}.{choice.track.ext}")
        with open(path, "w", encoding="utf-8") as f:
            f.write(self.captions.get(choice.lang, ""))
        return path

    def download_audio(self, url: str, bitrate: str, workdir: str) -> str:
        self.audio_calls.append(bitrate)
        self.workdirs.append(workdir)
        if self.audio_error:
            raise self.audio_error
        path = os.path.join(workdir, "audio.mp3")
        with open(path, "wb") as f:
            f.write(b"ID3")
        return path

    def download_video(self, url: str, workdir: str, fast: bool = False) -> str:
        path = os.path.join(workdir, "video.mp4")
        with open(path, "wb") as f:
            f.write(b"fast" if fast else b"full")
        return path

class FakeTranscriber(SpeechTranscriber):
    """Replays scripted outcomes: strings are returned, exceptions raised."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls: List[Optional[str]] = []

    def transcribe(self, audio_path: str, language: Optional[str] = None) -> str:
        self.calls.append(language)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

@pytest.fixture
def temp_root(tmp_path):
    root = tmp_path / "temp"
    root.mkdir()
    return str(root)
