import pytest
from tubebrief.core.errors import ExtractionError
from tubebrief.providers import youtube
from tubebrief.providers.youtube import YtDlpProvider, caption_tracks

INFO = {
    "id": "abc123",
    "webpage_url": "https://www.youtube.com/watch?v=abc123",
    "title": "Cooking Show",
    "channel": "Chef",
    "duration": 321.0,
    "view_count": 1000,
    "thumbnail": "https://i.ytimg.com/abc123.jpg",
    "subtitles": {
        "live_chat": [{"ext": "json", "url": "https://chat"}],
        "en": [{"ext": "json3", "url": "https://en.json3"}, {"ext": "srt", "url": "https://en.srt"}, {"ext": "vtt", "url": "https://en.vtt"}],
    },
    "automatic_captions": {
        "fr": [{"ext": "srv3", "url": "https://fr.srv3"}],
        "th": [{"ext": "vtt", "url": "https://th.vtt", "name": "Thai"}],
        "de": [{"ext": "srt", "url": "https://de.srt"}],
    },
}

class FakeYoutubeDL:
    info = INFO
    error = None

    def __init__(self, opts):
        self.opts = opts

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def extract_info(self, url, download=False):
        if self.error:
            raise self.error
        return self.info

def test_caption_tracks_prefers_vtt_and_keeps_order():
    tracks = caption_tracks(INFO["automatic_captions"])
    assert list(tracks) == ["th", "de"]
    assert tracks["th"].ext == "vtt"
    assert tracks["th"].name == "Thai"
    assert tracks["de"].ext == "srt"
    assert caption_tracks(INFO["subtitles"])["en"].url == "https://en.vtt"
    assert caption_tracks(None) == {}

def test_fetch_maps_metadata(monkeypatch):
    monkeypatch.setattr(youtube.yt_dlp, "YoutubeDL", FakeYoutubeDL)
    metadata = YtDlpProvider().fetch("https://youtu.be/abc123")
    assert metadata.author == "Chef"
    assert metadata.duration_seconds == 321
    assert list(metadata.manual_captions) == ["en"]
    assert list(metadata.auto_captions) == ["th", "de"]

def test_fetch_wraps_extractor_errors(monkeypatch):
    class Failing(FakeYoutubeDL):
        error = RuntimeError("Unsupported URL")
    monkeypatch.setattr(youtube.yt_dlp, "YoutubeDL", Failing)
    with pytest.raises(ExtractionError):
        YtDlpProvider().fetch("https://example.com/nothing")

def test_fetch_rejects_empty_info(monkeypatch):
    class Empty(FakeYoutubeDL):
        info = None
    monkeypatch.setattr(youtube.yt_dlp, "YoutubeDL", Empty)
    with pytest.raises(ExtractionError):
        YtDlpProvider().fetch("https://youtu.be/abc123")
