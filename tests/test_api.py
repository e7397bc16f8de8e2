import os
import pytest
from fastapi.testclient import TestClient
from tubebrief.config import Settings
from tubebrief.models.summary import SummaryResult
from tubebrief.server import create_app
from tubebrief.services.container import ServiceContainer
from tubebrief.services.transcript import AudioTranscriptionFallback, TranscriptPipeline
from tubebrief.services.usage import UsageRepository
from conftest import SAMPLE_VTT, FakeProvider, FakeTranscriber, make_metadata

URL = "https://www.youtube.com/watch?v=abc123"

class FakeSummarizer:
    def __init__(self):
        self.calls = []

    def summarize(self, transcript, metadata):
        self.calls.append(transcript)
        return SummaryResult(summary="It is a test.", key_points=["one", "two"])

def make_client(tmp_path, provider=None, transcriber=None, summarizer=None, usage=None, **overrides):
    cfg = Settings(TEMP_DIR=str(tmp_path / "temp"), **overrides)
    provider = provider or FakeProvider(make_metadata(manual=["en"]), captions={"en": SAMPLE_VTT})
    fallback = AudioTranscriptionFallback(provider, transcriber or FakeTranscriber(), bitrate="64")
    pipeline = TranscriptPipeline(provider, provider, fallback, language_prefs=["th", "en"], temp_dir=cfg.TEMP_DIR)
    container = ServiceContainer(
        settings=cfg,
        metadata_provider=provider,
        media_downloader=provider,
        audio_downloader=provider,
        pipeline=pipeline,
        summarizer=summarizer,
        usage=usage,
    )
    return TestClient(create_app(container)), container

@pytest.fixture
def usage(tmp_path):
    return UsageRepository(f"sqlite:///{tmp_path / 'usage.db'}")

def test_health(tmp_path):
    client, _ = make_client(tmp_path)
    body = client.get("/health").json()
    assert body["status"] == "OK"
    assert body["summarizer"] is False
    assert body["persistence"] is False

def test_video_info(tmp_path):
    client, _ = make_client(tmp_path)
    resp = client.post("/video-info", json={"videoLink": URL})
    assert resp.status_code == 200
    body = resp.json()
    assert body["title"] == "Test Video"
    assert body["lengthSeconds"] == 95
    assert body["manualCaptions"] == ["en"]

def test_video_info_requires_link(tmp_path):
    client, _ = make_client(tmp_path)
    resp = client.post("/video-info", json={})
    assert resp.status_code == 400
    assert resp.json()["error"] == "videoLink is required"

def test_video_info_extraction_error(tmp_path):
    provider = FakeProvider()
    provider.metadata = None
    client, _ = make_client(tmp_path, provider=provider)
    resp = client.post("/video-info", json={"videoLink": URL})
    assert resp.status_code == 502
    assert "unsupported url" in resp.json()["details"]

def test_rate_limit(tmp_path):
    client, _ = make_client(tmp_path, RATE_LIMIT_MAX_REQUESTS=2)
    for _ in range(2):
        assert client.post("/video-info", json={"videoLink": URL}).status_code == 200
    resp = client.post("/video-info", json={"videoLink": URL})
    assert resp.status_code == 429

def test_download_audio_streams_and_cleans_up(tmp_path):
    client, container = make_client(tmp_path)
    resp = client.get("/download", params={"videoLink": URL, "format": "audio"})
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "audio/mpeg"
    assert "Test_Video.mp3" in resp.headers["content-disposition"]
    assert resp.content == b"ID3"
    assert container.pipeline.audio_fallback.downloader.audio_calls == ["128"]
    assert os.listdir(container.settings.TEMP_DIR) == []

def test_download_fast(tmp_path):
    client, _ = make_client(tmp_path)
    resp = client.get("/download-fast", params={"videoLink": URL})
    assert resp.status_code == 200
    assert resp.content == b"fast"

def test_download_rejects_unknown_format(tmp_path):
    client, _ = make_client(tmp_path)
    resp = client.get("/download", params={"videoLink": URL, "format": "gif"})
    assert resp.status_code == 400

def test_summarize_disabled_without_llm(tmp_path):
    client, _ = make_client(tmp_path)
    resp = client.post("/summarize", json={"videoLink": URL})
    assert resp.status_code == 503

def test_summarize_from_subtitles(tmp_path, usage):
    summarizer = FakeSummarizer()
    client, _ = make_client(tmp_path, summarizer=summarizer, usage=usage)
    resp = client.post("/summarize", json={"videoLink": URL})
    assert resp.status_code == 200
    body = resp.json()
    assert body["transcriptSource"] == "subtitle"
    assert body["languageUsed"] == "en"
    assert body["keyPoints"] == ["one", "two"]

    [record] = usage.summaries(URL)
    assert record.transcript_source == "subtitle"
    assert record.transcript_length == body["transcriptLength"]
    [log] = usage.recent(endpoint="/summarize")
    assert log.status == "success"
    assert log.video_title == "Test Video"

def test_summarize_when_every_path_fails(tmp_path, usage):
    provider = FakeProvider(make_metadata(), audio_error=OSError("ffmpeg missing"))
    summarizer = FakeSummarizer()
    client, _ = make_client(tmp_path, provider=provider, summarizer=summarizer, usage=usage)
    resp = client.post("/summarize", json={"videoLink": URL})
    assert resp.status_code == 502
    assert resp.json()["error"] == "Could not produce a transcript"
    assert summarizer.calls == []
    assert usage.summaries(URL) == []
    [log] = usage.recent(endpoint="/summarize")
    assert log.status == "failed"

def test_logs_require_persistence(tmp_path):
    client, _ = make_client(tmp_path)
    assert client.get("/logs").status_code == 503

def test_logs_and_stats(tmp_path, usage):
    client, _ = make_client(tmp_path, usage=usage)
    client.post("/video-info", json={"videoLink": URL})
    logs = client.get("/logs").json()["logs"]
    assert [log["endpoint"] for log in logs] == ["/video-info"]
    stats = client.get("/logs/stats").json()
    assert stats["endpoints"]["/video-info"]["statuses"] == {"success": 1}

def test_unknown_route(tmp_path):
    client, _ = make_client(tmp_path)
    resp = client.get("/nope")
    assert resp.status_code == 404
    assert resp.json()["error"] == "Endpoint not found"

def test_shutdown_stops_cleanup_task(tmp_path):
    client, _ = make_client(tmp_path)
    with client:
        task = client.app.state.cleanup_task
        assert not task.done()
        assert client.get("/health").status_code == 200
    assert task.cancelled()
