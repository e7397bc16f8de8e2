from tubebrief.cli import build_parser, format_time
from tubebrief.models.transcript import TranscriptResult
import pytest

def test_imports():
    from tubebrief.server import create_app
    from tubebrief.services.container import build_container
    assert callable(create_app) and callable(build_container)

def test_transcript_result_rejects_empty_text():
    with pytest.raises(ValueError):
        TranscriptResult(text="  ", source="subtitle")

def test_cli_parser():
    args = build_parser().parse_args(["transcript", "https://youtu.be/x", "--no-summary"])
    assert args.url == "https://youtu.be/x"
    assert args.no_summary is True

def test_format_time():
    assert format_time(65) == "01:05"
    assert format_time(3725) == "01:02:05"
