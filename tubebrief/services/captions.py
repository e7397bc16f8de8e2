import re
from typing import Dict, Optional, Sequence
from tubebrief.models.video import CaptionChoice, CaptionTrack

def select_caption(
    manual: Dict[str, CaptionTrack],
    auto: Dict[str, CaptionTrack],
    prefs: Sequence[str],
) -> Optional[CaptionChoice]:
    """Pick one caption track.

    Language preference dominates caption type, and manual tracks win over
    automatic ones at the same rank. When no preferred language exists the
    first manual track is used, then the first automatic one. Returns None
    when the video has no captions at all.
    """
    for lang in prefs:
        if lang in manual:
            return CaptionChoice(lang=lang, track=manual[lang], is_auto=False)
    for lang in prefs:
        if lang in auto:
            return CaptionChoice(lang=lang, track=auto[lang], is_auto=True)
    for lang, track in manual.items():
        return CaptionChoice(lang=lang, track=track, is_auto=False)
    for lang, track in auto.items():
        return CaptionChoice(lang=lang, track=track, is_auto=True)
    return None

CAPTION_FORMATS = ("vtt", "srt")

_VTT_HEADER = re.compile(r"\A\ufeff?WEBVTT[^\n]*(?:\n|\Z)(?:(?![^\n]*-->)[^\n]*\S[^\n]*\n)*\s*")
_TIMESTAMP_LINE = re.compile(
    r"^[ \t]*(?:\d{1,2}:)?\d{2}:\d{2}[.,]\d{3}[ \t]+-->[ \t]+(?:\d{1,2}:)?\d{2}:\d{2}[.,]\d{3}[^\n]*$",
    re.MULTILINE,
)
_MARKUP = re.compile(r"<[^>]*>")
_CUE_NUMBER = re.compile(r"^[ \t]*\d+[ \t]*$", re.MULTILINE)
_BLANK_RUN = re.compile(r"\n[ \t]*(?:\n[ \t]*)+")
_MAX_PASSES = 3

def _strip_cues(text: str) -> str:
    text = _VTT_HEADER.sub("", text, count=1)
    text = _TIMESTAMP_LINE.sub("", text)
    text = _MARKUP.sub("", text)
    text = _CUE_NUMBER.sub("", text)
    text = _BLANK_RUN.sub("\n", text)
    return text.strip()

def normalize_captions(raw: str, fmt: str) -> str:
    """Turn a VTT or SRT payload into plain text. May return an empty string."""
    if fmt not in CAPTION_FORMATS:
        raise ValueError(f"Unsupported caption format: {fmt}")
    text = raw.replace("\r\n", "\n").replace("\r", "\n")
    # stripping tags can expose a header, timestamp or cue number, so repeat until stable
    for _ in range(_MAX_PASSES):
        cleaned = _strip_cues(text)
        if cleaned == text:
            break
        text = cleaned
    return text
