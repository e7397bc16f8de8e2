import os
import glob
import requests
import yt_dlp
from typing import Any, Dict, Optional
from tubebrief.core.errors import CaptionUnavailable, ExtractionError
from tubebrief.core.video import AudioDownloader, CaptionDownloader, MediaDownloader, MetadataProvider
from tubebrief.models.video import CaptionChoice, CaptionTrack, VideoMetadata
from tubebrief.utils.logger import logger
from tubebrief.config import settings

BASE_OPTS: Dict[str, Any] = {
    'quiet': True,
    'no_warnings': True,
    'noplaylist': True,
    'extractor_args': {'youtube': {'player_client': ['android', 'web']}},
}

VIDEO_FORMAT = 'bestvideo[ext=mp4]+bestaudio[ext=m4a]/best[ext=mp4]/best'
FAST_VIDEO_FORMAT = 'bestvideo[height<=720][ext=mp4]+bestaudio[ext=m4a]/best[height<=720][ext=mp4]/best'

# YouTube lists chat replays as a subtitle language.
IGNORED_CAPTION_LANGS = {'live_chat'}

def caption_tracks(subs: Optional[Dict[str, Any]]) -> Dict[str, CaptionTrack]:
    """Index a yt-dlp subtitles mapping by language, keeping payload order.

    Only languages offering a vtt or srt rendition are kept; vtt wins.
    """
    tracks: Dict[str, CaptionTrack] = {}
    for lang, items in (subs or {}).items():
        if lang in IGNORED_CAPTION_LANGS:
            continue
        items_list = items if isinstance(items, list) else [items]
        by_ext = {}
        for it in items_list:
            if isinstance(it, dict) and it.get('url'):
                by_ext.setdefault((it.get('ext') or '').lower(), it)
        for ext in ('vtt', 'srt'):
            if ext in by_ext:
                it = by_ext[ext]
                tracks[lang] = CaptionTrack(language=lang, url=it['url'], ext=ext, name=it.get('name'))
                break
    return tracks

class YtDlpProvider(MetadataProvider, CaptionDownloader, AudioDownloader, MediaDownloader):
    """yt-dlp backed extraction, caption and media downloads."""

    def __init__(self, cookies_path: Optional[str] = None, timeout: int = 30):
        self.cookies_path = cookies_path or settings.COOKIES_PATH
        self.timeout = timeout

    def _opts(self, **extra) -> Dict[str, Any]:
        opts = dict(BASE_OPTS)
        if self.cookies_path:
            opts['cookiefile'] = self.cookies_path
        opts.update(extra)
        return opts

    def fetch(self, url: str) -> VideoMetadata:
        try:
            with yt_dlp.YoutubeDL(self._opts(skip_download=True)) as ydl:
                info = ydl.extract_info(url, download=False)
        except Exception as e:
            raise ExtractionError(f"Failed to extract info for {url}: {e}") from e
        if not isinstance(info, dict) or not info.get('id'):
            raise ExtractionError(f"Extractor returned no usable metadata for {url}")

        manual = caption_tracks(info.get('subtitles'))
        auto = caption_tracks(info.get('automatic_captions'))
        logger.info(f"Found video '{info.get('title')}' ({len(manual)} manual / {len(auto)} auto caption languages)")
        return VideoMetadata(
            id=info['id'],
            url=info.get('webpage_url') or url,
            title=info.get('title') or 'Unknown',
            author=info.get('uploader') or info.get('channel') or 'Unknown',
            duration_seconds=int(info.get('duration') or 0),
            manual_captions=manual,
            auto_captions=auto,
            view_count=int(info.get('view_count') or 0),
            thumbnail_url=info.get('thumbnail'),
            language=info.get('language'),
        )

    def download_captions(self, url: str, choice: CaptionChoice, workdir: str) -> str:
        track = choice.track
        if not track.url:
            raise CaptionUnavailable(f"Caption track {choice.lang} has no URL")
        headers = {
            'Referer': 'https://www.youtube.com',
            'User-Agent': 'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
        }
        resp = requests.get(track.url, headers=headers, timeout=self.timeout)
        resp.raise_for_status()
        kind = 'auto' if choice.is_auto else 'manual'
        path = os.path.join(workdir, f"captions.{kind}.{choice.lang}.{track.ext}")
        with open(path, "w", encoding="utf-8") as f:
            f.write(resp.text)
        return path

    def _download(self, url: str, opts: Dict[str, Any], workdir: str, stem: str) -> str:
        with yt_dlp.YoutubeDL(opts) as ydl:
            ydl.download([url])
        produced = sorted(glob.glob(os.path.join(workdir, f"{stem}.*")))
        produced = [p for p in produced if not p.endswith(('.part', '.ytdl'))]
        if not produced:
            raise FileNotFoundError(f"yt-dlp produced no file for {url}")
        return produced[0]

    def download_audio(self, url: str, bitrate: str, workdir: str) -> str:
        opts = self._opts(
            format='bestaudio/best',
            outtmpl=os.path.join(workdir, 'audio.%(ext)s'),
            postprocessors=[{
                'key': 'FFmpegExtractAudio',
                'preferredcodec': 'mp3',
                'preferredquality': str(bitrate),
            }],
        )
        return self._download(url, opts, workdir, 'audio')

    def download_video(self, url: str, workdir: str, fast: bool = False) -> str:
        opts = self._opts(
            format=FAST_VIDEO_FORMAT if fast else VIDEO_FORMAT,
            merge_output_format='mp4',
            outtmpl=os.path.join(workdir, 'video.%(ext)s'),
        )
        return self._download(url, opts, workdir, 'video')
