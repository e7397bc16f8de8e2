import os
from typing import Optional, Sequence
from tubebrief.config import settings
from tubebrief.core.errors import CaptionUnavailable, ExtractionError, PipelineError, TranscriptionError
from tubebrief.core.video import AudioDownloader, CaptionDownloader, MetadataProvider, SpeechTranscriber
from tubebrief.models.transcript import PipelineStage, TranscriptResult
from tubebrief.models.video import VideoMetadata
from tubebrief.services.captions import normalize_captions, select_caption
from tubebrief.utils.files import RunWorkspace
from tubebrief.utils.logger import logger

class AudioTranscriptionFallback:
    """Speech-to-text over a low bitrate audio rendition.

    A failed attempt with a language hint is retried once without the hint.
    Nothing else is retried.
    """

    def __init__(self, downloader: AudioDownloader, transcriber: SpeechTranscriber, bitrate: Optional[str] = None):
        self.downloader = downloader
        self.transcriber = transcriber
        self.bitrate = bitrate or settings.FALLBACK_AUDIO_BITRATE

    def transcribe(self, url: str, preferred_language: Optional[str], workdir: str) -> str:
        try:
            audio_path = self.downloader.download_audio(url, self.bitrate, workdir)
        except Exception as e:
            raise TranscriptionError(f"Audio download failed: {e}") from e

        try:
            text = self.transcriber.transcribe(audio_path, language=preferred_language)
        except Exception as e:
            if not preferred_language:
                raise TranscriptionError(f"Speech-to-text failed: {e}") from e
            logger.warning(f"Speech-to-text failed with language hint '{preferred_language}' ({e}). Retrying without hint...")
            try:
                text = self.transcriber.transcribe(audio_path, language=None)
            except Exception as e2:
                raise TranscriptionError(f"Speech-to-text failed without language hint: {e2}") from e2

        if not text or not text.strip():
            raise TranscriptionError("Speech-to-text returned an empty transcript")
        return text.strip()

class TranscriptPipeline:
    """Produce one transcript per URL, from captions when possible, else from audio."""

    def __init__(
        self,
        metadata_provider: MetadataProvider,
        caption_downloader: CaptionDownloader,
        audio_fallback: AudioTranscriptionFallback,
        language_prefs: Optional[Sequence[str]] = None,
        temp_dir: Optional[str] = None,
    ):
        self.metadata_provider = metadata_provider
        self.caption_downloader = caption_downloader
        self.audio_fallback = audio_fallback
        self.language_prefs = list(language_prefs if language_prefs is not None else settings.CAPTION_LANGUAGES)
        self.temp_dir = temp_dir or settings.TEMP_DIR

    def _enter(self, stage: PipelineStage, url: str) -> None:
        logger.info(f"[{stage.value}] {url}")

    def fetch_metadata(self, url: str) -> VideoMetadata:
        self._enter(PipelineStage.START, url)
        try:
            metadata = self.metadata_provider.fetch(url)
        except ExtractionError as e:
            logger.error(f"[{PipelineStage.FAILED.value}] metadata extraction failed for {url}: {e}")
            raise PipelineError(f"Could not fetch metadata: {e}", PipelineStage.METADATA_FETCHED, url) from e
        self._enter(PipelineStage.METADATA_FETCHED, url)
        return metadata

    def _from_captions(self, url: str, metadata: VideoMetadata, workspace: RunWorkspace) -> Optional[TranscriptResult]:
        self._enter(PipelineStage.CAPTION_ATTEMPTED, url)
        try:
            choice = select_caption(metadata.manual_captions, metadata.auto_captions, self.language_prefs)
            if choice is None:
                raise CaptionUnavailable("Video has no caption tracks")
            logger.info(f"Using {'auto' if choice.is_auto else 'manual'} captions in '{choice.lang}'")
            path = self.caption_downloader.download_captions(url, choice, workspace.path)
            with open(path, "r", encoding="utf-8") as f:
                raw = f.read()
            text = normalize_captions(raw, choice.track.ext)
            if not text:
                raise CaptionUnavailable(f"Captions in '{choice.lang}' normalized to empty text")
        except CaptionUnavailable as e:
            logger.info(f"Captions unavailable: {e}")
            return None
        except Exception as e:
            logger.warning(f"Caption path failed: {e}")
            return None
        self._enter(PipelineStage.SUBTITLE_SUCCESS, url)
        return TranscriptResult(text=text, source="subtitle", language_used=choice.lang)

    def _from_audio(self, url: str, metadata: VideoMetadata, workspace: RunWorkspace) -> TranscriptResult:
        self._enter(PipelineStage.FALLBACK_TO_AUDIO, url)
        language = metadata.language or (self.language_prefs[0] if self.language_prefs else None)
        try:
            text = self.audio_fallback.transcribe(url, language, workspace.path)
        except TranscriptionError as e:
            logger.error(f"[{PipelineStage.FAILED.value}] audio transcription failed for {url}: {e}")
            raise PipelineError(f"No transcript available: {e}", PipelineStage.FALLBACK_TO_AUDIO, url) from e
        return TranscriptResult(text=text, source="whisper", language_used=None)

    def run(self, url: str, metadata: Optional[VideoMetadata] = None) -> TranscriptResult:
        """Run the pipeline. Pass metadata from fetch_metadata to skip the extraction call."""
        if metadata is None:
            metadata = self.fetch_metadata(url)

        os.makedirs(self.temp_dir, exist_ok=True)
        with RunWorkspace(self.temp_dir) as workspace:
            result = self._from_captions(url, metadata, workspace)
            if result is None:
                result = self._from_audio(url, metadata, workspace)
        self._enter(PipelineStage.DONE, url)
        logger.info(f"Transcript ready: {len(result.text)} chars from {result.source}")
        return result
