from dataclasses import dataclass, field
from typing import Optional
from tubebrief.config import Settings, settings as default_settings
from tubebrief.core.video import AudioDownloader, MediaDownloader, MetadataProvider
from tubebrief.providers.whisper import WhisperTranscriber
from tubebrief.providers.youtube import YtDlpProvider
from tubebrief.services.summarizer import SummarizerService
from tubebrief.services.transcript import AudioTranscriptionFallback, TranscriptPipeline
from tubebrief.services.usage import UsageRepository
from tubebrief.utils.logger import logger

@dataclass
class ServiceContainer:
    """Collaborators shared by the HTTP handlers and the CLI.

    Optional capabilities are exposed as plain booleans.
    """
    settings: Settings
    metadata_provider: MetadataProvider
    media_downloader: MediaDownloader
    audio_downloader: AudioDownloader
    pipeline: TranscriptPipeline
    summarizer: Optional[SummarizerService] = None
    usage: Optional[UsageRepository] = None
    has_summarizer: bool = field(init=False)
    has_persistence: bool = field(init=False)

    def __post_init__(self):
        self.has_summarizer = self.summarizer is not None
        self.has_persistence = self.usage is not None

def build_container(settings: Optional[Settings] = None) -> ServiceContainer:
    settings = settings or default_settings
    provider = YtDlpProvider(cookies_path=settings.COOKIES_PATH)
    fallback = AudioTranscriptionFallback(
        provider,
        WhisperTranscriber(settings.WHISPER_MODEL),
        bitrate=settings.FALLBACK_AUDIO_BITRATE
    )
    pipeline = TranscriptPipeline(
        provider,
        provider,
        fallback,
        language_prefs=settings.CAPTION_LANGUAGES,
        temp_dir=settings.TEMP_DIR
    )

    summarizer = None
    if settings.LLM_API_KEY:
        summarizer = SummarizerService(model=settings.LLM_MODEL)
    else:
        logger.warning("LLM_API_KEY not set. Summarization is disabled.")

    usage = None
    if settings.DATABASE_URL:
        usage = UsageRepository(settings.DATABASE_URL)
    else:
        logger.info("DATABASE_URL not set. Usage logging is disabled.")

    return ServiceContainer(
        settings=settings,
        metadata_provider=provider,
        media_downloader=provider,
        audio_downloader=provider,
        pipeline=pipeline,
        summarizer=summarizer,
        usage=usage
    )
