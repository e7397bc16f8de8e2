import importlib.util
from typing import Any, Optional
from tubebrief.core.video import SpeechTranscriber
from tubebrief.utils.logger import logger
from tubebrief.config import settings

def whisper_available() -> bool:
    return importlib.util.find_spec("whisper") is not None

class WhisperTranscriber(SpeechTranscriber):
    """Local openai-whisper engine. The model is loaded on first use."""

    def __init__(self, model_name: Optional[str] = None):
        self.model_name = model_name or settings.WHISPER_MODEL
        self._model: Any = None

    def _load_model(self):
        if self._model is None:
            try:
                import whisper
            except ImportError:
                raise ImportError("openai-whisper is not installed. Run `pip install tubebrief[asr]`.")
            logger.info(f"Loading Whisper model '{self.model_name}'...")
            self._model = whisper.load_model(self.model_name)
        return self._model

    def transcribe(self, audio_path: str, language: Optional[str] = None) -> str:
        model = self._load_model()
        logger.info(f"Transcribing audio with Whisper (language={language or 'auto'})...")
        options = {"language": language} if language else {}
        result = model.transcribe(audio_path, **options)
        return (result.get("text") or "").strip()
