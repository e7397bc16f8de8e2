import asyncio
import contextlib
import time
from contextlib import asynccontextmanager, contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional
from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from pydantic import BaseModel
from starlette.background import BackgroundTask
from starlette.exceptions import HTTPException as StarletteHTTPException
from tubebrief.config import settings as default_settings
from tubebrief.core.errors import ExtractionError, PipelineError, SummaryError
from tubebrief.models.video import VideoMetadata
from tubebrief.providers.whisper import whisper_available
from tubebrief.services.container import ServiceContainer, build_container
from tubebrief.utils.files import RunWorkspace, sanitize_filename, sweep_stale_files
from tubebrief.utils.logger import logger
from tubebrief.utils.ratelimit import RateLimiter
from yt_dlp.version import __version__ as ytdlp_version

class VideoRequest(BaseModel):
    videoLink: Optional[str] = None

class ApiError(Exception):
    def __init__(self, status_code: int, error: str, details: Optional[str] = None):
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.details = details

def _error_body(error: str, details: Optional[str] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"error": error}
    if details is not None:
        body["details"] = details
    return body

def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container

def rate_limit(request: Request) -> None:
    limiter: RateLimiter = request.app.state.rate_limiter
    client = request.client.host if request.client else "unknown"
    if not limiter.allow(client):
        raise ApiError(429, "Too many requests, please try again later")

def require_link(video_link: Optional[str]) -> str:
    link = (video_link or "").strip()
    if not link:
        raise ApiError(400, "videoLink is required")
    return link

class UsageTracker:
    """Records one request in the usage log when persistence is enabled."""

    def __init__(self, container: ServiceContainer, endpoint: str, request: Request,
                 video_url: Optional[str], format: Optional[str] = None):
        self.container = container
        self.log_id = None
        self.metadata: Optional[VideoMetadata] = None
        self.started = time.perf_counter()
        if container.has_persistence:
            self.log_id = container.usage.start(
                endpoint,
                video_url=video_url,
                format=format,
                ip_address=request.client.host if request.client else None,
                user_agent=request.headers.get("user-agent"),
            )

    def elapsed_ms(self) -> int:
        return int((time.perf_counter() - self.started) * 1000)

    def finish(self, status: str, error: Optional[str] = None) -> None:
        if not self.container.has_persistence:
            return
        self.container.usage.complete(
            self.log_id,
            status,
            processing_time_ms=self.elapsed_ms(),
            error_message=error,
            video_title=self.metadata.title if self.metadata else None,
            video_author=self.metadata.author if self.metadata else None,
            video_duration=self.metadata.duration_seconds if self.metadata else None,
        )

@contextmanager
def track_usage(container: ServiceContainer, endpoint: str, request: Request,
                video_url: Optional[str], format: Optional[str] = None) -> Iterator[UsageTracker]:
    tracker = UsageTracker(container, endpoint, request, video_url, format)
    try:
        yield tracker
    except Exception as e:
        tracker.finish("failed", str(e))
        raise
    tracker.finish("success")

def _metadata_error(e: ExtractionError) -> ApiError:
    return ApiError(502, "Could not fetch video info", str(e))

def _stream_download(container: ServiceContainer, request: Request, endpoint: str,
                     video_link: str, fmt: str, fast: bool = False) -> FileResponse:
    with track_usage(container, endpoint, request, video_link, fmt) as usage:
        try:
            metadata = container.metadata_provider.fetch(video_link)
        except ExtractionError as e:
            raise _metadata_error(e) from e
        usage.metadata = metadata
        title = sanitize_filename(metadata.title)

        workspace = RunWorkspace(container.settings.TEMP_DIR)
        try:
            if fmt == "audio":
                path = container.audio_downloader.download_audio(
                    video_link, container.settings.DOWNLOAD_AUDIO_BITRATE, workspace.path)
                filename, media_type = f"{title}.mp3", "audio/mpeg"
            else:
                path = container.media_downloader.download_video(video_link, workspace.path, fast=fast)
                filename, media_type = f"{title}.mp4", "video/mp4"
        except Exception as e:
            workspace.cleanup()
            logger.error(f"Download error for {video_link}: {e}")
            raise ApiError(500, "Download failed", str(e)) from e

    return FileResponse(path, media_type=media_type, filename=filename,
                        background=BackgroundTask(workspace.cleanup))

async def _cleanup_loop(temp_dir: str, max_age: int, interval: int) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            await run_in_threadpool(sweep_stale_files, temp_dir, max_age)
        except OSError as e:
            logger.warning(f"Temp cleanup failed: {e}")

def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    container = container or build_container(default_settings)
    cfg = container.settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        task = asyncio.create_task(_cleanup_loop(cfg.TEMP_DIR, cfg.TEMP_MAX_AGE_SECONDS, cfg.CLEANUP_INTERVAL_SECONDS))
        app.state.cleanup_task = task
        logger.info(f"tubebrief is running on http://{cfg.HOST}:{cfg.PORT} (summarizer={container.has_summarizer}, persistence={container.has_persistence})")
        try:
            yield
        finally:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    app = FastAPI(title="tubebrief", description="Video info, downloads and AI summaries", lifespan=lifespan)
    app.state.container = container
    app.state.rate_limiter = RateLimiter(cfg.RATE_LIMIT_MAX_REQUESTS, cfg.RATE_LIMIT_WINDOW_SECONDS)
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc.error, exc.details))

    @app.exception_handler(PipelineError)
    async def pipeline_error_handler(request: Request, exc: PipelineError):
        return JSONResponse(status_code=502, content=_error_body("Could not produce a transcript", str(exc)))

    @app.exception_handler(SummaryError)
    async def summary_error_handler(request: Request, exc: SummaryError):
        return JSONResponse(status_code=502, content=_error_body("Could not summarize video", str(exc)))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content=_error_body("Invalid request", str(exc.errors())))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return JSONResponse(status_code=404, content=_error_body("Endpoint not found"))
        return JSONResponse(status_code=exc.status_code, content=_error_body(str(exc.detail)))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error: {exc}")
        details = str(exc) if cfg.DEBUG else None
        return JSONResponse(status_code=500, content=_error_body("Internal server error", details))

    @app.post("/video-info", dependencies=[Depends(rate_limit)])
    def video_info(body: VideoRequest, request: Request, container: ServiceContainer = Depends(get_container)):
        link = require_link(body.videoLink)
        with track_usage(container, "/video-info", request, link) as usage:
            try:
                metadata = container.metadata_provider.fetch(link)
            except ExtractionError as e:
                raise _metadata_error(e) from e
            usage.metadata = metadata
        return {
            "title": metadata.title,
            "author": metadata.author,
            "lengthSeconds": metadata.duration_seconds,
            "viewCount": metadata.view_count,
            "thumbnailUrl": metadata.thumbnail_url,
            "manualCaptions": list(metadata.manual_captions),
            "autoCaptions": list(metadata.auto_captions),
        }

    @app.get("/download", dependencies=[Depends(rate_limit)])
    def download(request: Request, videoLink: Optional[str] = None,
                 format: str = Query("video", pattern="^(video|audio)$"),
                 container: ServiceContainer = Depends(get_container)):
        link = require_link(videoLink)
        return _stream_download(container, request, "/download", link, format)

    @app.get("/download-fast", dependencies=[Depends(rate_limit)])
    def download_fast(request: Request, videoLink: Optional[str] = None,
                      container: ServiceContainer = Depends(get_container)):
        link = require_link(videoLink)
        return _stream_download(container, request, "/download-fast", link, "video", fast=True)

    @app.post("/summarize", dependencies=[Depends(rate_limit)])
    def summarize(body: VideoRequest, request: Request, container: ServiceContainer = Depends(get_container)):
        link = require_link(body.videoLink)
        if not container.has_summarizer:
            raise ApiError(503, "Summarization is not configured", "Set LLM_API_KEY to enable it")
        with track_usage(container, "/summarize", request, link) as usage:
            metadata = container.pipeline.fetch_metadata(link)
            usage.metadata = metadata
            transcript = container.pipeline.run(link, metadata=metadata)
            summary = container.summarizer.summarize(transcript, metadata)
            if container.has_persistence:
                container.usage.save_summary(
                    usage.log_id,
                    video_url=link,
                    video_title=metadata.title,
                    summary=summary.summary,
                    key_points=summary.key_points,
                    transcript_length=len(transcript.text),
                    transcript_source=transcript.source,
                )
        return {
            "title": metadata.title,
            "author": metadata.author,
            "lengthSeconds": metadata.duration_seconds,
            "transcriptSource": transcript.source,
            "transcriptLength": len(transcript.text),
            "languageUsed": transcript.language_used,
            "summary": summary.summary,
            "keyPoints": summary.key_points,
        }

    def _require_persistence(container: ServiceContainer) -> None:
        if not container.has_persistence:
            raise ApiError(503, "Usage logging is not configured", "Set DATABASE_URL to enable it")

    @app.get("/logs")
    def logs(limit: int = Query(50, ge=1, le=500), endpoint: Optional[str] = None,
             container: ServiceContainer = Depends(get_container)):
        _require_persistence(container)
        return {"logs": [log.to_dict() for log in container.usage.recent(limit=limit, endpoint=endpoint)]}

    @app.get("/logs/stats")
    def log_stats(container: ServiceContainer = Depends(get_container)):
        _require_persistence(container)
        return container.usage.stats()

    @app.get("/health")
    def health(container: ServiceContainer = Depends(get_container)):
        return {
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "ytdlp": ytdlp_version,
            "whisper": "installed" if whisper_available() else "not found",
            "summarizer": container.has_summarizer,
            "persistence": container.has_persistence,
        }

    return app
