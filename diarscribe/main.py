"""
FastAPI app: control surface and live event stream for the transcription service.

HTTP API: initialize models, start/stop a session, snapshot, export (txt / srt), summary.
WebSocket /ws/events streams service events as JSON:
{ "type": "partial" | "segment" | "state" | "error", ..., "timestamp": unix_ms }

One TranscriptionService per process; capture happens on this machine's devices or files.
"""
from __future__ import annotations

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Callable

from fastapi import FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect

from diarscribe.config import get_settings, setup_logging
from diarscribe.errors import (
    AudioDeviceError,
    ExportError,
    ModelLoadError,
    RecognizerNotInitializedError,
)
from diarscribe.schemas.session import (
    ExportRequest,
    ExportResponse,
    InitializeRequest,
    SegmentOut,
    SessionResponse,
    StartRequest,
    WordTimingOut,
)
from diarscribe.schemas.summary import SummaryRequest, SummaryResponse, TemplateOut
from diarscribe.service import TranscriptionService
from diarscribe.services.summary import PROMPT_TEMPLATES, summarize_transcript
from diarscribe.transcript.export import TranscriptFormat
from diarscribe.websocket_manager import EventStreamer

logger = logging.getLogger(__name__)

ServiceFactory = Callable[[], TranscriptionService]


def _initialize_from_settings(service: TranscriptionService) -> None:
    """Load models named in settings. Failure is logged; the API stays up uninitialized."""
    settings = get_settings()
    if not settings.MODEL_PATH:
        logger.info("MODEL_PATH not set; waiting for POST /api/initialize")
        return
    try:
        service.initialize(settings.MODEL_PATH, settings.SPEAKER_MODEL_PATH or None)
    except ModelLoadError as e:
        logger.warning("Startup model load failed: %s", e)


def get_service(request: Request) -> TranscriptionService:
    service = getattr(request.app.state, "service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Service not ready")
    return service


def _session_response(service: TranscriptionService) -> SessionResponse:
    session = service.session
    return SessionResponse(
        session_id=session.session_id if session else None,
        mode=session.mode if session else None,
        initialized=service.is_initialized,
        running=service.is_running,
        elapsed_seconds=round(service.elapsed, 3),
        speaker_count=service.speaker_count,
        segments=[
            SegmentOut(
                text=s.text,
                start=s.start,
                end=s.end,
                speaker=s.speaker,
                words=[
                    WordTimingOut(word=w.word, start=w.start, end=w.end, confidence=w.confidence)
                    for w in s.words
                ],
            )
            for s in service.segments
        ],
    )


def _resolve_export_path(service: TranscriptionService, request: ExportRequest) -> tuple[str, TranscriptFormat]:
    settings = get_settings()
    if request.path:
        fmt = request.format or TranscriptFormat.from_path(request.path)
        path = request.path
    else:
        fmt = request.format or TranscriptFormat.PLAIN_TEXT
        session = service.session
        stem = session.session_id if session else "transcript"
        path = f"{stem}.{fmt.value}"
    if not os.path.isabs(path):
        path = os.path.join(settings.TRANSCRIPT_DIR, path)
    return path, fmt


def create_app(service_factory: ServiceFactory | None = None) -> FastAPI:
    """Build the app. service_factory defaults to a real TranscriptionService with models from settings."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging()
        if service_factory is not None:
            service = service_factory()
        else:
            service = TranscriptionService()
            _initialize_from_settings(service)
        app.state.service = service
        yield
        # Shutdown: stop capture and release the engine
        app.state.service = None
        await asyncio.get_running_loop().run_in_executor(None, service.close)

    app = FastAPI(
        title="Diarscribe",
        description="Streaming speech transcription with speaker labels",
        lifespan=lifespan,
    )

    @app.get("/health")
    async def health(request: Request) -> dict:
        service = getattr(request.app.state, "service", None)
        return {
            "status": "ok",
            "initialized": bool(service and service.is_initialized),
            "running": bool(service and service.is_running),
        }

    @app.post("/api/initialize", response_model=SessionResponse)
    async def initialize(body: InitializeRequest, request: Request) -> SessionResponse:
        service = get_service(request)
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, service.initialize, body.model_path, body.speaker_model_path)
        except ModelLoadError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return _session_response(service)

    @app.post("/api/session/start", response_model=SessionResponse)
    async def start_session(body: StartRequest, request: Request) -> SessionResponse:
        service = get_service(request)
        loop = asyncio.get_running_loop()
        try:
            # May stop a running session and open devices; both block
            await loop.run_in_executor(None, service.start, body.mode, body.file_path)
        except RecognizerNotInitializedError as e:
            raise HTTPException(status_code=409, detail=str(e))
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except AudioDeviceError as e:
            raise HTTPException(status_code=500, detail=f"Failed to start: {e}")
        return _session_response(service)

    @app.post("/api/session/stop", response_model=SessionResponse)
    async def stop_session(request: Request) -> SessionResponse:
        service = get_service(request)
        await asyncio.get_running_loop().run_in_executor(None, service.stop)
        return _session_response(service)

    @app.get("/api/session", response_model=SessionResponse)
    async def get_session(request: Request) -> SessionResponse:
        return _session_response(get_service(request))

    @app.post("/api/session/export", response_model=ExportResponse)
    async def export_session(body: ExportRequest, request: Request) -> ExportResponse:
        service = get_service(request)
        path, fmt = _resolve_export_path(service, body)
        try:
            written = service.export(path, fmt)
        except ExportError as e:
            raise HTTPException(status_code=500, detail=f"Failed to export: {e}")
        return ExportResponse(path=written, format=fmt, segment_count=len(service.segments))

    @app.get("/api/templates", response_model=list[TemplateOut])
    async def list_templates() -> list[TemplateOut]:
        return [TemplateOut(name=t.name, prompt=t.prompt) for t in PROMPT_TEMPLATES]

    @app.post("/api/summary", response_model=SummaryResponse)
    async def summarize(body: SummaryRequest, request: Request) -> SummaryResponse:
        service = get_service(request)
        transcript_text = service.render(TranscriptFormat.PLAIN_TEXT) if service.segments else ""
        try:
            summary = await summarize_transcript(transcript_text, body.template)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except Exception as e:
            logger.exception("Summary failed: %s", e)
            raise HTTPException(status_code=502, detail="Summary failed")
        return SummaryResponse(template=body.template, summary=summary)

    @app.websocket("/ws/events")
    async def websocket_events(websocket: WebSocket) -> None:
        """Stream partial / segment / state / error events until the client disconnects."""
        await websocket.accept()
        service = getattr(websocket.app.state, "service", None)
        if service is None:
            await websocket.close(code=1013)
            return
        streamer = EventStreamer(websocket, service)
        try:
            await streamer.run()
        except WebSocketDisconnect:
            pass

    return app


app = create_app()
