"""
Leaf Network - Main FastAPI Application
Live farm dashboard backend: weather, soil, NDVI, AI chat and disease diagnosis.
"""

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import datetime, timedelta
from typing import Optional, Set

from fastapi import FastAPI, File, HTTPException, Query, UploadFile, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from .config import Settings, get_settings
from .models.schemas import (
    ChatHistoryResponse,
    ChatRequest,
    ChatResponse,
    DashboardResponse,
    DashboardUpdate,
    DiagnoseResponse,
    DiagnosisSessionResponse,
    HealthResponse,
    NDVIResponse,
    SoilResponse,
    WeatherResponse,
)
from .services.api import APIService
from .agents.chat import ChatSessionStore, new_exchange
from .agents.dashboard import DashboardRefresher, DashboardSnapshot
from .agents.diagnosis import (
    DIAGNOSIS_PROMPT,
    DiagnosisSession,
    DiagnosisSessionStore,
    DiagnosisStateError,
    parse_diagnosis,
)

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 2000


# ==================
# WebSocket Manager
# ==================

class ConnectionManager:
    """Manages WebSocket connections for real-time dashboard updates."""

    def __init__(self):
        self.active_connections: Set[WebSocket] = set()

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.active_connections.add(websocket)

    def disconnect(self, websocket: WebSocket):
        self.active_connections.discard(websocket)

    async def broadcast(self, message: dict):
        """Send message to all connected clients."""
        disconnected = set()
        for connection in list(self.active_connections):
            try:
                await connection.send_json(message)
            except Exception:
                disconnected.add(connection)

        # Clean up disconnected clients
        self.active_connections -= disconnected


# ==================
# Helpers
# ==================

def _location(settings: Settings, lat: Optional[float], lon: Optional[float]):
    return (
        lat if lat is not None else settings.farm_lat,
        lon if lon is not None else settings.farm_lon,
    )


def _dashboard_response(snapshot: DashboardSnapshot) -> DashboardResponse:
    return DashboardResponse(**snapshot.to_dict())


async def _read_image(file: UploadFile) -> bytes:
    if not (file.content_type or "").startswith("image/"):
        raise HTTPException(status_code=400, detail="Upload must be an image.")
    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded image is empty.")
    return data


def create_app(settings: Optional[Settings] = None, api: Optional[APIService] = None) -> FastAPI:
    """Build the FastAPI app around one APIService instance."""
    settings = settings or get_settings()
    api = api or APIService(settings)

    manager = ConnectionManager()
    refresher = DashboardRefresher(api, settings.farm_lat, settings.farm_lon)
    session_ttl = timedelta(seconds=settings.session_ttl_seconds)
    chats = ChatSessionStore(ttl=session_ttl, max_sessions=settings.max_sessions)
    diagnoses = DiagnosisSessionStore(ttl=session_ttl, max_sessions=settings.max_sessions)

    async def push_snapshot(snapshot: DashboardSnapshot):
        await manager.broadcast(
            DashboardUpdate(type="dashboard", payload=snapshot.to_dict()).model_dump()
        )

    refresher.subscribe(push_snapshot)

    # ==================
    # Lifespan Events
    # ==================

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown events."""
        logger.info("Leaf Network backend starting...")
        logger.info(f"Farm location: ({settings.farm_lat}, {settings.farm_lon})")

        refresh_task = None
        if settings.refresh_on_startup:
            refresh_task = asyncio.create_task(
                refresher.run_forever(settings.refresh_interval_seconds)
            )
        else:
            logger.info("Periodic dashboard refresh disabled")

        yield

        logger.info("Shutting down services...")
        if refresh_task is not None:
            refresh_task.cancel()
            try:
                await refresh_task
            except asyncio.CancelledError:
                pass
        await api.close()

    app = FastAPI(
        title="Leaf Network",
        description="Live weather, soil, satellite and AI insights for farmers",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.api = api
    app.state.refresher = refresher
    app.state.chats = chats
    app.state.diagnoses = diagnoses
    app.state.manager = manager

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ==================
    # Health Check
    # ==================

    @app.get("/health", response_model=HealthResponse)
    async def health_check():
        """Health check endpoint; reports which provider keys are set."""
        missing = set(settings.missing_keys)
        return HealthResponse(
            status="healthy",
            timestamp=datetime.now().isoformat(),
            services={
                "weather": "missing_key" if "openweather_api_key" in missing else "ok",
                "agro": "missing_key" if "agro_api_key" in missing else "ok",
                "gemini": "missing_key" if "gemini_api_key" in missing else "ok",
            },
        )

    # ==================
    # Live Data Endpoints
    # ==================

    @app.get("/api/weather", response_model=WeatherResponse)
    async def weather(
        lat: Optional[float] = Query(None, ge=-90, le=90),
        lon: Optional[float] = Query(None, ge=-180, le=180),
    ):
        view = await api.get_weather_data(*_location(settings, lat, lon))
        return WeatherResponse(**asdict(view))

    @app.get("/api/soil", response_model=SoilResponse)
    async def soil(
        lat: Optional[float] = Query(None, ge=-90, le=90),
        lon: Optional[float] = Query(None, ge=-180, le=180),
    ):
        view = await api.get_soil_data(*_location(settings, lat, lon))
        return SoilResponse(**asdict(view))

    @app.get("/api/ndvi", response_model=NDVIResponse)
    async def ndvi(
        lat: Optional[float] = Query(None, ge=-90, le=90),
        lon: Optional[float] = Query(None, ge=-180, le=180),
    ):
        view = await api.get_ndvi_data(*_location(settings, lat, lon))
        return NDVIResponse(**asdict(view))

    @app.get("/api/dashboard", response_model=DashboardResponse)
    async def dashboard():
        """Latest snapshot; the first call loads it."""
        return _dashboard_response(await refresher.current())

    @app.post("/api/dashboard/refresh", response_model=DashboardResponse)
    async def refresh_dashboard():
        """Refresh now, unless a refresh is already running."""
        snapshot = await refresher.refresh()
        if snapshot is None:
            snapshot = await refresher.current()
        return _dashboard_response(snapshot)

    # ==================
    # AI Chat
    # ==================

    @app.post("/api/chat", response_model=ChatResponse)
    async def chat(request: ChatRequest):
        text = request.message.strip()
        if not text:
            raise HTTPException(status_code=400, detail="Message is empty.")
        if len(text) > MAX_MESSAGE_LENGTH:
            raise HTTPException(status_code=400, detail=f"Message max length exceeded ({MAX_MESSAGE_LENGTH} chars).")

        reply = await chats.ask(api, request.session_id, text, refresher.chat_context())
        exchange = chats.get(request.session_id)
        return ChatResponse(reply=asdict(reply), messages=exchange.to_list())

    @app.get("/api/chat/{session_id}", response_model=ChatHistoryResponse)
    async def chat_history(session_id: str):
        exchange = chats.find(session_id) or new_exchange(session_id)
        return ChatHistoryResponse(session_id=session_id, messages=exchange.to_list())

    @app.delete("/api/chat/{session_id}", response_model=ChatHistoryResponse)
    async def reset_chat(session_id: str):
        exchange = chats.clear(session_id)
        return ChatHistoryResponse(session_id=session_id, messages=exchange.to_list())

    # ==================
    # Disease Detection
    # ==================

    @app.post("/api/diagnose", response_model=DiagnoseResponse)
    async def diagnose(file: UploadFile = File(...)):
        """Analyze one image without keeping any flow state."""
        image = await _read_image(file)
        text = await api.analyze_image(image, file.content_type, DIAGNOSIS_PROMPT)
        return DiagnoseResponse(diagnosis=parse_diagnosis(text).to_dict(), raw_text=text)

    @app.get("/api/diagnosis/{session_id}", response_model=DiagnosisSessionResponse)
    async def diagnosis_state(session_id: str):
        session = diagnoses.find(session_id) or DiagnosisSession(session_id)
        return session.to_dict()

    @app.post("/api/diagnosis/{session_id}/image", response_model=DiagnosisSessionResponse)
    async def select_image(session_id: str, file: UploadFile = File(...)):
        image = await _read_image(file)
        session = diagnoses.get(session_id)
        session.select_image(image, file.content_type, file.filename)
        return session.to_dict()

    @app.post("/api/diagnosis/{session_id}/analyze", response_model=DiagnosisSessionResponse)
    async def analyze_image(session_id: str):
        session = diagnoses.find(session_id) or DiagnosisSession(session_id)
        try:
            await session.analyze(api)
        except DiagnosisStateError as e:
            raise HTTPException(status_code=409, detail=str(e))
        return session.to_dict()

    @app.delete("/api/diagnosis/{session_id}", response_model=DiagnosisSessionResponse)
    async def clear_diagnosis(session_id: str):
        session = diagnoses.find(session_id) or DiagnosisSession(session_id)
        session.clear()
        return session.to_dict()

    # ==================
    # WebSocket Endpoint
    # ==================

    @app.websocket("/ws/dashboard")
    async def websocket_endpoint(websocket: WebSocket):
        # WebSocket for real-time dashboard updates.
        await manager.connect(websocket)

        try:
            await websocket.send_json(
                DashboardUpdate(type="connected", payload={"message": "Connected to Leaf Network"}).model_dump()
            )
            if refresher.snapshot is not None:
                await websocket.send_json(
                    DashboardUpdate(type="dashboard", payload=refresher.snapshot.to_dict()).model_dump()
                )

            while True:
                data = await websocket.receive_text()

                # Handle ping/pong for keepalive
                if data == "ping":
                    await websocket.send_text("pong")
                    continue

                try:
                    request = json.loads(data)
                except json.JSONDecodeError:
                    continue
                if isinstance(request, dict) and request.get("type") == "refresh":
                    await refresher.refresh()

        except WebSocketDisconnect:
            manager.disconnect(websocket)

    return app


logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = create_app()


# ==================
# Run Server
# ==================

if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(
        "leafnet.main:app",
        host=settings.backend_host,
        port=settings.backend_port,
        reload=True,
    )
