"""
Pydantic Schemas for API Request/Response validation.
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any, Union
from datetime import datetime

Number = Union[int, float]


# ==================
# Request Schemas
# ==================

class ChatRequest(BaseModel):
    """A user message for the farming assistant."""
    message: str = Field(..., description="User question")
    session_id: str = Field("default", description="Chat exchange to append to")


# ==================
# Response Schemas
# ==================

class ForecastEntryResponse(BaseModel):
    time: str
    temp: int
    condition: str
    rain: Number


class WeatherResponse(BaseModel):
    """Current weather card."""
    temperature: Union[Number, str]
    condition: str
    humidity: Union[Number, str]
    wind_speed: Union[Number, str]
    rainfall: Union[Number, str]
    uv: Union[Number, str]
    prediction: str
    icon: str
    forecast: List[ForecastEntryResponse] = []


class SoilResponse(BaseModel):
    """Soil analysis card."""
    ph: str
    nitrogen: Union[int, str]
    phosphorus: Union[int, str]
    potassium: Union[int, str]
    organic: str
    moisture: Union[int, str]
    temperature: Union[int, str]


class NDVIResponse(BaseModel):
    """Vegetation index card."""
    ndvi: Union[float, str]
    date: str
    cloud_coverage: Union[Number, str]
    status: str = Field(..., description="ok | empty | failed")


class DashboardResponse(BaseModel):
    weather: WeatherResponse
    soil: SoilResponse
    ndvi: NDVIResponse
    lat: float
    lon: float
    refreshed_at: str


class ChatMessageResponse(BaseModel):
    role: str  # "user" or "ai"
    text: str
    model: Optional[str] = None


class ChatResponse(BaseModel):
    reply: ChatMessageResponse
    messages: List[ChatMessageResponse]


class ChatHistoryResponse(BaseModel):
    session_id: str
    messages: List[ChatMessageResponse]


class ModelScoreResponse(BaseModel):
    name: str
    confidence: int


class DiagnosisResponse(BaseModel):
    disease: str
    confidence: int = Field(..., ge=0, le=100)
    severity: str
    treatment: str
    models: List[ModelScoreResponse] = []
    complete: bool


class DiagnoseResponse(BaseModel):
    """One-shot image analysis."""
    diagnosis: DiagnosisResponse
    raw_text: str


class DiagnosisSessionResponse(BaseModel):
    session_id: str
    state: str  # idle | image_selected | analyzing | result
    filename: Optional[str] = None
    result: Optional[DiagnosisResponse] = None
    raw_text: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    timestamp: str
    services: Dict[str, str]


# ==================
# WebSocket Schemas
# ==================

class DashboardUpdate(BaseModel):
    """Real-time update for dashboard."""
    type: str  # "connected", "dashboard"
    payload: Dict[str, Any]
    timestamp: str = Field(default_factory=lambda: datetime.now().isoformat())
