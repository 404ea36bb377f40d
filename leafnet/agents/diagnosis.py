"""
Plant disease diagnosis - prompt, reply parsing and the upload/analyze flow.

Flow per session:

    Idle -> ImageSelected -> Analyzing -> Result
      ^__________ clear() from any state __________|
"""

import asyncio
import datetime
import logging
import re
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Dict, List, Optional

from ..services.api import APIService
from .sessions import SessionStore

logger = logging.getLogger(__name__)

VISION_MODEL = "Gemini Pro Vision"

DIAGNOSIS_PROMPT = """
Analyze this image of a plant.
Is there a disease present?
If yes, what is the disease?
What is the confidence level (a number from 0-100)?
What is the recommended treatment plan?
Provide the answer in a clear format:
Disease: [Name of Disease]
Confidence: [Confidence Level]%
Severity: [Severity Level]
Treatment: [Detailed Treatment Plan]
"""

_DISEASE = re.compile(r"Disease: (.+)")
_CONFIDENCE = re.compile(r"Confidence: (\d+)")
_SEVERITY = re.compile(r"Severity: (.+)")
_TREATMENT = re.compile(r"Treatment: (.+)")


@dataclass
class ModelScore:
    name: str
    confidence: int


@dataclass
class DiagnosisView:
    disease: str
    confidence: int
    severity: str
    treatment: str
    models: List[ModelScore] = field(default_factory=list)
    complete: bool = False  # all four fields were present in the reply

    def to_dict(self) -> Dict:
        return asdict(self)


def analyzing_placeholder() -> DiagnosisView:
    """Shown while the vision model is working."""
    return DiagnosisView(
        disease="Analyzing...",
        confidence=0,
        severity="...",
        treatment="Please wait, AI is analyzing the image.",
        models=[ModelScore(name=VISION_MODEL, confidence=0)],
    )


def parse_diagnosis(text: str) -> DiagnosisView:
    """
    Pull the Disease / Confidence / Severity / Treatment lines out of a reply.

    Fields that are missing fall back to neutral placeholders; `complete`
    records whether every field was found.
    """
    disease = _DISEASE.search(text)
    confidence = _CONFIDENCE.search(text)
    severity = _SEVERITY.search(text)
    treatment = _TREATMENT.search(text)

    score = min(100, int(confidence.group(1))) if confidence else 0
    return DiagnosisView(
        disease=disease.group(1) if disease else "Unknown",
        confidence=score,
        severity=severity.group(1) if severity else "N/A",
        treatment=treatment.group(1) if treatment else "No specific treatment found.",
        models=[ModelScore(name=VISION_MODEL, confidence=score)],
        complete=all((disease, confidence, severity, treatment)),
    )


class DiagnosisState(str, Enum):
    IDLE = "idle"
    IMAGE_SELECTED = "image_selected"
    ANALYZING = "analyzing"
    RESULT = "result"


class DiagnosisStateError(Exception):
    """Raised when an action is not allowed in the current state."""


class DiagnosisSession:
    """One user's upload -> analyze -> result flow."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        self.state = DiagnosisState.IDLE
        self.image: Optional[bytes] = None
        self.mime_type: Optional[str] = None
        self.filename: Optional[str] = None
        self.result: Optional[DiagnosisView] = None
        self.raw_text: Optional[str] = None
        self.last_active: Optional[datetime.datetime] = None

    def select_image(self, image: bytes, mime_type: str, filename: Optional[str] = None):
        """Pick a new image; any previous analysis is dropped."""
        self.image = image
        self.mime_type = mime_type
        self.filename = filename
        self.result = None
        self.raw_text = None
        self.state = DiagnosisState.IMAGE_SELECTED

    async def analyze(self, api: APIService, prompt: str = DIAGNOSIS_PROMPT) -> DiagnosisView:
        if self.image is None:
            raise DiagnosisStateError("Select an image before analyzing")
        if self.state == DiagnosisState.ANALYZING:
            raise DiagnosisStateError("Analysis already running")

        previous = (self.state, self.result, self.raw_text)
        self.state = DiagnosisState.ANALYZING
        self.result = analyzing_placeholder()
        image = self.image

        try:
            text = await api.analyze_image(image, self.mime_type, prompt)
        except asyncio.CancelledError:
            if self.state == DiagnosisState.ANALYZING and self.image is image:
                self.state, self.result, self.raw_text = previous
            logger.info(f"Diagnosis {self.session_id}: analysis cancelled")
            raise

        if self.state != DiagnosisState.ANALYZING or self.image is not image:
            # cleared or replaced while the request was out
            logger.info(f"Diagnosis {self.session_id}: discarding stale result")
            return parse_diagnosis(text)

        self.raw_text = text
        self.result = parse_diagnosis(text)
        self.state = DiagnosisState.RESULT
        return self.result

    def clear(self):
        """Clear & Retry: back to Idle from any state."""
        self.state = DiagnosisState.IDLE
        self.image = None
        self.mime_type = None
        self.filename = None
        self.result = None
        self.raw_text = None

    def to_dict(self) -> Dict:
        return {
            "session_id": self.session_id,
            "state": self.state.value,
            "filename": self.filename,
            "result": self.result.to_dict() if self.result else None,
            "raw_text": self.raw_text,
        }


class DiagnosisSessionStore(SessionStore[DiagnosisSession]):
    """In-memory diagnosis flows keyed by session id."""

    def _create(self, session_id: str) -> DiagnosisSession:
        return DiagnosisSession(session_id)
