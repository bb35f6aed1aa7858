"""API request/response schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

from .services.challenge_detector import ChallengeType
from .services.sessions import MAX_CHALLENGES, MIN_CHALLENGES


def _to_camel(string: str) -> str:
    parts = string.split("_")
    return parts[0] + "".join(word.capitalize() for word in parts[1:])


class APIModel(BaseModel):
    model_config = ConfigDict(alias_generator=_to_camel, populate_by_name=True)


class HealthResponse(APIModel):
    status: str
    service: str
    version: str
    uptime_seconds: float


class BuildInfoResponse(APIModel):
    """Build information for deployment verification."""

    service: str
    version: str
    git_sha: str
    build_time: str


# =============================================================================
# MRZ
# =============================================================================


class MrzRequest(APIModel):
    text: str = Field(..., description="Raw OCR text, possibly multi-line")


class MrzDataResponse(APIModel):
    format: str = Field(..., description="TD1, TD2 or TD3")
    document_type: str
    issuing_country: str
    issuing_country_name: str | None = None
    last_name: str
    first_name: str
    document_number: str
    nationality: str
    nationality_name: str | None = None
    date_of_birth: str = Field(..., description="YYMMDD as printed")
    date_of_birth_iso: str | None = Field(None, description="YYYY-MM-DD")
    sex: str
    expiration_date: str = Field(..., description="YYMMDD as printed")
    expiration_date_iso: str | None = Field(None, description="YYYY-MM-DD")
    optional_data_1: str | None = None
    optional_data_2: str | None = None
    is_valid: bool = Field(..., description="True if every check digit matched")
    validation_errors: list[str]


class MrzResponse(APIModel):
    found: bool
    mrz: MrzDataResponse | None = None
    validation_issues: list[str] = Field(
        default_factory=list, description="Advisory field issues (e.g. document_expired)"
    )
    processing_time_ms: int


# =============================================================================
# Quality
# =============================================================================


class ImageRequest(APIModel):
    image: str = Field(..., description="Base64 encoded image")


class BoundingBoxModel(APIModel):
    left: float
    top: float
    right: float
    bottom: float


class FaceInfo(APIModel):
    bounding_box: BoundingBoxModel
    confidence: float = Field(..., ge=0, le=1)


class SelfieRequest(ImageRequest):
    face: FaceInfo | None = Field(None, description="Primary face from the face detector")


class QualityIssueResponse(APIModel):
    type: str
    message: str
    severity: str


class QualityMetricsResponse(APIModel):
    blur_score: float
    brightness: float
    glare_percentage: float
    face_size: float | None = None
    face_confidence: float | None = None


class QualityResponse(APIModel):
    is_valid: bool
    issues: list[QualityIssueResponse]
    metrics: QualityMetricsResponse
    processing_time_ms: int


# =============================================================================
# Liveness
# =============================================================================


class CreateSessionRequest(APIModel):
    challenges: list[ChallengeType] | None = Field(
        None, description="Explicit challenge order; random when omitted"
    )
    num_challenges: int = Field(2, ge=MIN_CHALLENGES, le=MAX_CHALLENGES)
    exclude_challenges: list[ChallengeType] | None = None
    require_head_turn: bool = False
    ttl_seconds: int | None = Field(None, gt=0)


class ChallengeInfo(APIModel):
    id: str
    type: ChallengeType
    instruction: str
    order: int


class ChallengeResultResponse(APIModel):
    challenge: ChallengeInfo
    passed: bool
    confidence: float


class LivenessResultResponse(APIModel):
    passed: bool
    challenges: list[ChallengeResultResponse]
    session_id: str


class LivenessStateResponse(APIModel):
    status: str = Field(
        ..., description="idle, in_progress, challenge_complete, complete or error"
    )
    challenge: ChallengeInfo | None = None
    progress: float | None = None
    passed: bool | None = None
    result: LivenessResultResponse | None = None
    message: str | None = None


class SessionResponse(APIModel):
    session_id: str
    challenges: list[ChallengeInfo]
    expires_at: datetime
    state: LivenessStateResponse


class FaceObservationModel(APIModel):
    left_eye_open_probability: float | None = Field(None, ge=0, le=1)
    right_eye_open_probability: float | None = Field(None, ge=0, le=1)
    smiling_probability: float | None = Field(None, ge=0, le=1)
    head_yaw: float | None = Field(None, description="Degrees")
    head_pitch: float | None = Field(None, description="Degrees")
    tracking_id: int | None = None


class ObservationRequest(APIModel):
    face: FaceObservationModel | None = Field(
        None, description="Landmark observation for the frame; null when no face was found"
    )


class DetectionResponse(APIModel):
    progress: float
    completed: bool
    confidence: float
    detected: bool


class ObservationResponse(APIModel):
    accepted: bool = Field(..., description="False when the frame was dropped or had no face")
    detection: DetectionResponse | None = None
    state: LivenessStateResponse
