"""Shared API helpers for response mapping."""

from __future__ import annotations

from ..core.exceptions import LivenessStateError
from ..schemas import (
    ChallengeInfo,
    ChallengeResultResponse,
    FaceInfo,
    FaceObservationModel,
    LivenessResultResponse,
    LivenessStateResponse,
    MrzDataResponse,
    QualityIssueResponse,
    QualityMetricsResponse,
    QualityResponse,
    SessionResponse,
)
from ..services.challenge_detector import FaceObservation
from ..services.liveness import (
    ChallengeComplete,
    Complete,
    Error,
    Idle,
    InProgress,
    LivenessChallenge,
    LivenessOrchestrator,
    LivenessResult,
    LivenessState,
)
from ..services.mrz_parser import MrzData, format_date, get_country_name
from ..services.quality import BoundingBox, FaceDetectionInfo, QualityValidationResult


def build_mrz_data_response(data: MrzData) -> MrzDataResponse:
    return MrzDataResponse(
        format=data.format.value,
        document_type=data.document_type,
        issuing_country=data.issuing_country,
        issuing_country_name=get_country_name(data.issuing_country),
        last_name=data.last_name,
        first_name=data.first_name,
        document_number=data.document_number,
        nationality=data.nationality,
        nationality_name=get_country_name(data.nationality),
        date_of_birth=data.date_of_birth,
        date_of_birth_iso=format_date(data.date_of_birth),
        sex=data.sex,
        expiration_date=data.expiration_date,
        expiration_date_iso=format_date(data.expiration_date),
        optional_data_1=data.optional_data_1,
        optional_data_2=data.optional_data_2,
        is_valid=data.is_valid,
        validation_errors=list(data.validation_errors),
    )


def build_quality_response(
    result: QualityValidationResult, processing_time_ms: int
) -> QualityResponse:
    metrics = result.metrics
    return QualityResponse(
        is_valid=result.is_valid,
        issues=[
            QualityIssueResponse(
                type=issue.type.value,
                message=issue.message,
                severity=issue.severity.value,
            )
            for issue in result.issues
        ],
        metrics=QualityMetricsResponse(
            blur_score=round(metrics.blur_score, 3),
            brightness=round(metrics.brightness, 4),
            glare_percentage=round(metrics.glare_percentage, 4),
            face_size=metrics.face_size,
            face_confidence=metrics.face_confidence,
        ),
        processing_time_ms=processing_time_ms,
    )


def to_face_detection_info(face: FaceInfo | None) -> FaceDetectionInfo | None:
    if face is None:
        return None
    box = face.bounding_box
    return FaceDetectionInfo(
        bounding_box=BoundingBox(left=box.left, top=box.top, right=box.right, bottom=box.bottom),
        confidence=face.confidence,
    )


def to_face_observation(face: FaceObservationModel | None) -> FaceObservation | None:
    if face is None:
        return None
    return FaceObservation(
        left_eye_open_probability=face.left_eye_open_probability,
        right_eye_open_probability=face.right_eye_open_probability,
        smiling_probability=face.smiling_probability,
        head_yaw=face.head_yaw,
        head_pitch=face.head_pitch,
        tracking_id=face.tracking_id,
    )


def build_challenge_info(challenge: LivenessChallenge) -> ChallengeInfo:
    return ChallengeInfo(
        id=challenge.id,
        type=challenge.type,
        instruction=challenge.instruction,
        order=challenge.order,
    )


def build_result_response(result: LivenessResult) -> LivenessResultResponse:
    return LivenessResultResponse(
        passed=result.passed,
        challenges=[
            ChallengeResultResponse(
                challenge=build_challenge_info(item.challenge),
                passed=item.passed,
                confidence=item.confidence,
            )
            for item in result.challenges
        ],
        session_id=result.session_id,
    )


def build_state_response(state: LivenessState) -> LivenessStateResponse:
    if isinstance(state, Idle):
        return LivenessStateResponse(status=state.name)
    if isinstance(state, InProgress):
        return LivenessStateResponse(
            status=state.name,
            challenge=build_challenge_info(state.challenge),
            progress=state.progress,
        )
    if isinstance(state, ChallengeComplete):
        return LivenessStateResponse(
            status=state.name,
            challenge=build_challenge_info(state.challenge),
            passed=state.passed,
        )
    if isinstance(state, Complete):
        return LivenessStateResponse(
            status=state.name,
            passed=state.result.passed,
            result=build_result_response(state.result),
        )
    if isinstance(state, Error):
        return LivenessStateResponse(status=state.name, message=state.message)
    raise LivenessStateError(f"Unknown liveness state: {state!r}")


def build_session_response(orchestrator: LivenessOrchestrator) -> SessionResponse:
    session = orchestrator.session
    if session is None:
        raise LivenessStateError("Session is no longer active", orchestrator.state.name)
    return SessionResponse(
        session_id=session.session_id,
        challenges=[build_challenge_info(c) for c in session.challenges],
        expires_at=session.expires_at,
        state=build_state_response(orchestrator.state),
    )
