"""Liveness challenge session endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Response
from starlette import status

from ..schemas import (
    CreateSessionRequest,
    DetectionResponse,
    ObservationRequest,
    ObservationResponse,
    SessionResponse,
)
from ..services.sessions import SessionRegistry, generate_challenges
from .shared import build_session_response, build_state_response, to_face_observation


def get_router(registry: SessionRegistry) -> APIRouter:
    router = APIRouter(prefix="/liveness/sessions")

    @router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
    async def create_session_endpoint(request: CreateSessionRequest):
        challenge_types = request.challenges or generate_challenges(
            num_challenges=request.num_challenges,
            exclude=request.exclude_challenges,
            require_head_turn=request.require_head_turn,
        )
        orchestrator = registry.create(challenge_types, ttl_seconds=request.ttl_seconds)
        return build_session_response(orchestrator)

    @router.get("/{session_id}", response_model=SessionResponse)
    async def get_session_endpoint(session_id: str):
        return build_session_response(registry.get(session_id))

    @router.post("/{session_id}/observations", response_model=ObservationResponse)
    async def submit_observation_endpoint(session_id: str, request: ObservationRequest):
        orchestrator = registry.get(session_id)
        detection = orchestrator.process_observation(to_face_observation(request.face))

        return ObservationResponse(
            accepted=detection is not None,
            detection=(
                DetectionResponse(
                    progress=detection.progress,
                    completed=detection.completed,
                    confidence=detection.confidence,
                    detected=detection.detected,
                )
                if detection
                else None
            ),
            state=build_state_response(orchestrator.state),
        )

    @router.post("/{session_id}/fail", response_model=SessionResponse)
    async def fail_challenge_endpoint(session_id: str):
        orchestrator = registry.get(session_id)
        orchestrator.fail_challenge()
        return build_session_response(orchestrator)

    @router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_session_endpoint(session_id: str):
        registry.remove(session_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return router
