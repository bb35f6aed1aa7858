"""Document and selfie capture quality endpoints."""

from __future__ import annotations

import time

from fastapi import APIRouter, HTTPException

from ..schemas import ImageRequest, QualityResponse, SelfieRequest
from ..services.images import decode_base64_image
from ..services.quality import QualityValidator
from ..telemetry import get_tracer
from .shared import build_quality_response, to_face_detection_info


def get_router(validator: QualityValidator) -> APIRouter:
    router = APIRouter(prefix="/quality")

    @router.post("/document", response_model=QualityResponse)
    async def document_quality_endpoint(request: ImageRequest):
        if not request.image:
            raise HTTPException(status_code=400, detail="Image is required")

        tracer = get_tracer(__name__)
        start_time = time.time()
        with tracer.start_as_current_span("capture.document_quality") as span:
            pixels = decode_base64_image(request.image)
            span.set_attribute("image.width", int(pixels.shape[1]))
            span.set_attribute("image.height", int(pixels.shape[0]))

            result = validator.validate_document_image(pixels)
            del pixels

            span.set_attribute("quality.is_valid", result.is_valid)
            span.set_attribute("quality.issue_count", len(result.issues))
            return build_quality_response(result, int((time.time() - start_time) * 1000))

    @router.post("/selfie", response_model=QualityResponse)
    async def selfie_quality_endpoint(request: SelfieRequest):
        if not request.image:
            raise HTTPException(status_code=400, detail="Image is required")

        tracer = get_tracer(__name__)
        start_time = time.time()
        with tracer.start_as_current_span("capture.selfie_quality") as span:
            pixels = decode_base64_image(request.image)
            span.set_attribute("image.width", int(pixels.shape[1]))
            span.set_attribute("image.height", int(pixels.shape[0]))
            span.set_attribute("quality.face_supplied", request.face is not None)

            result = validator.validate_selfie_image(pixels, to_face_detection_info(request.face))
            del pixels

            span.set_attribute("quality.is_valid", result.is_valid)
            span.set_attribute("quality.issue_count", len(result.issues))
            return build_quality_response(result, int((time.time() - start_time) * 1000))

    return router
