"""MRZ parsing endpoint."""

from __future__ import annotations

import time

from fastapi import APIRouter

from ..schemas import MrzRequest, MrzResponse
from ..services.mrz_parser import parse_mrz
from ..services.validators import validate_mrz_fields
from ..telemetry import get_tracer
from .shared import build_mrz_data_response


def get_router() -> APIRouter:
    router = APIRouter()

    @router.post("/mrz", response_model=MrzResponse)
    async def parse_mrz_endpoint(request: MrzRequest):
        tracer = get_tracer(__name__)
        start_time = time.time()
        with tracer.start_as_current_span("capture.parse_mrz") as span:
            span.set_attribute("mrz.text_length", len(request.text))
            data = parse_mrz(request.text)

            if data is None:
                span.set_attribute("mrz.found", False)
                return MrzResponse(
                    found=False,
                    processing_time_ms=int((time.time() - start_time) * 1000),
                )

            span.set_attribute("mrz.found", True)
            span.set_attribute("mrz.format", data.format.value)
            span.set_attribute("mrz.checksum_error_count", len(data.validation_errors))

            return MrzResponse(
                found=True,
                mrz=build_mrz_data_response(data),
                validation_issues=validate_mrz_fields(data),
                processing_time_ms=int((time.time() - start_time) * 1000),
            )

    return router
