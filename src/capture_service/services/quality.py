"""
Capture quality validation for document and selfie images.

Applies configurable thresholds to the image metrics and, for selfies, to
an externally detected face. Every check runs; issues are collected in a
fixed order and an image is valid when no ERROR-severity issue is present.
WARNING issues are advisory only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .image_metrics import (
    as_pixel_array,
    calculate_blur_score,
    calculate_brightness,
    calculate_glare_percentage,
)

# Maximum normalized distance of the face center from the image center.
MAX_FACE_CENTER_OFFSET = 0.2


class QualityIssueType(str, Enum):
    BLUR = "blur"
    TOO_DARK = "too_dark"
    TOO_BRIGHT = "too_bright"
    GLARE = "glare"
    FACE_NOT_DETECTED = "face_not_detected"
    FACE_TOO_SMALL = "face_too_small"
    FACE_OFF_CENTER = "face_off_center"


class QualityIssueSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class QualityIssue:
    type: QualityIssueType
    message: str
    severity: QualityIssueSeverity


@dataclass(frozen=True)
class QualityMetrics:
    blur_score: float
    brightness: float
    glare_percentage: float
    face_size: float | None = None
    face_confidence: float | None = None


@dataclass(frozen=True)
class QualityValidationResult:
    is_valid: bool
    issues: list[QualityIssue]
    metrics: QualityMetrics

    @property
    def errors(self) -> list[QualityIssue]:
        return [i for i in self.issues if i.severity == QualityIssueSeverity.ERROR]


@dataclass(frozen=True)
class QualityThresholds:
    min_blur_score: float = 100.0
    min_brightness: float = 0.3
    max_brightness: float = 0.85
    max_glare_percentage: float = 0.05
    min_face_size_percentage: float = 0.2
    min_face_confidence: float = 0.7


@dataclass(frozen=True)
class BoundingBox:
    """Face box in pixel coordinates."""

    left: float
    top: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    @property
    def center_x(self) -> float:
        return (self.left + self.right) / 2

    @property
    def center_y(self) -> float:
        return (self.top + self.bottom) / 2


@dataclass(frozen=True)
class FaceDetectionInfo:
    """Face detector output consumed by selfie validation."""

    bounding_box: BoundingBox
    confidence: float


# Issue messages shown to the person capturing.
_BLUR = QualityIssue(
    QualityIssueType.BLUR,
    "Image is too blurry. Hold the device steady.",
    QualityIssueSeverity.ERROR,
)
_TOO_DARK = QualityIssue(
    QualityIssueType.TOO_DARK,
    "Image is too dark. Move to a brighter area.",
    QualityIssueSeverity.ERROR,
)
_TOO_BRIGHT = QualityIssue(
    QualityIssueType.TOO_BRIGHT,
    "Image is too bright. Reduce lighting.",
    QualityIssueSeverity.WARNING,
)
_GLARE = QualityIssue(
    QualityIssueType.GLARE,
    "Glare detected. Adjust angle to reduce reflections.",
    QualityIssueSeverity.WARNING,
)
_FACE_NOT_DETECTED = QualityIssue(
    QualityIssueType.FACE_NOT_DETECTED,
    "Face not detected. Position your face in the frame.",
    QualityIssueSeverity.ERROR,
)
_FACE_LOW_CONFIDENCE = QualityIssue(
    QualityIssueType.FACE_NOT_DETECTED,
    "Face not clearly visible. Ensure good lighting.",
    QualityIssueSeverity.WARNING,
)
_FACE_TOO_SMALL = QualityIssue(
    QualityIssueType.FACE_TOO_SMALL,
    "Face is too small. Move closer to the camera.",
    QualityIssueSeverity.ERROR,
)
_FACE_OFF_CENTER = QualityIssue(
    QualityIssueType.FACE_OFF_CENTER,
    "Center your face in the frame.",
    QualityIssueSeverity.WARNING,
)


@dataclass
class QualityValidator:
    thresholds: QualityThresholds = field(default_factory=QualityThresholds)

    def _exposure_issues(self, blur_score: float, brightness: float) -> list[QualityIssue]:
        issues = []
        if blur_score < self.thresholds.min_blur_score:
            issues.append(_BLUR)
        if brightness < self.thresholds.min_brightness:
            issues.append(_TOO_DARK)
        elif brightness > self.thresholds.max_brightness:
            issues.append(_TOO_BRIGHT)
        return issues

    def validate_document_image(self, pixels) -> QualityValidationResult:
        """Check blur, exposure and glare of a document capture."""
        pixels = as_pixel_array(pixels)

        blur_score = calculate_blur_score(pixels)
        brightness = calculate_brightness(pixels)
        glare_percentage = calculate_glare_percentage(pixels)

        issues = self._exposure_issues(blur_score, brightness)
        if glare_percentage > self.thresholds.max_glare_percentage:
            issues.append(_GLARE)

        return _result(
            issues,
            QualityMetrics(
                blur_score=blur_score,
                brightness=brightness,
                glare_percentage=glare_percentage,
            ),
        )

    def validate_selfie_image(
        self,
        pixels,
        face: FaceDetectionInfo | None = None,
    ) -> QualityValidationResult:
        """
        Check a selfie capture and the face found in it.

        Args:
            pixels: RGB buffer of shape (height, width, 3)
            face: primary face from the face detector, or None if no face was found

        Returns:
            QualityValidationResult with face_size (face area / image area)
            and face_confidence filled in when a face was supplied
        """
        pixels = as_pixel_array(pixels)
        height, width = pixels.shape[:2]

        blur_score = calculate_blur_score(pixels)
        brightness = calculate_brightness(pixels)
        issues = self._exposure_issues(blur_score, brightness)

        face_size = None
        face_confidence = None

        if face is None:
            issues.append(_FACE_NOT_DETECTED)
        else:
            face_confidence = float(face.confidence)
            if face_confidence < self.thresholds.min_face_confidence:
                issues.append(_FACE_LOW_CONFIDENCE)

            image_area = width * height
            box = face.bounding_box
            face_size = (box.width * box.height) / image_area if image_area else 0.0
            if face_size < self.thresholds.min_face_size_percentage:
                issues.append(_FACE_TOO_SMALL)

            if image_area:
                offset_x = abs(box.center_x / width - 0.5)
                offset_y = abs(box.center_y / height - 0.5)
                if offset_x > MAX_FACE_CENTER_OFFSET or offset_y > MAX_FACE_CENTER_OFFSET:
                    issues.append(_FACE_OFF_CENTER)

        return _result(
            issues,
            QualityMetrics(
                blur_score=blur_score,
                brightness=brightness,
                glare_percentage=calculate_glare_percentage(pixels),
                face_size=face_size,
                face_confidence=face_confidence,
            ),
        )


def _result(issues: list[QualityIssue], metrics: QualityMetrics) -> QualityValidationResult:
    has_errors = any(issue.severity == QualityIssueSeverity.ERROR for issue in issues)
    return QualityValidationResult(is_valid=not has_errors, issues=issues, metrics=metrics)
