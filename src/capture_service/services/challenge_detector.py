"""
Per-frame gesture detection for liveness challenges.

Consumes one face-landmark observation at a time and decides whether the
gesture of the active challenge is present in that frame:

- blink: eye-open probability state machine (open -> closing -> closed -> opening -> open)
- smile: smiling probability above threshold
- turn_left / turn_right: yaw change from the first frame of the challenge
- nod_up / nod_down: pitch change from the first frame of the challenge

A challenge completes once the last five frames are all positive. All
per-challenge state lives in a DetectorState that reset() replaces.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from enum import Enum

# Thresholds
BLINK_CLOSED_THRESHOLD = 0.3  # Average eye-open probability below this = closed
BLINK_REOPEN_THRESHOLD = 0.5  # Must exceed this to finish the blink
SMILE_THRESHOLD = 0.6
TURN_THRESHOLD_DEGREES = 20.0
NOD_THRESHOLD_DEGREES = 10.0

REQUIRED_CONSECUTIVE_DETECTIONS = 5
HISTORY_SIZE = REQUIRED_CONSECUTIVE_DETECTIONS * 2

# Coarse confidence: tracked faces are more trustworthy than untracked ones.
TRACKED_CONFIDENCE = 0.9
UNTRACKED_CONFIDENCE = 0.7


class ChallengeType(str, Enum):
    """Available challenge types for liveness verification."""

    BLINK = "blink"
    SMILE = "smile"
    TURN_LEFT = "turn_left"
    TURN_RIGHT = "turn_right"
    NOD_UP = "nod_up"
    NOD_DOWN = "nod_down"


class BlinkPhase(str, Enum):
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"
    OPENING = "opening"


@dataclass(frozen=True)
class FaceObservation:
    """
    One frame of face-landmark detector output.

    Probabilities are 0-1, angles are in degrees. Any field may be missing;
    a frame missing what the active challenge needs counts as not detected.
    """

    left_eye_open_probability: float | None = None
    right_eye_open_probability: float | None = None
    smiling_probability: float | None = None
    head_yaw: float | None = None
    head_pitch: float | None = None
    tracking_id: int | None = None


@dataclass(frozen=True)
class ChallengeDetectionResult:
    progress: float
    completed: bool
    confidence: float
    detected: bool = False


@dataclass
class DetectorState:
    """Mutable detection state for exactly one challenge attempt."""

    challenge_type: ChallengeType | None = None
    frame_count: int = 0
    baseline_yaw: float | None = None
    baseline_pitch: float | None = None
    blink_phase: BlinkPhase = BlinkPhase.OPEN
    blink_count: int = 0
    history: deque = field(default_factory=lambda: deque(maxlen=HISTORY_SIZE))
    progress: float = 0.0


class ChallengeDetector:
    """
    Stateful gesture detector.

    One instance serves a whole liveness session; start() or reset() must be
    called whenever a new challenge begins so no state carries over.
    """

    def __init__(self):
        self.state = DetectorState()

    def reset(self) -> None:
        """Drop all per-challenge state."""
        self.state = DetectorState()

    def start(self, challenge_type: ChallengeType) -> None:
        """Reset and begin detecting a specific challenge type."""
        self.state = DetectorState(challenge_type=challenge_type)

    def process(
        self,
        observation: FaceObservation,
        challenge_type: ChallengeType,
    ) -> ChallengeDetectionResult:
        """
        Process one observation for the given challenge type.

        Returns progress over the last five frames and whether the challenge
        is complete. ``detected`` is this frame's own verdict.
        """
        state = self.state
        state.frame_count += 1

        if challenge_type == ChallengeType.BLINK:
            detected = self._detect_blink(observation)
            # A finished blink keeps counting while the session continues.
            positive = state.blink_count > 0
        else:
            if challenge_type == ChallengeType.SMILE:
                detected = self._detect_smile(observation)
            elif challenge_type in (ChallengeType.TURN_LEFT, ChallengeType.TURN_RIGHT):
                detected = self._detect_turn(observation, left=challenge_type == ChallengeType.TURN_LEFT)
            elif challenge_type in (ChallengeType.NOD_UP, ChallengeType.NOD_DOWN):
                detected = self._detect_nod(observation, up=challenge_type == ChallengeType.NOD_UP)
            else:
                raise ValueError(f"Unsupported challenge type: {challenge_type!r}")
            positive = detected

        state.history.append(positive)

        recent = list(state.history)[-REQUIRED_CONSECUTIVE_DETECTIONS:]
        positive_count = sum(1 for entry in recent if entry)
        progress = min(1.0, max(0.0, positive_count / REQUIRED_CONSECUTIVE_DETECTIONS))
        state.progress = progress

        return ChallengeDetectionResult(
            progress=progress,
            completed=positive_count >= REQUIRED_CONSECUTIVE_DETECTIONS,
            confidence=(
                TRACKED_CONFIDENCE if observation.tracking_id is not None else UNTRACKED_CONFIDENCE
            ),
            detected=detected,
        )

    def _detect_blink(self, observation: FaceObservation) -> bool:
        """
        Advance the blink state machine.

        True only on the frame where the eyes re-open and the cycle
        completes; the machine is back in OPEN for the next blink.
        """
        left = observation.left_eye_open_probability
        right = observation.right_eye_open_probability
        if left is None or right is None:
            return False

        state = self.state
        eye_open = (left + right) / 2

        if state.blink_phase == BlinkPhase.OPEN:
            if eye_open < BLINK_CLOSED_THRESHOLD:
                state.blink_phase = BlinkPhase.CLOSING
        elif state.blink_phase == BlinkPhase.CLOSING:
            if eye_open < BLINK_CLOSED_THRESHOLD:
                state.blink_phase = BlinkPhase.CLOSED
            else:
                state.blink_phase = BlinkPhase.OPEN
        elif state.blink_phase == BlinkPhase.CLOSED:
            if eye_open > BLINK_CLOSED_THRESHOLD:
                state.blink_phase = BlinkPhase.OPENING
        elif state.blink_phase == BlinkPhase.OPENING:
            if eye_open > BLINK_REOPEN_THRESHOLD:
                state.blink_phase = BlinkPhase.OPEN
                state.blink_count += 1
                return True

        return False

    def _detect_smile(self, observation: FaceObservation) -> bool:
        if observation.smiling_probability is None:
            return False
        return observation.smiling_probability > SMILE_THRESHOLD

    def _detect_turn(self, observation: FaceObservation, left: bool) -> bool:
        yaw = observation.head_yaw
        if yaw is None:
            return False

        if self.state.baseline_yaw is None:
            self.state.baseline_yaw = yaw
            return False

        delta = yaw - self.state.baseline_yaw
        return delta > TURN_THRESHOLD_DEGREES if left else delta < -TURN_THRESHOLD_DEGREES

    def _detect_nod(self, observation: FaceObservation, up: bool) -> bool:
        pitch = observation.head_pitch
        if pitch is None:
            return False

        if self.state.baseline_pitch is None:
            self.state.baseline_pitch = pitch
            return False

        delta = pitch - self.state.baseline_pitch
        return delta > NOD_THRESHOLD_DEGREES if up else delta < -NOD_THRESHOLD_DEGREES
