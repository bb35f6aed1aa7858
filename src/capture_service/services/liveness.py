"""
Liveness session orchestration.

Runs a sequence of challenges against a stream of camera frames:

    Idle -> InProgress(challenge, progress) -> ChallengeComplete(challenge, passed)
         -> next challenge ... -> Complete(result)

with Error(message) reachable when a session cannot run. The session
passes only if every challenge passed.

Frames are handled one at a time. While a landmark detection is in flight,
new frames are dropped rather than queued. Each in-flight frame holds a
FrameTicket stamped with the session generation; start() and stop() bump
the generation so a detection finishing after them is discarded.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Protocol, Union

from ..core.exceptions import LivenessStateError
from .challenge_detector import (
    ChallengeDetectionResult,
    ChallengeDetector,
    ChallengeType,
    FaceObservation,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Session Models
# =============================================================================


@dataclass(frozen=True)
class LivenessChallenge:
    id: str
    type: ChallengeType
    instruction: str
    order: int


@dataclass(frozen=True)
class LivenessSession:
    session_id: str
    challenges: tuple[LivenessChallenge, ...]
    expires_at: datetime

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or datetime.now(UTC)) >= self.expires_at


@dataclass(frozen=True)
class ChallengeResultItem:
    challenge: LivenessChallenge
    passed: bool
    confidence: float


@dataclass(frozen=True)
class LivenessResult:
    passed: bool
    challenges: tuple[ChallengeResultItem, ...]
    session_id: str


# =============================================================================
# States
# =============================================================================


@dataclass(frozen=True)
class Idle:
    name = "idle"


@dataclass(frozen=True)
class InProgress:
    challenge: LivenessChallenge
    progress: float
    name = "in_progress"


@dataclass(frozen=True)
class ChallengeComplete:
    challenge: LivenessChallenge
    passed: bool
    name = "challenge_complete"


@dataclass(frozen=True)
class Complete:
    result: LivenessResult
    name = "complete"


@dataclass(frozen=True)
class Error:
    message: str
    name = "error"


LivenessState = Union[Idle, InProgress, ChallengeComplete, Complete, Error]

StateListener = Callable[[LivenessState], None]


@dataclass(frozen=True)
class FrameTicket:
    """Permission to run detection for one frame of one challenge."""

    generation: int
    challenge: LivenessChallenge


class LandmarkDetector(Protocol):
    """External face-landmark engine."""

    async def detect(self, frame: Any) -> FaceObservation | None:
        """Return the primary face in the frame, or None when no face is found."""
        ...


# =============================================================================
# Orchestrator
# =============================================================================


class LivenessOrchestrator:
    """
    Drives one liveness session at a time.

    State changes happen under a lock and are pushed to subscribers in the
    order they occur, once the whole transition has been applied. A listener
    that raises is logged and skipped.
    """

    def __init__(
        self,
        landmark_detector: LandmarkDetector | None = None,
        challenge_detector: ChallengeDetector | None = None,
    ):
        self._landmark_detector = landmark_detector
        self._detector = challenge_detector or ChallengeDetector()
        self._lock = threading.RLock()
        self._listeners: list[StateListener] = []
        self._pending: list[LivenessState] = []

        self._state: LivenessState = Idle()
        self._session: LivenessSession | None = None
        self._index = 0
        self._results: list[ChallengeResultItem] = []
        self._in_flight = False
        self._generation = 0

    # -- observation -----------------------------------------------------------

    @property
    def state(self) -> LivenessState:
        return self._state

    @property
    def session(self) -> LivenessSession | None:
        return self._session

    @property
    def is_processing(self) -> bool:
        return self._in_flight

    @property
    def results(self) -> tuple[ChallengeResultItem, ...]:
        with self._lock:
            return tuple(self._results)

    @property
    def current_challenge(self) -> LivenessChallenge | None:
        session = self._session
        if session is None or self._index >= len(session.challenges):
            return None
        return session.challenges[self._index]

    @property
    def result(self) -> LivenessResult | None:
        state = self._state
        return state.result if isinstance(state, Complete) else None

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """
        Register a state listener.

        The listener is called with the current state right away and then
        with every transition. Returns a function that unsubscribes it.
        """
        with self._lock:
            self._listeners.append(listener)
            self._call_listener(listener, self._state)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _set_state(self, state: LivenessState) -> None:
        self._state = state
        self._pending.append(state)

    def _notify(self) -> None:
        while self._pending:
            state = self._pending.pop(0)
            for listener in list(self._listeners):
                self._call_listener(listener, state)

    @staticmethod
    def _call_listener(listener: StateListener, state: LivenessState) -> None:
        try:
            listener(state)
        except Exception:
            logger.warning("Liveness state listener failed on %s", state.name, exc_info=True)

    # -- lifecycle -------------------------------------------------------------

    def start(self, session: LivenessSession) -> None:
        """Begin a session from its first challenge, discarding any previous one."""
        with self._lock:
            self._generation += 1
            self._session = session
            self._index = 0
            self._results = []
            self._in_flight = False
            self._detector.reset()

            if not session.challenges:
                logger.warning("Liveness session %s has no challenges", session.session_id)
                self._set_state(Error("Liveness session has no challenges"))
            else:
                logger.info(
                    "Liveness session %s started with %d challenge(s)",
                    session.session_id,
                    len(session.challenges),
                )
                self._start_next_challenge()
            self._notify()

    def stop(self) -> None:
        """Discard the session. Safe to call at any time."""
        with self._lock:
            self._generation += 1
            self._session = None
            self._index = 0
            self._results = []
            self._in_flight = False
            self._detector.reset()
            self._set_state(Idle())
            self._notify()

    # -- frames ----------------------------------------------------------------

    def begin_frame(self) -> FrameTicket | None:
        """
        Claim the single in-flight slot for a new frame.

        Returns None, meaning the frame should be dropped, when a detection
        is already outstanding or no challenge is active.
        """
        with self._lock:
            challenge = self.current_challenge
            if self._in_flight or challenge is None or not isinstance(self._state, InProgress):
                return None
            self._in_flight = True
            return FrameTicket(generation=self._generation, challenge=challenge)

    def abort_frame(self, ticket: FrameTicket) -> None:
        """Release the in-flight slot without applying a detection."""
        with self._lock:
            if ticket.generation == self._generation:
                self._in_flight = False

    def complete_frame(
        self,
        ticket: FrameTicket,
        observation: FaceObservation | None,
    ) -> ChallengeDetectionResult | None:
        """
        Apply the detection for a ticketed frame.

        Stale tickets (the session was stopped or restarted) are ignored, as
        are frames without a face and frames for a challenge that has since
        been failed by the caller.
        """
        with self._lock:
            if ticket.generation != self._generation:
                logger.debug("Discarding detection for a previous session")
                return None

            self._in_flight = False

            if observation is None:
                return None
            if ticket.challenge != self.current_challenge or not isinstance(self._state, InProgress):
                return None

            challenge = ticket.challenge
            detection = self._detector.process(observation, challenge.type)
            self._set_state(InProgress(challenge, detection.progress))

            if detection.completed:
                self._record_result(challenge, passed=True, confidence=detection.confidence)
            self._notify()

            return detection

    def process_observation(self, observation: FaceObservation | None) -> ChallengeDetectionResult | None:
        """Feed an already-detected observation through the in-flight guard."""
        ticket = self.begin_frame()
        if ticket is None:
            return None
        return self.complete_frame(ticket, observation)

    async def process_frame(self, frame: Any) -> ChallengeDetectionResult | None:
        """
        Run landmark detection on a frame and advance the session.

        Returns None when the frame was dropped, no face was found, or the
        result arrived after the session changed.
        """
        if self._landmark_detector is None:
            raise LivenessStateError("No landmark detector configured", self._state.name)

        ticket = self.begin_frame()
        if ticket is None:
            return None

        try:
            observation = await self._landmark_detector.detect(frame)
        except Exception:
            logger.warning("Landmark detection failed, frame dropped", exc_info=True)
            self.abort_frame(ticket)
            return None
        except BaseException:
            self.abort_frame(ticket)
            raise

        return self.complete_frame(ticket, observation)

    # -- challenge results -----------------------------------------------------

    def fail_challenge(self) -> None:
        """
        Record the current challenge as failed and move on.

        Used by callers that give up on a challenge, e.g. after a timeout.
        """
        with self._lock:
            challenge = self.current_challenge
            if challenge is None or not isinstance(self._state, InProgress):
                raise LivenessStateError("No challenge in progress", self._state.name)
            self._record_result(challenge, passed=False, confidence=0.0)
            self._notify()

    def _record_result(self, challenge: LivenessChallenge, passed: bool, confidence: float) -> None:
        self._results.append(
            ChallengeResultItem(challenge=challenge, passed=passed, confidence=confidence)
        )
        logger.info(
            "Challenge %d (%s) %s",
            challenge.order,
            challenge.type.value,
            "passed" if passed else "failed",
        )
        self._set_state(ChallengeComplete(challenge, passed))
        self._index += 1
        self._start_next_challenge()

    def _start_next_challenge(self) -> None:
        challenge = self.current_challenge
        if challenge is None:
            self._complete_session()
            return

        self._detector.start(challenge.type)
        self._set_state(InProgress(challenge, 0.0))

    def _complete_session(self) -> None:
        session = self._session
        if session is None:
            raise LivenessStateError("Session completed without an active session")

        result = LivenessResult(
            passed=all(item.passed for item in self._results),
            challenges=tuple(self._results),
            session_id=session.session_id,
        )
        logger.info(
            "Liveness session %s complete: %s",
            session.session_id,
            "passed" if result.passed else "failed",
        )
        self._set_state(Complete(result))
