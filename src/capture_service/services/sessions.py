"""
Liveness session creation and in-memory registry.

A session is a random sequence of distinct challenges with an expiry. The
registry keeps one orchestrator per session so observations posted by a
client are applied to the right state machine. Expired sessions are swept
whenever a new one is created.
"""

from __future__ import annotations

import logging
import random
import secrets
import threading
from datetime import UTC, datetime, timedelta

from ..core.exceptions import SessionNotFoundError
from .challenge_detector import ChallengeType
from .liveness import LivenessChallenge, LivenessOrchestrator, LivenessSession

logger = logging.getLogger(__name__)

MIN_CHALLENGES = 1
MAX_CHALLENGES = len(ChallengeType)
DEFAULT_SESSION_TTL_SECONDS = 600

HEAD_TURNS = (ChallengeType.TURN_LEFT, ChallengeType.TURN_RIGHT)

# Challenge instructions for the frontend
CHALLENGE_INSTRUCTIONS = {
    ChallengeType.BLINK: "Please blink your eyes",
    ChallengeType.SMILE: "Please smile!",
    ChallengeType.TURN_LEFT: "Turn your head to the left",
    ChallengeType.TURN_RIGHT: "Turn your head to the right",
    ChallengeType.NOD_UP: "Tilt your head up",
    ChallengeType.NOD_DOWN: "Tilt your head down",
}

_rng = random.SystemRandom()


def generate_challenges(
    num_challenges: int = 2,
    exclude: list[ChallengeType] | None = None,
    require_head_turn: bool = False,
) -> list[ChallengeType]:
    """
    Pick a random sequence of distinct challenge types.

    Args:
        num_challenges: Number of challenges (clamped to 1-6)
        exclude: Challenge types to leave out; ignored if too few would remain
        require_head_turn: If True, include at least one head turn
    """
    count = max(MIN_CHALLENGES, min(MAX_CHALLENGES, num_challenges))

    available = [c for c in ChallengeType if not exclude or c not in exclude]
    if len(available) < count:
        available = list(ChallengeType)

    challenges = []
    if require_head_turn:
        turns = [t for t in HEAD_TURNS if t in available] or list(HEAD_TURNS)
        head_turn = _rng.choice(turns)
        challenges.append(head_turn)
        available = [c for c in available if c != head_turn]

    remaining = count - len(challenges)
    if remaining > 0:
        challenges.extend(_rng.sample(available, min(remaining, len(available))))

    _rng.shuffle(challenges)
    return challenges


def build_session(
    challenge_types: list[ChallengeType],
    ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS,
    now: datetime | None = None,
) -> LivenessSession:
    """Wrap challenge types in a session with ids, instructions and expiry."""
    now = now or datetime.now(UTC)
    challenges = tuple(
        LivenessChallenge(
            id=secrets.token_hex(8),
            type=challenge_type,
            instruction=CHALLENGE_INSTRUCTIONS[challenge_type],
            order=order,
        )
        for order, challenge_type in enumerate(challenge_types)
    )
    return LivenessSession(
        session_id=secrets.token_hex(16),
        challenges=challenges,
        expires_at=now + timedelta(seconds=ttl_seconds),
    )


class SessionRegistry:
    """Orchestrators for live sessions, keyed by session id."""

    def __init__(self, ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS):
        self.ttl_seconds = ttl_seconds
        self._sessions: dict[str, LivenessOrchestrator] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def create(
        self,
        challenge_types: list[ChallengeType],
        ttl_seconds: int | None = None,
    ) -> LivenessOrchestrator:
        """Start a new session and register its orchestrator."""
        session = build_session(challenge_types, ttl_seconds or self.ttl_seconds)
        orchestrator = LivenessOrchestrator()
        orchestrator.start(session)

        with self._lock:
            self._cleanup_locked()
            self._sessions[session.session_id] = orchestrator

        return orchestrator

    def get(self, session_id: str) -> LivenessOrchestrator:
        """
        Look up a session.

        Raises:
            SessionNotFoundError: if the id is unknown or the session expired
        """
        with self._lock:
            orchestrator = self._sessions.get(session_id)
            if orchestrator is None:
                raise SessionNotFoundError(session_id)
            session = orchestrator.session
            if session is not None and session.is_expired():
                del self._sessions[session_id]
                orchestrator.stop()
                raise SessionNotFoundError(session_id)
            return orchestrator

    def remove(self, session_id: str) -> None:
        with self._lock:
            orchestrator = self._sessions.pop(session_id, None)
        if orchestrator is None:
            raise SessionNotFoundError(session_id)
        orchestrator.stop()

    def cleanup(self, now: datetime | None = None) -> int:
        """Drop expired or stopped sessions. Returns how many were removed."""
        with self._lock:
            return self._cleanup_locked(now)

    def _cleanup_locked(self, now: datetime | None = None) -> int:
        expired = [
            sid
            for sid, orchestrator in self._sessions.items()
            if orchestrator.session is None or orchestrator.session.is_expired(now)
        ]
        for sid in expired:
            self._sessions.pop(sid).stop()
        if expired:
            logger.debug("Removed %d expired liveness session(s)", len(expired))
        return len(expired)
