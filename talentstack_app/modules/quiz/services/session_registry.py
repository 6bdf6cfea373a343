"""
Hosted attempt sessions.

One ``AttemptSessionController`` is mounted per hosting view and addressed by
an opaque session id. The registry follows the Flask extension pattern: it is
created once in ``talentstack_app.extensions`` and bound to each application
with ``init_app``, which keeps the backend, the side-effect dispatcher and the
mounted sessions in ``app.extensions`` so separate apps never share sessions.

Sessions nobody touched for ``QUIZ_SESSION_IDLE_SECONDS`` are closed and
dropped on the next ``mount``; beyond ``QUIZ_MAX_SESSIONS`` the least recently
touched sessions go first.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple
from uuid import uuid4

from flask import current_app

from talentstack_app.core.error_handlers import NotFoundError
from ..config import QuizDefaultConfig
from ..engine.session_controller import AttemptSessionController
from ..events import SideEffectDispatcher
from .backend_client import LearningApiClient
from .demo_backend import DemoLearningBackend

logger = logging.getLogger(__name__)


def build_backend(config):
    """Pick the learning backend implementation for an app config."""
    if config.get('MOCK_BACKEND'):
        logger.info("[LEARNING_API] using in-memory demo backend")
        return DemoLearningBackend(
            shuffle=bool(config.get('DEMO_SHUFFLE_QUESTIONS')),
            latency_seconds=float(config.get('DEMO_LATENCY_SECONDS') or 0.0),
        )
    return LearningApiClient.from_config(config)


@dataclass
class _MountedSession:
    controller: AttemptSessionController
    touched: float


@dataclass
class _RegistryState:
    backend: object
    dispatcher: SideEffectDispatcher
    points: int
    idle_seconds: float
    max_sessions: int
    clock: Callable[[], float]
    # Least recently touched first
    sessions: "OrderedDict[str, _MountedSession]" = field(default_factory=OrderedDict)
    lock: threading.Lock = field(default_factory=threading.Lock)


class AttemptSessionRegistry:
    """Mounts, looks up and unmounts attempt controllers for one Flask app."""

    extension_key = 'attempt_sessions'

    def __init__(self, app=None):
        if app is not None:
            self.init_app(app)

    def init_app(self, app, backend=None, clock: Callable[[], float] = time.monotonic) -> None:
        backend = backend if backend is not None else build_backend(app.config)
        app.extensions[self.extension_key] = _RegistryState(
            backend=backend,
            dispatcher=SideEffectDispatcher(backend),
            points=int(app.config.get('QUIZ_CORRECT_POINTS', QuizDefaultConfig.QUIZ_CORRECT_POINTS)),
            idle_seconds=float(app.config.get('QUIZ_SESSION_IDLE_SECONDS', QuizDefaultConfig.QUIZ_SESSION_IDLE_SECONDS)),
            max_sessions=int(app.config.get('QUIZ_MAX_SESSIONS', QuizDefaultConfig.QUIZ_MAX_SESSIONS)),
            clock=clock,
        )

    def _state(self, app=None) -> _RegistryState:
        app = app or current_app
        try:
            return app.extensions[self.extension_key]
        except KeyError:
            raise RuntimeError("AttemptSessionRegistry.init_app() was not called for this application.")

    def backend(self, app=None):
        return self._state(app).backend

    def _evict(self, state: _RegistryState, room_for: int = 0) -> List[AttemptSessionController]:
        """Pop expired and surplus sessions. Caller holds ``state.lock``."""
        evicted = []
        cutoff = state.clock() - state.idle_seconds
        while state.sessions:
            session_id, mounted = next(iter(state.sessions.items()))
            over_cap = len(state.sessions) + room_for > state.max_sessions
            if mounted.touched > cutoff and not over_cap:
                break
            state.sessions.pop(session_id)
            evicted.append(mounted.controller)
            logger.info("[QUIZ_ENGINE] evicted session %s (quiz %s)", session_id, mounted.controller.quiz_id)
        return evicted

    def mount(
        self,
        quiz_id: str,
        lesson_id: str,
        on_passed: Optional[Callable[[], None]] = None,
        app=None,
    ) -> Tuple[str, AttemptSessionController]:
        state = self._state(app)
        controller = AttemptSessionController(
            state.backend,
            quiz_id,
            lesson_id=lesson_id,
            on_passed=on_passed,
            dispatcher=state.dispatcher,
            points=state.points,
        )
        session_id = uuid4().hex
        with state.lock:
            evicted = self._evict(state, room_for=1)
            state.sessions[session_id] = _MountedSession(controller, state.clock())
        for stale in evicted:
            stale.close()
        logger.debug("[QUIZ_ENGINE] mounted session %s for quiz %s", session_id, quiz_id)
        return session_id, controller

    def get(self, session_id: str, app=None) -> AttemptSessionController:
        state = self._state(app)
        with state.lock:
            mounted = state.sessions.get(session_id)
            if mounted is not None:
                mounted.touched = state.clock()
                state.sessions.move_to_end(session_id)
        if mounted is None:
            raise NotFoundError(f"Quiz session {session_id} not found.", resource='quiz_session')
        return mounted.controller

    def unmount(self, session_id: str, app=None) -> bool:
        state = self._state(app)
        with state.lock:
            mounted = state.sessions.pop(session_id, None)
        if mounted is None:
            return False
        mounted.controller.close()
        logger.debug("[QUIZ_ENGINE] unmounted session %s", session_id)
        return True

    def close_all(self, app=None) -> int:
        state = self._state(app)
        with state.lock:
            controllers = [mounted.controller for mounted in state.sessions.values()]
            state.sessions.clear()
        for controller in controllers:
            controller.close()
        return len(controllers)

    def count(self, app=None) -> int:
        state = self._state(app)
        with state.lock:
            return len(state.sessions)
