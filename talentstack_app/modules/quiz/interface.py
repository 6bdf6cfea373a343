# File: talentstack_app/modules/quiz/interface.py
from typing import Callable, Optional, Tuple

from talentstack_app.extensions import attempt_sessions
from .config import QuizDefaultConfig
from .engine.session_controller import AttemptSessionController
from .events import SideEffectDispatcher


class QuizInterface:
    """Entry point for other modules that need to drive quiz attempts."""

    @staticmethod
    def create_controller(
        backend,
        quiz_id: str,
        lesson_id: str,
        on_passed: Optional[Callable[[], None]] = None,
        points: int = QuizDefaultConfig.QUIZ_CORRECT_POINTS,
    ) -> AttemptSessionController:
        """
        Build a standalone controller outside of the hosted session registry.
        """
        return AttemptSessionController(
            backend,
            quiz_id,
            lesson_id=lesson_id,
            on_passed=on_passed,
            dispatcher=SideEffectDispatcher(backend),
            points=points,
        )

    @staticmethod
    def open_session(
        quiz_id: str,
        lesson_id: str,
        on_passed: Optional[Callable[[], None]] = None,
    ) -> Tuple[str, AttemptSessionController]:
        """
        Mount a hosted session in the current app and start its first attempt.
        """
        session_id, controller = attempt_sessions.mount(quiz_id, lesson_id=lesson_id, on_passed=on_passed)
        try:
            controller.start()
        except Exception:
            attempt_sessions.unmount(session_id)
            raise
        return session_id, controller

    @staticmethod
    def get_session(session_id: str) -> AttemptSessionController:
        return attempt_sessions.get(session_id)

    @staticmethod
    def close_session(session_id: str) -> bool:
        return attempt_sessions.unmount(session_id)
