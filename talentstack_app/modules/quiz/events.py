"""
Side effects of quiz attempt transitions.

The session controller calls the dispatcher on its transitions; the
dispatcher talks to the external systems (analytics, lesson progress) and
re-broadcasts the transitions as blinker signals so other modules can react
without knowing about the quiz engine.

    start  ok            -> analytics 'quiz_started'             + quiz_attempt_started
    answer ok            ->                                        quiz_attempt_answered
    finish ok            -> analytics 'quiz_finished'            + quiz_attempt_finished
    finish ok, passed    -> lesson progress COMPLETE, on_passed() + lesson_completed
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from talentstack_app.core.signals import (
    lesson_completed,
    quiz_attempt_answered,
    quiz_attempt_finished,
    quiz_attempt_started,
)
from .config import QuizDefaultConfig

logger = logging.getLogger(__name__)


def _epoch_millis() -> int:
    return int(time.time() * 1000)


class SideEffectDispatcher:
    """Emits analytics and lesson completion for the transitions it is handed."""

    def __init__(self, backend, clock: Callable[[], int] = _epoch_millis):
        self.backend = backend
        self.clock = clock
        self._threads: List[threading.Thread] = []
        self._lock = threading.Lock()

    # ── analytics (fire-and-forget) ──────────────────────────────────

    def _post_event(self, event_type: str, meta: Dict[str, Any]) -> None:
        try:
            self.backend.report_event(event_type, meta)
        except Exception as exc:  # analytics delivery never affects the attempt
            logger.warning("[SIDE_EFFECTS] analytics event %s dropped: %s", event_type, exc)

    def _emit_event(self, event_type: str, meta: Dict[str, Any]) -> None:
        thread = threading.Thread(
            target=self._post_event,
            args=(event_type, meta),
            name=f"analytics-{event_type}",
            daemon=True,
        )
        with self._lock:
            self._threads = [t for t in self._threads if t.is_alive()]
            self._threads.append(thread)
        thread.start()

    def flush(self, timeout: Optional[float] = None) -> None:
        """Wait for pending analytics posts (used on shutdown and in tests)."""
        with self._lock:
            threads = list(self._threads)
        for thread in threads:
            thread.join(timeout)

    # ── transitions ──────────────────────────────────────────────────

    def attempt_started(self, sender, attempt, quiz_id: str, lesson_id: str) -> None:
        self._emit_event(QuizDefaultConfig.EVENT_QUIZ_STARTED, {
            'attemptId': attempt.attempt_id,
            'quizId': quiz_id,
            'lessonId': lesson_id,
            'at': self.clock(),
        })
        quiz_attempt_started.send(
            sender,
            attempt_id=attempt.attempt_id,
            quiz_id=quiz_id,
            lesson_id=lesson_id,
            question_count=attempt.total,
        )

    def attempt_answered(self, sender, attempt, question_id: str, choice_id: str, correct: bool) -> None:
        quiz_attempt_answered.send(
            sender,
            attempt_id=attempt.attempt_id,
            question_id=question_id,
            choice_id=choice_id,
            correct=correct,
            score=attempt.score,
            streak=attempt.streak,
            current_index=attempt.current_index,
        )

    def attempt_finished(
        self,
        sender,
        attempt,
        passed: bool,
        quiz_id: str,
        lesson_id: str,
        on_passed: Optional[Callable[[], None]] = None,
        complete_lesson: bool = True,
    ) -> None:
        if passed and complete_lesson:
            self._complete_lesson(sender, attempt, lesson_id, on_passed)

        self._emit_event(QuizDefaultConfig.EVENT_QUIZ_FINISHED, {
            'attemptId': attempt.attempt_id,
            'quizId': quiz_id,
            'lessonId': lesson_id,
            'passed': passed,
            'score': attempt.score,
            'at': self.clock(),
        })
        quiz_attempt_finished.send(
            sender,
            attempt_id=attempt.attempt_id,
            quiz_id=quiz_id,
            lesson_id=lesson_id,
            passed=passed,
            score=attempt.score,
            streak=attempt.streak,
        )

    def _complete_lesson(self, sender, attempt, lesson_id, on_passed) -> None:
        status = QuizDefaultConfig.LESSON_COMPLETE_STATUS
        delivered = False
        try:
            self.backend.report_lesson_progress(lesson_id, status)
            delivered = True
        except Exception as exc:
            logger.warning(
                "[SIDE_EFFECTS] lesson %s completion for attempt %s not delivered: %s",
                lesson_id, attempt.attempt_id, exc,
            )

        if on_passed is not None:
            try:
                on_passed()
            except Exception:
                logger.exception("[SIDE_EFFECTS] on_passed callback failed for %s", attempt.attempt_id)

        lesson_completed.send(
            sender,
            attempt_id=attempt.attempt_id,
            lesson_id=lesson_id,
            status=status,
            delivered=delivered,
        )
