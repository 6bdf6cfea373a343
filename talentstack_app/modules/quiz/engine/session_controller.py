# File: talentstack_app/modules/quiz/engine/session_controller.py
"""
Attempt Session Controller
==========================
Owns one learner's quiz attempt for one hosting view.

The controller issues the three mutating backend calls (start, answer,
finish), folds server-reported correctness into score and streak, asks the
explanation cache for a rationale after each applied answer and hands
transitions to the side-effect dispatcher.

Concurrency:
    At most one mutating call is in flight per controller. A second call
    while one is pending is rejected with ``AttemptBusyError``.
    ``close()`` detaches the controller; every backend reply is checked
    against the liveness flag and the epoch before it is applied, so replies
    arriving after teardown (or after a retry replaced the attempt) change
    nothing.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Optional, Set

from talentstack_app.core.error_handlers import TalentStackError, ValidationError
from ..config import QuizDefaultConfig
from ..events import SideEffectDispatcher
from ..exceptions import AttemptBusyError, InvalidTransitionError
from ..logics.scoring_logic import apply_answer
from ..schemas import AnswerOutcome
from .explanation_cache import ExplanationCache
from .states import Attempt, AttemptState, Finished, Idle, InProgress, Loading

logger = logging.getLogger(__name__)


class AttemptSessionController:
    """State machine driving a single quiz attempt against the learning backend."""

    def __init__(
        self,
        backend,
        quiz_id: str,
        lesson_id: str,
        on_passed: Optional[Callable[[], None]] = None,
        dispatcher: Optional[SideEffectDispatcher] = None,
        points: int = QuizDefaultConfig.QUIZ_CORRECT_POINTS,
        cache_factory: Callable[..., ExplanationCache] = ExplanationCache,
    ):
        if not isinstance(lesson_id, str) or not lesson_id:
            raise ValidationError('A quiz attempt needs its owning lesson id.', errors={'lessonId': lesson_id})
        self.backend = backend
        self.quiz_id = quiz_id
        self.lesson_id = lesson_id
        self.on_passed = on_passed
        self.dispatcher = dispatcher or SideEffectDispatcher(backend)
        self.points = points
        self._cache_factory = cache_factory

        self._state: AttemptState = Idle()
        self._explanations: Optional[ExplanationCache] = None
        self.last_error: Optional[Exception] = None
        # Attempt ids whose lesson completion was already dispatched
        self._completed_attempts: Set[str] = set()

        self._busy = threading.Lock()
        self._state_lock = threading.Lock()
        self._alive = True
        self._epoch = 0

    # ── introspection ────────────────────────────────────────────────

    @property
    def state(self) -> AttemptState:
        return self._state

    @property
    def closed(self) -> bool:
        return not self._alive

    @property
    def attempt(self) -> Optional[Attempt]:
        return getattr(self._state, 'attempt', None)

    def explanation(self, question_id: str) -> Optional[str]:
        cache = self._explanations
        return cache.get(question_id) if cache else None

    def explanation_pending(self, question_id: str) -> bool:
        cache = self._explanations
        return cache.is_pending(question_id) if cache else False

    def wait_for_explanations(self, timeout: Optional[float] = None) -> bool:
        cache = self._explanations
        return cache.wait(timeout) if cache else True

    def to_dict(self) -> Dict[str, Any]:
        data = self._state.to_dict()
        data.update({
            'quizId': self.quiz_id,
            'lessonId': self.lesson_id,
            'closed': self.closed,
            'explanations': self._explanations.snapshot() if self._explanations else {},
            'lastError': _describe_error(self.last_error),
        })
        return data

    # ── guards ───────────────────────────────────────────────────────

    @contextmanager
    def _mutation(self, operation: str):
        if not self._busy.acquire(blocking=False):
            logger.info("[QUIZ_ENGINE] %s rejected for quiz %s: request in flight", operation, self.quiz_id)
            raise AttemptBusyError(operation)
        try:
            if not self._alive:
                raise InvalidTransitionError(operation, 'closed')
            yield
        finally:
            self._busy.release()

    def _commit(self, epoch: int, new_state: AttemptState, explanations: Optional[ExplanationCache] = None) -> bool:
        """Apply ``new_state`` unless the controller moved on since ``epoch``."""
        with self._state_lock:
            if not self._alive or epoch != self._epoch:
                logger.info(
                    "[QUIZ_ENGINE] discarding late %s result for quiz %s", new_state.name, self.quiz_id
                )
                return False
            self._state = new_state
            if explanations is not None:
                self._explanations = explanations
            self.last_error = None
            return True

    def _fail(self, epoch: int, operation: str, exc: Exception, fallback: Optional[AttemptState] = None) -> bool:
        with self._state_lock:
            if not self._alive or epoch != self._epoch:
                logger.info("[QUIZ_ENGINE] discarding late %s failure for quiz %s: %s", operation, self.quiz_id, exc)
                return False
            if fallback is not None:
                self._state = fallback
            self.last_error = exc
        logger.warning(
            "[QUIZ_ENGINE] %s failed for quiz %s (request_id=%s): %s",
            operation, self.quiz_id, getattr(exc, 'request_id', None), exc,
        )
        return True

    # ── operations ───────────────────────────────────────────────────

    def start(self) -> Optional[InProgress]:
        """Request a new attempt. Valid from Idle or Finished."""
        with self._mutation('start'):
            state = self._state
            if not isinstance(state, (Idle, Finished)):
                raise InvalidTransitionError('start', state.name)
            return self._begin()

    def retry(self) -> Optional[InProgress]:
        """Discard the finished attempt and start a fresh one."""
        with self._mutation('retry'):
            state = self._state
            if not isinstance(state, Finished):
                raise InvalidTransitionError('retry', state.name)
            logger.info("[QUIZ_ENGINE] retrying quiz %s after attempt %s", self.quiz_id, state.attempt.attempt_id)
            return self._begin()

    def _begin(self) -> Optional[InProgress]:
        with self._state_lock:
            self._epoch += 1
            epoch = self._epoch
            if self._explanations is not None:
                self._explanations.discard()
                self._explanations = None
            self._state = Loading()

        try:
            started = self.backend.start_attempt(self.quiz_id, self.lesson_id)
        except Exception as exc:
            if self._fail(epoch, 'start', exc, fallback=Idle()):
                raise
            return None

        attempt = Attempt(attempt_id=started.attempt_id, questions=started.questions)
        in_progress = InProgress(attempt)
        cache = self._cache_factory(attempt.attempt_id, self.backend.fetch_explanation)
        if not self._commit(epoch, in_progress, explanations=cache):
            return None

        if not attempt.questions:
            logger.warning("[QUIZ_ENGINE] attempt %s started with no questions", attempt.attempt_id)
        logger.info(
            "[QUIZ_ENGINE] attempt %s started for quiz %s (%d questions)",
            attempt.attempt_id, self.quiz_id, attempt.total,
        )
        self.dispatcher.attempt_started(self, attempt, self.quiz_id, self.lesson_id)
        return in_progress

    def answer(self, choice_id: str) -> Optional[AnswerOutcome]:
        """
        Submit the learner's choice for the current question.

        On success score, streak and index advance and the explanation for the
        answered question is requested in the background. Answering the last
        question finishes the attempt in the same call; a failure of that
        finish does not undo the answer and is reported on the outcome.
        On failure nothing changes and the same question may be resubmitted.
        """
        with self._mutation('answer'):
            state = self._state
            if not isinstance(state, InProgress) or state.attempt.exhausted:
                raise InvalidTransitionError('answer', state.name)

            attempt = state.attempt
            question = attempt.current_question
            if not choice_id or not question.has_choice(choice_id):
                raise ValidationError(
                    f"Unknown choice for question {question.id}.",
                    errors={'choiceId': choice_id, 'questionId': question.id},
                )

            epoch = self._epoch
            try:
                verdict = self.backend.submit_answer(attempt.attempt_id, question.id, choice_id)
            except Exception as exc:
                if self._fail(epoch, 'answer', exc):
                    raise
                return None

            update = apply_answer(attempt.score, attempt.streak, verdict.correct, self.points)
            advanced = attempt.advanced(update.score, update.streak)
            if not self._commit(epoch, InProgress(advanced)):
                return None

            if self._explanations is not None:
                self._explanations.request(question.id, choice_id)
            self.dispatcher.attempt_answered(self, advanced, question.id, choice_id, verdict.correct)

            if verdict.correct:
                feedback = QuizDefaultConfig.FEEDBACK_CORRECT
            else:
                feedback = verdict.explanation or QuizDefaultConfig.FEEDBACK_INCORRECT

            finished = None
            finish_error = None
            if advanced.exhausted:
                try:
                    finished = self._finish(epoch)
                except Exception as exc:
                    finish_error = _describe_error(exc)

            return AnswerOutcome(
                question_id=question.id,
                choice_id=choice_id,
                correct=verdict.correct,
                score=advanced.score,
                streak=advanced.streak,
                current_index=advanced.current_index,
                feedback=feedback,
                finished=finished is not None,
                passed=finished.passed if finished is not None else None,
                finish_error=finish_error,
            )

    def finish(self) -> Optional[Finished]:
        """Close the attempt and obtain the server's pass/fail verdict."""
        with self._mutation('finish'):
            return self._finish(self._epoch)

    def _finish(self, epoch: int) -> Optional[Finished]:
        state = self._state
        if not isinstance(state, InProgress):
            raise InvalidTransitionError('finish', state.name)

        attempt = state.attempt
        with self._state_lock:
            if not self._alive or epoch != self._epoch:
                logger.info("[QUIZ_ENGINE] skipping finish of detached attempt %s", attempt.attempt_id)
                return None
        try:
            verdict = self.backend.finish_attempt(attempt.attempt_id)
        except Exception as exc:
            if self._fail(epoch, 'finish', exc):
                raise
            return None

        finished = Finished(attempt, verdict.passed)
        if not self._commit(epoch, finished):
            return None

        logger.info(
            "[QUIZ_ENGINE] attempt %s finished: passed=%s score=%d",
            attempt.attempt_id, verdict.passed, attempt.score,
        )
        complete_lesson = verdict.passed and attempt.attempt_id not in self._completed_attempts
        if complete_lesson:
            self._completed_attempts.add(attempt.attempt_id)
        self.dispatcher.attempt_finished(
            self, attempt, verdict.passed, self.quiz_id, self.lesson_id,
            on_passed=self.on_passed, complete_lesson=complete_lesson,
        )
        return finished

    def close(self) -> None:
        """Detach from the host. Pending replies are dropped, later calls rejected."""
        with self._state_lock:
            if not self._alive:
                return
            self._alive = False
            self._epoch += 1
            if self._explanations is not None:
                self._explanations.discard()
        logger.debug("[QUIZ_ENGINE] controller for quiz %s closed in state %s", self.quiz_id, self._state.name)


def _describe_error(exc: Optional[Exception]) -> Optional[Dict[str, Any]]:
    if exc is None:
        return None
    if isinstance(exc, TalentStackError):
        return exc.to_dict()
    return {'success': False, 'message': str(exc), 'code': 'UNKNOWN_ERROR', 'details': {}}
