"""
In-memory learning backend for offline development (``MOCK_BACKEND=1``).

Implements the same operations as ``LearningApiClient`` against a small demo
quiz bank. Grading and the pass threshold live here, on the "server" side,
exactly where the real backend keeps them.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from ..exceptions import BackendRequestError
from ..schemas import AnswerVerdict, FinishVerdict, StartedAttempt, explanation_text_from_payload

logger = logging.getLogger(__name__)

PASS_RATIO = 0.7

DEMO_QUIZZES: Dict[str, List[Dict[str, Any]]] = {
    "onboarding-basics": [
        {
            "id": "q1", "text": "Where do you request time off?",
            "choices": [
                {"id": "a", "label": "In the Time-off tab", "correct": True},
                {"id": "b", "label": "By emailing payroll"},
                {"id": "c", "label": "In the hiring pipeline"},
            ],
            "explanation": "Time-off requests go through the Time-off tab so approvers are notified.",
        },
        {
            "id": "q2", "text": "Who approves your expense reports?",
            "choices": [
                {"id": "a", "label": "Your direct manager", "correct": True},
                {"id": "b", "label": "Any colleague"},
            ],
            "explanation": "Expense reports route to the direct manager listed in the directory.",
        },
        {
            "id": "q3", "text": "How often is payroll run?",
            "choices": [
                {"id": "a", "label": "Weekly"},
                {"id": "b", "label": "Twice a month", "correct": True},
                {"id": "c", "label": "Quarterly"},
            ],
            "explanation": "Payroll runs on the 15th and the last business day of each month.",
        },
    ],
    "security-awareness": [
        {
            "id": "s1", "text": "A link in an unexpected email asks for your password. What do you do?",
            "choices": [
                {"id": "a", "label": "Report it as phishing", "correct": True},
                {"id": "b", "label": "Log in to check"},
            ],
            "explanation": "Credential requests by email are treated as phishing and reported.",
        },
        {
            "id": "s2", "text": "Which password is strongest?",
            "choices": [
                {"id": "a", "label": "Summer2024"},
                {"id": "b", "label": "A long random passphrase", "correct": True},
            ],
            "explanation": "Length and randomness matter more than character substitutions.",
        },
    ],
}


@dataclass
class _DemoAttempt:
    attempt_id: str
    quiz_id: str
    lesson_id: Optional[str]
    question_ids: List[str]
    answers: Dict[str, bool] = field(default_factory=dict)
    passed: Optional[bool] = None


def _request_id() -> str:
    return f"req_{uuid4().hex[:10]}"


class DemoLearningBackend:
    """Thread-safe in-memory stand-in for the learning backend."""

    def __init__(
        self,
        quizzes: Optional[Dict[str, List[Dict[str, Any]]]] = None,
        shuffle: bool = False,
        seed: Optional[int] = None,
        latency_seconds: float = 0.0,
    ):
        self.quizzes = quizzes if quizzes is not None else DEMO_QUIZZES
        self.shuffle = shuffle
        self.latency_seconds = latency_seconds
        self._random = random.Random(seed)
        self._attempts: Dict[str, _DemoAttempt] = {}
        self._lock = threading.Lock()
        self.events: List[Tuple[str, Dict[str, Any]]] = []
        self.lesson_progress: List[Tuple[str, str]] = []
        self.explanation_calls: List[Tuple[str, str, str]] = []

    def _pause(self) -> None:
        if self.latency_seconds > 0:
            time.sleep(self.latency_seconds)

    def _question(self, quiz_id: str, question_id: str) -> Dict[str, Any]:
        for raw in self.quizzes.get(quiz_id, []):
            if raw["id"] == question_id:
                return raw
        raise BackendRequestError(f"Unknown question {question_id}", status=404, request_id=_request_id())

    def _attempt(self, attempt_id: str) -> _DemoAttempt:
        attempt = self._attempts.get(attempt_id)
        if attempt is None:
            raise BackendRequestError(f"Unknown attempt {attempt_id}", status=404, request_id=_request_id())
        return attempt

    # ── quiz attempts ────────────────────────────────────────────────

    def start_attempt(self, quiz_id: str, lesson_id: Optional[str]) -> StartedAttempt:
        self._pause()
        bank = self.quizzes.get(quiz_id)
        if bank is None:
            raise BackendRequestError(f"Quiz {quiz_id} not found", status=404, request_id=_request_id())

        with self._lock:
            ordered = list(bank)
            if self.shuffle:
                self._random.shuffle(ordered)
            attempt = _DemoAttempt(
                attempt_id=f"att_{uuid4().hex[:12]}",
                quiz_id=quiz_id,
                lesson_id=lesson_id,
                question_ids=[raw["id"] for raw in ordered],
            )
            self._attempts[attempt.attempt_id] = attempt

        # Correctness flags stay server side; the normalizer drops them anyway
        return StartedAttempt.from_payload({
            "version": 1,
            "attemptId": attempt.attempt_id,
            "questions": [
                {
                    "id": raw["id"],
                    "text": raw["text"],
                    "choices": [{"id": c["id"], "label": c["label"]} for c in raw["choices"]],
                }
                for raw in ordered
            ],
        })

    def submit_answer(self, attempt_id: str, question_id: str, choice_id: str) -> AnswerVerdict:
        self._pause()
        with self._lock:
            attempt = self._attempt(attempt_id)
            if attempt.passed is not None:
                raise BackendRequestError("Attempt already finished", status=409, request_id=_request_id())
            if question_id not in attempt.question_ids:
                raise BackendRequestError("Question not part of attempt", status=400, request_id=_request_id())
            raw = self._question(attempt.quiz_id, question_id)
            correct = any(c["id"] == choice_id and c.get("correct") for c in raw["choices"])
            attempt.answers[question_id] = correct
        return AnswerVerdict(correct=correct, explanation=None if correct else raw.get("explanation"))

    def finish_attempt(self, attempt_id: str) -> FinishVerdict:
        self._pause()
        with self._lock:
            attempt = self._attempt(attempt_id)
            if attempt.passed is None:
                total = len(attempt.question_ids) or 1
                correct = sum(1 for value in attempt.answers.values() if value)
                attempt.passed = (correct / total) >= PASS_RATIO
            passed = attempt.passed
        return FinishVerdict(passed=passed)

    def fetch_explanation(self, attempt_id: str, question_id: str, choice_id: str) -> Optional[str]:
        self._pause()
        with self._lock:
            self.explanation_calls.append((attempt_id, question_id, choice_id))
            attempt = self._attempt(attempt_id)
            raw = self._question(attempt.quiz_id, question_id)
        return explanation_text_from_payload({"explanation": raw.get("explanation")})

    # ── progress & analytics ─────────────────────────────────────────

    def report_lesson_progress(self, lesson_id: str, status: str) -> None:
        with self._lock:
            self.lesson_progress.append((lesson_id, status))
        logger.info("[DEMO_BACKEND] lesson %s -> %s", lesson_id, status)

    def report_event(self, event_type: str, meta: Dict[str, Any]) -> None:
        with self._lock:
            self.events.append((event_type, dict(meta)))
