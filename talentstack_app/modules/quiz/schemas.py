# File: talentstack_app/modules/quiz/schemas.py
"""
Quiz DTOs and backend response normalization.

Every read of a learning-backend payload goes through the ``from_payload``
constructors below. The canonical envelope is version 1::

    {"version": 1, "attemptId": "...", "questions": [...]}

Older backends answer with alternative field names (``id`` for the attempt,
``data`` for the question list, ``text`` for explanations); those aliases are
accepted here and nowhere else.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .exceptions import BackendProtocolError

RESPONSE_VERSION = 1


def _as_mapping(payload: Any) -> Dict[str, Any]:
    return payload if isinstance(payload, dict) else {}


def _check_version(payload: Dict[str, Any]) -> None:
    raw_version = payload.get('version')
    if raw_version is None:
        return
    try:
        version = int(raw_version)
    except (TypeError, ValueError):
        raise BackendProtocolError(f"Unreadable response version {raw_version!r}.")
    if version > RESPONSE_VERSION:
        raise BackendProtocolError(
            f"Response version {version} is newer than supported {RESPONSE_VERSION}."
        )


def _first_present(payload: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = payload.get(key)
        if value is not None and value != "":
            return value
    return None


@dataclass(frozen=True)
class Choice:
    """One selectable option. Correctness is never carried on the client side."""
    id: str
    label: str

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Choice":
        payload = _as_mapping(payload)
        choice_id = _first_present(payload, 'id', 'choiceId')
        if choice_id is None:
            raise BackendProtocolError("Choice without an id in quiz payload.")
        label = _first_present(payload, 'label', 'text')
        return cls(id=str(choice_id), label=str(label or ""))

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'label': self.label}


@dataclass(frozen=True)
class Question:
    """A quiz question; ``choices`` keeps the backend's display order."""
    id: str
    text: str
    choices: Tuple[Choice, ...] = ()

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Question":
        payload = _as_mapping(payload)
        question_id = _first_present(payload, 'id', 'questionId')
        if question_id is None:
            raise BackendProtocolError("Question without an id in quiz payload.")
        raw_choices = payload.get('choices')
        choices = tuple(
            Choice.from_payload(raw) for raw in (raw_choices if isinstance(raw_choices, list) else [])
        )
        text = _first_present(payload, 'text', 'prompt')
        return cls(id=str(question_id), text=str(text or ""), choices=choices)

    def has_choice(self, choice_id: str) -> bool:
        return any(choice.id == choice_id for choice in self.choices)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'text': self.text,
            'choices': [choice.to_dict() for choice in self.choices],
        }


@dataclass(frozen=True)
class StartedAttempt:
    """Backend reply to ``startAttempt``."""
    attempt_id: str
    questions: Tuple[Question, ...]

    @classmethod
    def from_payload(cls, payload: Any) -> "StartedAttempt":
        payload = _as_mapping(payload)
        _check_version(payload)
        attempt_id = _first_present(payload, 'attemptId', 'id')
        if attempt_id is None:
            raise BackendProtocolError(
                "Start attempt response did not include an attempt id.",
                details={'keys': sorted(payload.keys())},
            )

        raw_questions: List[Any] = []
        for key in ('questions', 'data'):
            if isinstance(payload.get(key), list):
                raw_questions = payload[key]
                break

        questions = tuple(Question.from_payload(raw) for raw in raw_questions)
        return cls(attempt_id=str(attempt_id), questions=questions)


@dataclass(frozen=True)
class AnswerVerdict:
    """Backend reply to ``submitAnswer``."""
    correct: bool
    explanation: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "AnswerVerdict":
        payload = _as_mapping(payload)
        explanation = _first_present(payload, 'explanation')
        return cls(
            correct=bool(payload.get('correct')),
            explanation=str(explanation) if explanation is not None else None,
        )


@dataclass(frozen=True)
class FinishVerdict:
    """Backend reply to ``finishAttempt``; ``passed`` is authoritative."""
    passed: bool

    @classmethod
    def from_payload(cls, payload: Any) -> "FinishVerdict":
        return cls(passed=bool(_as_mapping(payload).get('passed')))


def explanation_text_from_payload(payload: Any) -> Optional[str]:
    """Return the rationale carried by an explain-answer reply, or None."""
    value = _first_present(_as_mapping(payload), 'explanation', 'text')
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class AnswerOutcome:
    """What the host view needs after a successfully applied answer."""
    question_id: str
    choice_id: str
    correct: bool
    score: int
    streak: int
    current_index: int
    feedback: str
    finished: bool = False
    passed: Optional[bool] = None
    finish_error: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'questionId': self.question_id,
            'choiceId': self.choice_id,
            'correct': self.correct,
            'score': self.score,
            'streak': self.streak,
            'currentIndex': self.current_index,
            'feedback': self.feedback,
            'finished': self.finished,
            'passed': self.passed,
            'finishError': self.finish_error,
        }
