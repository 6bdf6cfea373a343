# File: talentstack_app/modules/quiz/engine/states.py
"""
Attempt lifecycle states
========================
The attempt lifecycle is a closed set of variants::

    Idle ──start──▶ Loading ──ok──▶ InProgress ──finish──▶ Finished(passed)
      ▲               │                                       │
      └────error──────┘◀───────────────retry──────────────────┘

``passed`` only exists on ``Finished``; there is no combination of loose
flags that can describe an impossible state.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Tuple, Union

from ..schemas import Question


@dataclass(frozen=True)
class Attempt:
    """Live attempt data. Transitions build a new value via ``advanced``."""

    attempt_id: str
    questions: Tuple[Question, ...]
    current_index: int = 0
    score: int = 0
    streak: int = 0

    @property
    def total(self) -> int:
        return len(self.questions)

    @property
    def exhausted(self) -> bool:
        return self.current_index >= len(self.questions)

    @property
    def current_question(self) -> Optional[Question]:
        if self.exhausted:
            return None
        return self.questions[self.current_index]

    def advanced(self, score: int, streak: int) -> "Attempt":
        return replace(self, current_index=self.current_index + 1, score=score, streak=streak)

    def to_dict(self) -> Dict[str, Any]:
        question = self.current_question
        return {
            'attemptId': self.attempt_id,
            'currentIndex': self.current_index,
            'total': self.total,
            'score': self.score,
            'streak': self.streak,
            'question': question.to_dict() if question else None,
        }


@dataclass(frozen=True)
class Idle:
    name = 'idle'

    def to_dict(self) -> Dict[str, Any]:
        return {'state': self.name}


@dataclass(frozen=True)
class Loading:
    name = 'loading'

    def to_dict(self) -> Dict[str, Any]:
        return {'state': self.name}


@dataclass(frozen=True)
class InProgress:
    attempt: Attempt
    name = 'in_progress'

    def to_dict(self) -> Dict[str, Any]:
        data = {'state': self.name}
        data.update(self.attempt.to_dict())
        return data


@dataclass(frozen=True)
class Finished:
    attempt: Attempt
    passed: bool
    name = 'finished'

    def to_dict(self) -> Dict[str, Any]:
        data = {'state': self.name}
        data.update(self.attempt.to_dict())
        data['passed'] = self.passed
        return data


AttemptState = Union[Idle, Loading, InProgress, Finished]
