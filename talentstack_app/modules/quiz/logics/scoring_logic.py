"""
Scoring Logic - Pure functions for quiz score and streak calculation.

This module contains ONLY pure Python logic.
NO network, NO Flask, NO controller dependencies allowed.
"""
from typing import NamedTuple

from ..config import QuizDefaultConfig


class ScoreUpdate(NamedTuple):
    score: int
    streak: int


def apply_answer(
    prev_score: int,
    prev_streak: int,
    correct: bool,
    points: int = QuizDefaultConfig.QUIZ_CORRECT_POINTS,
) -> ScoreUpdate:
    """
    Fold one graded answer into the running score and streak.

    Args:
        prev_score: Score before this answer.
        prev_streak: Consecutive correct answers before this answer.
        correct: Server-reported correctness of this answer.
        points: Points awarded for a correct answer.

    Returns:
        ScoreUpdate(score, streak).

    Examples:
        >>> apply_answer(0, 0, True)
        ScoreUpdate(score=10, streak=1)
        >>> apply_answer(20, 2, False)
        ScoreUpdate(score=20, streak=0)
    """
    if correct:
        return ScoreUpdate(prev_score + points, prev_streak + 1)
    return ScoreUpdate(prev_score, 0)
