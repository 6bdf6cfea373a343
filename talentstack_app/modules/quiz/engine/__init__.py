"""Quiz attempt engine: lifecycle states, controller and explanation cache."""

from .explanation_cache import ExplanationCache
from .session_controller import AttemptSessionController
from .states import Attempt, AttemptState, Finished, Idle, InProgress, Loading

__all__ = [
    'Attempt',
    'AttemptSessionController',
    'AttemptState',
    'ExplanationCache',
    'Finished',
    'Idle',
    'InProgress',
    'Loading',
]
