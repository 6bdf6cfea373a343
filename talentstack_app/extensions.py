"""Application-wide extensions.

This module centralizes shared instances so they can be imported without
causing circular dependencies between the factory, blueprints and services.
"""

from .modules.quiz.services.session_registry import AttemptSessionRegistry

# Mounted quiz attempt sessions, one per hosting view
attempt_sessions = AttemptSessionRegistry()

__all__ = ["attempt_sessions"]
