# File: talentstack_app/config.py
# Application configuration, read from the environment (.env supported)

import os
from dotenv import load_dotenv

load_dotenv()

# Project root (the directory holding talentstack_app/)
BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))


def _env_flag(name: str, default: str = '0') -> bool:
    return os.environ.get(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


def _env_int(name: str, default: int) -> int:
    raw_value = os.environ.get(name)
    try:
        return int(raw_value) if raw_value is not None else default
    except (TypeError, ValueError):
        return default


def _env_float(name: str, default: float) -> float:
    raw_value = os.environ.get(name)
    try:
        return float(raw_value) if raw_value is not None else default
    except (TypeError, ValueError):
        return default


class Config:
    """TalentStack learning application configuration."""

    SECRET_KEY = os.environ.get('SECRET_KEY')
    if not SECRET_KEY:
        # Fallback for development, though env is preferred
        SECRET_KEY = 'dev-secret-key-replace-in-production'

    # Learning backend (the system of record for quizzes and attempts)
    LEARNING_API_URL = os.environ.get('LEARNING_API_URL', 'http://127.0.0.1:8080')
    LEARNING_ORG_ID = os.environ.get('LEARNING_ORG_ID', 'demo-org')
    LEARNING_ORG_SLUG = os.environ.get('LEARNING_ORG_SLUG', 'demo-org')
    BACKEND_TIMEOUT_SECONDS = _env_float('BACKEND_TIMEOUT_SECONDS', 15.0)

    # Serve quizzes from the in-memory demo backend instead of LEARNING_API_URL
    MOCK_BACKEND = _env_flag('MOCK_BACKEND')
    DEMO_SHUFFLE_QUESTIONS = _env_flag('DEMO_SHUFFLE_QUESTIONS')
    DEMO_LATENCY_SECONDS = _env_float('DEMO_LATENCY_SECONDS', 0.0)

    QUIZ_CORRECT_POINTS = _env_int('QUIZ_CORRECT_POINTS', 10)

    # Hosted sessions idle this long are dropped; the oldest go first past the cap
    QUIZ_SESSION_IDLE_SECONDS = _env_float('QUIZ_SESSION_IDLE_SECONDS', 1800.0)
    QUIZ_MAX_SESSIONS = _env_int('QUIZ_MAX_SESSIONS', 1000)

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_DIR = os.environ.get('LOG_DIR') or None
    LOG_JSON = _env_flag('LOG_JSON')

    @classmethod
    def init_app(cls, app):
        """Create directories the configuration points at."""
        if cls.LOG_DIR:
            os.makedirs(cls.LOG_DIR, exist_ok=True)
