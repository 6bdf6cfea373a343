import os
import sys

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from talentstack_app import create_app
from talentstack_app.config import Config
from talentstack_app.extensions import attempt_sessions
from talentstack_app.modules.quiz.engine import AttemptSessionController
from talentstack_app.modules.quiz.events import SideEffectDispatcher
from talentstack_app.modules.quiz.services.demo_backend import DemoLearningBackend


class TestConfig(Config):
    TESTING = True
    MOCK_BACKEND = True
    DEMO_SHUFFLE_QUESTIONS = False
    DEMO_LATENCY_SECONDS = 0.0
    LOG_LEVEL = 'WARNING'
    LOG_DIR = None
    LEARNING_API_URL = 'http://learning.test'
    QUIZ_SESSION_IDLE_SECONDS = 1800
    QUIZ_MAX_SESSIONS = 1000


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        attempt_sessions.close_all(app)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def backend():
    return DemoLearningBackend()


@pytest.fixture
def dispatcher(backend):
    return SideEffectDispatcher(backend, clock=lambda: 1700000000000)


@pytest.fixture
def make_controller(backend, dispatcher):
    def _make(quiz_id='onboarding-basics', lesson_id='lesson-1', on_passed=None, **kwargs):
        return AttemptSessionController(
            backend,
            quiz_id,
            lesson_id=lesson_id,
            on_passed=on_passed,
            dispatcher=dispatcher,
            **kwargs
        )
    return _make
