"""
Tests for the in-memory demo backend used with MOCK_BACKEND.
"""

import pytest

from talentstack_app.modules.quiz.exceptions import BackendRequestError
from talentstack_app.modules.quiz.interface import QuizInterface
from talentstack_app.modules.quiz.services.demo_backend import DemoLearningBackend
from talentstack_app.modules.quiz.services.session_registry import build_backend
from talentstack_app.modules.quiz.services.backend_client import LearningApiClient


class TestGrading:

    def test_pass_threshold(self):
        backend = DemoLearningBackend()
        started = backend.start_attempt('security-awareness', None)
        backend.submit_answer(started.attempt_id, 's1', 'a')
        backend.submit_answer(started.attempt_id, 's2', 'b')
        assert backend.finish_attempt(started.attempt_id).passed is True

    def test_two_of_three_fails(self):
        backend = DemoLearningBackend()
        started = backend.start_attempt('onboarding-basics', None)
        for question_id, choice_id in (('q1', 'a'), ('q2', 'a'), ('q3', 'a')):
            backend.submit_answer(started.attempt_id, question_id, choice_id)
        assert backend.finish_attempt(started.attempt_id).passed is False

    def test_answer_after_finish_conflicts(self):
        backend = DemoLearningBackend()
        started = backend.start_attempt('security-awareness', None)
        backend.finish_attempt(started.attempt_id)
        with pytest.raises(BackendRequestError) as excinfo:
            backend.submit_answer(started.attempt_id, 's1', 'a')
        assert excinfo.value.status == 409

    def test_unknown_attempt(self):
        with pytest.raises(BackendRequestError) as excinfo:
            DemoLearningBackend().finish_attempt('att_missing')
        assert excinfo.value.status == 404


class TestQuestionOrder:

    def test_seeded_shuffle_is_reproducible(self):
        first = DemoLearningBackend(shuffle=True, seed=3).start_attempt('onboarding-basics', None)
        second = DemoLearningBackend(shuffle=True, seed=3).start_attempt('onboarding-basics', None)
        assert [q.id for q in first.questions] == [q.id for q in second.questions]
        assert sorted(q.id for q in first.questions) == ['q1', 'q2', 'q3']

    def test_attempt_ids_are_unique(self):
        backend = DemoLearningBackend()
        ids = {backend.start_attempt('onboarding-basics', None).attempt_id for _ in range(5)}
        assert len(ids) == 5


class TestBackendSelection:

    def test_mock_flag_selects_demo(self):
        backend = build_backend({'MOCK_BACKEND': True, 'DEMO_SHUFFLE_QUESTIONS': True})
        assert isinstance(backend, DemoLearningBackend)
        assert backend.shuffle is True

    def test_default_is_http_client(self):
        assert isinstance(build_backend({'MOCK_BACKEND': False}), LearningApiClient)


class TestQuizInterface:

    def test_standalone_controller(self):
        backend = DemoLearningBackend()
        controller = QuizInterface.create_controller(backend, 'security-awareness', lesson_id='l-2')
        controller.start()
        controller.answer('a')
        outcome = controller.answer('b')

        assert outcome.passed is True
        assert backend.lesson_progress == [('l-2', 'COMPLETE')]

    def test_hosted_session_roundtrip(self, app):
        session_id, controller = QuizInterface.open_session('security-awareness', lesson_id='l-3')
        assert QuizInterface.get_session(session_id) is controller
        assert QuizInterface.close_session(session_id) is True
        assert controller.closed
