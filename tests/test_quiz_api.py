"""
Tests for the hosted quiz session API (demo backend).
"""

from unittest import mock

import pytest

from talentstack_app.extensions import attempt_sessions
from talentstack_app.modules.quiz.exceptions import BackendRequestError
from talentstack_app.modules.quiz.services.demo_backend import DemoLearningBackend

BASE = '/learn/quiz/api'


def _create(client, quiz_id='onboarding-basics', lesson_id='lesson-7'):
    response = client.post(f'{BASE}/quizzes/{quiz_id}/sessions', json={'lessonId': lesson_id})
    assert response.status_code == 201, response.get_json()
    return response.get_json()['data']


def _answer(client, session_id, choice_id):
    return client.post(f'{BASE}/sessions/{session_id}/answer', json={'choiceId': choice_id})


class TestSessionLifecycle:

    def test_registry_uses_demo_backend(self, app):
        assert isinstance(attempt_sessions.backend(app), DemoLearningBackend)

    def test_create_session(self, client):
        data = _create(client)
        assert data['state'] == 'in_progress'
        assert data['quizId'] == 'onboarding-basics'
        assert data['lessonId'] == 'lesson-7'
        assert data['question']['id'] == 'q1'
        assert data['total'] == 3
        assert all('correct' not in choice for choice in data['question']['choices'])

    def test_full_attempt_passes_and_completes_lesson(self, app, client):
        session_id = _create(client)['sessionId']

        for choice in ('a', 'a'):
            assert _answer(client, session_id, choice).status_code == 200
        body = _answer(client, session_id, 'b').get_json()['data']

        assert body['outcome']['finished'] is True
        assert body['outcome']['passed'] is True
        assert body['session']['state'] == 'finished'
        assert body['session']['score'] == 30
        assert attempt_sessions.backend(app).lesson_progress == [('lesson-7', 'COMPLETE')]

    def test_snapshot(self, client):
        session_id = _create(client)['sessionId']
        _answer(client, session_id, 'b')

        data = client.get(f'{BASE}/sessions/{session_id}').get_json()['data']
        assert data['currentIndex'] == 1
        assert data['streak'] == 0
        assert data['sessionId'] == session_id

    def test_finish_and_retry(self, client):
        session_id = _create(client)['sessionId']
        first = client.get(f'{BASE}/sessions/{session_id}').get_json()['data']['attemptId']

        finished = client.post(f'{BASE}/sessions/{session_id}/finish').get_json()['data']
        assert finished['state'] == 'finished'
        assert finished['passed'] is False

        retried = client.post(f'{BASE}/sessions/{session_id}/retry').get_json()['data']
        assert retried['state'] == 'in_progress'
        assert retried['attemptId'] != first
        assert (retried['score'], retried['streak'], retried['currentIndex']) == (0, 0, 0)

    def test_explanation_endpoint(self, app, client):
        session_id = _create(client)['sessionId']
        _answer(client, session_id, 'a')
        attempt_sessions.get(session_id, app).wait_for_explanations(2.0)

        data = client.get(f'{BASE}/sessions/{session_id}/explanations/q1').get_json()['data']
        assert data['explanation'].startswith('Time-off requests')
        assert data['pending'] is False

        unanswered = client.get(f'{BASE}/sessions/{session_id}/explanations/q3').get_json()['data']
        assert unanswered['explanation'] is None

    def test_delete_session(self, client):
        session_id = _create(client)['sessionId']

        assert client.delete(f'{BASE}/sessions/{session_id}').status_code == 200
        assert client.get(f'{BASE}/sessions/{session_id}').status_code == 404
        assert client.delete(f'{BASE}/sessions/{session_id}').status_code == 404


class TestErrors:

    def test_unknown_session(self, client):
        response = client.get(f'{BASE}/sessions/does-not-exist')
        assert response.status_code == 404
        assert response.get_json()['code'] == 'NOT_FOUND'

    def test_unknown_quiz_is_backend_error(self, app, client):
        response = client.post(f'{BASE}/quizzes/no-such-quiz/sessions', json={'lessonId': 'lesson-7'})
        body = response.get_json()

        assert response.status_code == 502
        assert body['code'] == 'BACKEND_ERROR'
        assert body['details']['upstreamStatus'] == 404
        assert body['details']['requestId']
        assert attempt_sessions.count(app) == 0

    def test_missing_choice(self, client):
        session_id = _create(client)['sessionId']
        response = client.post(f'{BASE}/sessions/{session_id}/answer', json={})
        assert response.status_code == 400
        assert response.get_json()['code'] == 'VALIDATION_ERROR'

    def test_unknown_choice(self, client):
        session_id = _create(client)['sessionId']
        response = _answer(client, session_id, 'zzz')
        assert response.status_code == 400

    def test_lesson_id_must_be_string(self, client):
        response = client.post(f'{BASE}/quizzes/onboarding-basics/sessions', json={'lessonId': 5})
        assert response.status_code == 400

    def test_retry_in_progress_is_conflict(self, client):
        session_id = _create(client)['sessionId']
        response = client.post(f'{BASE}/sessions/{session_id}/retry')
        assert response.status_code == 409
        assert response.get_json()['code'] == 'INVALID_TRANSITION'

    def test_answer_after_finish_is_conflict(self, client):
        session_id = _create(client)['sessionId']
        client.post(f'{BASE}/sessions/{session_id}/finish')
        response = _answer(client, session_id, 'a')
        assert response.status_code == 409

    def test_backend_failure_keeps_question(self, app, client):
        session_id = _create(client)['sessionId']
        backend = attempt_sessions.backend(app)
        failure = BackendRequestError('API 503', status=503, request_id='req_api')

        with mock.patch.object(backend, 'submit_answer', side_effect=failure):
            response = _answer(client, session_id, 'a')

        assert response.status_code == 502
        assert response.get_json()['details']['requestId'] == 'req_api'
        snapshot = client.get(f'{BASE}/sessions/{session_id}').get_json()['data']
        assert snapshot['currentIndex'] == 0
        assert snapshot['lastError']['details']['requestId'] == 'req_api'

    @pytest.mark.parametrize('method,path', [
        ('get', '/learn/quiz/api/nope'),
        ('put', '/learn/quiz/api/sessions/abc/answer'),
    ])
    def test_api_errors_are_json(self, client, method, path):
        response = getattr(client, method)(path)
        assert response.get_json()['success'] is False

    def test_lesson_id_is_required(self, app, client):
        response = client.post(f'{BASE}/quizzes/onboarding-basics/sessions', json={})
        assert response.status_code == 400
        assert response.get_json()['code'] == 'VALIDATION_ERROR'
        assert attempt_sessions.count(app) == 0

    def test_method_not_allowed_code(self, client):
        response = client.put(f'{BASE}/sessions/abc/answer')
        assert response.status_code == 405
        assert response.get_json()['code'] == 'METHOD_NOT_ALLOWED'

    def test_unknown_endpoint_code(self, client):
        response = client.get(f'{BASE}/nope')
        assert response.status_code == 404
        assert response.get_json()['code'] == 'NOT_FOUND'


class TestFailedRetry:

    def _finished_session(self, client):
        session_id = _create(client)['sessionId']
        assert client.post(f'{BASE}/sessions/{session_id}/finish').status_code == 200
        return session_id

    def test_retry_again_after_failed_retry(self, app, client):
        session_id = self._finished_session(client)
        backend = attempt_sessions.backend(app)
        failure = BackendRequestError('API 503', status=503, request_id='req_retry')

        with mock.patch.object(backend, 'start_attempt', side_effect=failure):
            response = client.post(f'{BASE}/sessions/{session_id}/retry')
        assert response.status_code == 502
        snapshot = client.get(f'{BASE}/sessions/{session_id}').get_json()['data']
        assert snapshot['state'] == 'idle'

        response = client.post(f'{BASE}/sessions/{session_id}/retry')
        assert response.status_code == 200
        data = response.get_json()['data']
        assert data['state'] == 'in_progress'
        assert data['lastError'] is None

    def test_start_after_failed_retry(self, app, client):
        session_id = self._finished_session(client)
        backend = attempt_sessions.backend(app)

        with mock.patch.object(backend, 'start_attempt', side_effect=BackendRequestError('API 503', status=503)):
            client.post(f'{BASE}/sessions/{session_id}/retry')

        response = client.post(f'{BASE}/sessions/{session_id}/start')
        assert response.status_code == 200
        assert response.get_json()['data']['state'] == 'in_progress'

    def test_start_while_in_progress_is_conflict(self, client):
        session_id = _create(client)['sessionId']
        response = client.post(f'{BASE}/sessions/{session_id}/start')
        assert response.status_code == 409
        assert response.get_json()['code'] == 'INVALID_TRANSITION'


class TestSessionEviction:

    def _clock(self, app, **config):
        now = [1000.0]
        app.config.update(config)
        attempt_sessions.init_app(app, clock=lambda: now[0])
        return now

    def test_idle_sessions_are_evicted_on_mount(self, app, client):
        now = self._clock(app, QUIZ_SESSION_IDLE_SECONDS=60)
        stale = [_create(client)['sessionId'] for _ in range(3)]
        controllers = [attempt_sessions.get(session_id, app) for session_id in stale]

        now[0] += 61
        fresh = _create(client)['sessionId']

        assert attempt_sessions.count(app) == 1
        assert all(controller.closed for controller in controllers)
        assert client.get(f'{BASE}/sessions/{stale[0]}').status_code == 404
        assert client.get(f'{BASE}/sessions/{fresh}').status_code == 200

    def test_touched_sessions_survive(self, app, client):
        now = self._clock(app, QUIZ_SESSION_IDLE_SECONDS=60)
        kept = _create(client)['sessionId']
        dropped = _create(client)['sessionId']

        now[0] += 40
        assert client.get(f'{BASE}/sessions/{kept}').status_code == 200
        now[0] += 30
        _create(client)

        assert client.get(f'{BASE}/sessions/{kept}').status_code == 200
        assert client.get(f'{BASE}/sessions/{dropped}').status_code == 404

    def test_cap_drops_least_recently_touched(self, app, client):
        self._clock(app, QUIZ_MAX_SESSIONS=2)
        first = _create(client)['sessionId']
        second = _create(client)['sessionId']
        client.get(f'{BASE}/sessions/{first}')

        third = _create(client)['sessionId']

        assert attempt_sessions.count(app) == 2
        assert client.get(f'{BASE}/sessions/{second}').status_code == 404
        assert client.get(f'{BASE}/sessions/{first}').status_code == 200
        assert client.get(f'{BASE}/sessions/{third}').status_code == 200

    def test_finished_sessions_do_not_accumulate(self, app, client):
        now = self._clock(app, QUIZ_SESSION_IDLE_SECONDS=60)
        for _ in range(50):
            session_id = _create(client)['sessionId']
            client.post(f'{BASE}/sessions/{session_id}/finish')
            now[0] += 61

        assert attempt_sessions.count(app) == 1
