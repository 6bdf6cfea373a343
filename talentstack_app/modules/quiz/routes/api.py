# File: talentstack_app/modules/quiz/routes/api.py
"""JSON host API: one mounted attempt session per learner-facing view."""

from flask import current_app, jsonify, request

from talentstack_app.core.error_handlers import NotFoundError, ValidationError, success_response
from talentstack_app.extensions import attempt_sessions
from .. import blueprint
from ..engine.states import Idle
from ..interface import QuizInterface


def _json_body() -> dict:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError('Request body must be a JSON object.')
    return payload


def _session_payload(session_id, controller) -> dict:
    data = controller.to_dict()
    data['sessionId'] = session_id
    return data


@blueprint.route('/api/quizzes/<quiz_id>/sessions', methods=['POST'])
def create_session(quiz_id):
    """Mount a controller for the calling view and start its first attempt."""
    payload = _json_body()
    lesson_id = payload.get('lessonId')
    if not isinstance(lesson_id, str) or not lesson_id:
        raise ValidationError('lessonId is required.', errors={'lessonId': lesson_id})

    app_logger = current_app.logger

    def on_passed():
        app_logger.info(f"[QUIZ_ENGINE] quiz {quiz_id} passed (lesson {lesson_id})")

    session_id, controller = QuizInterface.open_session(quiz_id, lesson_id=lesson_id, on_passed=on_passed)

    current_app.logger.info(f"Quiz session {session_id} mounted for quiz {quiz_id}")
    return jsonify(success_response(_session_payload(session_id, controller))), 201


@blueprint.route('/api/sessions/<session_id>', methods=['GET'])
def get_session(session_id):
    controller = attempt_sessions.get(session_id)
    return jsonify(success_response(_session_payload(session_id, controller)))


@blueprint.route('/api/sessions/<session_id>/answer', methods=['POST'])
def answer_question(session_id):
    """Submit the choice for the current question."""
    payload = _json_body()
    choice_id = payload.get('choiceId')
    if not isinstance(choice_id, str) or not choice_id:
        raise ValidationError('choiceId is required.', errors={'choiceId': choice_id})

    controller = attempt_sessions.get(session_id)
    outcome = controller.answer(choice_id)
    return jsonify(success_response({
        'outcome': outcome.to_dict() if outcome else None,
        'session': _session_payload(session_id, controller),
    }))


@blueprint.route('/api/sessions/<session_id>/finish', methods=['POST'])
def finish_session(session_id):
    controller = attempt_sessions.get(session_id)
    controller.finish()
    return jsonify(success_response(_session_payload(session_id, controller)))


@blueprint.route('/api/sessions/<session_id>/start', methods=['POST'])
def start_session(session_id):
    """Start a new attempt on a mounted session (after a failed start or retry)."""
    controller = attempt_sessions.get(session_id)
    controller.start()
    return jsonify(success_response(_session_payload(session_id, controller)))


@blueprint.route('/api/sessions/<session_id>/retry', methods=['POST'])
def retry_session(session_id):
    controller = attempt_sessions.get(session_id)
    # A failed retry leaves the session idle; retrying again starts afresh
    if isinstance(controller.state, Idle):
        controller.start()
    else:
        controller.retry()
    return jsonify(success_response(_session_payload(session_id, controller)))


@blueprint.route('/api/sessions/<session_id>/explanations/<question_id>', methods=['GET'])
def get_explanation(session_id, question_id):
    """Cached explanation for an answered question; never triggers a fetch."""
    controller = attempt_sessions.get(session_id)
    return jsonify(success_response({
        'questionId': question_id,
        'explanation': controller.explanation(question_id),
        'pending': controller.explanation_pending(question_id),
    }))


@blueprint.route('/api/sessions/<session_id>', methods=['DELETE'])
def delete_session(session_id):
    if not attempt_sessions.unmount(session_id):
        raise NotFoundError(f"Quiz session {session_id} not found.", resource='quiz_session')
    return jsonify(success_response(message='Quiz session closed.'))
