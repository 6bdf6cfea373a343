"""
Learning backend client.

Thin ``requests`` wrapper around the six learning-backend endpoints the quiz
attempt engine depends on. Every request is scoped to the organization through
the ``X-Org-Id`` header and the ``orgSlug`` field. Replies are turned into DTOs
by ``schemas``; failures become ``BackendRequestError`` carrying whatever
correlation id the backend supplied.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Optional
from urllib.parse import quote

import requests

from ..exceptions import BackendRequestError
from ..schemas import (
    AnswerVerdict,
    FinishVerdict,
    StartedAttempt,
    explanation_text_from_payload,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 15.0


def _request_id_from_response(response: requests.Response, body: Any) -> Optional[str]:
    if isinstance(body, dict):
        for key in ('_requestId', 'requestId'):
            if body.get(key):
                return str(body[key])
    header_value = response.headers.get('X-Request-Id')
    return str(header_value) if header_value else None


class LearningApiClient:
    """Stateless HTTP worker for the learning backend."""

    def __init__(
        self,
        base_url: str,
        org_id: str,
        org_slug: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session_factory: Optional[Callable[[], requests.Session]] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.org_id = org_id
        self.org_slug = org_slug
        self.timeout = timeout
        self._session_factory = session_factory or requests.Session
        # Request threads, explanation fetches and analytics posts each get their own session
        self._local = threading.local()

    @property
    def http(self) -> requests.Session:
        session = getattr(self._local, 'session', None)
        if session is None:
            session = self._session_factory()
            session.headers.update({
                'Content-Type': 'application/json',
                'X-Org-Id': self.org_id,
            })
            self._local.session = session
        return session

    @classmethod
    def from_config(cls, config) -> "LearningApiClient":
        return cls(
            base_url=config.get('LEARNING_API_URL', 'http://127.0.0.1:8080'),
            org_id=config.get('LEARNING_ORG_ID', 'demo-org'),
            org_slug=config.get('LEARNING_ORG_SLUG', 'demo-org'),
            timeout=float(config.get('BACKEND_TIMEOUT_SECONDS', DEFAULT_TIMEOUT_SECONDS)),
        )

    # ── transport ────────────────────────────────────────────────────

    def _post(self, endpoint: str, body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.base_url}{endpoint}"
        try:
            response = self.http.post(url, json=body or {}, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("[LEARNING_API] POST %s failed: %s", endpoint, exc)
            raise BackendRequestError(f"Learning API unreachable: {exc}") from exc

        try:
            payload = response.json() if 'application/json' in response.headers.get('Content-Type', '') else {}
        except ValueError:
            payload = {}

        if not response.ok:
            request_id = _request_id_from_response(response, payload)
            text = response.text[:500] if response.text else ''
            logger.warning(
                "[LEARNING_API] POST %s -> %s (request_id=%s)", endpoint, response.status_code, request_id
            )
            raise BackendRequestError(
                f"API {response.status_code} {response.reason}: {text}".strip(),
                status=response.status_code,
                request_id=request_id,
            )

        return payload if isinstance(payload, dict) else {}

    def _scoped(self, **fields: Any) -> Dict[str, Any]:
        body = {'orgSlug': self.org_slug}
        body.update(fields)
        return body

    # ── quiz attempts ────────────────────────────────────────────────

    def start_attempt(self, quiz_id: str, lesson_id: Optional[str]) -> StartedAttempt:
        payload = self._post(
            f"/learning/quizzes/{quote(str(quiz_id), safe='')}/attempts",
            self._scoped(lessonId=lesson_id),
        )
        return StartedAttempt.from_payload(payload)

    def submit_answer(self, attempt_id: str, question_id: str, choice_id: str) -> AnswerVerdict:
        payload = self._post(
            f"/learning/quizzes/attempts/{quote(str(attempt_id), safe='')}/answer",
            self._scoped(questionId=question_id, choiceId=choice_id),
        )
        return AnswerVerdict.from_payload(payload)

    def finish_attempt(self, attempt_id: str) -> FinishVerdict:
        payload = self._post(
            f"/learning/quizzes/attempts/{quote(str(attempt_id), safe='')}/finish",
            self._scoped(),
        )
        return FinishVerdict.from_payload(payload)

    def fetch_explanation(self, attempt_id: str, question_id: str, choice_id: str) -> Optional[str]:
        payload = self._post(
            "/learning/ai/explain-answer",
            self._scoped(attemptId=attempt_id, questionId=question_id, choiceId=choice_id),
        )
        return explanation_text_from_payload(payload)

    # ── progress & analytics ─────────────────────────────────────────

    def report_lesson_progress(self, lesson_id: str, status: str) -> None:
        self._post(
            f"/learning/progress/lesson?orgSlug={quote(self.org_slug, safe='')}",
            {'lessonId': lesson_id, 'status': status},
        )

    def report_event(self, event_type: str, meta: Dict[str, Any]) -> None:
        self._post("/learning/events", self._scoped(type=event_type, meta=meta))
