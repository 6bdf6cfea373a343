# File: talentstack_app/modules/quiz/engine/explanation_cache.py
"""
Per-attempt explanation cache.

Fetches the rationale for an answered question at most once per question id,
on a background thread, and keeps the text for the lifetime of one attempt.
Fetching is best-effort: any failure leaves the explanation absent and is only
logged.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)

# (attempt_id, question_id, choice_id) -> explanation text or None
ExplanationFetcher = Callable[[str, str, str], Optional[str]]


class ExplanationCache:
    """Memoized, non-blocking explanation lookups scoped to one attempt."""

    def __init__(self, attempt_id: str, fetcher: ExplanationFetcher):
        self.attempt_id = attempt_id
        self._fetcher = fetcher
        self._entries: Dict[str, Optional[str]] = {}
        self._inflight: Dict[str, threading.Thread] = {}
        self._lock = threading.Lock()
        self._discarded = False

    def request(self, question_id: str, choice_id: str) -> bool:
        """
        Start fetching the explanation for an answered question.

        Returns True if a fetch was issued, False if the question is already
        cached or in flight (or the cache was discarded).
        """
        with self._lock:
            if self._discarded or question_id in self._entries or question_id in self._inflight:
                return False
            thread = threading.Thread(
                target=self._fetch,
                args=(question_id, choice_id),
                name=f"explain-{self.attempt_id}-{question_id}",
                daemon=True,
            )
            self._inflight[question_id] = thread
        thread.start()
        return True

    def _fetch(self, question_id: str, choice_id: str) -> None:
        text: Optional[str] = None
        try:
            text = self._fetcher(self.attempt_id, question_id, choice_id)
        except Exception as exc:  # best-effort: never surfaces to the learner
            logger.warning(
                "[EXPLAIN] attempt=%s question=%s fetch failed: %s", self.attempt_id, question_id, exc
            )
        if text is not None:
            text = str(text).strip() or None
        with self._lock:
            self._inflight.pop(question_id, None)
            if self._discarded:
                return
            self._entries[question_id] = text

    def get(self, question_id: str) -> Optional[str]:
        with self._lock:
            return self._entries.get(question_id)

    def is_pending(self, question_id: str) -> bool:
        with self._lock:
            return question_id in self._inflight

    def has_attempted(self, question_id: str) -> bool:
        with self._lock:
            return question_id in self._entries or question_id in self._inflight

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until in-flight fetches finish. Returns False on timeout."""
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._lock:
                threads = list(self._inflight.values())
            if not threads:
                return True
            for thread in threads:
                remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
                thread.join(remaining)
            if deadline is not None and time.monotonic() >= deadline:
                with self._lock:
                    return not self._inflight

    def discard(self) -> None:
        """Drop all entries; late fetch results are ignored from now on."""
        with self._lock:
            self._discarded = True
            self._entries.clear()

    def snapshot(self) -> Dict[str, Optional[str]]:
        with self._lock:
            return dict(self._entries)
