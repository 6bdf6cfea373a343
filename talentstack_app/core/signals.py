"""
Central Signal Registry for Event-Driven Architecture.

Uses blinker (Flask's signal library) to enable decoupled
communication between modules.

Usage:
    # Publisher (sender)
    from talentstack_app.core.signals import quiz_attempt_finished
    quiz_attempt_finished.send(controller, attempt_id='a1', passed=True, ...)

    # Subscriber (receiver)
    @quiz_attempt_finished.connect
    def on_attempt_finished(sender, **kwargs):
        ...
"""
from blinker import Namespace

# ============================================
# Learning Signals
# ============================================
learning_signals = Namespace()

# Signal: Fired when a quiz attempt has been started by the backend
# Payload: attempt_id, quiz_id, lesson_id, question_count
quiz_attempt_started = learning_signals.signal('quiz_attempt_started')

# Signal: Fired when an answer has been applied to an attempt
# Payload: attempt_id, question_id, choice_id, correct, score, streak, current_index
quiz_attempt_answered = learning_signals.signal('quiz_attempt_answered')

# Signal: Fired when the backend returned the pass/fail verdict
# Payload: attempt_id, quiz_id, lesson_id, passed, score, streak
quiz_attempt_finished = learning_signals.signal('quiz_attempt_finished')

# Signal: Fired once the lesson owning a passed quiz was reported complete
# Payload: attempt_id, lesson_id, status, delivered (bool)
lesson_completed = learning_signals.signal('lesson_completed')
