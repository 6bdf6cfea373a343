# File: talentstack_app/modules/quiz/config.py

class QuizDefaultConfig:
    """
    Default configuration for the quiz attempt module.
    Acts as a fallback when the app config does not override a value.
    """

    # --- Scoring ---
    QUIZ_CORRECT_POINTS = 10

    # --- Hosted sessions ---
    QUIZ_SESSION_IDLE_SECONDS = 1800
    QUIZ_MAX_SESSIONS = 1000

    # --- Lesson progress ---
    LESSON_COMPLETE_STATUS = 'COMPLETE'

    # --- Analytics event types ---
    EVENT_QUIZ_STARTED = 'quiz_started'
    EVENT_QUIZ_FINISHED = 'quiz_finished'

    # --- Feedback copy ---
    FEEDBACK_CORRECT = 'Correct!'
    FEEDBACK_INCORRECT = 'Incorrect'
