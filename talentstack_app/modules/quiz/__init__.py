"""Quiz module: hosted quiz attempt sessions for learner-facing views."""

from flask import Blueprint

blueprint = Blueprint('quiz', __name__)

# Module Metadata
module_metadata = {
    'name': 'Quizzes',
    'icon': 'circle-question',
    'category': 'Learning',
    'url_prefix': '/learn/quiz',
    'enabled': True
}


def setup_module():
    """Attach the route modules to the quiz blueprint."""
    from . import routes  # noqa: F401
