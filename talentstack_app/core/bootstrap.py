"""Bootstrap helpers for configuring the Flask application."""

from __future__ import annotations

from flask import Flask

from ..extensions import attempt_sessions
from .error_handlers import register_error_handlers as _register_error_handlers
from .logging_config import setup_logging
from .module_registry import register_default_modules


def configure_logging(app: Flask) -> None:
    """Configure the package logger and the Flask app logger."""

    setup_logging(
        app,
        log_level=app.config.get('LOG_LEVEL', 'INFO'),
        log_dir=app.config.get('LOG_DIR'),
        json_format=bool(app.config.get('LOG_JSON')),
    )
    app.logger.setLevel(app.config.get('LOG_LEVEL', 'INFO'))
    app.logger.info("Flask app logger configured successfully.")


def register_extensions(app: Flask) -> None:
    """Initialize shared extensions with the Flask app instance."""

    attempt_sessions.init_app(app)


def register_error_handlers(app: Flask) -> None:
    """Install JSON error handlers for the API surface."""

    _register_error_handlers(app)


def register_blueprints(app: Flask) -> None:
    """Register every blueprint-backed module with the application."""

    register_default_modules(app)
