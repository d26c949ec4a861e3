"""Flask application factory for the newsletter trigger API."""

from __future__ import annotations

import logging

from flask import Flask, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from aidigest.config import AppConfig
from aidigest.pipeline import NewsletterPipeline, build_pipeline

logger = logging.getLogger(__name__)


def create_app(config: AppConfig, pipeline: NewsletterPipeline | None = None) -> Flask:
    """Build the app. The pipeline (and so its cache) lives as long as the app."""
    app = Flask(__name__)
    app.config["AIDIGEST_CONFIG"] = config
    app.config["AIDIGEST_PIPELINE"] = pipeline or build_pipeline(config)

    CORS(app, send_wildcard=True)

    from aidigest.server.routes import newsletter_bp

    app.register_blueprint(newsletter_bp)

    @app.before_request
    def log_request():
        logger.info("%s %s", request.method, request.full_path.rstrip("?"))

    @app.errorhandler(Exception)
    def handle_error(exc: Exception):
        if isinstance(exc, HTTPException):
            return jsonify(success=False, error=exc.description, details={}), exc.code
        logger.exception("Server error")
        return jsonify(
            success=False,
            error=str(exc),
            details=getattr(exc, "details", None) or {},
        ), 500

    return app
