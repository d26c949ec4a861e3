"""Newsletter trigger routes."""

from __future__ import annotations

import logging

from flask import Blueprint, current_app, jsonify

from aidigest.errors import NewsletterError
from aidigest.pipeline import NewsletterPipeline

newsletter_bp = Blueprint("newsletter", __name__)
logger = logging.getLogger(__name__)


@newsletter_bp.route("/send-newsletter", methods=["GET"])
async def send_newsletter():
    pipeline: NewsletterPipeline = current_app.config["AIDIGEST_PIPELINE"]
    logger.info("Starting newsletter generation and delivery")

    try:
        content = await pipeline.run()
        logger.info("Newsletter content generated, sending")
        result = await pipeline.deliver(content)
    except NewsletterError as exc:
        logger.error("Newsletter run failed: %s", exc)
        return jsonify(success=False, error=str(exc), details=exc.details), 500

    logger.info("Newsletter sent on attempt %d", result.attempt)
    return jsonify(
        success=True,
        message="Newsletter generated and sent successfully!",
        details=result.to_dict(),
    )


@newsletter_bp.route("/health", methods=["GET"])
def health():
    return jsonify(status="ok")
