"""Renders newsletter emails and prompts from Jinja2 templates."""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path

from jinja2 import ChoiceLoader, Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent.parent / "templates"

NEWSLETTER_TITLE = "AI Discovery Digest"


def build_environment(user_dir: str | Path | None = None) -> Environment:
    """Jinja2 environment that prefers *user_dir* and falls back to package templates."""
    loaders = []
    if user_dir:
        loaders.append(FileSystemLoader(str(Path(user_dir).expanduser())))
    loaders.append(FileSystemLoader(str(TEMPLATES_DIR)))
    return Environment(
        loader=ChoiceLoader(loaders),
        autoescape=select_autoescape(["html"]),
        keep_trailing_newline=True,
    )


def long_date(day: date) -> str:
    """``Monday, October 19, 2026``."""
    return f"{day:%A}, {day:%B} {day.day}, {day.year}"


def short_date(day: date) -> str:
    """``10/19/2026``."""
    return f"{day.month}/{day.day}/{day.year}"


def render_newsletter(
    summary: str,
    env: Environment,
    today: date,
    title: str = NEWSLETTER_TITLE,
) -> str:
    """Wrap an HTML fragment in the newsletter email shell.

    Args:
        summary: HTML fragment produced by the model (inserted unescaped).
        env: Template environment.
        today: Date shown in the header; its year goes in the footer.
        title: Newsletter title for the header and ``<title>``.

    Returns:
        Complete HTML document.
    """
    return env.get_template("newsletter_email.html").render(
        title=title,
        date_label=long_date(today),
        year=today.year,
        summary=Markup(summary),
    )


def render_prompt(env: Environment, name: str, **context) -> str:
    return env.get_template(name).render(**context).strip()
