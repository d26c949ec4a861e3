"""TOML-based configuration for aidigest.

Loads settings from a TOML file (default ``~/.aidigest/config.toml``) and
provides typed dataclass access to all configuration sections.  Secrets come
from the process environment (a ``.env`` file in the working directory is
honoured) and override whatever the file says.
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from dotenv import find_dotenv, load_dotenv

from aidigest.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path("~/.aidigest").expanduser()
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.toml"

API_KEY_ENV = "DEEPSEEK_API_KEY"
PORT_ENV = "PORT"

DEFAULT_ENDPOINTS: list[dict[str, str]] = [
    {
        "name": "GitHub",
        "url": "https://trendgpt-backend.onrender.com/scrape/github-repositories",
    },
    {
        "name": "GitHub Developer",
        "url": "https://trendgpt-backend.onrender.com/scrape/github-developers",
    },
    {
        "name": "Hugging face research papers",
        "url": "https://ai-discovery-agent-frontend.onrender.com/api/papers",
    },
    {
        "name": "HuggingFace",
        "url": (
            "https://fetch-url.onrender.com/fetch-url"
            "?url=https://huggingface.co/api/trending?limit=10&type=all&isapi=1"
        ),
    },
]


@dataclass
class CacheConfig:
    ttl_minutes: float = 10


@dataclass
class SourcesConfig:
    endpoints: list[dict[str, str]] = field(
        default_factory=lambda: [dict(e) for e in DEFAULT_ENDPOINTS]
    )
    items_per_source: int = 5
    request_timeout: float = 30.0


@dataclass
class LLMConfig:
    base_url: str = "https://openrouter.ai/api/v1"
    model: str = "meta-llama/llama-4-scout:free"
    api_key: str = ""
    referer: str = "https://yourdomain.com"
    title: str = "AI Discovery Agent"
    request_timeout: float = 120.0


@dataclass
class MailConfig:
    endpoint: str = "https://nine1mail.onrender.com/api/send-newsletter-all"
    subject_prefix: str = "What's Trending in AI"
    max_attempts: int = 3
    retry_delay: float = 2.0
    request_timeout: float = 30.0


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 3000


@dataclass
class AppConfig:
    cache: CacheConfig = field(default_factory=CacheConfig)
    sources: SourcesConfig = field(default_factory=SourcesConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    mail: MailConfig = field(default_factory=MailConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    log_level: str = "INFO"
    template_dir: str = ""

    def require_api_key(self) -> str:
        """Return the completion API key or raise :class:`ConfigError`."""
        if not self.llm.api_key:
            raise ConfigError(
                f"Completion API key is not set (export {API_KEY_ENV} or set [llm] api_key)"
            )
        return self.llm.api_key


def _apply_section(dc: Any, data: dict) -> None:
    """Apply dict values onto a dataclass, ignoring unknown keys."""
    for key, value in data.items():
        if hasattr(dc, key):
            setattr(dc, key, value)
        else:
            logger.debug("Ignoring unknown config key %r", key)


def apply_env(config: AppConfig, environ: dict[str, str] | None = None) -> AppConfig:
    """Overlay environment settings (API key, port) onto *config*."""
    env = os.environ if environ is None else environ

    api_key = env.get(API_KEY_ENV)
    if api_key:
        config.llm.api_key = api_key

    port = env.get(PORT_ENV)
    if port:
        try:
            config.server.port = int(port)
        except ValueError:
            logger.warning("Ignoring non-numeric %s=%r", PORT_ENV, port)

    return config


def load_config(path: str | Path | None = None, use_env: bool = True) -> AppConfig:
    """Load configuration from a TOML file, then apply environment overrides.

    Falls back to defaults if the file doesn't exist.
    """
    config = AppConfig()

    if path is None:
        path = DEFAULT_CONFIG_PATH
    path = Path(path).expanduser()

    if path.exists():
        logger.info("Loading config from %s", path)
        with open(path, "rb") as f:
            raw = tomllib.load(f)

        if "general" in raw:
            if "log_level" in raw["general"]:
                config.log_level = raw["general"]["log_level"]
            if "template_dir" in raw["general"]:
                config.template_dir = raw["general"]["template_dir"]

        section_map = {
            "cache": config.cache,
            "sources": config.sources,
            "llm": config.llm,
            "mail": config.mail,
            "server": config.server,
        }

        for section_name, dc in section_map.items():
            if section_name in raw:
                _apply_section(dc, raw[section_name])
    else:
        logger.info("Config file not found at %s, using defaults", path)

    if use_env:
        load_dotenv(find_dotenv(usecwd=True))
        apply_env(config)

    return config


def write_default_config(path: str | Path | None = None) -> Path:
    """Write a default config file if one doesn't exist. Returns the path."""
    if path is None:
        path = DEFAULT_CONFIG_PATH
    path = Path(path).expanduser()

    if path.exists():
        return path

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(DEFAULT_CONFIG_TOML, encoding="utf-8")
    logger.info("Created default config: %s", path)
    return path


DEFAULT_CONFIG_TOML = """\
[general]
log_level = "INFO"
# template_dir = "~/.aidigest/templates"

[cache]
ttl_minutes = 10

[sources]
items_per_source = 5
request_timeout = 30.0

[[sources.endpoints]]
name = "GitHub"
url = "https://trendgpt-backend.onrender.com/scrape/github-repositories"

[[sources.endpoints]]
name = "GitHub Developer"
url = "https://trendgpt-backend.onrender.com/scrape/github-developers"

[[sources.endpoints]]
name = "Hugging face research papers"
url = "https://ai-discovery-agent-frontend.onrender.com/api/papers"

[[sources.endpoints]]
name = "HuggingFace"
url = "https://fetch-url.onrender.com/fetch-url?url=https://huggingface.co/api/trending?limit=10&type=all&isapi=1"

[llm]
base_url = "https://openrouter.ai/api/v1"
model = "meta-llama/llama-4-scout:free"
# The API key is read from the DEEPSEEK_API_KEY environment variable.
# api_key = ""
referer = "https://yourdomain.com"
title = "AI Discovery Agent"

[mail]
endpoint = "https://nine1mail.onrender.com/api/send-newsletter-all"
subject_prefix = "What's Trending in AI"
max_attempts = 3
retry_delay = 2.0

[server]
host = "0.0.0.0"
# Overridden by the PORT environment variable.
port = 3000
"""
