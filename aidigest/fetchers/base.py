"""Data model shared by the source aggregator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from aidigest.errors import SourceFetchError

NO_TITLE = "No Title"
NO_DESCRIPTION = "No Description"

# Candidate upstream fields, in order of preference.
_TITLE_FIELDS = ("title", "name", "id")
_DESCRIPTION_FIELDS = ("description", "content")
_URL_FIELDS = ("url", "link", "repo_url")


@dataclass(frozen=True)
class SourceDescriptor:
    """A discovery endpoint and the label its items are attributed to."""

    url: str
    name: str

    @property
    def cache_key(self) -> str:
        return "api_" + "_".join(self.name.lower().split())


@dataclass
class NormalizedItem:
    """Uniform representation of one item from any source."""

    title: str
    description: str
    url: str
    source: str


@dataclass
class SourceResult:
    """Outcome of fetching one source: its items, or the error that stopped it."""

    source: str
    items: list[NormalizedItem] = field(default_factory=list)
    error: SourceFetchError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _first_present(item: dict, fields: tuple[str, ...], default: str) -> str:
    for name in fields:
        value = item.get(name)
        if value:
            return value if isinstance(value, str) else str(value)
    return default


def normalize_item(item: Any, source: str) -> NormalizedItem:
    """Map an arbitrary upstream JSON value onto a :class:`NormalizedItem`.

    Never raises: missing, empty or non-object input falls back to the
    sentinel title/description and an empty URL.
    """
    if not isinstance(item, dict):
        item = {}
    return NormalizedItem(
        title=_first_present(item, _TITLE_FIELDS, NO_TITLE),
        description=_first_present(item, _DESCRIPTION_FIELDS, NO_DESCRIPTION),
        url=_first_present(item, _URL_FIELDS, ""),
        source=source,
    )
