"""Discovery source fetching and normalisation."""

from aidigest.fetchers.aggregator import SourceAggregator, merge_results
from aidigest.fetchers.base import NormalizedItem, SourceDescriptor, SourceResult, normalize_item

__all__ = [
    "NormalizedItem",
    "SourceAggregator",
    "SourceDescriptor",
    "SourceResult",
    "merge_results",
    "normalize_item",
]
