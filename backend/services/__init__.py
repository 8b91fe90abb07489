"""Services: read-through caches, win/loss rollups and the aggregation layer."""

from .aggregation import AggregationService
from .cache import ReadThroughCache

__all__ = [
    "AggregationService",
    "ReadThroughCache",
]
