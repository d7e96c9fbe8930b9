"""
Query construction and response normalization for the Prometheus HTTP API.
"""

from promscout.query.escaping import escape_label_value, label_matcher, unescape_label_value
from promscout.query.models import (
    QUERY_INSTANT_PATH,
    QUERY_RANGE_PATH,
    PromQuery,
    Series,
    TimePoint,
)
from promscout.query.parser import parse_matrix, parse_vector_sum
from promscout.query.ranges import DEFAULT_RANGE, discovery_budget, parse_range, query_window

__all__ = [
    "escape_label_value",
    "unescape_label_value",
    "label_matcher",
    "PromQuery",
    "Series",
    "TimePoint",
    "QUERY_RANGE_PATH",
    "QUERY_INSTANT_PATH",
    "parse_matrix",
    "parse_vector_sum",
    "DEFAULT_RANGE",
    "parse_range",
    "discovery_budget",
    "query_window",
]
