"""
Data models for queries and normalized time series.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

QUERY_RANGE_PATH = "api/v1/query_range"
QUERY_INSTANT_PATH = "api/v1/query"


@dataclass(frozen=True)
class PromQuery:
    """A query string plus the name its series are published under.

    ``metric`` is None when the series keep whatever name the backend returned.
    """

    expr: str
    metric: str | None = None

    def range_params(self, window: dict[str, str]) -> dict[str, str]:
        return {"query": self.expr, **window}

    def instant_params(self) -> dict[str, str]:
        return {"query": self.expr}


@dataclass(frozen=True)
class TimePoint:
    t: float
    v: float

    def to_dict(self) -> dict[str, float]:
        return {"t": self.t, "v": self.v}


@dataclass
class Series:
    """A named, time-ordered sequence of points, in the order received."""

    metric: str
    points: list[TimePoint] = field(default_factory=list)

    def renamed(self, metric: str) -> Series:
        return Series(metric=metric, points=list(self.points))

    def to_dict(self) -> dict[str, Any]:
        return {
            "metric": self.metric,
            "points": [p.to_dict() for p in self.points],
        }
