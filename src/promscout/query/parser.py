"""
Normalization of Prometheus HTTP API responses.

Two response shapes are handled:
- matrix (range queries): one or more time-ordered series
- vector (instant queries): one value per result, summed into a scalar

Non-finite sample values (NaN, +Inf, -Inf) are coerced to 0 so that
downstream consumers never see NaN.
"""

from __future__ import annotations

import json
import math
from typing import Any

from promscout.core.errors import SeriesParseError
from promscout.query.models import Series, TimePoint

METRIC_NAME_LABEL = "__name__"
PLACEHOLDER_METRIC = "series"


def _load_envelope(raw: bytes | str | None) -> dict[str, Any]:
    """Decode a response body and check the API status field."""
    if raw is None:
        raise SeriesParseError("empty response")
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as exc:
        raise SeriesParseError(f"malformed response: {exc}") from exc

    if not isinstance(data, dict):
        raise SeriesParseError("malformed response: expected an object")

    status = data.get("status")
    if status != "success":
        error = data.get("error", "Unknown error")
        raise SeriesParseError(f"Prometheus API error: {error}", {"status": status})

    body = data.get("data") or {}
    if not isinstance(body, dict):
        raise SeriesParseError("malformed response: data is not an object")

    result = body.get("result")
    if result is None:
        return {"result": []}
    if not isinstance(result, list):
        raise SeriesParseError("malformed response: result is not a list")
    return {"result": result}


def parse_sample_value(value: Any) -> float:
    """Parse a sample value string, mapping non-finite values to 0.

    Raises ValueError/TypeError for anything that is not a number.
    """
    parsed = float(value)
    if not math.isfinite(parsed):
        return 0.0
    return parsed


def parse_matrix(raw: bytes | str | None) -> list[Series]:
    """
    Convert a matrix response into normalized series.

    The series name comes from the ``__name__`` label when present, otherwise
    the generic placeholder. Points keep the order in which they were received;
    pairs that are not ``[timestamp, value]`` or whose value is not numeric are
    skipped.

    Raises:
        SeriesParseError: on a malformed envelope or a non-success status.
    """
    envelope = _load_envelope(raw)

    out: list[Series] = []
    for item in envelope["result"]:
        if not isinstance(item, dict):
            continue
        labels = item.get("metric") or {}
        if not isinstance(labels, dict):
            raise SeriesParseError("malformed response: metric labels are not an object")
        name = labels.get(METRIC_NAME_LABEL) or PLACEHOLDER_METRIC

        points: list[TimePoint] = []
        for pair in item.get("values") or []:
            if not isinstance(pair, (list, tuple)) or len(pair) != 2:
                continue
            try:
                ts = float(pair[0])
                value = parse_sample_value(pair[1])
            except (ValueError, TypeError):
                continue
            points.append(TimePoint(t=ts, v=value))

        out.append(Series(metric=name, points=points))

    return out


def parse_vector_sum(raw: bytes | str | None) -> float:
    """
    Sum every value of a vector response.

    Entries that do not parse as numbers are skipped rather than failing the
    whole aggregate. An empty result sums to 0.

    Raises:
        SeriesParseError: on malformed JSON or a non-success status.
    """
    envelope = _load_envelope(raw)

    total = 0.0
    for item in envelope["result"]:
        if not isinstance(item, dict):
            continue
        value = item.get("value")
        if not isinstance(value, (list, tuple)) or len(value) != 2:
            continue
        try:
            total += parse_sample_value(value[1])
        except (ValueError, TypeError):
            continue
    return total
