"""
Execution of built queries against one discovered backend.

Required queries raise QueryExecutionError. Optional queries never raise:
each failure is logged and the value is reported as absent. Optional
metrics with alternates are given as an ordered list of variants and the
first one that yields data is used.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from promscout.cluster.client import ClusterClient
from promscout.core.errors import (
    OptionalQueryFailure,
    ProxyError,
    QueryExecutionError,
    SeriesParseError,
)
from promscout.discovery.models import ProxyTarget
from promscout.discovery.proxy import ProxyClient
from promscout.query.models import QUERY_INSTANT_PATH, QUERY_RANGE_PATH, PromQuery, Series
from promscout.query.parser import parse_matrix, parse_vector_sum

logger = structlog.get_logger()


class QueryRunner:
    """
    Run range and instant queries for one fetch cycle.

    Args:
        proxy: Proxy client
        cluster: Cluster the target lives in
        target: Verified backend target
        window: start/end/step parameters for range queries
    """

    def __init__(
        self,
        proxy: ProxyClient,
        cluster: ClusterClient,
        target: ProxyTarget,
        window: dict[str, str],
    ) -> None:
        self._proxy = proxy
        self._cluster = cluster
        self._target = target
        self.window = window

    async def _range(self, query: PromQuery) -> list[Series]:
        raw = await self._proxy.get(
            self._cluster, self._target, QUERY_RANGE_PATH, query.range_params(self.window)
        )
        series = parse_matrix(raw)
        if query.metric:
            series = [s.renamed(query.metric) for s in series]
        return series

    async def _instant(self, query: PromQuery) -> float:
        raw = await self._proxy.get(
            self._cluster, self._target, QUERY_INSTANT_PATH, query.instant_params()
        )
        return parse_vector_sum(raw)

    async def series(self, query: PromQuery) -> list[Series]:
        """Run a required range query."""
        try:
            result = await self._range(query)
        except (ProxyError, SeriesParseError) as exc:
            logger.error("required_query_failed", metric=query.metric, query=query.expr, error=exc.message)
            raise QueryExecutionError(
                f"{query.metric or 'metrics'} query failed: {exc.message}",
                {"metric": query.metric},
            ) from exc
        logger.debug(
            "query_completed",
            metric=query.metric,
            series=len(result),
            points=sum(len(s.points) for s in result),
        )
        return result

    async def _try_series(self, query: PromQuery) -> list[Series]:
        try:
            return await self._range(query)
        except (ProxyError, SeriesParseError) as exc:
            raise OptionalQueryFailure(exc.message, {"metric": query.metric}) from exc

    async def _try_scalar(self, query: PromQuery) -> float:
        try:
            return await self._instant(query)
        except (ProxyError, SeriesParseError) as exc:
            raise OptionalQueryFailure(exc.message, {"query": query.expr}) from exc

    async def optional_series(self, variants: PromQuery | Sequence[PromQuery]) -> list[Series]:
        """First non-empty result among the variants, or an empty list."""
        if isinstance(variants, PromQuery):
            variants = [variants]
        for query in variants:
            try:
                result = await self._try_series(query)
            except OptionalQueryFailure as exc:
                logger.info("optional_query_failed", metric=query.metric, error=exc.message)
                continue
            if result:
                return result
        return []

    async def optional_scalar(self, query: PromQuery) -> float | None:
        """Instant sum, or None when the query fails."""
        try:
            return await self._try_scalar(query)
        except OptionalQueryFailure as exc:
            logger.info("optional_query_failed", query=query.expr, error=exc.message)
            return None

    async def first_positive(self, variants: Sequence[PromQuery]) -> float | None:
        """First variant whose instant sum is positive, or None."""
        for query in variants:
            try:
                value = await self._try_scalar(query)
            except OptionalQueryFailure as exc:
                logger.info("optional_query_failed", query=query.expr, error=exc.message)
                continue
            if value > 0:
                return value
        return None
