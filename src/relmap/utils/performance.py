"""
Statement statistics and N+1 detection.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import List, Sequence

SLOW_QUERY_ENV = "RELMAP_SLOW_QUERY_MS"


def resolve_slow_query_ms(*, default: int, override: int | None = None) -> int:
    """
    Pick the slow-statement threshold: explicit override, then environment, then default.
    """

    if override is not None:
        return override
    value = os.getenv(SLOW_QUERY_ENV)
    if not value:
        return default
    try:
        return max(0, int(value))
    except ValueError:
        logging.getLogger("relmap.utils.performance").warning(
            "Ignoring invalid %s value %r", SLOW_QUERY_ENV, value
        )
        return default


@dataclass
class QueryStat:
    sql: str
    count: int = 0
    total_ms: float = 0.0
    fingerprints: set[str] = field(default_factory=set)

    def record(self, fingerprint: str, elapsed_ms: float) -> None:
        self.count += 1
        self.total_ms += elapsed_ms
        if fingerprint:
            self.fingerprints.add(fingerprint)

    @property
    def average_ms(self) -> float:
        if self.count == 0:
            return 0.0
        return self.total_ms / self.count


class PerformanceTracker:
    """
    Counts executed statements and warns when one shape repeats with varying
    parameters, the usual sign of fetching related rows one at a time instead
    of joining them into the relation.
    """

    def __init__(self, logger: logging.Logger, *, n_plus_one_threshold: int = 5) -> None:
        self.logger = logger
        self.n_plus_one_threshold = n_plus_one_threshold
        self.stats: dict[str, QueryStat] = {}
        self._reported: set[str] = set()

    def record(self, sql: str, params: Sequence[object], elapsed_ms: float) -> None:
        normalized_sql = " ".join(sql.strip().split())
        stat = self.stats.setdefault(normalized_sql, QueryStat(sql=normalized_sql))
        stat.record(self._fingerprint(params), elapsed_ms)
        if self._should_report(stat):
            self._reported.add(normalized_sql)
            self.logger.warning(
                "Potential N+1 detected for SQL '%s' (%s executions, %s distinct params)",
                self._abbreviate(normalized_sql),
                stat.count,
                len(stat.fingerprints),
                extra={"sql": normalized_sql, "count": stat.count},
            )

    def summary(self) -> List[dict[str, object]]:
        return [
            {
                "sql": stat.sql,
                "count": stat.count,
                "total_ms": stat.total_ms,
                "average_ms": stat.average_ms,
                "distinct_params": len(stat.fingerprints),
            }
            for stat in self.stats.values()
        ]

    def reset(self) -> None:
        self.stats.clear()
        self._reported.clear()

    def _should_report(self, stat: QueryStat) -> bool:
        if stat.sql.upper().startswith(("INSERT", "UPDATE", "DELETE")):
            return False
        if stat.count < self.n_plus_one_threshold:
            return False
        if len(stat.fingerprints) < 2:
            return False
        return stat.sql not in self._reported

    @staticmethod
    def _fingerprint(params: Sequence[object]) -> str:
        if not params:
            return ""
        return repr(tuple(params))

    @staticmethod
    def _abbreviate(sql: str, max_length: int = 80) -> str:
        if len(sql) <= max_length:
            return sql
        return sql[: max_length - 3] + "..."
