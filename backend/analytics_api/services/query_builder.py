"""
QueryBuilder: fluent SQL construction for grouped aggregate queries.

All user inputs go through ? parameterized placeholders; LIMIT values are
coerced to int before being inlined.
"""
from __future__ import annotations

from datetime import date
from typing import Any, Sequence


class QueryBuilder:
    """Fluent SQL query builder with safe parameterization."""

    def __init__(self, base_table: str):
        """
        Args:
            base_table: Table name with optional alias, e.g. "invoices i"
        """
        self.base_table = base_table
        self._conditions: list[str] = []
        self._params: list[Any] = []
        self._joins: list[str] = []
        self._group_by: str | None = None
        self._having: str | None = None
        self._having_params: list[Any] = []
        self._order_by: str | None = None
        self._limit: int | None = None

    # --- Join methods ---

    def join(self, table: str, on: str) -> QueryBuilder:
        """Add INNER JOIN."""
        self._joins.append(f"JOIN {table} ON {on}")
        return self

    def left_join(self, table: str, on: str) -> QueryBuilder:
        """Add LEFT JOIN."""
        self._joins.append(f"LEFT JOIN {table} ON {on}")
        return self

    # --- Filters ---

    def where(self, condition: str, *params: Any) -> QueryBuilder:
        """Add a WHERE condition with parameters."""
        self._conditions.append(condition)
        self._params.extend(params)
        return self

    def filter_window(
        self,
        months: int | None,
        as_of: date,
        column: str = "i.invoice_date",
    ) -> QueryBuilder:
        """Keep rows dated within ``months`` calendar months before ``as_of``."""
        if months is not None:
            self._conditions.append(f"date({column}) >= date(?, ?)")
            self._params.extend([as_of.isoformat(), f"-{int(months)} months"])
        return self

    def filter_in(self, column: str, values: Sequence[Any]) -> QueryBuilder:
        """Add ``column IN (?, ?, ...)``. An empty sequence matches nothing."""
        if not values:
            self._conditions.append("0")
            return self
        placeholders = ", ".join("?" for _ in values)
        self._conditions.append(f"{column} IN ({placeholders})")
        self._params.extend(values)
        return self

    # --- Grouping ---

    def group_by(self, clause: str) -> QueryBuilder:
        """Set GROUP BY clause."""
        self._group_by = clause
        return self

    def having(self, condition: str, *params: Any) -> QueryBuilder:
        """Set HAVING clause."""
        self._having = condition
        self._having_params = list(params)
        return self

    # --- Sorting / limiting ---

    def order_by(self, clause: str) -> QueryBuilder:
        """Set ORDER BY directly (use only with trusted input)."""
        self._order_by = clause
        return self

    def limit(self, n: int | None) -> QueryBuilder:
        """Set LIMIT; negative values are treated as 0."""
        self._limit = None if n is None else max(0, int(n))
        return self

    # --- Build methods ---

    def _build_from(self) -> str:
        parts = [f"FROM {self.base_table}"]
        parts.extend(self._joins)
        return " ".join(parts)

    def _build_where(self) -> str:
        if not self._conditions:
            return ""
        return "WHERE " + " AND ".join(self._conditions)

    def _build_group_by(self) -> str:
        if not self._group_by:
            return ""
        return f"GROUP BY {self._group_by}"

    def _build_having(self) -> str:
        if not self._having:
            return ""
        return f"HAVING {self._having}"

    def _build_tail(self) -> str:
        parts = []
        if self._order_by:
            parts.append(f"ORDER BY {self._order_by}")
        if self._limit is not None:
            parts.append(f"LIMIT {self._limit}")
        return " ".join(parts)

    def build_select(self, columns: str, params_before: Sequence[Any] = ()) -> tuple[str, list[Any]]:
        """Build a full SELECT query.

        Args:
            columns: SELECT column expressions.
            params_before: Parameters for placeholders inside ``columns``
                (they precede the WHERE parameters in the statement).
        """
        parts = [
            f"SELECT {columns}",
            self._build_from(),
            self._build_where(),
            self._build_group_by(),
            self._build_having(),
            self._build_tail(),
        ]
        sql = " ".join(p for p in parts if p)
        return sql, [*params_before, *self._params, *self._having_params]
