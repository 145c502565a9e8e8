"""
Report assembler. Wraps scored entities in the API response envelope.

Callers sort entities before assembly; the assembler only truncates and
computes metadata, so output order always matches input order.
"""
from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Sequence


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp for response metadata."""
    return datetime.now(timezone.utc).isoformat()


def count_by(
    items: Iterable[Any],
    key: str | Callable[[Any], Any],
    categories: Sequence[str] = (),
) -> dict[str, int]:
    """Count items per category, lowercasing labels.

    Known ``categories`` appear with a zero count even when absent.
    """
    getter = key if callable(key) else (lambda item: item.get(key))
    counts = Counter(str(getter(item)).lower() for item in items)
    result = {category.lower(): 0 for category in categories}
    result.update(counts)
    return result


def truncate(entities: Sequence[Any], limit: int) -> list[Any]:
    """First ``limit`` entities; ``limit <= 0`` yields an empty list."""
    if limit is None or limit <= 0:
        return []
    return list(entities[:limit])


def assemble(
    entities: Sequence[dict],
    limit: int,
    *,
    metadata: dict | None = None,
    distribution: tuple[str, str, Sequence[str]] | None = None,
) -> dict:
    """Build ``{success, data, metadata}`` for a list endpoint.

    Args:
        entities: Already-sorted response rows.
        limit: Maximum rows to return.
        metadata: Extra metadata echoed back (timeframe, window parameters).
        distribution: Optional ``(metadata_key, entity_key, categories)``
            that adds a per-category count of the returned rows.
    """
    data = truncate(entities, limit)
    meta = dict(metadata or {})
    meta["totalVendors"] = len(data)
    if distribution is not None:
        meta_key, entity_key, categories = distribution
        meta[meta_key] = count_by(data, entity_key, categories)
    meta["timestamp"] = utc_timestamp()
    return {"success": True, "data": data, "metadata": meta}


def envelope(data: Any, metadata: dict | None = None) -> dict:
    """Success envelope for single-object endpoints."""
    meta = dict(metadata or {})
    meta["timestamp"] = utc_timestamp()
    return {"success": True, "data": data, "metadata": meta}
