"""
Percentage and ranking post-processor.

Shapes the raw ``$facet`` output into a stats bundle: a percentage for
every group, categorical groups ranked by count, buckets and ordinal
values kept in ascending order.
"""

from typing import Any, Dict, List, Optional

from services.stats_dimensions import BUCKET, ORDINAL, Dimension, EntitySet
from services.stats_pipeline import TOTAL_BRANCH


def percent(count: float, total: int) -> float:
    """count as a percentage of total, one decimal; 0.0 when total is 0."""
    if total <= 0:
        return 0.0
    return round(count * 100 / total, 1)


def extract_total(raw: Dict[str, Any]) -> int:
    """Read the $count branch, which is empty when nothing matched."""
    rows = raw.get(TOTAL_BRANCH) or []
    return int(rows[0].get("count", 0)) if rows else 0


def annotate_categories(rows: List[Dict[str, Any]], total: int, rank: bool = True) -> List[Dict[str, Any]]:
    """
    Turn ``{_id, count[, avg]}`` rows into ``{category, count, percent}`` items.

    With rank=True items are sorted by descending count; sorted() is stable
    so equal counts keep the order the grouping stage produced.
    """
    items = []
    for row in rows:
        count = row.get("count", 0)
        item = {
            "category": row.get("_id"),
            "count": count,
            "percent": percent(count, total),
        }
        if "avg" in row:
            item["avg_percentage"] = _round_or_none(row["avg"])
        items.append(item)

    if rank:
        items.sort(key=lambda item: item["count"], reverse=True)
    return items


def annotate_buckets(dim: Dimension, rows: List[Dict[str, Any]], total: int) -> List[Dict[str, Any]]:
    """
    Turn ``$bucket`` rows into ``{range, count, percent}`` items.

    Buckets stay in ascending boundary order with the overflow bucket last.
    """
    labels = dim.bucket_labels()
    order = {lo: index for index, lo in enumerate(dim.boundaries)}
    overflow = dim.bucket_overflow_label

    def position(row):
        return order.get(row.get("_id"), len(order))

    items = []
    for row in sorted(rows, key=position):
        bucket_id = row.get("_id")
        label = overflow if bucket_id == overflow else labels.get(bucket_id, str(bucket_id))
        count = row.get("count", 0)
        items.append({"range": label, "count": count, "percent": percent(count, total)})
    return items


def annotate(entity: EntitySet, raw: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Build the stats bundle for one entity set.

    Args:
        entity: Entity set whose dimension table drives the shaping
        raw: The single document produced by the $facet stage
             (None or {} when the aggregation returned nothing)

    Returns:
        dict: ``{"total": int, <dimension>: [...], <average>: float}``
    """
    raw = raw or {}
    total = extract_total(raw)
    bundle: Dict[str, Any] = {"total": total}

    for dim in entity.dimensions:
        rows = raw.get(dim.name) or []
        if dim.kind == BUCKET:
            bundle[dim.name] = annotate_buckets(dim, rows, total)
        else:
            bundle[dim.name] = annotate_categories(rows, total, rank=dim.kind != ORDINAL)

    for avg in entity.averages:
        rows = raw.get(avg.name) or []
        value = rows[0].get("avg") if rows else None
        bundle[avg.name] = _round_or_none(value) or 0.0

    return bundle


def _round_or_none(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return round(float(value), 1)
