"""
Aggregation pipeline builder.

Turns an entity set's dimension table into a single MongoDB aggregation:
a ``$match`` on the scope followed by one ``$facet`` whose branches compute
every breakdown over the same scoped input.
"""

from typing import Any, Dict, List

from bson import ObjectId

from services.stats_dimensions import (
    BUCKET,
    ORDINAL,
    TOP_K,
    Dimension,
    EntitySet,
    ScalarAverage,
)

TOTAL_BRANCH = "total"


def build_pipeline(entity: EntitySet, scope: ObjectId) -> List[Dict[str, Any]]:
    """
    Build the aggregation pipeline for one scope.

    Args:
        entity: Entity set whose dimensions are computed
        scope: Validated project identifier

    Returns:
        List of pipeline stages, ready for ``collection.aggregate``.
        The single output document maps each branch name to its rows.
    """
    facets: Dict[str, List[Dict[str, Any]]] = {
        TOTAL_BRANCH: [{"$count": "count"}],
    }
    for dim in entity.dimensions:
        facets[dim.name] = dimension_branch(dim)
    for avg in entity.averages:
        facets[avg.name] = average_branch(avg)

    return [
        {"$match": {entity.scope_field: scope}},
        {"$facet": facets},
    ]


def dimension_branch(dim: Dimension) -> List[Dict[str, Any]]:
    """Build the facet sub-pipeline for one dimension."""
    if dim.kind == BUCKET:
        return _bucket_branch(dim)

    stages: List[Dict[str, Any]] = []
    if dim.is_unwound:
        stages.append({"$unwind": f"${dim.field}"})
    if dim.exclude_null or dim.kind == ORDINAL:
        stages.append({"$match": {dim.group_path: {"$ne": None}}})

    group: Dict[str, Any] = {
        "_id": f"${dim.group_path}",
        "count": {"$sum": f"${dim.field}.{dim.weight}" if dim.weight else 1},
    }
    if dim.average:
        group["avg"] = {"$avg": f"${dim.field}.{dim.average}"}
    stages.append({"$group": group})

    if dim.kind == ORDINAL:
        stages.append({"$sort": {"_id": 1}})
    elif dim.kind == TOP_K or dim.sort_by_count:
        # _id breaks count ties so top-K truncation is deterministic
        stages.append({"$sort": {"count": -1, "_id": 1}})
    if dim.kind == TOP_K:
        stages.append({"$limit": dim.limit})
    return stages


def _bucket_branch(dim: Dimension) -> List[Dict[str, Any]]:
    # $bucket sends out-of-range values to `default`; dropping everything below
    # the first boundary (and nulls) leaves only the >= last boundary overflow.
    return [
        {"$match": {dim.field: {"$gte": dim.boundaries[0]}}},
        {
            "$bucket": {
                "groupBy": f"${dim.field}",
                "boundaries": list(dim.boundaries),
                "default": dim.bucket_overflow_label,
                "output": {"count": {"$sum": 1}},
            }
        },
    ]


def average_branch(avg: ScalarAverage) -> List[Dict[str, Any]]:
    return [{"$group": {"_id": None, "avg": {"$avg": f"${avg.field}"}}}]
