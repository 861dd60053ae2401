"""
Service layer for ResearchStats.

Contains the statistics engine: dimension tables, pipeline builder,
post-processor, TTL cache and the orchestrating service.
"""

from .stats_cache import TTLCache
from .stats_dimensions import ARTICLES, AUTHORS, ENTITY_SETS
from .stats_service import StatsService, build_stats_services

__all__ = [
    "ARTICLES",
    "AUTHORS",
    "ENTITY_SETS",
    "StatsService",
    "TTLCache",
    "build_stats_services",
]
