"""
Unit tests for the dimension tables and the aggregation pipeline builder.
"""

import pytest
from bson import ObjectId

from services.stats_dimensions import (
    ARTICLES,
    AUTHORS,
    BUCKET,
    CATEGORICAL,
    TOP_K,
    UNWIND,
    Dimension,
    EntitySet,
)
from services.stats_pipeline import build_pipeline, dimension_branch

SCOPE = ObjectId("64b7f0c2a1b2c3d4e5f60718")


class TestPipelineShape:
    """Tests for the $match + $facet envelope."""

    def test_match_then_facet(self):
        pipeline = build_pipeline(ARTICLES, SCOPE)
        assert pipeline[0] == {"$match": {"projectId": SCOPE}}
        assert list(pipeline[1]) == ["$facet"]
        assert len(pipeline) == 2

    def test_every_dimension_has_a_branch(self):
        facets = build_pipeline(AUTHORS, SCOPE)[1]["$facet"]
        expected = {"total"} | {d.name for d in AUTHORS.dimensions} | {a.name for a in AUTHORS.averages}
        assert set(facets) == expected

    def test_total_branch_counts(self):
        facets = build_pipeline(ARTICLES, SCOPE)[1]["$facet"]
        assert facets["total"] == [{"$count": "count"}]


class TestBranches:
    """Tests for the sub-pipeline of each dimension kind."""

    def test_categorical(self):
        assert dimension_branch(ARTICLES.dimension("languages")) == [
            {"$group": {"_id": "$language", "count": {"$sum": 1}}},
        ]

    def test_categorical_excluding_nulls(self):
        assert dimension_branch(AUTHORS.dimension("gender")) == [
            {"$match": {"gender": {"$ne": None}}},
            {"$group": {"_id": "$gender", "count": {"$sum": 1}}},
        ]

    def test_ordinal_drops_nulls_and_sorts_ascending(self):
        assert dimension_branch(ARTICLES.dimension("byYear")) == [
            {"$match": {"pubyear": {"$ne": None}}},
            {"$group": {"_id": "$pubyear", "count": {"$sum": 1}}},
            {"$sort": {"_id": 1}},
        ]

    def test_unwind(self):
        assert dimension_branch(ARTICLES.dimension("barriers")) == [
            {"$unwind": "$barriers"},
            {"$group": {"_id": "$barriers", "count": {"$sum": 1}}},
        ]

    def test_top_k_sorts_and_limits(self):
        assert dimension_branch(ARTICLES.dimension("topKeywords")) == [
            {"$unwind": "$keywords"},
            {"$group": {"_id": "$keywords", "count": {"$sum": 1}}},
            {"$sort": {"count": -1, "_id": 1}},
            {"$limit": 10},
        ]

    def test_top_topics_limit_is_fifteen(self):
        assert dimension_branch(AUTHORS.dimension("topTopics"))[-1] == {"$limit": 15}

    def test_weighted_unwind_sums_quantity(self):
        branch = dimension_branch(AUTHORS.dimension("docTypes"))
        assert branch[1] == {
            "$group": {"_id": "$doctypes.name", "count": {"$sum": "$doctypes.quantity"}},
        }
        assert branch[-1] == {"$sort": {"count": -1, "_id": 1}}

    def test_sub_document_average(self):
        group = dimension_branch(AUTHORS.dimension("topFields"))[1]["$group"]
        assert group["_id"] == "$top_five_fields.name"
        assert group["avg"] == {"$avg": "$top_five_fields.percentage"}

    def test_bucket_filters_below_first_boundary(self):
        branch = dimension_branch(AUTHORS.dimension("worksRanges"))
        assert branch[0] == {"$match": {"works_count": {"$gte": 0}}}
        assert branch[1]["$bucket"] == {
            "groupBy": "$works_count",
            "boundaries": [0, 5, 10, 25, 50, 100, 200],
            "default": "200+",
            "output": {"count": {"$sum": 1}},
        }

    def test_citation_overflow_label_follows_last_boundary(self):
        bucket = dimension_branch(AUTHORS.dimension("citationRanges"))[1]["$bucket"]
        assert bucket["default"] == "10000+"

    def test_scalar_average_branch(self):
        facets = build_pipeline(AUTHORS, SCOPE)[1]["$facet"]
        assert facets["averageCitations"] == [
            {"$group": {"_id": None, "avg": {"$avg": "$cited_by_count"}}},
        ]


class TestDimensionValidation:
    """Tests for dimension table constraints."""

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValueError):
            Dimension("x", "x", "histogram")

    def test_top_k_needs_limit(self):
        with pytest.raises(ValueError):
            Dimension("x", "x", TOP_K)

    def test_boundaries_must_ascend(self):
        with pytest.raises(ValueError):
            Dimension("x", "x", BUCKET, boundaries=(0, 50, 10))

    def test_duplicate_boundaries_rejected(self):
        with pytest.raises(ValueError):
            Dimension("x", "x", BUCKET, boundaries=(0, 10, 10))

    def test_key_only_on_unwound_dimensions(self):
        with pytest.raises(ValueError):
            Dimension("x", "x", CATEGORICAL, key="name")

    def test_bucket_labels(self):
        dim = Dimension("x", "x", BUCKET, boundaries=(0, 10, 50))
        assert dim.bucket_labels() == {0: "0-10", 10: "10-50"}
        assert dim.bucket_overflow_label == "50+"

    def test_duplicate_dimension_names_rejected(self):
        with pytest.raises(ValueError):
            EntitySet("e", "e", "projectId", (
                Dimension("a", "a", UNWIND),
                Dimension("a", "b", UNWIND),
            ))

    def test_total_is_reserved(self):
        with pytest.raises(ValueError):
            EntitySet("e", "e", "projectId", (Dimension("total", "t", CATEGORICAL),))

    def test_adding_a_dimension_is_a_table_row(self):
        entity = EntitySet("e", "things", "ownerId", (Dimension("colour", "colour", CATEGORICAL),))
        facets = build_pipeline(entity, SCOPE)[1]["$facet"]
        assert facets["colour"] == [{"$group": {"_id": "$colour", "count": {"$sum": 1}}}]
