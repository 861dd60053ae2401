"""
Declarative dimension tables for the statistics engine.

Each entity set lists the breakdowns it reports. Adding a breakdown is a
new ``Dimension`` row; the pipeline builder and the post-processor read
these rows and contain no per-field logic.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

CATEGORICAL = "categorical"  # group by value
ORDINAL = "ordinal"          # group by non-null value, ascending by value
UNWIND = "unwind"            # flatten array, then group
TOP_K = "top_k"              # flatten array, group, keep the K largest
BUCKET = "bucket"            # numeric ranges plus an overflow bucket

KINDS = (CATEGORICAL, ORDINAL, UNWIND, TOP_K, BUCKET)


@dataclass(frozen=True)
class Dimension:
    """
    One breakdown of an entity set.

    Attributes:
        name: Key of the breakdown in the stats bundle
        field: Document field to group on (the array field for unwind/top_k)
        kind: One of KINDS
        key: Sub-field of each unwound element to group on (e.g. "name")
        weight: Sub-field summed instead of counting one per element
        average: Sub-field averaged per group, reported as avg_percentage
        exclude_null: Drop documents where the field is null or missing
        sort_by_count: Sort by count inside the pipeline (implied for top_k)
        limit: K for top_k dimensions
        boundaries: Strictly ascending lower bounds for bucket dimensions
        overflow_label: Label of the bucket for values >= the last boundary
    """
    name: str
    field: str
    kind: str
    key: Optional[str] = None
    weight: Optional[str] = None
    average: Optional[str] = None
    exclude_null: bool = False
    sort_by_count: bool = False
    limit: Optional[int] = None
    boundaries: Tuple[float, ...] = ()
    overflow_label: Optional[str] = None

    def __post_init__(self):
        if self.kind not in KINDS:
            raise ValueError(f"{self.name}: unknown dimension kind {self.kind!r}")
        if self.kind == TOP_K and (self.limit is None or self.limit < 1):
            raise ValueError(f"{self.name}: top_k dimensions need a positive limit")
        if self.kind == BUCKET:
            if len(self.boundaries) < 2:
                raise ValueError(f"{self.name}: bucket dimensions need at least two boundaries")
            if any(lo >= hi for lo, hi in zip(self.boundaries, self.boundaries[1:])):
                raise ValueError(f"{self.name}: bucket boundaries must be strictly ascending")
        if (self.key or self.weight or self.average) and self.kind not in (UNWIND, TOP_K):
            raise ValueError(f"{self.name}: key/weight/average only apply to unwound dimensions")

    @property
    def is_unwound(self) -> bool:
        return self.kind in (UNWIND, TOP_K)

    @property
    def group_path(self) -> str:
        """Field path grouped on, after any unwind."""
        return f"{self.field}.{self.key}" if self.key else self.field

    @property
    def bucket_overflow_label(self) -> str:
        if self.overflow_label:
            return self.overflow_label
        return f"{_format_bound(self.boundaries[-1])}+"

    def bucket_labels(self) -> Dict[float, str]:
        """Map each bucket's lower bound to its "lo-hi" label."""
        return {
            lo: f"{_format_bound(lo)}-{_format_bound(hi)}"
            for lo, hi in zip(self.boundaries, self.boundaries[1:])
        }


@dataclass(frozen=True)
class ScalarAverage:
    """Mean of a numeric field over the scoped documents."""
    name: str
    field: str


@dataclass(frozen=True)
class EntitySet:
    """A collection whose documents are summarised by a stats bundle."""
    name: str
    collection: str
    scope_field: str
    dimensions: Tuple[Dimension, ...]
    averages: Tuple[ScalarAverage, ...] = field(default_factory=tuple)

    def __post_init__(self):
        names = [d.name for d in self.dimensions] + [a.name for a in self.averages]
        if "total" in names or len(names) != len(set(names)):
            raise ValueError(f"{self.name}: dimension names must be unique and not 'total'")

    def dimension(self, name: str) -> Dimension:
        for dim in self.dimensions:
            if dim.name == name:
                return dim
        raise KeyError(name)


def _format_bound(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


ARTICLES = EntitySet(
    name="articles",
    collection="articles",
    scope_field="projectId",
    dimensions=(
        Dimension("languages", "language", CATEGORICAL),
        Dimension("openAccess", "openAccess", CATEGORICAL),
        Dimension("referenceTypes", "referenceType", CATEGORICAL),
        Dimension("objectFocus", "objectFocus", CATEGORICAL),
        Dimension("funding", "funding", CATEGORICAL),
        Dimension("positionOnDataOpenAccess", "positionOnDataOpenAccess", CATEGORICAL),
        Dimension("byYear", "pubyear", ORDINAL),
        Dimension("discourseGenre", "discourseGenre", UNWIND),
        Dimension("barriers", "barriers", UNWIND),
        Dimension("positionOnOpenAccessAndIssues", "positionOnOpenAccessAndIssues", UNWIND),
        Dimension("methodology", "methodology", UNWIND),
        Dimension("dataTypesDiscussed", "dataTypesDiscussed", UNWIND),
        Dimension("topKeywords", "keywords", TOP_K, limit=10),
        Dimension("fields", "fields", UNWIND),
        Dimension("subfields", "subfields", UNWIND),
    ),
)

AUTHORS = EntitySet(
    name="authors",
    collection="authors",
    scope_field="projectId",
    dimensions=(
        Dimension("gender", "gender", CATEGORICAL, exclude_null=True),
        Dimension("status", "status", CATEGORICAL, exclude_null=True),
        Dimension(
            "citationRanges", "cited_by_count", BUCKET,
            boundaries=(0, 10, 50, 100, 500, 1000, 5000, 10000),
        ),
        Dimension(
            "worksRanges", "works_count", BUCKET,
            boundaries=(0, 5, 10, 25, 50, 100, 200),
        ),
        Dimension("topInstitutions", "institutions", TOP_K, limit=10),
        Dimension("topCountries", "countries", TOP_K, limit=10),
        Dimension("docTypes", "doctypes", UNWIND, key="name", weight="quantity", sort_by_count=True),
        Dimension("topTopics", "top_five_topics", TOP_K, limit=15),
        Dimension("topFields", "top_five_fields", TOP_K, key="name", average="percentage", limit=10),
        Dimension("topDomains", "top_two_domains", UNWIND, key="name", average="percentage", sort_by_count=True),
    ),
    averages=(
        ScalarAverage("averageCitations", "cited_by_count"),
        ScalarAverage("averageWorksCount", "works_count"),
    ),
)

ENTITY_SETS: Dict[str, EntitySet] = {entity.name: entity for entity in (ARTICLES, AUTHORS)}
