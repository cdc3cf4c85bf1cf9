from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from app.schemas.issue_search import IssueQuery
from app.services.search_config_service import SearchConfigService


@dataclass(frozen=True)
class FacetValue:
    val: str
    count: int


@dataclass(frozen=True)
class Facet:
    property: str
    values: Tuple[FacetValue, ...]

    def to_dict(self) -> dict:
        return {
            "property": self.property,
            "values": [{"val": v.val, "count": v.count} for v in self.values],
        }


def _ordered(buckets: Mapping[str, int]) -> List[Tuple[str, int]]:
    return sorted(buckets.items(), key=lambda item: (-item[1], item[0]))


def assemble_facet(
    name: str,
    buckets: Sequence[Tuple[str, int]],
    selected: Sequence[str],
    size: int,
) -> Facet:
    """Order buckets and make sure every selected value is listed.

    Only the ``size`` largest buckets are kept, but a selected value is
    always kept, with a zero count when the index returned no bucket for it.
    """
    counts: Dict[str, int] = {}
    for value, count in buckets:
        counts[value] = counts.get(value, 0) + count

    top = _ordered(counts)[:size]
    kept = dict(top)
    for value in selected:
        if value not in kept:
            kept[value] = counts.get(value, 0)

    return Facet(property=name, values=tuple(FacetValue(v, c) for v, c in _ordered(kept)))


def assemble(
    aggregations: Mapping[str, Sequence[Tuple[str, int]]],
    query: IssueQuery,
    size: Optional[int] = None,
) -> List[Facet]:
    """Build the facets of ``query`` in the order they were requested."""
    facet_size = size if size is not None else SearchConfigService.get_facet_size()
    return [
        assemble_facet(name, aggregations.get(name, ()), query.selected_values(name), facet_size)
        for name in query.facets
    ]
