from __future__ import annotations

from typing import List, Tuple

from app.schemas.index_query import (
    Aggregation,
    BackendQuery,
    ExistsFilter,
    Filter,
    RangeFilter,
    SortField,
    TermsFilter,
)
from app.schemas.issue_search import (
    FACETS,
    SORT_BY_ASSIGNEE,
    SORT_BY_CLOSE_DATE,
    SORT_BY_CREATION_DATE,
    SORT_BY_FILE_LINE,
    SORT_BY_SEVERITY,
    SORT_BY_STATUS,
    SORT_BY_UPDATE_DATE,
    IssueQuery,
)
from app.services.paging_policy import ResolvedPaging
from app.services.visibility_service import VisibleScope

# Tie-breaker making ordering reproducible across pages
KEY_FIELD = "key"
SCOPE_FIELD = "component_uuid"

SORT_FIELDS = {
    SORT_BY_CREATION_DATE: ("created_at",),
    SORT_BY_UPDATE_DATE: ("updated_at",),
    SORT_BY_CLOSE_DATE: ("closed_at",),
    SORT_BY_ASSIGNEE: ("assignee",),
    SORT_BY_SEVERITY: ("severity_value",),
    SORT_BY_STATUS: ("status",),
    SORT_BY_FILE_LINE: ("project_uuid", "file_path", "line"),
}

# (query attribute, index field) of every set-membership filter
TERMS_FILTERS = (
    ("issue_keys", "key"),
    ("severities", "severity"),
    ("statuses", "status"),
    ("resolutions", "resolution"),
    ("assignees", "assignee"),
    ("reporters", "reporter"),
    ("authors", "author_login"),
    ("rules", "rule_key"),
    ("languages", "language"),
    ("action_plans", "action_plan_key"),
)

# (query attribute, index field) of every "is set" tri-state
EXISTS_FILTERS = (
    ("resolved", "resolution"),
    ("assigned", "assignee"),
    ("planned", "action_plan_key"),
)


def build_filters(query: IssueQuery, scope: VisibleScope) -> Tuple[Filter, ...]:
    filters: List[Filter] = [TermsFilter(SCOPE_FIELD, tuple(sorted(scope.component_uuids)), relaxable=False)]

    for attr, index_field in TERMS_FILTERS:
        values = getattr(query, attr)
        if values:
            filters.append(TermsFilter(index_field, tuple(values)))

    for attr, index_field in EXISTS_FILTERS:
        value = getattr(query, attr)
        if value is not None:
            filters.append(ExistsFilter(index_field, exists=value))

    if query.created_after or query.created_before:
        filters.append(RangeFilter("created_at", gte=query.created_after, lt=query.created_before))
    if query.created_at:
        filters.append(RangeFilter("created_at", gte=query.created_at, lte=query.created_at))

    return tuple(filters)


def build_sort(query: IssueQuery) -> Tuple[SortField, ...]:
    if query.sort is None:
        # Most recent issues first
        return (SortField("created_at", asc=False), SortField(KEY_FIELD, asc=True))
    fields = [SortField(f, asc=query.asc) for f in SORT_FIELDS[query.sort]]
    fields.append(SortField(KEY_FIELD, asc=True))
    return tuple(fields)


def relax(filters: Tuple[Filter, ...], index_field: str) -> Tuple[Filter, ...]:
    """Drop the filters on ``index_field`` so a facet keeps its own buckets."""
    return tuple(f for f in filters if not (f.relaxable and f.field == index_field))


def build_aggregations(query: IssueQuery, filters: Tuple[Filter, ...]) -> Tuple[Aggregation, ...]:
    """One aggregation per requested facet, each against its self-relaxed filters."""
    aggregations = []
    for name in query.facets:
        facet = FACETS[name]
        aggregations.append(
            Aggregation(
                name=name,
                field=facet.field,
                filters=relax(filters, facet.field),
                missing_value=facet.missing_value,
            )
        )
    return tuple(aggregations)


def build(query: IssueQuery, scope: VisibleScope, paging: ResolvedPaging) -> BackendQuery:
    filters = build_filters(query, scope)
    return BackendQuery(
        filters=filters,
        sort=build_sort(query),
        offset=paging.offset,
        limit=paging.limit,
        aggregations=build_aggregations(query, filters),
    )
