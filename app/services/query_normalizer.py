from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Mapping, Optional, Tuple

from app.schemas.issue_search import (
    EXTRA_FIELDS,
    FACETS,
    SORTS,
    ComponentRef,
    ComponentScope,
    IssueQuery,
)
from app.services.errors import ValidationError
from app.services.search_config_service import get_default_page_size

logger = logging.getLogger(__name__)

# Request parameters
ISSUES = "issues"
SEVERITIES = "severities"
STATUSES = "statuses"
RESOLUTIONS = "resolutions"
RESOLVED = "resolved"
COMPONENTS = "components"
COMPONENT_KEYS = "componentKeys"
COMPONENT_UUIDS = "componentUuids"
COMPONENT_ROOTS = "componentRoots"
COMPONENT_ROOT_UUIDS = "componentRootUuids"
PROJECTS = "projects"
PROJECT_KEYS = "projectKeys"
PROJECT_UUIDS = "projectUuids"
MODULE_UUIDS = "moduleUuids"
FILE_UUIDS = "fileUuids"
ON_COMPONENT_ONLY = "onComponentOnly"
RULES = "rules"
ACTION_PLANS = "actionPlans"
PLANNED = "planned"
REPORTERS = "reporters"
ASSIGNEES = "assignees"
ASSIGNED = "assigned"
AUTHORS = "authors"
LANGUAGES = "languages"
HIDE_RULES = "hideRules"
CREATED_AFTER = "createdAfter"
CREATED_BEFORE = "createdBefore"
CREATED_AT = "createdAt"
SORT = "sort"
ASC = "asc"
IGNORE_PAGING = "ignorePaging"
FACETS_PARAM = "facets"
EXTRA_FIELDS_PARAM = "extra_fields"

# Paging, current generation
PAGE = "p"
PAGE_SIZE = "ps"
# Paging, deprecated generation
DEPRECATED_PAGE_INDEX = "pageIndex"
DEPRECATED_PAGE_SIZE = "pageSize"

# Page size value meaning "return everything up to the hard cap"
ALL_RESULTS = -1

_TRUE_VALUES = ("true", "yes")
_FALSE_VALUES = ("false", "no")
_DATE_FORMATS = ("%Y-%m-%dT%H:%M:%S%z", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d")


def _csv(params: Mapping[str, str], name: str) -> Tuple[str, ...]:
    raw = params.get(name)
    if raw is None:
        return ()
    return tuple(v.strip() for v in raw.split(",") if v.strip())


def _bool(params: Mapping[str, str], name: str) -> Optional[bool]:
    raw = params.get(name)
    if raw is None or raw.strip() == "":
        return None
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValidationError(f"Value of parameter '{name}' ({raw}) must be one of: [true, false, yes, no]", name)


def _int(params: Mapping[str, str], name: str) -> Optional[int]:
    raw = params.get(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw.strip())
    except ValueError:
        raise ValidationError(f"The '{name}' parameter cannot be parsed as an integer value: {raw}", name)


def parse_date(raw: str, name: str = "date") -> datetime:
    """Parse a date or datetime parameter into a naive UTC datetime."""
    value = raw.strip()
    for fmt in _DATE_FORMATS:
        try:
            parsed = datetime.strptime(value, fmt)
        except ValueError:
            continue
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
        return parsed
    raise ValidationError(f"'{raw}' cannot be parsed as either a date or date+time", name)


def _date(params: Mapping[str, str], name: str) -> Optional[datetime]:
    raw = params.get(name)
    if raw is None or raw.strip() == "":
        return None
    return parse_date(raw, name)


def _enum_list(params: Mapping[str, str], name: str, allowed) -> Tuple[str, ...]:
    values = _csv(params, name)
    for value in values:
        if value not in allowed:
            raise ValidationError(
                f"Value of parameter '{name}' ({value}) must be one of: [{', '.join(allowed)}]", name
            )
    return values


def _refs(params: Mapping[str, str], name: str, by: str) -> List[ComponentRef]:
    return [ComponentRef(by=by, value=v) for v in _csv(params, name)]


def _scope(params: Mapping[str, str]) -> ComponentScope:
    # Key-based parameters are the legacy form, uuid-based the current one.
    components = (
        _refs(params, COMPONENTS, "key")
        + _refs(params, COMPONENT_KEYS, "key")
        + _refs(params, COMPONENT_UUIDS, "uuid")
        + _refs(params, FILE_UUIDS, "uuid")
    )
    roots = (
        _refs(params, COMPONENT_ROOTS, "key")
        + _refs(params, COMPONENT_ROOT_UUIDS, "uuid")
        + _refs(params, MODULE_UUIDS, "uuid")
    )
    projects = (
        _refs(params, PROJECTS, "key")
        + _refs(params, PROJECT_KEYS, "key")
        + _refs(params, PROJECT_UUIDS, "uuid")
    )
    return ComponentScope(
        components=tuple(dict.fromkeys(components)),
        roots=tuple(dict.fromkeys(roots)),
        projects=tuple(dict.fromkeys(projects)),
        on_component_only=bool(_bool(params, ON_COMPONENT_ONLY)),
    )


def _paging(params: Mapping[str, str]) -> Tuple[int, int, bool]:
    """Resolve page, page size and the "all results" sentinel.

    Each value is taken from the current parameter when present, otherwise
    from its deprecated counterpart, otherwise from the default.
    """
    page = _int(params, PAGE)
    if page is None:
        page = _int(params, DEPRECATED_PAGE_INDEX)
    if page is None:
        page = 1
    if page < 1:
        raise ValidationError(f"Page index must be greater than 0 (got {page})", PAGE)

    size = _int(params, PAGE_SIZE)
    if size is None:
        size = _int(params, DEPRECATED_PAGE_SIZE)
    if size is None:
        size = get_default_page_size()
    if size == 0 or size < ALL_RESULTS:
        raise ValidationError(f"Page size must be greater than 0 or equal to {ALL_RESULTS} (got {size})", PAGE_SIZE)

    all_results = size == ALL_RESULTS
    if all_results:
        size = get_default_page_size()
    return page, size, all_results


def normalize(params: Mapping[str, str]) -> IssueQuery:
    """Turn raw request parameters into an :class:`IssueQuery`.

    Performs no I/O: component keys stay keys until visibility resolution.
    """
    sort = params.get(SORT)
    if sort is not None and sort.strip() != "":
        sort = sort.strip().upper()
        if sort not in SORTS:
            raise ValidationError(f"Value of parameter '{SORT}' ({params.get(SORT)}) must be one of: [{', '.join(SORTS)}]", SORT)
    else:
        sort = None

    created_after = _date(params, CREATED_AFTER)
    created_before = _date(params, CREATED_BEFORE)
    if created_after and created_before and created_after > created_before:
        raise ValidationError(
            f"Start bound cannot be larger than end bound ({CREATED_AFTER} > {CREATED_BEFORE})", CREATED_AFTER
        )

    page, page_size, all_results = _paging(params)
    asc = _bool(params, ASC)

    query = IssueQuery(
        issue_keys=_csv(params, ISSUES),
        severities=_csv(params, SEVERITIES),
        statuses=_csv(params, STATUSES),
        resolutions=_csv(params, RESOLUTIONS),
        resolved=_bool(params, RESOLVED),
        assignees=_csv(params, ASSIGNEES),
        assigned=_bool(params, ASSIGNED),
        reporters=_csv(params, REPORTERS),
        authors=_csv(params, AUTHORS),
        rules=_csv(params, RULES),
        languages=_csv(params, LANGUAGES),
        action_plans=_csv(params, ACTION_PLANS),
        planned=_bool(params, PLANNED),
        created_after=created_after,
        created_before=created_before,
        created_at=_date(params, CREATED_AT),
        scope=_scope(params),
        sort=sort,
        asc=True if asc is None else asc,
        facets=_enum_list(params, FACETS_PARAM, tuple(FACETS)),
        extra_fields=_enum_list(params, EXTRA_FIELDS_PARAM, EXTRA_FIELDS),
        page=page,
        page_size=page_size,
        ignore_paging=all_results or bool(_bool(params, IGNORE_PAGING)),
        hide_rules=bool(_bool(params, HIDE_RULES)),
    )
    logger.debug(f"Normalized issue query: {query}")
    return query
