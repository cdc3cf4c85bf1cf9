from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import get_db
from app.models.permission import SYSTEM_ADMIN
from app.schemas.issue_search import EXTRA_FIELDS, FACETS, SORTS
from app.services import query_normalizer as p
from app.services.caller_service import CallerIdentity, get_caller
from app.services.errors import IndexUnavailableError, ValidationError
from app.services.issue_search_service import IssueSearchService
from app.services.visibility_service import VisibilityResolver

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/issues", tags=["Issues"])

SEARCH_ACTION = "search"


def _param(key: str, description: str, example: str | None = None, deprecated_since: str | None = None) -> Dict[str, Any]:
    data: Dict[str, Any] = {"key": key, "description": description}
    if example is not None:
        data["example"] = example
    if deprecated_since is not None:
        data["deprecatedSince"] = deprecated_since
    return data


SEARCH_PARAMS = (
    _param(p.ISSUES, "Comma-separated list of issue keys", "5bccd6e8-f525-43a2-8d76-fcb13dde79ef"),
    _param(p.SEVERITIES, "Comma-separated list of severities", "BLOCKER,CRITICAL"),
    _param(p.STATUSES, "Comma-separated list of statuses", "OPEN,REOPENED"),
    _param(p.RESOLUTIONS, "Comma-separated list of resolutions", "FIXED,REMOVED"),
    _param(p.RESOLVED, "To match resolved or unresolved issues", "true"),
    _param(p.COMPONENTS, "Comma-separated list of component keys", deprecated_since="5.1"),
    _param(p.COMPONENT_KEYS, "Comma-separated list of component keys", "org.apache.struts:struts:org.apache.struts.Action"),
    _param(p.COMPONENT_UUIDS, "Comma-separated list of component uuids", "7d8749e8-3070-4903-9188-bdd82933bb92"),
    _param(p.COMPONENT_ROOTS, "Comma-separated list of component keys, descendants included", deprecated_since="5.1"),
    _param(p.COMPONENT_ROOT_UUIDS, "Comma-separated list of component uuids, descendants included", deprecated_since="5.1"),
    _param(p.PROJECTS, "Comma-separated list of project keys", deprecated_since="5.1"),
    _param(p.PROJECT_KEYS, "Comma-separated list of project keys", "org.apache.struts:struts"),
    _param(p.PROJECT_UUIDS, "Comma-separated list of project uuids", "7d8749e8-3070-4903-9188-bdd82933bb92"),
    _param(p.MODULE_UUIDS, "Comma-separated list of module uuids, descendants included"),
    _param(p.FILE_UUIDS, "Comma-separated list of file uuids"),
    _param(p.ON_COMPONENT_ONLY, "Return only issues on the given components, not on their descendants", "false"),
    _param(p.RULES, "Comma-separated list of coding rule keys. Format is <repository>:<rule>", "squid:AvoidCycles"),
    _param(p.ACTION_PLANS, "Comma-separated list of action plan keys (not names)", "3f19de90-1521-4482-a737-a311758ff513"),
    _param(p.PLANNED, "To retrieve issues associated to an action plan or not", "true"),
    _param(p.REPORTERS, "Comma-separated list of reporter logins", "admin"),
    _param(p.ASSIGNEES, "Comma-separated list of assignee logins", "admin,usera"),
    _param(p.ASSIGNED, "To retrieve assigned or unassigned issues", "true"),
    _param(p.AUTHORS, "Comma-separated list of SCM accounts", "torvalds@linux-foundation.org"),
    _param(p.LANGUAGES, "Comma-separated list of languages", "java,js"),
    _param(p.HIDE_RULES, "To not return rules", "false"),
    _param(p.CREATED_AFTER, "To retrieve issues created after the given date (inclusive)", "2013-05-01"),
    _param(p.CREATED_BEFORE, "To retrieve issues created before the given date (exclusive)", "2013-05-01"),
    _param(p.CREATED_AT, "To retrieve issues created at the given date", "2013-05-01T13:00:00+0100"),
    _param(p.DEPRECATED_PAGE_SIZE, "Maximum number of results per page", deprecated_since="5.0"),
    _param(p.DEPRECATED_PAGE_INDEX, "Index of the selected page", deprecated_since="5.0"),
    _param(p.SORT, f"Sort field, one of {', '.join(SORTS)}"),
    _param(p.ASC, "Ascending sort", "true"),
    _param(p.IGNORE_PAGING, "Return the full list of issues, up to the hard limit, when a single component is queried", "false"),
    _param(p.PAGE, "1-based page number", "42"),
    _param(p.PAGE_SIZE, "Page size. Use -1 to return all results up to the hard limit", "20"),
    _param(p.FACETS_PARAM, f"Comma-separated list of facets, among {', '.join(FACETS)}", "statuses,severities"),
    _param(p.EXTRA_FIELDS_PARAM, f"Comma-separated list of optional fields, among {', '.join(EXTRA_FIELDS)}", "assigneeName,actionPlanName"),
)

SEARCH_RESPONSE_EXAMPLE: Dict[str, Any] = {
    "total": 1,
    "p": 1,
    "ps": 100,
    "maxResultsReached": False,
    "paging": {"pageIndex": 1, "pageSize": 100, "total": 1, "fTotal": "1", "pages": 1},
    "issues": [
        {
            "key": "82fd47d4-b650-4037-80bc-7b112bd4eac2",
            "component": "MyComponent",
            "componentUuid": "BCDE",
            "componentId": 2,
            "project": "MyProject",
            "projectUuid": "ABCD",
            "rule": "xoo:x1",
            "status": "OPEN",
            "severity": "MAJOR",
            "debt": "10min",
            "creationDate": "2014-09-04T00:00:00+0000",
            "updateDate": "2017-12-04T00:00:00+0000",
        }
    ],
    "components": [],
    "projects": [],
    "rules": [],
    "users": [],
    "actionPlans": [],
    "facets": [{"property": "severities", "values": [{"val": "MAJOR", "count": 1}]}],
}


@router.get("/search")
async def search_issues(
    request: Request,
    caller: CallerIdentity = Depends(get_caller),
    session: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    """Search for issues visible to the caller."""
    service = IssueSearchService(session)
    try:
        return await service.search(dict(request.query_params), caller)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except IndexUnavailableError as e:
        raise HTTPException(status_code=503, detail=e.message)


@router.get("/search/definition")
async def search_definition() -> Dict[str, Any]:
    """Describe the search action: its parameters and a response example."""
    return {
        "key": SEARCH_ACTION,
        "since": "3.6",
        "post": False,
        "internal": False,
        "description": "Get a list of issues. Requires Browse permission on the project(s).",
        "params": list(SEARCH_PARAMS),
        "responseExample": SEARCH_RESPONSE_EXAMPLE,
    }


@router.post("/reindex")
async def reindex_issues(
    caller: CallerIdentity = Depends(get_caller),
    session: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    """Rebuild the issue index from the database. Requires global administration."""
    authorizer = await VisibilityResolver(session).authorizer_for(caller)
    if not authorizer.has_global_role(caller, SYSTEM_ADMIN):
        raise HTTPException(status_code=403, detail="Insufficient privileges")

    service = IssueSearchService(session)
    try:
        indexed = await service.reindex()
    except SQLAlchemyError as e:
        logger.error(f"Reindexing issues failed: {e}")
        raise HTTPException(status_code=503, detail="Issue index is unavailable")
    return {"success": True, "indexed": indexed}
