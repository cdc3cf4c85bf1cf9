from __future__ import annotations

import datetime as dt
from typing import Any, Dict, List, Optional, Sequence

from app.models.issue_index import IssueDocument
from app.schemas.index_query import SearchResult
from app.schemas.issue_search import (
    EXTRA_ACTION_PLAN_NAME,
    EXTRA_ACTIONS,
    EXTRA_ASSIGNEE_NAME,
    EXTRA_REPORTER_NAME,
    EXTRA_TRANSITIONS,
)
from app.services.enrichment_service import Enrichment
from app.services.facet_service import Facet
from app.services.paging_policy import ResolvedPaging

MINUTES_PER_HOUR = 60
HOURS_PER_DAY = 8


def format_datetime(value: Optional[dt.datetime]) -> Optional[str]:
    """ISO-8601 with a numeric offset; naive values are UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=dt.timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S%z")


def format_debt(minutes: Optional[int]) -> Optional[str]:
    """Render a debt in minutes as e.g. ``1d2h10min`` (a day is 8 hours)."""
    if minutes is None:
        return None
    days, rest = divmod(minutes, HOURS_PER_DAY * MINUTES_PER_HOUR)
    hours, mins = divmod(rest, MINUTES_PER_HOUR)
    parts = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    if mins or not parts:
        parts.append(f"{mins}min")
    return "".join(parts)


def _compact(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


def paging_section(paging: ResolvedPaging, total: int) -> Dict[str, Any]:
    """Paging metadata in both the current and the deprecated shape."""
    return {
        "total": total,
        "p": paging.page,
        "ps": paging.page_size,
        "maxResultsReached": paging.max_results_reached(total),
        "paging": {
            "pageIndex": paging.page,
            "pageSize": paging.page_size,
            "total": total,
            "fTotal": f"{total:,}",
            "pages": paging.pages(total),
        },
    }


def _comment(change, enrichment: Enrichment, login: Optional[str]) -> Dict[str, Any]:
    return _compact({
        "key": change.kee,
        "login": change.user_login,
        "userName": enrichment.user_name(change.user_login),
        "markdown": change.change_data,
        "updatable": login is not None and change.user_login == login,
        "createdAt": format_datetime(change.created_at),
    })


def issue_to_dict(hit: IssueDocument, enrichment: Enrichment, login: Optional[str] = None) -> Dict[str, Any]:
    component = enrichment.components.get(hit.component_uuid)
    project = enrichment.components.get(hit.project_uuid)

    data = _compact({
        "key": hit.key,
        "component": component.kee if component else None,
        "componentUuid": hit.component_uuid,
        "componentId": component.id if component else None,
        "project": project.kee if project else None,
        "projectUuid": hit.project_uuid,
        "rule": hit.rule_key,
        "status": hit.status,
        "resolution": hit.resolution,
        "severity": hit.severity,
        "message": hit.message,
        "line": hit.line,
        "debt": format_debt(hit.debt),
        "assignee": hit.assignee,
        "reporter": hit.reporter,
        "author": hit.author_login,
        "actionPlan": hit.action_plan_key,
        "attr": hit.attributes or None,
        "creationDate": format_datetime(hit.created_at),
        "updateDate": format_datetime(hit.updated_at),
        "closeDate": format_datetime(hit.closed_at),
    })

    comments = enrichment.comments.get(hit.key)
    if comments:
        data["comments"] = [_comment(c, enrichment, login) for c in comments]

    if enrichment.wants(EXTRA_ACTIONS):
        data["actions"] = enrichment.actions.get(hit.key, [])
    if enrichment.wants(EXTRA_TRANSITIONS):
        data["transitions"] = enrichment.transitions.get(hit.key, [])
    if enrichment.wants(EXTRA_ASSIGNEE_NAME) and enrichment.user_name(hit.assignee):
        data["assigneeName"] = enrichment.user_name(hit.assignee)
    if enrichment.wants(EXTRA_REPORTER_NAME) and enrichment.user_name(hit.reporter):
        data["reporterName"] = enrichment.user_name(hit.reporter)
    if enrichment.wants(EXTRA_ACTION_PLAN_NAME) and enrichment.action_plan_name(hit.action_plan_key):
        data["actionPlanName"] = enrichment.action_plan_name(hit.action_plan_key)
    return data


def _components(enrichment: Enrichment) -> List[Dict[str, Any]]:
    by_uuid = enrichment.components
    result = []
    for c in sorted(by_uuid.values(), key=lambda c: c.kee):
        project = by_uuid.get(c.project_uuid)
        parent = by_uuid.get(c.parent_uuid) if c.parent_uuid else None
        result.append(_compact({
            "id": c.id,
            "key": c.kee,
            "uuid": c.uuid,
            "enabled": c.enabled,
            "qualifier": c.qualifier,
            "name": c.name,
            "longName": c.long_name,
            "path": c.path,
            "projectId": project.id if project else None,
            "subProjectId": parent.id if parent else None,
        }))
    return result


def _projects(enrichment: Enrichment) -> List[Dict[str, Any]]:
    return [
        _compact({
            "id": p.id,
            "key": p.kee,
            "uuid": p.uuid,
            "qualifier": p.qualifier,
            "name": p.name,
            "longName": p.long_name,
        })
        for p in sorted(enrichment.projects(), key=lambda p: p.kee)
    ]


def _rules(enrichment: Enrichment) -> List[Dict[str, Any]]:
    return [
        _compact({
            "key": key,
            "name": rule.name,
            "desc": rule.description,
            "status": rule.status,
            "lang": rule.language,
        })
        for key, rule in sorted(enrichment.rules.items())
    ]


def _users(enrichment: Enrichment) -> List[Dict[str, Any]]:
    return [
        _compact({"login": u.login, "name": u.name, "email": u.email, "active": u.active})
        for _, u in sorted(enrichment.users.items())
    ]


def _action_plans(enrichment: Enrichment) -> List[Dict[str, Any]]:
    result = []
    for key, plan in sorted(enrichment.action_plans.items()):
        project = enrichment.components.get(plan.project_uuid) if plan.project_uuid else None
        result.append(_compact({
            "key": key,
            "name": plan.name,
            "status": plan.status,
            "project": project.kee if project else None,
            "userLogin": plan.user_login,
            "deadLine": format_datetime(plan.deadline),
            "createdAt": format_datetime(plan.created_at),
            "updatedAt": format_datetime(plan.updated_at),
        }))
    return result


def compose(
    result: SearchResult,
    paging: ResolvedPaging,
    facets: Sequence[Facet],
    enrichment: Enrichment,
    hide_rules: bool = False,
    login: Optional[str] = None,
) -> Dict[str, Any]:
    """Assemble the search response payload."""
    payload: Dict[str, Any] = paging_section(paging, result.total)
    payload["issues"] = [issue_to_dict(hit, enrichment, login) for hit in result.hits]
    payload["components"] = _components(enrichment)
    payload["projects"] = _projects(enrichment)
    if not hide_rules:
        payload["rules"] = _rules(enrichment)
    payload["users"] = _users(enrichment)
    payload["actionPlans"] = _action_plans(enrichment)
    payload["facets"] = [f.to_dict() for f in facets]
    return payload
