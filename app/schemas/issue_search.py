from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict

# Sort keys
SORT_BY_CREATION_DATE = "CREATION_DATE"
SORT_BY_UPDATE_DATE = "UPDATE_DATE"
SORT_BY_CLOSE_DATE = "CLOSE_DATE"
SORT_BY_ASSIGNEE = "ASSIGNEE"
SORT_BY_SEVERITY = "SEVERITY"
SORT_BY_STATUS = "STATUS"
SORT_BY_FILE_LINE = "FILE_LINE"

SORTS = (
    SORT_BY_CREATION_DATE,
    SORT_BY_UPDATE_DATE,
    SORT_BY_CLOSE_DATE,
    SORT_BY_ASSIGNEE,
    SORT_BY_SEVERITY,
    SORT_BY_STATUS,
    SORT_BY_FILE_LINE,
)

# Extra fields
EXTRA_ACTIONS = "actions"
EXTRA_TRANSITIONS = "transitions"
EXTRA_ASSIGNEE_NAME = "assigneeName"
EXTRA_REPORTER_NAME = "reporterName"
EXTRA_ACTION_PLAN_NAME = "actionPlanName"

EXTRA_FIELDS = (
    EXTRA_ACTIONS,
    EXTRA_TRANSITIONS,
    EXTRA_ASSIGNEE_NAME,
    EXTRA_REPORTER_NAME,
    EXTRA_ACTION_PLAN_NAME,
)


@dataclass(frozen=True)
class FacetDefinition:
    """A facet, the index field it aggregates and the query filter it mirrors.

    ``missing_value`` is the bucket value used for documents where the field
    is null; ``None`` means such documents are not counted.
    """

    name: str
    field: str
    selected_from: str
    missing_value: Optional[str] = None


FACETS: Dict[str, FacetDefinition] = {
    f.name: f
    for f in (
        FacetDefinition("severities", "severity", "severities"),
        FacetDefinition("statuses", "status", "statuses"),
        FacetDefinition("resolutions", "resolution", "resolutions", missing_value=""),
        FacetDefinition("actionPlans", "action_plan_key", "action_plans", missing_value=""),
        FacetDefinition("projectUuids", "project_uuid", "project_uuids"),
        FacetDefinition("rules", "rule_key", "rules"),
        FacetDefinition("assignees", "assignee", "assignees", missing_value=""),
        FacetDefinition("reporters", "reporter", "reporters"),
        FacetDefinition("authors", "author_login", "authors"),
        FacetDefinition("componentUuids", "component_uuid", "component_uuids"),
        FacetDefinition("languages", "language", "languages"),
    )
}


class ComponentRef(BaseModel):
    """A component named by the caller, either by uuid or by (legacy) key."""

    model_config = ConfigDict(frozen=True)

    by: str  # "uuid" | "key"
    value: str

    @classmethod
    def uuid(cls, value: str) -> "ComponentRef":
        return cls(by="uuid", value=value)

    @classmethod
    def key(cls, value: str) -> "ComponentRef":
        return cls(by="key", value=value)


class ComponentScope(BaseModel):
    """Requested component scope, before it is intersected with visibility.

    ``components`` match the named component (and its descendants unless
    ``on_component_only``), ``roots`` always match the component and all of
    its descendants, ``projects`` match every component of the project.
    """

    model_config = ConfigDict(frozen=True)

    components: Tuple[ComponentRef, ...] = ()
    roots: Tuple[ComponentRef, ...] = ()
    projects: Tuple[ComponentRef, ...] = ()
    on_component_only: bool = False

    @property
    def is_empty(self) -> bool:
        return not (self.components or self.roots or self.projects)

    @property
    def component_uuids(self) -> Tuple[str, ...]:
        return tuple(r.value for r in self.components if r.by == "uuid")

    @property
    def project_uuids(self) -> Tuple[str, ...]:
        return tuple(r.value for r in self.projects if r.by == "uuid")


class IssueQuery(BaseModel):
    """Normalized search request. Built once per request and never mutated."""

    model_config = ConfigDict(frozen=True)

    issue_keys: Tuple[str, ...] = ()
    severities: Tuple[str, ...] = ()
    statuses: Tuple[str, ...] = ()
    resolutions: Tuple[str, ...] = ()
    resolved: Optional[bool] = None
    assignees: Tuple[str, ...] = ()
    assigned: Optional[bool] = None
    reporters: Tuple[str, ...] = ()
    authors: Tuple[str, ...] = ()
    rules: Tuple[str, ...] = ()
    languages: Tuple[str, ...] = ()
    action_plans: Tuple[str, ...] = ()
    planned: Optional[bool] = None

    created_after: Optional[datetime] = None
    created_before: Optional[datetime] = None
    created_at: Optional[datetime] = None

    scope: ComponentScope = ComponentScope()

    sort: Optional[str] = None
    asc: bool = True

    facets: Tuple[str, ...] = ()
    extra_fields: Tuple[str, ...] = ()

    page: int = 1
    page_size: int = 100
    ignore_paging: bool = False
    hide_rules: bool = False

    @property
    def project_uuids(self) -> Tuple[str, ...]:
        return self.scope.project_uuids

    @property
    def component_uuids(self) -> Tuple[str, ...]:
        return self.scope.component_uuids

    def selected_values(self, facet: str) -> Tuple[str, ...]:
        """Filter values the caller picked on the field backing ``facet``."""
        return tuple(getattr(self, FACETS[facet].selected_from))

    def wants(self, extra_field: str) -> bool:
        return extra_field in self.extra_fields
