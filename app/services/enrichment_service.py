from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Set

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.action_plan import ActionPlan
from app.models.component import Component
from app.models.issue_change import TYPE_COMMENT, IssueChange
from app.models.issue_index import IssueDocument
from app.models.permission import ISSUE_ADMIN
from app.models.rule import Rule
from app.models.user import User
from app.schemas.issue_search import (
    EXTRA_ACTION_PLAN_NAME,
    EXTRA_ACTIONS,
    EXTRA_ASSIGNEE_NAME,
    EXTRA_REPORTER_NAME,
    EXTRA_TRANSITIONS,
    IssueQuery,
)
from app.services.caller_service import CallerIdentity
from app.services.issue_workflow import available_actions, available_transitions
from app.services.visibility_service import Authorizer

logger = logging.getLogger(__name__)


@dataclass
class Enrichment:
    """Auxiliary data for the issues of one result page.

    Every mapping may miss entries: a dangling reference simply has no
    value and the issue is rendered without it.
    """

    extra_fields: Sequence[str] = ()
    components: Dict[str, Component] = field(default_factory=dict)
    rules: Dict[str, Rule] = field(default_factory=dict)
    users: Dict[str, User] = field(default_factory=dict)
    action_plans: Dict[str, ActionPlan] = field(default_factory=dict)
    comments: Dict[str, List[IssueChange]] = field(default_factory=dict)
    actions: Dict[str, List[str]] = field(default_factory=dict)
    transitions: Dict[str, List[str]] = field(default_factory=dict)

    def wants(self, extra_field: str) -> bool:
        return extra_field in self.extra_fields

    def user_name(self, login: Optional[str]) -> Optional[str]:
        user = self.users.get(login) if login else None
        return user.name if user else None

    def action_plan_name(self, key: Optional[str]) -> Optional[str]:
        plan = self.action_plans.get(key) if key else None
        return plan.name if plan else None

    def projects(self) -> List[Component]:
        return [c for c in self.components.values() if c.parent_uuid is None]


def _present(values: Iterable[Optional[str]]) -> Set[str]:
    return {v for v in values if v}


class ResultEnricher:
    """Loads what is needed to render a page of issues.

    Component and rule references are always loaded; users, action plans,
    actions and transitions only when the matching extra field is requested.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def enrich(
        self,
        hits: Sequence[IssueDocument],
        query: IssueQuery,
        caller: CallerIdentity,
        authorizer: Authorizer,
    ) -> Enrichment:
        enrichment = Enrichment(extra_fields=query.extra_fields)
        if not hits:
            return enrichment

        enrichment.components = await self.load_components(hits)
        if not query.hide_rules:
            enrichment.rules = await self.load_rules({h.rule_key for h in hits})
        enrichment.comments = await self.load_comments([h.key for h in hits])

        logins = _present(c.user_login for changes in enrichment.comments.values() for c in changes)
        if query.wants(EXTRA_ASSIGNEE_NAME):
            logins |= _present(h.assignee for h in hits)
        if query.wants(EXTRA_REPORTER_NAME):
            logins |= _present(h.reporter for h in hits)
        enrichment.users = await self.load_users(logins)

        if query.wants(EXTRA_ACTION_PLAN_NAME):
            enrichment.action_plans = await self.load_action_plans(_present(h.action_plan_key for h in hits))

        if query.wants(EXTRA_ACTIONS) or query.wants(EXTRA_TRANSITIONS):
            for hit in hits:
                is_admin = authorizer.has_role(caller, hit.component_uuid, ISSUE_ADMIN)
                if query.wants(EXTRA_ACTIONS):
                    enrichment.actions[hit.key] = available_actions(hit.status, hit.assignee, caller.login, is_admin)
                if query.wants(EXTRA_TRANSITIONS):
                    enrichment.transitions[hit.key] = available_transitions(hit.status, caller.is_logged_in, is_admin)

        return enrichment

    async def load_components(self, hits: Sequence[IssueDocument]) -> Dict[str, Component]:
        """Components of the hits, their direct parents and their projects."""
        uuids = _present(h.component_uuid for h in hits) | _present(h.project_uuid for h in hits)
        components = await self._components_by_uuid(uuids)
        parents = _present(c.parent_uuid for c in components.values()) - set(components)
        if parents:
            components.update(await self._components_by_uuid(parents))
        return components

    async def _components_by_uuid(self, uuids: Set[str]) -> Dict[str, Component]:
        if not uuids:
            return {}
        result = await self.session.execute(select(Component).where(Component.uuid.in_(sorted(uuids))))
        return {c.uuid: c for c in result.scalars().all()}

    async def load_rules(self, rule_keys: Set[str]) -> Dict[str, Rule]:
        pairs = [k.split(":", 1) for k in rule_keys if ":" in k]
        if not pairs:
            return {}
        repositories = {repo for repo, _ in pairs}
        result = await self.session.execute(select(Rule).where(Rule.repository.in_(sorted(repositories))))
        return {r.key: r for r in result.scalars().all() if r.key in rule_keys}

    async def load_comments(self, issue_keys: List[str]) -> Dict[str, List[IssueChange]]:
        stmt = (
            select(IssueChange)
            .where(IssueChange.issue_key.in_(issue_keys), IssueChange.change_type == TYPE_COMMENT)
            .order_by(IssueChange.created_at, IssueChange.id)
        )
        result = await self.session.execute(stmt)
        comments: Dict[str, List[IssueChange]] = {}
        for change in result.scalars().all():
            comments.setdefault(change.issue_key, []).append(change)
        return comments

    async def load_users(self, logins: Set[str]) -> Dict[str, User]:
        if not logins:
            return {}
        result = await self.session.execute(select(User).where(User.login.in_(sorted(logins))))
        users = {u.login: u for u in result.scalars().all()}
        missing = logins - set(users)
        if missing:
            logger.debug(f"Unknown user logins referenced by issues: {sorted(missing)}")
        return users

    async def load_action_plans(self, keys: Set[str]) -> Dict[str, ActionPlan]:
        if not keys:
            return {}
        result = await self.session.execute(select(ActionPlan).where(ActionPlan.kee.in_(sorted(keys))))
        plans = {p.kee: p for p in result.scalars().all()}
        missing = keys - set(plans)
        if missing:
            logger.debug(f"Action plans referenced by issues no longer exist: {sorted(missing)}")
        return plans
