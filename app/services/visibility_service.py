from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, NamedTuple, Optional, Set, Tuple

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.component import Component
from app.models.permission import CODEVIEWER, SYSTEM_ADMIN, PermissionGrant
from app.schemas.issue_search import ComponentRef, ComponentScope
from app.services.caller_service import CallerIdentity

logger = logging.getLogger(__name__)


class ComponentNode(NamedTuple):
    uuid: str
    key: str
    parent_uuid: Optional[str]
    project_uuid: str
    enabled: bool


class ComponentTree:
    """Read-only view of the component hierarchy."""

    def __init__(self, nodes: Iterable[ComponentNode]):
        self._by_uuid: Dict[str, ComponentNode] = {}
        self._by_key: Dict[str, ComponentNode] = {}
        self._children: Dict[str, List[str]] = defaultdict(list)
        for node in nodes:
            self._by_uuid[node.uuid] = node
            self._by_key[node.key] = node
            if node.parent_uuid:
                self._children[node.parent_uuid].append(node.uuid)

    def __len__(self) -> int:
        return len(self._by_uuid)

    def __iter__(self):
        return iter(self._by_uuid.values())

    def get(self, uuid: str) -> Optional[ComponentNode]:
        return self._by_uuid.get(uuid)

    def find(self, ref: ComponentRef) -> Optional[ComponentNode]:
        if ref.by == "key":
            return self._by_key.get(ref.value)
        return self._by_uuid.get(ref.value)

    def ancestors(self, uuid: str) -> List[str]:
        result = []
        node = self._by_uuid.get(uuid)
        seen = {uuid}
        while node is not None and node.parent_uuid and node.parent_uuid not in seen:
            result.append(node.parent_uuid)
            seen.add(node.parent_uuid)
            node = self._by_uuid.get(node.parent_uuid)
        return result

    def descendants(self, uuid: str) -> Set[str]:
        result: Set[str] = set()
        stack = list(self._children.get(uuid, ()))
        while stack:
            child = stack.pop()
            if child in result:
                continue
            result.add(child)
            stack.extend(self._children.get(child, ()))
        return result

    def project_members(self, project_uuid: str) -> Set[str]:
        return {n.uuid for n in self._by_uuid.values() if n.project_uuid == project_uuid}


class Grant(NamedTuple):
    user_login: Optional[str]
    group_name: Optional[str]
    component_uuid: Optional[str]
    role: str

    def applies_to(self, caller: CallerIdentity) -> bool:
        if self.user_login is not None:
            return caller.login is not None and self.user_login == caller.login
        return self.group_name in caller.groups


@dataclass(frozen=True)
class GrantSnapshot:
    """Immutable set of permission grants, global ones have no component."""

    grants: FrozenSet[Grant] = frozenset()


class Authorizer:
    """Answers permission questions from a grant snapshot and the component tree.

    Pure: no I/O, no session state. A component is viewable when the caller
    holds ``codeviewer`` on it or on one of its ancestors, or is a global
    administrator.
    """

    def __init__(self, snapshot: GrantSnapshot, tree: ComponentTree):
        self.snapshot = snapshot
        self.tree = tree
        by_component: Dict[Optional[str], List[Grant]] = defaultdict(list)
        for grant in snapshot.grants:
            by_component[grant.component_uuid].append(grant)
        self._by_component: Mapping[Optional[str], List[Grant]] = MappingProxyType(dict(by_component))

    def has_global_role(self, caller: CallerIdentity, role: str) -> bool:
        return any(g.role == role and g.applies_to(caller) for g in self._by_component.get(None, ()))

    def roles_on(self, caller: CallerIdentity, component_uuid: str) -> FrozenSet[str]:
        uuids = [component_uuid] + self.tree.ancestors(component_uuid)
        return frozenset(
            g.role
            for uuid in uuids
            for g in self._by_component.get(uuid, ())
            if g.applies_to(caller)
        )

    def has_role(self, caller: CallerIdentity, component_uuid: str, role: str) -> bool:
        return role in self.roles_on(caller, component_uuid)

    def can_view(self, caller: CallerIdentity, component_uuid: str) -> bool:
        if self.tree.get(component_uuid) is None:
            return False
        if self.has_global_role(caller, SYSTEM_ADMIN):
            return True
        return self.has_role(caller, component_uuid, CODEVIEWER)


@dataclass(frozen=True)
class VisibleScope:
    """Components a caller may query for one request."""

    component_uuids: FrozenSet[str]
    authorizer: Authorizer = field(compare=False, repr=False)
    explicit: bool = False

    @property
    def size(self) -> int:
        return len(self.component_uuids)

    @property
    def is_empty(self) -> bool:
        return not self.component_uuids

    def with_uuid_refs(self, scope: ComponentScope) -> ComponentScope:
        """Return ``scope`` with key references to visible components replaced by uuids.

        Keys of unknown or hidden components are left as they are, so no uuid
        outside the visible scope is ever revealed.
        """
        tree = self.authorizer.tree

        def convert(refs: Tuple[ComponentRef, ...], roots_only: bool = False) -> Tuple[ComponentRef, ...]:
            converted: Dict[ComponentRef, None] = {}
            for ref in refs:
                node = tree.find(ref) if ref.by == "key" else None
                if node is None or node.uuid not in self.component_uuids or (roots_only and node.parent_uuid):
                    converted[ref] = None
                else:
                    converted[ComponentRef.uuid(node.uuid)] = None
            return tuple(converted)

        return scope.model_copy(
            update={
                "components": convert(scope.components),
                "roots": convert(scope.roots),
                "projects": convert(scope.projects, roots_only=True),
            }
        )


class VisibilityResolver:
    """Computes the effective component scope of a search.

    Components the caller cannot view are dropped without error, so an
    inaccessible component looks exactly like a missing one.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def load_tree(self) -> ComponentTree:
        stmt = select(
            Component.uuid,
            Component.kee,
            Component.parent_uuid,
            Component.project_uuid,
            Component.enabled,
        )
        result = await self.session.execute(stmt)
        return ComponentTree(ComponentNode(*row) for row in result.all())

    async def load_grants(self, caller: CallerIdentity) -> GrantSnapshot:
        subjects = [PermissionGrant.group_name.in_(sorted(caller.groups))]
        if caller.login:
            subjects.append(PermissionGrant.user_login == caller.login)
        stmt = select(
            PermissionGrant.user_login,
            PermissionGrant.group_name,
            PermissionGrant.component_uuid,
            PermissionGrant.role,
        ).where(or_(*subjects))
        result = await self.session.execute(stmt)
        return GrantSnapshot(grants=frozenset(Grant(*row) for row in result.all()))

    async def authorizer_for(self, caller: CallerIdentity) -> Authorizer:
        tree = await self.load_tree()
        snapshot = await self.load_grants(caller)
        return Authorizer(snapshot, tree)

    async def resolve(self, caller: CallerIdentity, scope: ComponentScope) -> VisibleScope:
        authorizer = await self.authorizer_for(caller)
        candidates = requested_components(authorizer.tree, scope)
        visible = frozenset(uuid for uuid in candidates if authorizer.can_view(caller, uuid))
        if not scope.is_empty and len(visible) < len(candidates):
            logger.debug(
                f"Dropped {len(candidates) - len(visible)} component(s) not visible to {caller.login or 'anonymous'}"
            )
        return VisibleScope(component_uuids=visible, authorizer=authorizer, explicit=not scope.is_empty)


def requested_components(tree: ComponentTree, scope: ComponentScope) -> Set[str]:
    """Expand a requested scope into component uuids, ignoring permissions.

    An empty scope stands for every known component.
    """
    if scope.is_empty:
        return {node.uuid for node in tree}

    uuids: Set[str] = set()
    for ref in scope.components:
        node = tree.find(ref)
        if node is None:
            continue
        uuids.add(node.uuid)
        if not scope.on_component_only:
            uuids |= tree.descendants(node.uuid)
    for ref in scope.roots:
        node = tree.find(ref)
        if node is None:
            continue
        uuids.add(node.uuid)
        uuids |= tree.descendants(node.uuid)
    for ref in scope.projects:
        node = tree.find(ref)
        if node is None or node.parent_uuid is not None:
            continue
        uuids |= tree.project_members(node.uuid)
    return uuids


async def resolve_visible_scope(
    session: AsyncSession,
    caller: CallerIdentity,
    requested_component_refs: Tuple[ComponentRef, ...] = (),
    requested_project_refs: Tuple[ComponentRef, ...] = (),
) -> VisibleScope:
    """Convenience wrapper taking component and project references separately."""
    scope = ComponentScope(components=tuple(requested_component_refs), projects=tuple(requested_project_refs))
    return await VisibilityResolver(session).resolve(caller, scope)
