from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.permission import ANYONE, CODEVIEWER, ISSUE_ADMIN, SYSTEM_ADMIN, USER
from app.schemas.issue_search import ComponentRef, ComponentScope
from app.services.caller_service import CallerIdentity, load_caller
from app.services.visibility_service import (
    Authorizer,
    ComponentNode,
    ComponentTree,
    Grant,
    GrantSnapshot,
    VisibilityResolver,
    VisibleScope,
    requested_components,
    resolve_visible_scope,
)

JOHN = CallerIdentity(login="john", groups=frozenset({ANYONE, "devs"}))
ANONYMOUS = CallerIdentity.anonymous()


@pytest.fixture
def tree() -> ComponentTree:
    return ComponentTree([
        ComponentNode("ABCD", "MyProject", None, "ABCD", True),
        ComponentNode("MOD1", "MyProject:module", "ABCD", "ABCD", True),
        ComponentNode("BCDE", "MyComponent", "MOD1", "ABCD", True),
        ComponentNode("FEDC", "OtherComponent", "ABCD", "ABCD", True),
        ComponentNode("XYZ", "OtherProject", None, "XYZ", True),
        ComponentNode("XYZ1", "OtherProject:file", "XYZ", "XYZ", True),
    ])


class TestComponentTree:
    """Test navigation of the component hierarchy."""

    def test_ancestors(self, tree):
        """Test ancestors are listed from parent up to the root."""
        assert tree.ancestors("BCDE") == ["MOD1", "ABCD"]
        assert tree.ancestors("ABCD") == []

    def test_descendants(self, tree):
        """Test all levels of descendants are found."""
        assert tree.descendants("ABCD") == {"MOD1", "BCDE", "FEDC"}
        assert tree.descendants("BCDE") == set()

    def test_find_by_key_or_uuid(self, tree):
        """Test lookup by either reference kind."""
        assert tree.find(ComponentRef.key("MyComponent")).uuid == "BCDE"
        assert tree.find(ComponentRef.uuid("BCDE")).key == "MyComponent"
        assert tree.find(ComponentRef.uuid("UNKNOWN")) is None


class TestAuthorizer:
    """Test permission checks over a grant snapshot."""

    def test_codeviewer_inherited_from_project(self, tree):
        """Test a grant on the project applies to its files."""
        authorizer = Authorizer(GrantSnapshot(frozenset({Grant(None, ANYONE, "ABCD", CODEVIEWER)})), tree)

        assert authorizer.can_view(ANONYMOUS, "BCDE")
        assert authorizer.can_view(JOHN, "ABCD")
        assert not authorizer.can_view(JOHN, "XYZ1")

    def test_user_role_alone_does_not_grant_view(self, tree):
        """Test browsing issues requires the codeviewer role."""
        authorizer = Authorizer(GrantSnapshot(frozenset({Grant(None, ANYONE, "ABCD", USER)})), tree)
        assert not authorizer.can_view(JOHN, "BCDE")

    def test_user_grant_only_for_that_user(self, tree):
        """Test a grant to a login does not apply to anonymous callers."""
        authorizer = Authorizer(GrantSnapshot(frozenset({Grant("john", None, "XYZ", CODEVIEWER)})), tree)

        assert authorizer.can_view(JOHN, "XYZ1")
        assert not authorizer.can_view(ANONYMOUS, "XYZ1")

    def test_group_grant(self, tree):
        """Test grants to a group the caller belongs to."""
        authorizer = Authorizer(GrantSnapshot(frozenset({Grant(None, "devs", "XYZ", ISSUE_ADMIN)})), tree)

        assert authorizer.has_role(JOHN, "XYZ1", ISSUE_ADMIN)
        assert not authorizer.has_role(ANONYMOUS, "XYZ1", ISSUE_ADMIN)

    def test_global_admin_sees_everything(self, tree):
        """Test the global administrator role."""
        authorizer = Authorizer(GrantSnapshot(frozenset({Grant("john", None, None, SYSTEM_ADMIN)})), tree)

        assert authorizer.has_global_role(JOHN, SYSTEM_ADMIN)
        assert authorizer.can_view(JOHN, "XYZ1")
        assert not authorizer.can_view(JOHN, "UNKNOWN")


class TestRequestedComponents:
    """Test expansion of a requested scope."""

    def test_empty_scope_is_everything(self, tree):
        """Test no scope parameter means every component."""
        assert requested_components(tree, ComponentScope()) == {n.uuid for n in tree}

    def test_component_includes_descendants(self, tree):
        """Test a component expands to its subtree."""
        scope = ComponentScope(components=(ComponentRef.uuid("MOD1"),))
        assert requested_components(tree, scope) == {"MOD1", "BCDE"}

    def test_on_component_only(self, tree):
        """Test onComponentOnly restricts to the named component."""
        scope = ComponentScope(components=(ComponentRef.uuid("MOD1"),), on_component_only=True)
        assert requested_components(tree, scope) == {"MOD1"}

    def test_project_reference(self, tree):
        """Test a project expands to every component of that project."""
        scope = ComponentScope(projects=(ComponentRef.key("OtherProject"),))
        assert requested_components(tree, scope) == {"XYZ", "XYZ1"}

    def test_project_reference_must_be_a_root(self, tree):
        """Test a project reference to a non-root component is ignored."""
        scope = ComponentScope(projects=(ComponentRef.uuid("BCDE"),))
        assert requested_components(tree, scope) == set()

    def test_unknown_reference_ignored(self, tree):
        """Test unknown references match nothing."""
        scope = ComponentScope(components=(ComponentRef.key("nope"),))
        assert requested_components(tree, scope) == set()


class TestUuidRefs:
    """Test rewriting key references of a requested scope into uuids."""

    def test_visible_keys_become_uuids(self, tree):
        """Test project and component keys are replaced by the uuids they name."""
        visible = VisibleScope(
            component_uuids=frozenset({"ABCD", "MOD1", "BCDE", "FEDC"}), authorizer=Authorizer(GrantSnapshot(), tree)
        )
        scope = ComponentScope(
            components=(ComponentRef.key("MyComponent"), ComponentRef.uuid("BCDE")),
            projects=(ComponentRef.key("MyProject"),),
        )

        converted = visible.with_uuid_refs(scope)

        assert converted.component_uuids == ("BCDE",)
        assert converted.project_uuids == ("ABCD",)

    def test_hidden_and_unknown_keys_are_kept(self, tree):
        """Test keys of components outside the visible scope never turn into uuids."""
        visible = VisibleScope(component_uuids=frozenset({"BCDE"}), authorizer=Authorizer(GrantSnapshot(), tree))
        scope = ComponentScope(
            components=(ComponentRef.key("OtherProject:file"), ComponentRef.key("nope")),
            projects=(ComponentRef.key("OtherProject"), ComponentRef.key("MyComponent")),
        )

        converted = visible.with_uuid_refs(scope)

        assert converted.component_uuids == ()
        assert converted.project_uuids == ()
        assert converted.projects == scope.projects


class TestVisibilityResolver:
    """Test resolution of the visible scope against the database."""

    @pytest.mark.asyncio
    async def test_anyone_can_browse_project(self, world, db_session: AsyncSession):
        """Test components of a project browsable by anyone."""
        scope = await VisibilityResolver(db_session).resolve(ANONYMOUS, ComponentScope())

        assert scope.component_uuids == {"ABCD", "BCDE", "FEDC"}
        assert scope.explicit is False

    @pytest.mark.asyncio
    async def test_invisible_component_silently_dropped(self, world, db_session: AsyncSession):
        """Test components of a private project look like missing ones."""
        private = world.new_project("PRIV", "PrivateProject")
        await world.add(private, world.new_file(private, "PRIVF", "PrivateFile"))

        scope = await resolve_visible_scope(
            db_session, ANONYMOUS, (ComponentRef.uuid("PRIVF"), ComponentRef.uuid("BCDE"))
        )

        assert scope.component_uuids == {"BCDE"}
        assert scope.size == 1

    @pytest.mark.asyncio
    async def test_group_membership_grants_access(self, world, db_session: AsyncSession):
        """Test a grant to one of the caller's groups."""
        private = world.new_project("PRIV", "PrivateProject")
        await world.add(private)
        await world.grant(CODEVIEWER, component=private, group="devs")
        await world.add_to_group("john", "devs")

        john = await load_caller(db_session, "john")
        scope = await resolve_visible_scope(db_session, john, requested_project_refs=(ComponentRef.uuid("PRIV"),))

        assert scope.component_uuids == {"PRIV"}
        assert john.groups == {ANYONE, "devs"}

    @pytest.mark.asyncio
    async def test_anonymous_caller(self, db_session: AsyncSession):
        """Test that no login yields the anonymous identity."""
        caller = await load_caller(db_session, None)
        assert caller.login is None
        assert caller.groups == {ANYONE}
        assert not caller.is_logged_in
