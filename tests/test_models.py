from __future__ import annotations

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.component import FILE, PROJECT, Component
from app.models.issue import Issue, severity_rank
from app.models.permission import CODEVIEWER, PermissionGrant
from app.models.rule import Rule


class TestRuleModel:
    """Test Rule model functionality."""

    @pytest.mark.asyncio
    async def test_rule_creation(self, db_session: AsyncSession):
        """Test creating a rule with its defaults."""
        rule = Rule(repository="squid", rule_key="AvoidCycles", name="Avoid cycles")
        db_session.add(rule)
        await db_session.commit()

        assert rule.id is not None
        assert rule.key == "squid:AvoidCycles"
        assert rule.status == "READY"

    @pytest.mark.asyncio
    async def test_rule_key_unique(self, db_session: AsyncSession):
        """Test a rule key can only exist once per repository."""
        db_session.add(Rule(repository="squid", rule_key="AvoidCycles"))
        await db_session.commit()

        db_session.add(Rule(repository="squid", rule_key="AvoidCycles"))
        with pytest.raises(IntegrityError):
            await db_session.commit()
        await db_session.rollback()


class TestComponentModel:
    """Test Component model functionality."""

    @pytest.mark.asyncio
    async def test_component_hierarchy(self, db_session: AsyncSession):
        """Test projects are roots and files point at their project."""
        project = Component(uuid="ABCD", kee="MyProject", qualifier=PROJECT, project_uuid="ABCD")
        file = Component(uuid="BCDE", kee="MyComponent", qualifier=FILE, parent_uuid="ABCD", project_uuid="ABCD")
        db_session.add_all([project, file])
        await db_session.commit()

        result = await db_session.execute(select(Component).where(Component.project_uuid == "ABCD"))
        components = {c.uuid: c for c in result.scalars().all()}

        assert components["ABCD"].is_root
        assert not components["BCDE"].is_root
        assert components["BCDE"].enabled is True


class TestIssueModel:
    """Test Issue model functionality."""

    @pytest.mark.asyncio
    async def test_issue_creation(self, world):
        """Test creating an issue with attributes."""
        issue = await world.add_issue(kee="I1", issue_attributes={"jira-issue-key": "SONAR-1234"})

        assert issue.id is not None
        assert issue.rule_id == world.rule.id
        assert issue.issue_attributes == {"jira-issue-key": "SONAR-1234"}

    @pytest.mark.asyncio
    async def test_issue_update(self, world, db_session: AsyncSession):
        """Test updating an issue."""
        issue = await world.add_issue(kee="I1")
        issue.status = "RESOLVED"
        issue.resolution = "FIXED"
        await db_session.commit()

        result = await db_session.execute(select(Issue).where(Issue.kee == "I1"))
        stored = result.scalar_one()
        assert stored.status == "RESOLVED"
        assert stored.resolution == "FIXED"

    def test_severity_rank(self):
        """Test severities rank from INFO to BLOCKER."""
        assert severity_rank("INFO") == 1
        assert severity_rank("BLOCKER") == 5
        assert severity_rank(None) == 0
        assert severity_rank("UNKNOWN") == 0


class TestPermissionGrantModel:
    """Test PermissionGrant model functionality."""

    @pytest.mark.asyncio
    async def test_grant_needs_a_single_subject(self, db_session: AsyncSession):
        """Test a grant goes to either a user or a group."""
        db_session.add(PermissionGrant(user_login="john", group_name="devs", component_uuid="ABCD", role=CODEVIEWER))
        with pytest.raises(IntegrityError):
            await db_session.commit()
        await db_session.rollback()
