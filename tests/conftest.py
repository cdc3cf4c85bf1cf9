from __future__ import annotations

import datetime as dt
import uuid
from typing import AsyncGenerator, Optional

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from app.db import Base, get_db
from app.main import app
from app.models.action_plan import ActionPlan
from app.models.component import FILE, MODULE, PROJECT, SCOPE_FILE, SCOPE_PROJECT, Component
from app.models.issue import Issue
from app.models.issue_change import TYPE_COMMENT, IssueChange
from app.models.permission import ANYONE, CODEVIEWER, USER, GroupMembership, PermissionGrant
from app.models.rule import Rule
from app.models.user import User
from app.services.issue_index_service import IssueIndexService


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """File-backed SQLite database, created fresh for each test."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'issues.db'}", echo=False, future=True, poolclass=NullPool
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return sessionmaker(test_engine, expire_on_commit=False, class_=AsyncSession)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client on the app, with every request using the test database."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client
    app.dependency_overrides.clear()


class SearchWorld:
    """Project ABCD holding files BCDE and FEDC, browsable by anyone.

    Writes go to the source tables only; call :meth:`reindex` before
    searching.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def setup(self) -> "SearchWorld":
        self.rule = Rule(
            repository="xoo", rule_key="x1", name="Rule name", description="Rule desc",
            status="READY", language="xoo",
        )
        self.project = self.new_project("ABCD", "MyProject")
        self.file = self.new_file(self.project, "BCDE", "MyComponent")
        self.other_file = self.new_file(self.project, "FEDC", "OtherComponent")
        self.session.add_all([self.rule, self.project, self.file, self.other_file])
        self.session.add(User(login="john", name="John", email="john@email.com"))
        await self.session.commit()

        await self.grant(USER, component=self.project, group=ANYONE)
        await self.grant(CODEVIEWER, component=self.project, group=ANYONE)
        return self

    @staticmethod
    def new_project(uuid_: str, key: str) -> Component:
        return Component(
            uuid=uuid_, kee=key, name=key, long_name=key,
            qualifier=PROJECT, scope=SCOPE_PROJECT, project_uuid=uuid_,
        )

    @staticmethod
    def new_file(parent: Component, uuid_: str, key: str, enabled: bool = True) -> Component:
        return Component(
            uuid=uuid_, kee=key, name=key, long_name=f"src/{key}.xoo", path=f"src/{key}.xoo",
            qualifier=FILE, scope=SCOPE_FILE, enabled=enabled,
            parent_uuid=parent.uuid, project_uuid=parent.project_uuid,
        )

    @staticmethod
    def new_module(parent: Component, uuid_: str, key: str) -> Component:
        return Component(
            uuid=uuid_, kee=key, name=key, long_name=key,
            qualifier=MODULE, scope=SCOPE_PROJECT,
            parent_uuid=parent.uuid, project_uuid=parent.project_uuid,
        )

    async def add(self, *entities):
        self.session.add_all(entities)
        await self.session.commit()
        return entities[0] if len(entities) == 1 else entities

    async def add_issue(self, component: Optional[Component] = None, **fields) -> Issue:
        component = component or self.file
        fields.setdefault("kee", str(uuid.uuid4()))
        fields.setdefault("status", "OPEN")
        fields.setdefault("severity", "MAJOR")
        fields.setdefault("issue_creation_date", dt.datetime(2014, 9, 4))
        fields.setdefault("issue_update_date", dt.datetime(2017, 12, 4))
        issue = Issue(
            rule_id=self.rule.id,
            component_uuid=component.uuid,
            project_uuid=component.project_uuid,
            **fields,
        )
        return await self.add(issue)

    async def add_issues(self, count: int, component: Optional[Component] = None) -> None:
        component = component or self.file
        for _ in range(count):
            self.session.add(
                Issue(
                    kee=str(uuid.uuid4()),
                    rule_id=self.rule.id,
                    component_uuid=component.uuid,
                    project_uuid=component.project_uuid,
                    status="OPEN",
                    severity="MAJOR",
                )
            )
        await self.session.commit()

    async def add_user(self, login: str, name: str) -> User:
        return await self.add(User(login=login, name=name, email=f"{login}@email.com"))

    async def add_action_plan(self, key: str, name: str, **fields) -> ActionPlan:
        return await self.add(ActionPlan(kee=key, name=name, project_uuid=self.project.uuid, **fields))

    async def add_comment(self, issue: Issue, key: str, login: str, text: str, created_at: dt.datetime) -> IssueChange:
        return await self.add(
            IssueChange(
                kee=key, issue_key=issue.kee, user_login=login, change_type=TYPE_COMMENT,
                change_data=text, created_at=created_at,
            )
        )

    async def grant(self, role: str, component: Optional[Component] = None,
                    user: Optional[str] = None, group: Optional[str] = None) -> PermissionGrant:
        return await self.add(
            PermissionGrant(
                user_login=user, group_name=group,
                component_uuid=component.uuid if component else None, role=role,
            )
        )

    async def add_to_group(self, login: str, group: str) -> GroupMembership:
        return await self.add(GroupMembership(login=login, group_name=group))

    async def reindex(self) -> int:
        return await IssueIndexService(self.session).reindex_all()


@pytest_asyncio.fixture
async def world(db_session: AsyncSession) -> SearchWorld:
    return await SearchWorld(db_session).setup()
