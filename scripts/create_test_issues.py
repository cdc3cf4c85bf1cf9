#!/usr/bin/env python3
"""
Script to create a sample project with issues, then rebuild the issue index.
"""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import select

from app.db import Base, engine, get_db
from app.models.component import FILE, PROJECT, SCOPE_FILE, SCOPE_PROJECT, Component
from app.models.issue import Issue
from app.models.permission import ANYONE, CODEVIEWER, USER, PermissionGrant
from app.models.rule import Rule
from app.models.user import User
from app.services.issue_index_service import IssueIndexService

PROJECT_UUID = "sample-project"
PROJECT_KEY = "org.sample:sample"

TEST_FILES = ["src/Login.java", "src/Billing.java", "src/Database.java"]

TEST_ISSUES = [
    {"file": 0, "severity": "BLOCKER", "status": "OPEN", "message": "Session timeout is not handled", "line": 42, "debt": 60},
    {"file": 0, "severity": "CRITICAL", "status": "CONFIRMED", "message": "SQL injection risk in user input", "line": 87, "debt": 30, "assignee": "admin"},
    {"file": 1, "severity": "MINOR", "status": "RESOLVED", "resolution": "FIXED", "message": "Unused import", "line": 3, "debt": 2},
    {"file": 2, "severity": "MAJOR", "status": "OPEN", "message": "Query executed inside a loop", "line": 120, "debt": 20},
    {"file": 2, "severity": "INFO", "status": "REOPENED", "message": "Add a comment to this method", "line": 15, "debt": 5},
]


async def create_test_issues():
    """Create sample data in the database and index it."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async for session in get_db():
        try:
            existing = await session.execute(select(Component).where(Component.uuid == PROJECT_UUID))
            if existing.scalar_one_or_none():
                print(f"ℹ️ Project {PROJECT_KEY} already exists, only reindexing")
            else:
                rule = Rule(repository="squid", rule_key="S1", name="Sample rule", language="java")
                project = Component(
                    uuid=PROJECT_UUID, kee=PROJECT_KEY, name="Sample", long_name="Sample",
                    qualifier=PROJECT, scope=SCOPE_PROJECT, project_uuid=PROJECT_UUID,
                )
                files = [
                    Component(
                        uuid=str(uuid.uuid4()), kee=f"{PROJECT_KEY}:{path}", name=path.rsplit("/", 1)[-1],
                        long_name=path, path=path, qualifier=FILE, scope=SCOPE_FILE, language="java",
                        parent_uuid=PROJECT_UUID, project_uuid=PROJECT_UUID,
                    )
                    for path in TEST_FILES
                ]
                session.add_all([rule, project, *files])
                session.add(User(login="admin", name="Administrator", email="admin@example.com"))
                session.add(PermissionGrant(group_name=ANYONE, component_uuid=PROJECT_UUID, role=USER))
                session.add(PermissionGrant(group_name=ANYONE, component_uuid=PROJECT_UUID, role=CODEVIEWER))
                await session.flush()

                now = datetime.now(timezone.utc).replace(tzinfo=None)
                for i, data in enumerate(TEST_ISSUES):
                    session.add(
                        Issue(
                            kee=str(uuid.uuid4()),
                            rule_id=rule.id,
                            component_uuid=files[data["file"]].uuid,
                            project_uuid=PROJECT_UUID,
                            status=data["status"],
                            resolution=data.get("resolution"),
                            severity=data["severity"],
                            message=data["message"],
                            line=data["line"],
                            technical_debt=data["debt"],
                            assignee=data.get("assignee"),
                            issue_creation_date=now - timedelta(days=len(TEST_ISSUES) - i),
                            issue_update_date=now,
                        )
                    )
                await session.commit()
                print(f"✅ Successfully created {len(TEST_ISSUES)} test issues")

            indexed = await IssueIndexService(session).reindex_all()
            print(f"📊 Total issues in index: {indexed}")

        except Exception as e:
            print(f"❌ Error creating test issues: {e}")
            await session.rollback()
            raise


if __name__ == "__main__":
    asyncio.run(create_test_issues())
