from __future__ import annotations

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.sql import func

from app.db import Base

# Statuses
STATUS_OPEN = "OPEN"
STATUS_CONFIRMED = "CONFIRMED"
STATUS_REOPENED = "REOPENED"
STATUS_RESOLVED = "RESOLVED"
STATUS_CLOSED = "CLOSED"

STATUSES = (STATUS_OPEN, STATUS_CONFIRMED, STATUS_REOPENED, STATUS_RESOLVED, STATUS_CLOSED)
TERMINAL_STATUSES = (STATUS_RESOLVED, STATUS_CLOSED)

# Resolutions
RESOLUTION_FIXED = "FIXED"
RESOLUTION_FALSE_POSITIVE = "FALSE-POSITIVE"
RESOLUTION_REMOVED = "REMOVED"

RESOLUTIONS = (RESOLUTION_FALSE_POSITIVE, RESOLUTION_FIXED, RESOLUTION_REMOVED)

# Severities, lowest first
SEVERITIES = ("INFO", "MINOR", "MAJOR", "CRITICAL", "BLOCKER")


def severity_rank(severity: str | None) -> int:
    """Numeric rank of a severity, 0 for unknown values."""
    if severity in SEVERITIES:
        return SEVERITIES.index(severity) + 1
    return 0


class Issue(Base):
    __tablename__ = "issues"

    id = Column(Integer, primary_key=True, autoincrement=True)
    kee = Column(String(50), nullable=False, unique=True)
    rule_id = Column(Integer, ForeignKey("rules.id"), nullable=False)
    component_uuid = Column(String(50), nullable=False)
    project_uuid = Column(String(50), nullable=False)

    status = Column(String(20), nullable=True, default=STATUS_OPEN)
    resolution = Column(String(20), nullable=True)
    severity = Column(String(10), nullable=True)
    message = Column(Text, nullable=True)
    line = Column(Integer, nullable=True)
    technical_debt = Column(Integer, nullable=True)  # minutes

    assignee = Column(String(255), nullable=True)
    reporter = Column(String(255), nullable=True)
    author_login = Column(String(255), nullable=True)
    action_plan_key = Column(String(50), nullable=True)

    # Third-party metadata, e.g. {"jira-issue-key": "SONAR-1234"}
    issue_attributes = Column(JSON, nullable=True)

    issue_creation_date = Column(DateTime, nullable=True)
    issue_update_date = Column(DateTime, nullable=True)
    issue_close_date = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("ix_issues_component_uuid", "component_uuid"),
        Index("ix_issues_project_uuid", "project_uuid"),
        Index("ix_issues_action_plan_key", "action_plan_key"),
    )
