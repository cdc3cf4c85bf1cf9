from __future__ import annotations

from sqlalchemy import JSON, Column, DateTime, Index, Integer, String, Text

from app.db import Base


class IssueDocument(Base):
    """Denormalized, query-ready copy of an issue.

    Rows are only written by the indexer, so the table lags behind the
    source tables until the next ``reindex_all``.
    """

    __tablename__ = "issue_index"

    key = Column(String(50), primary_key=True)
    rule_key = Column(String(512), nullable=False)
    language = Column(String(20), nullable=True)
    component_uuid = Column(String(50), nullable=False)
    project_uuid = Column(String(50), nullable=False)
    file_path = Column(String(2000), nullable=True)
    line = Column(Integer, nullable=True)

    status = Column(String(20), nullable=True)
    resolution = Column(String(20), nullable=True)
    severity = Column(String(10), nullable=True)
    severity_value = Column(Integer, nullable=False, default=0)
    message = Column(Text, nullable=True)
    debt = Column(Integer, nullable=True)

    assignee = Column(String(255), nullable=True)
    reporter = Column(String(255), nullable=True)
    author_login = Column(String(255), nullable=True)
    action_plan_key = Column(String(50), nullable=True)
    attributes = Column(JSON, nullable=True)

    created_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, nullable=True)
    closed_at = Column(DateTime, nullable=True)
    indexed_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("ix_issue_index_component_uuid", "component_uuid"),
        Index("ix_issue_index_project_uuid", "project_uuid"),
        Index("ix_issue_index_updated_at", "updated_at"),
        Index("ix_issue_index_created_at", "created_at"),
    )
