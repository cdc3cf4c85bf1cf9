from __future__ import annotations

from sqlalchemy import Column, DateTime, Index, Integer, String, Text
from sqlalchemy.sql import func

from app.db import Base

TYPE_COMMENT = "comment"
TYPE_FIELD_CHANGE = "diff"


class IssueChange(Base):
    """Changelog entry of an issue: either a comment or a field change."""

    __tablename__ = "issue_changes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    kee = Column(String(50), nullable=True)
    issue_key = Column(String(50), nullable=False)
    user_login = Column(String(255), nullable=True)
    change_type = Column(String(40), nullable=False, default=TYPE_COMMENT)
    change_data = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("ix_issue_changes_issue_key", "issue_key"),
    )
