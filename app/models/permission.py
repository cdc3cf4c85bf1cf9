from __future__ import annotations

from sqlalchemy import CheckConstraint, Column, Index, Integer, String

from app.db import Base

# Implicit group every caller, including anonymous ones, belongs to
ANYONE = "Anyone"

# Component roles
USER = "user"
CODEVIEWER = "codeviewer"
ISSUE_ADMIN = "issueadmin"

# Global roles
SYSTEM_ADMIN = "admin"


class GroupMembership(Base):
    __tablename__ = "group_memberships"

    id = Column(Integer, primary_key=True, autoincrement=True)
    login = Column(String(255), nullable=False)
    group_name = Column(String(255), nullable=False)

    __table_args__ = (
        Index("ix_group_memberships_login", "login"),
    )


class PermissionGrant(Base):
    """Role granted to a user or a group, on a component or globally.

    Exactly one of ``user_login`` / ``group_name`` is set. A null
    ``component_uuid`` means the grant is global.
    """

    __tablename__ = "permission_grants"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_login = Column(String(255), nullable=True)
    group_name = Column(String(255), nullable=True)
    component_uuid = Column(String(50), nullable=True)
    role = Column(String(64), nullable=False)

    __table_args__ = (
        CheckConstraint(
            "(user_login IS NULL) <> (group_name IS NULL)",
            name="ck_permission_grants_single_subject",
        ),
        Index("ix_permission_grants_component_uuid", "component_uuid"),
    )
