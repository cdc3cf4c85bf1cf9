from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String
from sqlalchemy.sql import func

from app.db import Base

# Qualifiers
PROJECT = "TRK"
MODULE = "BRC"
DIRECTORY = "DIR"
FILE = "FIL"
UNIT_TEST_FILE = "UTS"

# Scopes
SCOPE_PROJECT = "PRJ"
SCOPE_DIRECTORY = "DIR"
SCOPE_FILE = "FIL"


class Component(Base):
    """A project, module, directory or file.

    ``id`` is the legacy numeric identifier still exposed to older
    integrations; ``uuid`` is the stable identifier everything else uses.
    Disabled components are kept so that historical issues can still point
    at them.
    """

    __tablename__ = "components"

    id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(50), nullable=False, unique=True)
    kee = Column(String(400), nullable=False)
    name = Column(String(2000), nullable=True)
    long_name = Column(String(2000), nullable=True)
    qualifier = Column(String(10), nullable=False, default=FILE)
    scope = Column(String(3), nullable=False, default=SCOPE_FILE)
    path = Column(String(2000), nullable=True)
    language = Column(String(20), nullable=True)
    enabled = Column(Boolean, nullable=False, default=True)

    # Direct parent (module or project) and root project of the hierarchy
    parent_uuid = Column(String(50), nullable=True)
    project_uuid = Column(String(50), nullable=False)

    created_at = Column(DateTime, server_default=func.now())

    __table_args__ = (
        Index("ix_components_kee", "kee"),
        Index("ix_components_project_uuid", "project_uuid"),
        Index("ix_components_parent_uuid", "parent_uuid"),
    )

    @property
    def is_root(self) -> bool:
        return self.parent_uuid is None
