from __future__ import annotations

from sqlalchemy import Column, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.sql import func

from app.db import Base


class Rule(Base):
    __tablename__ = "rules"

    id = Column(Integer, primary_key=True, autoincrement=True)
    repository = Column(String(255), nullable=False)
    rule_key = Column(String(200), nullable=False)
    name = Column(String(200), nullable=True)
    description = Column(Text, nullable=True)
    status = Column(String(40), nullable=False, default="READY")
    language = Column(String(20), nullable=True)
    severity = Column(String(10), nullable=True)

    created_at = Column(DateTime, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("repository", "rule_key", name="uq_rules_repository_rule_key"),
    )

    @property
    def key(self) -> str:
        return f"{self.repository}:{self.rule_key}"
