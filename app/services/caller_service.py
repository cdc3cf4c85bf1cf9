from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import FrozenSet, Optional

from fastapi import Depends, Header
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import get_db
from app.models.permission import ANYONE, GroupMembership

logger = logging.getLogger(__name__)

# Set by the authenticating reverse proxy in front of the service
LOGIN_HEADER = "X-Forwarded-Login"


@dataclass(frozen=True)
class CallerIdentity:
    """Who is searching. Anonymous callers have no login."""

    login: Optional[str]
    groups: FrozenSet[str] = frozenset({ANYONE})

    @classmethod
    def anonymous(cls) -> "CallerIdentity":
        return cls(login=None)

    @property
    def is_logged_in(self) -> bool:
        return self.login is not None


async def load_caller(session: AsyncSession, login: Optional[str]) -> CallerIdentity:
    """Build the identity of ``login`` including every group it belongs to."""
    if not login:
        return CallerIdentity.anonymous()

    stmt = select(GroupMembership.group_name).where(GroupMembership.login == login)
    result = await session.execute(stmt)
    groups = frozenset(result.scalars().all()) | {ANYONE}
    return CallerIdentity(login=login, groups=groups)


async def get_caller(
    x_forwarded_login: Optional[str] = Header(default=None, alias=LOGIN_HEADER),
    session: AsyncSession = Depends(get_db),
) -> CallerIdentity:
    """FastAPI dependency resolving the caller of the current request."""
    return await load_caller(session, x_forwarded_login)
