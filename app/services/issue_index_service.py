from __future__ import annotations

import asyncio
import datetime as dt
import logging
from typing import List, Optional, Tuple

from sqlalchemy import asc, delete, desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.component import Component
from app.models.issue import Issue, severity_rank
from app.models.issue_index import IssueDocument
from app.models.rule import Rule
from app.schemas.index_query import (
    Aggregation,
    BackendQuery,
    ExistsFilter,
    Filter,
    RangeFilter,
    SearchResult,
    TermsFilter,
)
from app.services.errors import IndexUnavailableError
from app.services.search_config_service import SearchConfigService

logger = logging.getLogger(__name__)


def _column(name: str):
    return getattr(IssueDocument, name)


def compile_filter(f: Filter):
    """Translate a backend-neutral filter into a SQLAlchemy condition."""
    column = _column(f.field)
    if isinstance(f, TermsFilter):
        return column.in_(list(f.values))
    if isinstance(f, ExistsFilter):
        return column.isnot(None) if f.exists else column.is_(None)
    if isinstance(f, RangeFilter):
        conditions = []
        if f.gte is not None:
            conditions.append(column >= f.gte)
        if f.lt is not None:
            conditions.append(column < f.lt)
        if f.lte is not None:
            conditions.append(column <= f.lte)
        return conditions
    raise TypeError(f"Unsupported filter: {f!r}")


def compile_filters(filters) -> list:
    conditions = []
    for f in filters:
        compiled = compile_filter(f)
        if isinstance(compiled, list):
            conditions.extend(compiled)
        else:
            conditions.append(compiled)
    return conditions


class IssueIndexService:
    """Search index over issues, backed by the ``issue_index`` table.

    The index is only refreshed by :meth:`reindex_all`; writes to the
    source tables are invisible to searches until then.
    """

    def __init__(self, session: AsyncSession, timeout: Optional[float] = None):
        self.session = session
        self.timeout = timeout if timeout is not None else SearchConfigService.get_index_timeout()

    async def search(self, query: BackendQuery) -> SearchResult:
        """Run ``query`` with its aggregations. Fails wholesale on timeout."""
        try:
            return await asyncio.wait_for(self._search(query), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"Issue index search timed out after {self.timeout}s")
            raise IndexUnavailableError(f"Issue index did not answer within {self.timeout} seconds", e)
        except SQLAlchemyError as e:
            logger.error(f"Issue index search failed: {e}")
            raise IndexUnavailableError("Issue index is unavailable", e)

    async def _search(self, query: BackendQuery) -> SearchResult:
        conditions = compile_filters(query.filters)

        count_stmt = select(func.count()).select_from(IssueDocument).where(*conditions)
        total = (await self.session.execute(count_stmt)).scalar_one()

        order_by = [
            asc(_column(s.field)) if s.asc else desc(_column(s.field))
            for s in query.sort
        ]
        hits_stmt = (
            select(IssueDocument)
            .where(*conditions)
            .order_by(*order_by)
            .offset(query.offset)
            .limit(query.limit)
        )
        hits = (await self.session.execute(hits_stmt)).scalars().all()

        aggregations = {}
        for aggregation in query.aggregations:
            aggregations[aggregation.name] = await self._aggregate(aggregation)

        return SearchResult(hits=list(hits), total=total, aggregations=aggregations)

    async def _aggregate(self, aggregation: Aggregation) -> List[Tuple[str, int]]:
        column = _column(aggregation.field)
        stmt = (
            select(column, func.count().label("count"))
            .where(*compile_filters(aggregation.filters))
            .group_by(column)
        )
        result = await self.session.execute(stmt)
        buckets = []
        for value, count in result.all():
            if value is None:
                if aggregation.missing_value is None:
                    continue
                value = aggregation.missing_value
            buckets.append((str(value), count))
        return buckets

    async def count(self) -> int:
        stmt = select(func.count()).select_from(IssueDocument)
        return (await self.session.execute(stmt)).scalar_one()

    async def reindex_all(self) -> int:
        """Rebuild every index document from the source tables."""
        started = dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)
        stmt = (
            select(Issue, Rule.repository, Rule.rule_key, Rule.language, Component.path)
            .join(Rule, Rule.id == Issue.rule_id)
            .outerjoin(Component, Component.uuid == Issue.component_uuid)
        )
        rows = (await self.session.execute(stmt)).all()

        await self.session.execute(delete(IssueDocument))
        for issue, repository, rule_key, language, path in rows:
            self.session.add(
                IssueDocument(
                    key=issue.kee,
                    rule_key=f"{repository}:{rule_key}",
                    language=language,
                    component_uuid=issue.component_uuid,
                    project_uuid=issue.project_uuid,
                    file_path=path,
                    line=issue.line,
                    status=issue.status,
                    resolution=issue.resolution,
                    severity=issue.severity,
                    severity_value=severity_rank(issue.severity),
                    message=issue.message,
                    debt=issue.technical_debt,
                    assignee=issue.assignee,
                    reporter=issue.reporter,
                    author_login=issue.author_login,
                    action_plan_key=issue.action_plan_key,
                    attributes=issue.issue_attributes,
                    created_at=issue.issue_creation_date or issue.created_at,
                    updated_at=issue.issue_update_date or issue.updated_at,
                    closed_at=issue.issue_close_date,
                    indexed_at=started,
                )
            )
        await self.session.commit()

        elapsed = (dt.datetime.now(dt.timezone.utc).replace(tzinfo=None) - started).total_seconds()
        logger.info(f"Indexed {len(rows)} issues in {elapsed:.2f}s")
        return len(rows)
