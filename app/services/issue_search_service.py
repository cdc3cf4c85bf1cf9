from __future__ import annotations

import logging
import time
from typing import Any, Dict, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.services import index_query_builder
from app.services.caller_service import CallerIdentity
from app.services.enrichment_service import ResultEnricher
from app.services.facet_service import assemble
from app.services.issue_index_service import IssueIndexService
from app.services.paging_policy import resolve_paging
from app.services.query_normalizer import normalize
from app.services.search_response import compose
from app.services.visibility_service import VisibilityResolver

logger = logging.getLogger(__name__)


class IssueSearchService:
    """Answers issue searches for one caller at a time.

    Holds no state between requests besides its collaborators.
    """

    def __init__(self, session: AsyncSession, index: Optional[IssueIndexService] = None):
        self.session = session
        self.index = index or IssueIndexService(session)
        self.visibility = VisibilityResolver(session)
        self.enricher = ResultEnricher(session)

    async def search(self, params: Mapping[str, str], caller: CallerIdentity) -> Dict[str, Any]:
        """Run a search from raw request parameters.

        Raises ``ValidationError`` for malformed parameters and
        ``IndexUnavailableError`` when the index cannot answer.
        """
        started = time.monotonic()
        query = normalize(params)

        scope = await self.visibility.resolve(caller, query.scope)
        paging = resolve_paging(query, scope.size)
        backend_query = index_query_builder.build(query, scope, paging)

        result = await self.index.search(backend_query)

        # selected project and component facet entries are uuids
        faceted = query.model_copy(update={"scope": scope.with_uuid_refs(query.scope)})
        facets = assemble(result.aggregations, faceted)
        enrichment = await self.enricher.enrich(result.hits, query, caller, scope.authorizer)

        response = compose(result, paging, facets, enrichment, hide_rules=query.hide_rules, login=caller.login)
        logger.info(
            f"Issue search by {caller.login or 'anonymous'}: {len(result.hits)}/{result.total} issues, "
            f"{len(facets)} facets, scope of {scope.size} components in {time.monotonic() - started:.3f}s"
        )
        return response

    async def reindex(self) -> int:
        return await self.index.reindex_all()
