from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

from app.schemas.issue_search import IssueQuery
from app.services.search_config_service import get_max_limit

logger = logging.getLogger(__name__)

# Largest offset passed to the index. A page starting beyond it is empty.
MAX_OFFSET = 2 ** 31 - 1


@dataclass(frozen=True)
class ResolvedPaging:
    """Effective paging of one search.

    ``total_cap`` is the hard maximum any query may return; when paging is
    ignored the single page is ``total_cap`` issues long.
    """

    page: int
    page_size: int
    offset: int
    limit: int
    total_cap: int
    ignore_paging: bool = False

    def pages(self, total: int) -> int:
        if self.page_size <= 0:
            return 0
        return int(math.ceil(total / self.page_size))

    def max_results_reached(self, total: int) -> bool:
        return self.ignore_paging and total > self.limit


def resolve_paging(query: IssueQuery, effective_scope_size: int, max_limit: Optional[int] = None) -> ResolvedPaging:
    """Decide offset and limit for ``query``.

    Ignoring paging is only safe on a single component (e.g. every issue of
    one file); on a wider scope the flag is dropped and regular paging with
    the requested or default page size applies.
    """
    cap = max_limit if max_limit is not None else get_max_limit()

    if query.ignore_paging and effective_scope_size == 1:
        return ResolvedPaging(page=1, page_size=cap, offset=0, limit=cap, total_cap=cap, ignore_paging=True)

    if query.ignore_paging:
        logger.debug(f"Ignoring 'ignore paging' on a scope of {effective_scope_size} components")

    size = min(query.page_size, cap)
    offset = (query.page - 1) * size
    if offset > MAX_OFFSET:
        logger.debug(f"Page {query.page} starts past the last indexable offset, returning an empty page")
        return ResolvedPaging(page=query.page, page_size=size, offset=0, limit=0, total_cap=cap)

    return ResolvedPaging(
        page=query.page,
        page_size=size,
        offset=offset,
        limit=size,
        total_cap=cap,
    )
