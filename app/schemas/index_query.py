from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union


@dataclass(frozen=True)
class TermsFilter:
    """Field value must be one of ``values``. An empty tuple matches nothing."""

    field: str
    values: Tuple[Any, ...]
    relaxable: bool = True


@dataclass(frozen=True)
class RangeFilter:
    field: str
    gte: Optional[datetime] = None
    lt: Optional[datetime] = None
    lte: Optional[datetime] = None
    relaxable: bool = True


@dataclass(frozen=True)
class ExistsFilter:
    """Field must be set (``exists=True``) or null (``exists=False``)."""

    field: str
    exists: bool
    relaxable: bool = True


Filter = Union[TermsFilter, RangeFilter, ExistsFilter]


@dataclass(frozen=True)
class SortField:
    field: str
    asc: bool = True


@dataclass(frozen=True)
class Aggregation:
    """Count documents per distinct value of ``field`` under ``filters``."""

    name: str
    field: str
    filters: Tuple[Filter, ...]
    missing_value: Optional[str] = None


@dataclass(frozen=True)
class BackendQuery:
    filters: Tuple[Filter, ...]
    sort: Tuple[SortField, ...]
    offset: int
    limit: int
    aggregations: Tuple[Aggregation, ...] = ()


@dataclass
class SearchResult:
    hits: List[Any]
    total: int
    aggregations: Dict[str, List[Tuple[str, int]]] = field(default_factory=dict)
