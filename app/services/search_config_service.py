from __future__ import annotations

import os


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


class SearchConfigService:
    """Configuration for issue search, read from environment variables."""

    @staticmethod
    def get_max_limit() -> int:
        """Hard cap on the number of issues returned by a single query."""
        return _int_env("ISSUES_MAX_LIMIT", 500)

    @staticmethod
    def get_default_page_size() -> int:
        """Page size used when the caller does not ask for one."""
        return _int_env("ISSUES_DEFAULT_PAGE_SIZE", 100)

    @staticmethod
    def get_facet_size() -> int:
        """Maximum number of buckets returned per facet (selected values excluded)."""
        return _int_env("ISSUES_FACET_SIZE", 10)

    @staticmethod
    def get_index_timeout() -> float:
        """Timeout in seconds for all index calls made by one search request."""
        try:
            return float(os.getenv("INDEX_TIMEOUT_SECONDS", "30"))
        except ValueError:
            return 30.0

    @staticmethod
    def get_log_level() -> str:
        return os.getenv("LOG_LEVEL", "INFO")


def get_max_limit() -> int:
    """Convenience function to get the hard result cap."""
    return SearchConfigService.get_max_limit()


def get_default_page_size() -> int:
    """Convenience function to get the default page size."""
    return SearchConfigService.get_default_page_size()
