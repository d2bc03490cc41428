"""
inventory/query - Filtering, pagination and summaries

Usage:
    from inventory.query import QueryEngine, ResourceFilter

    engine = QueryEngine(store)
    page = engine.query(ResourceFilter.from_params({"regions": ["us-east-1"], "limit": "20"}))
    summary = engine.summarize(ResourceFilter(account_ids={"111111111111"}))
"""

from .engine import QueryEngine, QueryResult, sort_resources
from .filter import ResourceFilter
from .summary import GroupCount, Summary, group_counts, summarize

__all__ = [
    "QueryEngine",
    "QueryResult",
    "ResourceFilter",
    "Summary",
    "GroupCount",
    "summarize",
    "group_counts",
    "sort_resources",
]
