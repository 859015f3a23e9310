"""Query layer: descriptors, executors, cache policy and interception."""

from querycache.query.caching import CachingExecutor, Scope
from querycache.query.descriptor import UNSET, Predicate, Query
from querycache.query.executor import QueryExecutor, SqlAlchemyExecutor
from querycache.query.policy import CachePolicy

__all__ = [
    "CachingExecutor",
    "CachePolicy",
    "Predicate",
    "Query",
    "QueryExecutor",
    "Scope",
    "SqlAlchemyExecutor",
    "UNSET",
]
