from .static_lookup_provider import StaticLookupProvider
from .dataframe_query_executor import DataFrameQueryExecutor, QueryMapping, Criterion, QUERY_MAPPINGS

__all__ = [
    'StaticLookupProvider',
    'DataFrameQueryExecutor',
    'QueryMapping',
    'Criterion',
    'QUERY_MAPPINGS',
]
