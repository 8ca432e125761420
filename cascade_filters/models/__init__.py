# Core models (most commonly used)
from .core import (
    Option, OptionFetcher, CascadeLevelSpec, NodeStatus, CascadeNodeState,
    CascadeSelection, HydrationMismatch, HydrationResult
)

# Filter models
from .filters import (
    FieldKind, FilterFieldSpec, FilterState, FilterDraft, ScreenSpec,
    PaginatedResult, Notification, HydrationReport
)

# Errors
from .errors import (
    ReferenceLookupError, QueryExecutionError, SelectionValidationError, StaleResponseDiscarded
)

# Config models
from .config import DashboardConfig, CacheInfo

__all__ = [
    # Core
    'Option', 'OptionFetcher', 'CascadeLevelSpec', 'NodeStatus', 'CascadeNodeState',
    'CascadeSelection', 'HydrationMismatch', 'HydrationResult',
    # Filters
    'FieldKind', 'FilterFieldSpec', 'FilterState', 'FilterDraft', 'ScreenSpec',
    'PaginatedResult', 'Notification', 'HydrationReport',
    # Errors
    'ReferenceLookupError', 'QueryExecutionError', 'SelectionValidationError',
    'StaleResponseDiscarded',
    # Config
    'DashboardConfig', 'CacheInfo'
]
