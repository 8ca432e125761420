"""
Services package - Clean imports for all services.
"""

# Core services
from .core.lookup_cache import LookupCache
from .core.request_sequencer import RequestSequencer
from .core.url_codec import UrlCodec

# Cascade services
from .cascade.cascade_node import CascadeNode
from .cascade.cascade_chain import CascadeChain

# Coordination services
from .coordination.filter_controller import FilterController

# Page services
from .pages.screen_specs import ACCOUNTS_SCREEN, RESERVATIONS_SCREEN, get_screen
from .pages.locations_editor import LocationsEditor

# Providers
from .providers.static_lookup_provider import StaticLookupProvider
from .providers.dataframe_query_executor import DataFrameQueryExecutor

# Utility services
from .utils.service_container import ServiceContainer

__all__ = [
    # Core
    'LookupCache',
    'RequestSequencer',
    'UrlCodec',

    # Cascade
    'CascadeNode',
    'CascadeChain',

    # Coordination
    'FilterController',

    # Pages
    'ACCOUNTS_SCREEN',
    'RESERVATIONS_SCREEN',
    'get_screen',
    'LocationsEditor',

    # Providers
    'StaticLookupProvider',
    'DataFrameQueryExecutor',

    # Utils
    'ServiceContainer',
]
