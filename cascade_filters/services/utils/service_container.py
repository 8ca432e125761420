"""
Service Container - Manages all services and their initialization.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Optional
import logging

from cascade_filters.models import DashboardConfig, Notification
from ..core.lookup_cache import LookupCache
from ..core.request_sequencer import RequestSequencer
from ..coordination.filter_controller import FilterController
from ..pages.locations_editor import LocationsEditor
from ..pages.screen_specs import SCREENS, get_screen
from ..providers.dataframe_query_executor import DataFrameQueryExecutor
from ..providers.static_lookup_provider import StaticLookupProvider

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Holds the shared reference-data provider and per-screen query executors."""
    config: DashboardConfig

    # Reference data
    lookup_provider: StaticLookupProvider

    # Screen data (screen name -> executor)
    executors: Dict[str, DataFrameQueryExecutor] = field(default_factory=dict)

    @classmethod
    def initialize(cls, config: DashboardConfig) -> 'ServiceContainer':
        """
        Initialize all services with configuration.

        Args:
            config: Dashboard configuration

        Returns:
            ServiceContainer with all services initialized
        """
        try:
            logger.info("Initializing services...")

            # 1. Reference data shared by every screen
            lookup_provider = StaticLookupProvider.from_yaml(
                config.reference_data_path,
                latency_ms=config.lookup_latency_ms
            )

            # 2. One executor per screen with records
            executors = {}
            for screen_name, csv_path in config.record_paths.items():
                if screen_name not in SCREENS:
                    logger.warning(f"Ignoring records for unknown screen: {screen_name}")
                    continue
                executors[screen_name] = DataFrameQueryExecutor.for_screen(
                    screen_name, csv_path, latency_ms=config.query_latency_ms
                )

            logger.info("All services initialized successfully")
            return cls(config=config, lookup_provider=lookup_provider, executors=executors)

        except Exception as e:
            logger.error(f"Failed to initialize services: {e}")
            raise

    def create_controller(
        self,
        screen_name: str,
        navigation=None,
        notify: Optional[Callable[[Notification], None]] = None,
        auto_apply: Optional[bool] = None
    ) -> FilterController:
        """
        Build a FilterController for one screen instance.

        Each controller gets its own LookupCache and RequestSequencer so that
        cached reference data lives exactly as long as the screen.
        auto_apply overrides the configured search-on-load policy.
        """
        if auto_apply is None:
            auto_apply = self.config.auto_apply_on_load and SCREENS[screen_name].auto_apply
        screen = get_screen(screen_name, page_size=self.config.default_page_size, auto_apply=auto_apply)
        return FilterController(
            screen=screen,
            provider=self.lookup_provider,
            executor=self.executors.get(screen_name),
            navigation=navigation,
            cache=LookupCache(),
            sequencer=RequestSequencer(),
            strict_validation=self.config.strict_validation,
            notify=notify
        )

    def create_locations_editor(self) -> LocationsEditor:
        return LocationsEditor(
            provider=self.lookup_provider,
            cache=LookupCache(),
            sequencer=RequestSequencer(),
            strict_validation=self.config.strict_validation
        )
