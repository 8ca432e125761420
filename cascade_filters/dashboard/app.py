"""
Streamlit host for the Accounts, Reservations and Locations screens.
"""
import logging
from typing import Optional

import streamlit as st
import yaml

from cascade_filters.config.dashboard_config import load_config
from cascade_filters.models import DashboardConfig
from cascade_filters.services import ServiceContainer
from cascade_filters.dashboard.utils.session_state import drop_controller, initialize_session_state
from cascade_filters.dashboard.pages import accounts, reservations, locations

logger = logging.getLogger(__name__)


class FilterDashboard:
    """Page switcher around the shared ServiceContainer."""

    def __init__(self, config: DashboardConfig):
        self.config = config
        self.services: Optional[ServiceContainer] = None
        self.pages = {
            "Accounts": accounts,
            "Reservations": reservations,
            "Locations": locations
        }

    def run(self):
        """Render one Streamlit pass."""
        st.set_page_config(
            page_title="Filter Dashboard",
            page_icon="🔎",
            layout="wide",
            initial_sidebar_state="expanded"
        )
        initialize_session_state()

        self.services = st.session_state.get('services') or self._load_services()
        if self.services is None:
            st.error("Reference data or records could not be loaded. Please check the logs.")
            return

        self._render_navigation()
        self._render_page(st.session_state.current_page)
        self._render_sidebar_status()

    def _load_services(self) -> Optional[ServiceContainer]:
        """Build the ServiceContainer once per browser session."""
        try:
            with st.spinner("Loading reference data and records..."):
                services = ServiceContainer.initialize(self.config)
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.error(f"Could not build services from config: {e}")
            st.error(f"Could not build services: {e}")
            return None

        st.session_state.services = services
        st.session_state.services_initialized = True
        return services

    def _render_navigation(self):
        st.title("🔎 Filter Dashboard")

        names = list(self.pages)
        choice = st.radio(
            "Screen",
            names,
            index=names.index(st.session_state.current_page),
            horizontal=True,
            label_visibility="collapsed"
        )
        if choice != st.session_state.current_page:
            # Each screen owns the URL while it is shown
            st.query_params.clear()
            drop_controller(choice.lower())
            st.session_state.current_page = choice
            st.rerun()

    def _render_page(self, page_name: str):
        try:
            self.pages[page_name].render(self.services)
        except Exception as e:
            logger.error(f"Error rendering {page_name}: {e}", exc_info=True)
            st.error(f"{page_name} could not be rendered: {e}")

    def _render_sidebar_status(self):
        """Render reference data status for the current screen"""
        st.sidebar.divider()
        st.sidebar.subheader("Reference Data")

        controller = st.session_state.controllers.get(st.session_state.current_page.lower())
        if controller is None:
            st.sidebar.caption("No filter screen active")
            return

        cache_info = controller.cache.get_cache_info()
        if cache_info.entry_count:
            st.sidebar.success(f"{cache_info.entry_count} option lists cached ({cache_info.option_count} options)")
            st.sidebar.caption(f"Last updated: {cache_info.last_updated.strftime('%Y-%m-%d %H:%M:%S')}")
        else:
            st.sidebar.warning("No cached reference data")

        if st.sidebar.button("🔄 Refresh Reference Data", use_container_width=True):
            controller.cache.mark_stale("manual refresh")
            st.rerun()


def main():
    """Load configuration, set up logging and render the dashboard."""
    try:
        config = load_config()
    except (OSError, yaml.YAMLError) as e:
        st.error(f"Configuration could not be loaded: {e}")
        return

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s"
    )
    FilterDashboard(config).run()


if __name__ == "__main__":
    main()
