"""
Accounts page - Account list filtered by the URL-synchronized filter panel
"""

import streamlit as st

from cascade_filters.services import ServiceContainer
from cascade_filters.dashboard.components.filters import FilterPanel
from cascade_filters.dashboard.components.results import ResultsView
from cascade_filters.dashboard.utils.session_state import get_controller


def render(services: ServiceContainer):
    """Render the accounts page using ServiceContainer."""
    controller = get_controller(services, "accounts")
    FilterPanel.render_sidebar(controller)

    st.subheader("Accounts")

    report = controller.hydration_report
    if report is not None and not report.complete:
        for mismatch in report.mismatches:
            st.warning(f"Link filter {mismatch.level_id}={mismatch.value} could not be restored ({mismatch.reason})")
        for name, ids in report.dropped_ids.items():
            st.warning(f"Ignored unknown {name} in link: {', '.join(ids)}")

    countries = {option.value: option.label for option in controller.options_for("location", "country")}
    ResultsView.render(controller, services, breakdown_labels=countries, breakdown_title="Accounts by Country")
