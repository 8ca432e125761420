"""
Reservations page - Reservation list filtered by the URL-synchronized filter panel
"""

import streamlit as st

from cascade_filters.services import ServiceContainer
from cascade_filters.dashboard.components.filters import FilterPanel
from cascade_filters.dashboard.components.results import ResultsView
from cascade_filters.dashboard.utils.session_state import get_controller


def render(services: ServiceContainer):
    """Render the reservations page using ServiceContainer."""
    controller = get_controller(services, "reservations")
    FilterPanel.render_sidebar(controller)

    st.subheader("Reservations")

    report = controller.hydration_report
    if report is not None:
        for name, ids in report.dropped_ids.items():
            st.warning(f"Ignored unknown {name} in link: {', '.join(ids)}")

    statuses = {option.value: option.label for option in controller.options_for("statuses")}
    ResultsView.render(controller, services, breakdown_labels=statuses, breakdown_title="Reservations by Status")
