"""
Results UI components - Record table, breakdown chart and pagination
"""
import logging
from typing import Dict, Optional

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from cascade_filters.services import FilterController, ServiceContainer
from cascade_filters.dashboard.utils.session_state import run_async

logger = logging.getLogger(__name__)


class ResultsView:
    """Renders the current search result of a FilterController."""

    @staticmethod
    def render(
        controller: FilterController,
        services: ServiceContainer,
        breakdown_labels: Optional[Dict[str, str]] = None,
        breakdown_title: str = "Breakdown"
    ) -> None:
        """
        Render table, chart and pagination for the controller's last search.

        Args:
            controller: Screen controller holding the result
            services: Service container (for the screen's executor)
            breakdown_labels: id -> label map for the breakdown chart
            breakdown_title: Chart title
        """
        screen_name = controller.screen.name
        result = controller.result

        if controller.last_applied_url:
            st.caption(f"Shareable link: `?{controller.last_applied_url}`")

        if result is None:
            st.info("Apply the filters to load records")
            return

        col1, col2, col3 = st.columns(3)
        with col1:
            st.metric("Matching records", result.item_count)
        with col2:
            st.metric("Page", f"{result.page_index + 1} / {max(result.page_count, 1)}")
        with col3:
            st.metric("Page size", result.page_size)

        if not result.items:
            st.warning("No records match the selected filters")
            return

        st.dataframe(pd.DataFrame(result.items), use_container_width=True, hide_index=True)
        ResultsView._render_pagination(controller, result.page_index, result.page_count)

        executor = services.executors.get(screen_name)
        if executor is not None and controller.last_query is not None:
            st.divider()
            ResultsView._render_breakdown(executor.breakdown(controller.last_query), breakdown_labels or {}, breakdown_title)

    @staticmethod
    def _render_pagination(controller: FilterController, page_index: int, page_count: int) -> None:
        screen_name = controller.screen.name
        col1, col2, _ = st.columns([1, 1, 4])
        with col1:
            if st.button("◀ Previous", disabled=page_index <= 0, key=f"{screen_name}_prev"):
                run_async(controller.go_to_page(page_index - 1))
                st.rerun()
        with col2:
            if st.button("Next ▶", disabled=page_index + 1 >= page_count, key=f"{screen_name}_next"):
                run_async(controller.go_to_page(page_index + 1))
                st.rerun()

    @staticmethod
    def _render_breakdown(counts: pd.DataFrame, labels: Dict[str, str], title: str) -> None:
        if counts.empty:
            return

        column = counts.columns[0]
        names = [labels.get(value, value or "Unknown") for value in counts[column]]

        fig = go.Figure(go.Bar(x=names, y=counts["count"], marker_color='steelblue'))
        fig.update_layout(
            title_text=title,
            height=350,
            margin=dict(l=40, r=20, t=60, b=40),
            yaxis_title="Records"
        )
        st.plotly_chart(fig, use_container_width=True)
