"""
Filter panel UI components - Sidebar rendering for FilterController screens
"""
import logging
from datetime import date
from typing import List, Optional

import streamlit as st

from cascade_filters.models import FieldKind, FilterFieldSpec, NodeStatus, Option
from cascade_filters.services import FilterController
from cascade_filters.dashboard.utils.session_state import bump_generation, run_async, widget_key

logger = logging.getLogger(__name__)

EMPTY_CHOICE = ""


class FilterPanel:
    """
    Reusable filter panel with cascading dependencies.
    All edits go through the FilterController; widgets only read its snapshots.
    """

    @staticmethod
    def render_sidebar(controller: FilterController) -> None:
        """
        Render every field of the controller's screen in the sidebar.

        Args:
            controller: FilterController for the current screen
        """
        screen = controller.screen
        st.sidebar.subheader(f"{screen.title or screen.name} Filters")

        for spec in screen.fields:
            if spec.name == screen.page_field or spec.name == "pageSize":
                continue
            try:
                FilterPanel._render_field(controller, spec)
            except ValueError as e:
                logger.error(f"Rejected value for {spec.name}: {e}")
                st.sidebar.error(f"{spec.label or spec.name}: {e}")

        col1, col2 = st.sidebar.columns(2)
        with col1:
            if st.button("Apply", type="primary", use_container_width=True, key=f"{screen.name}_apply"):
                run_async(controller.search())
                st.rerun()
        with col2:
            if st.button("Clear", use_container_width=True, key=f"{screen.name}_clear"):
                run_async(FilterPanel._clear(controller))
                bump_generation(screen.name)
                st.rerun()

        FilterPanel.render_notifications(controller)

    @staticmethod
    async def _clear(controller: FilterController) -> None:
        await controller.reset()
        await controller.search()

    @staticmethod
    def render_notifications(controller: FilterController) -> None:
        for notification in controller.drain_notifications():
            icon = "⚠️" if notification.level == "warning" else "❌"
            st.toast(notification.message, icon=icon)

    # ============================================================================
    # Field Widgets
    # ============================================================================

    @staticmethod
    def _render_field(controller: FilterController, spec: FilterFieldSpec) -> None:
        screen_name = controller.screen.name
        current = controller.state.get(spec.name)
        label = spec.label or spec.name
        key = widget_key(screen_name, spec.name)

        if spec.kind is FieldKind.TEXT:
            value = st.sidebar.text_input(label, value=current, key=key)
            if value.strip() != current:
                controller.set_field(spec.name, value)

        elif spec.kind is FieldKind.DATE:
            value = st.sidebar.date_input(label, value=current, key=key, format="YYYY-MM-DD")
            value = value if isinstance(value, date) else None
            if value != current:
                controller.set_field(spec.name, value)

        elif spec.kind is FieldKind.MULTI_SELECT:
            if spec.depends_on and controller.state[spec.depends_on[0]].get(spec.depends_on[1]) is None:
                cascade = controller.screen.get_field(spec.depends_on[0])
                parent_label = next(level.display_label for level in cascade.levels if level.id == spec.depends_on[1])
                st.sidebar.multiselect(
                    label, [], placeholder=f"Select {parent_label.lower()} first", disabled=True, key=key + "_idle"
                )
                return
            options = controller.options_for(spec.name)
            labels = FilterPanel._labels(options)
            values = [option.value for option in options]
            value = st.sidebar.multiselect(
                label,
                values,
                default=[item for item in current if item in labels],
                format_func=lambda item: labels.get(item, item),
                key=key
            )
            if tuple(value) != tuple(current):
                controller.set_field(spec.name, value)

        elif spec.kind is FieldKind.SINGLE_SELECT:
            options = controller.options_for(spec.name)
            value = FilterPanel._selectbox(label, options, current, key)
            if value != current:
                controller.set_field(spec.name, value)

        elif spec.kind is FieldKind.CHOICE:
            value = st.sidebar.selectbox(label or spec.name, list(spec.choices), index=list(spec.choices).index(current), key=key)
            if value != current:
                controller.set_field(spec.name, value)

        elif spec.kind is FieldKind.CASCADE:
            FilterPanel._render_cascade(controller, spec)

    @staticmethod
    def _render_cascade(controller: FilterController, spec: FilterFieldSpec) -> None:
        screen_name = controller.screen.name
        chain = controller.chains[spec.name]

        for index, level in enumerate(spec.levels):
            node_state = controller.node_state(spec.name, level.id)
            label = level.display_label
            key = widget_key(screen_name, f"{spec.name}_{level.id}")

            if node_state.status is NodeStatus.LOADING:
                st.sidebar.selectbox(label, ["Loading..."], disabled=True, key=key + "_loading")
                continue

            if node_state.status is NodeStatus.ERROR:
                st.sidebar.error(f"{label} could not be loaded")
                if st.sidebar.button(f"Retry {label}", key=key + "_retry"):
                    run_async(FilterPanel._retry(controller, spec.name, level.id))
                    st.rerun()
                return

            if node_state.status is NodeStatus.IDLE:
                parent_label = spec.levels[index - 1].display_label if index else ""
                st.sidebar.selectbox(label, [f"Select {parent_label.lower()} first"], disabled=True, key=key + "_idle")
                continue

            value = FilterPanel._selectbox(label, list(node_state.options), node_state.selected_value, key)
            if value != node_state.selected_value:
                run_async(controller.update_field(spec.name, value, level_id=level.id))
                # Dependent fields may have been cleared
                bump_generation(screen_name)
                st.rerun()

            if chain.child_of(level.id) is None:
                break

    @staticmethod
    async def _retry(controller: FilterController, name: str, level_id: str) -> None:
        chain = controller.chains[name]
        chain.node(level_id).retry()
        await chain.settle()

    @staticmethod
    def _selectbox(label: str, options: List[Option], current: Optional[str], key: str) -> Optional[str]:
        labels = FilterPanel._labels(options)
        values = [EMPTY_CHOICE] + [option.value for option in options]
        index = values.index(current) if current in labels else 0
        value = st.sidebar.selectbox(
            label,
            values,
            index=index,
            format_func=lambda item: labels.get(item, "All") if item else "All",
            key=key
        )
        return value or None

    @staticmethod
    def _labels(options: List[Option]):
        return {option.value: option.label for option in options}
