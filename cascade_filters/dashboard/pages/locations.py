"""
Locations page - Account location rows with independent country/city/county/district cascades
"""

from typing import Optional

import streamlit as st

from cascade_filters.models import NodeStatus
from cascade_filters.services import LocationsEditor, ServiceContainer
from cascade_filters.services.pages.locations_editor import LocationRow
from cascade_filters.dashboard.utils.session_state import get_locations_editor, run_async

# Stored locations used by the "Load sample" action
SAMPLE_LOCATIONS = [
    {"id": "loc-1", "countryId": "TR", "cityId": "IST", "countyId": "KAD", "districtId": "MODA",
     "address": "Caferaga Mah. 12", "postalCode": "34710"},
    {"id": "loc-2", "countryId": "TR", "cityId": "ANK", "countyId": "CAN", "districtId": None,
     "address": "Kizilay Cad. 5", "postalCode": "06420"},
    {"id": "loc-3", "countryId": "US", "cityId": "NYC", "countyId": "GONE", "districtId": None,
     "address": "5th Ave 1", "postalCode": "10001"},
]


def render(services: ServiceContainer):
    """Render the locations editor page."""
    editor = get_locations_editor(services)

    st.subheader("Account Locations")

    col1, col2, _ = st.columns([1, 1, 3])
    with col1:
        if st.button("➕ Add Location", use_container_width=True):
            run_async(editor.new_row())
            st.rerun()
    with col2:
        if st.button("Load sample", use_container_width=True):
            results = run_async(editor.load(SAMPLE_LOCATIONS))
            st.session_state.location_load_results = results
            st.rerun()

    for row_id, result in st.session_state.get('location_load_results', {}).items():
        if result.mismatch is not None:
            st.warning(
                f"Location {row_id}: {result.mismatch.level_id} {result.mismatch.value} "
                f"no longer exists, the row was restored up to {list(result.applied) or 'nothing'}"
            )

    if not editor.visible_rows:
        st.info("No locations yet")

    for row in editor.visible_rows:
        _render_row(editor, row)

    for notification in editor.notifications:
        st.toast(notification.message, icon="❌")
    editor.notifications.clear()

    st.divider()
    st.subheader("Payload")
    st.json(editor.changes())


def _render_row(editor: LocationsEditor, row: LocationRow):
    with st.container(border=True):
        cols = st.columns(4)
        for col, node in zip(cols, row.chain.nodes):
            with col:
                value = _render_level(row, node)
                if value != node.selected_value:
                    run_async(editor.select(row.row_id, node.level_id, value))
                    st.rerun()

        col1, col2, col3 = st.columns([3, 1, 1])
        with col1:
            address = st.text_input("Address", value=row.address, key=f"{row.row_id}_address")
        with col2:
            postal_code = st.text_input("Postal code", value=row.postal_code, key=f"{row.row_id}_postal")
        editor.set_text(row.row_id, address=address, postal_code=postal_code)
        with col3:
            st.write("")
            if st.button("🗑️ Remove", key=f"{row.row_id}_remove"):
                editor.remove_row(row.row_id)
                st.rerun()


def _render_level(row: LocationRow, node) -> Optional[str]:
    label = node.level.display_label
    key = f"{row.row_id}_{node.level_id}"

    if node.status is NodeStatus.LOADING:
        st.selectbox(label, ["Loading..."], disabled=True, key=key + "_loading")
        return node.selected_value
    if node.status is NodeStatus.ERROR:
        st.error(f"{label} could not be loaded")
        return node.selected_value
    if node.status is NodeStatus.IDLE:
        st.selectbox(label, ["-"], disabled=True, key=key + "_idle")
        return node.selected_value

    labels = {option.value: option.label for option in node.options}
    values = [""] + list(labels)
    index = values.index(node.selected_value) if node.selected_value in labels else 0
    value = st.selectbox(label, values, index=index, format_func=lambda item: labels.get(item, "-"), key=key)
    return value or None
