"""
Session state management utilities for Streamlit dashboard.

This module provides helper functions for managing Streamlit session state
in a consistent way across the application, plus the st.query_params based
navigation used by the filter controllers.
"""

import asyncio
import logging
from typing import Awaitable, TypeVar

import streamlit as st

from cascade_filters.services import FilterController, LocationsEditor, ServiceContainer, UrlCodec

logger = logging.getLogger(__name__)

T = TypeVar('T')


class StreamlitNavigation:
    """History collaborator backed by the browser URL (st.query_params)."""

    def read_current_url(self) -> str:
        return UrlCodec.to_query_string(st.query_params.to_dict())

    def replace_url(self, query_string: str) -> None:
        params = UrlCodec.parse_query_string(query_string)
        if params != st.query_params.to_dict():
            st.query_params.from_dict(params)


def initialize_session_state() -> None:
    """
    Initialize session state with default values.

    This should be called once at the start of the app to ensure
    all required session state keys exist.
    """
    # Initialize page navigation
    if 'current_page' not in st.session_state:
        st.session_state.current_page = 'Accounts'

    # Initialize service state
    if 'services_initialized' not in st.session_state:
        st.session_state.services_initialized = False

    # One controller per screen, created on first visit
    if 'controllers' not in st.session_state:
        st.session_state.controllers = {}

    # Widget generation per screen; bumped whenever the controller rewrites state
    if 'widget_generation' not in st.session_state:
        st.session_state.widget_generation = {}


def run_async(coro: Awaitable[T]) -> T:
    """Run a controller coroutine to completion within the current script run."""
    return asyncio.run(coro)


def get_controller(services: ServiceContainer, screen_name: str) -> FilterController:
    """
    Get the screen's controller, hydrating it from the URL on first use.

    Args:
        services: Initialized service container
        screen_name: Screen to get the controller for

    Returns:
        FilterController for the screen
    """
    controllers = st.session_state.controllers
    if screen_name not in controllers:
        controller = services.create_controller(screen_name, navigation=StreamlitNavigation())
        report = run_async(controller.init_from_url())
        if report.dropped_params:
            logger.info(f"Ignored URL parameters on {screen_name}: {report.dropped_params}")
        controllers[screen_name] = controller
        bump_generation(screen_name)
    return controllers[screen_name]


def drop_controller(screen_name: str) -> None:
    """Forget a screen's controller (its cache and state go with it)."""
    st.session_state.controllers.pop(screen_name, None)


def get_locations_editor(services: ServiceContainer) -> LocationsEditor:
    if 'locations_editor' not in st.session_state:
        st.session_state.locations_editor = services.create_locations_editor()
    return st.session_state.locations_editor


def widget_key(screen_name: str, name: str) -> str:
    generation = st.session_state.widget_generation.get(screen_name, 0)
    return f"{screen_name}_{name}_{generation}"


def bump_generation(screen_name: str) -> None:
    generations = st.session_state.widget_generation
    generations[screen_name] = generations.get(screen_name, 0) + 1
