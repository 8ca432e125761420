# cascade_filters/services/pages/screen_specs.py
"""
Screen configurations for the generic filter engine.

Each screen declares its fields (in URL order) and projects a committed
FilterState into the query object its list endpoint expects.
"""

from dataclasses import replace
from typing import Any, Dict, Optional

from cascade_filters.models import (
    CascadeLevelSpec, FieldKind, FilterFieldSpec, FilterState, ScreenSpec
)

SORT_DIRECTIONS = ("DESC", "ASC")

# ============================================================================
# Level definitions
# ============================================================================

COUNTRY_LEVEL = CascadeLevelSpec(id="country", label="Country")
CITY_LEVEL = CascadeLevelSpec(id="city", parent_level_id="country", label="City")
COUNTY_LEVEL = CascadeLevelSpec(id="county", parent_level_id="city", label="County")
DISTRICT_LEVEL = CascadeLevelSpec(id="district", parent_level_id="county", label="District")

LOCATION_LEVELS = (COUNTRY_LEVEL, CITY_LEVEL, COUNTY_LEVEL, DISTRICT_LEVEL)


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _pagination_fields(page_param: str, size_param: str, default_size: int, sort_choices):
    return (
        FilterFieldSpec("pageIndex", FieldKind.NUMBER, param=page_param, default=0, minimum=0),
        FilterFieldSpec("pageSize", FieldKind.NUMBER, param=size_param, default=default_size, minimum=1),
        FilterFieldSpec("orderBy", FieldKind.CHOICE, choices=sort_choices),
        FilterFieldSpec("orderDirection", FieldKind.CHOICE, choices=SORT_DIRECTIONS),
    )


# ============================================================================
# Accounts
# ============================================================================

def project_accounts(state: FilterState) -> Dict[str, Any]:
    """Project the accounts filter state into the account list query."""
    location = state["location"]
    return {
        "text": state["text"] or None,
        "assignedUserIds": list(state["assignedUsers"]),
        "createdAtStart": _iso(state["startDate"]),
        "createdAtEnd": _iso(state["endDate"]),
        "countryId": location.get("country"),
        "cityIds": list(state["cities"]),
        "segmentIds": list(state["segments"]),
        "accountTypeIds": list(state["accountTypes"]),
        "channelIds": list(state["channels"]),
        "pageIndex": state["pageIndex"],
        "pageSize": state["pageSize"],
        "orderBy": state["orderBy"],
        "orderDirection": state["orderDirection"],
    }


ACCOUNTS_SCREEN = ScreenSpec(
    name="accounts",
    title="Accounts",
    fields=(
        FilterFieldSpec("text", FieldKind.TEXT, param="search", label="Search"),
        FilterFieldSpec("startDate", FieldKind.DATE, label="Created from"),
        FilterFieldSpec("endDate", FieldKind.DATE, label="Created until"),
        FilterFieldSpec("assignedUsers", FieldKind.MULTI_SELECT, label="Assigned users", lookup_level="users"),
        FilterFieldSpec("location", FieldKind.CASCADE, label="Location", levels=(COUNTRY_LEVEL,)),
        FilterFieldSpec(
            "cities", FieldKind.MULTI_SELECT, label="Cities", lookup_level="city", depends_on=("location", "country")
        ),
        FilterFieldSpec("segments", FieldKind.MULTI_SELECT, label="Segments", lookup_level="segments"),
        FilterFieldSpec("accountTypes", FieldKind.MULTI_SELECT, label="Account types", lookup_level="accountTypes"),
        FilterFieldSpec("channels", FieldKind.MULTI_SELECT, label="Channels", lookup_level="channels"),
    ) + _pagination_fields("page", "size", 10, ("createdAt", "name", "updatedAt")),
    project=project_accounts,
    page_field="pageIndex",
    auto_apply=True
)


# ============================================================================
# Reservations
# ============================================================================

def project_reservations(state: FilterState) -> Dict[str, Any]:
    """Project the reservations filter state into the reservation list query."""
    return {
        "text": state["text"] or None,
        "statusIds": list(state["statuses"]),
        "transactionDateStart": _iso(state["transactionDateStart"]),
        "transactionDateEnd": _iso(state["transactionDateEnd"]),
        "accountIds": list(state["accounts"]),
        "typeIds": list(state["types"]),
        "pageIndex": state["pageIndex"],
        "pageSize": state["pageSize"],
        "orderBy": state["orderBy"],
        "orderDirection": state["orderDirection"],
    }


RESERVATIONS_SCREEN = ScreenSpec(
    name="reservations",
    title="Reservations",
    fields=(
        FilterFieldSpec("text", FieldKind.TEXT, label="Search"),
        FilterFieldSpec("statuses", FieldKind.MULTI_SELECT, param="statusIds", label="Status", lookup_level="reservationStatuses"),
        FilterFieldSpec("transactionDateStart", FieldKind.DATE, label="Transaction from"),
        FilterFieldSpec("transactionDateEnd", FieldKind.DATE, label="Transaction until"),
        FilterFieldSpec("accounts", FieldKind.MULTI_SELECT, param="accountIds", label="Accounts", lookup_level="accounts"),
        FilterFieldSpec("types", FieldKind.MULTI_SELECT, param="typeIds", label="Type", lookup_level="reservationTypes"),
    ) + _pagination_fields("pageIndex", "pageSize", 10, ("createdAt", "transactionDate", "amount")),
    project=project_reservations,
    page_field="pageIndex",
    auto_apply=True
)


SCREENS = {screen.name: screen for screen in (ACCOUNTS_SCREEN, RESERVATIONS_SCREEN)}


def get_screen(name: str, page_size: Optional[int] = None, auto_apply: Optional[bool] = None) -> ScreenSpec:
    """
    Look up a screen, optionally overriding its default page size and auto-apply policy.

    Raises:
        ValueError: If no screen has that name
    """
    if name not in SCREENS:
        raise ValueError(f"Unknown screen: {name}. Available: {sorted(SCREENS)}")

    screen = SCREENS[name]
    if page_size is not None:
        fields = tuple(
            replace(spec, default=page_size) if spec.name == "pageSize" else spec
            for spec in screen.fields
        )
        screen = replace(screen, fields=fields)
    if auto_apply is not None:
        screen = replace(screen, auto_apply=auto_apply)
    return screen
