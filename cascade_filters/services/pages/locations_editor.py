# cascade_filters/services/pages/locations_editor.py
"""
LocationsEditor - Repeating country -> city -> county -> district rows.

Every row owns an independent CascadeChain; all rows share one LookupCache and
RequestSequencer, so two rows in the same country fetch its cities once.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from cascade_filters.models import HydrationResult, Notification
from ..cascade.cascade_chain import CascadeChain
from ..core.lookup_cache import LookupCache
from ..core.request_sequencer import RequestSequencer
from .screen_specs import LOCATION_LEVELS

logger = logging.getLogger(__name__)

# LocationInput key for every level
LEVEL_KEYS = {
    "country": "countryId",
    "city": "cityId",
    "county": "countyId",
    "district": "districtId",
}


@dataclass
class LocationRow:
    """One editable location."""
    row_id: str
    chain: CascadeChain
    address: str = ""
    postal_code: str = ""
    is_new: bool = True
    is_deleted: bool = False
    hydration: Optional[HydrationResult] = field(default=None, repr=False)

    def to_input(self) -> Dict[str, Optional[str]]:
        """LocationInput payload for this row."""
        selection = self.chain.selection()
        payload: Dict[str, Optional[str]] = {
            key: selection.get(level_id) for level_id, key in LEVEL_KEYS.items()
        }
        payload["address"] = self.address or None
        payload["postalCode"] = self.postal_code or None
        return payload

    def is_empty(self) -> bool:
        return not self.chain.selection() and not self.address and not self.postal_code


class LocationsEditor:
    """Editor for an account's locations."""

    def __init__(
        self,
        provider,
        cache: Optional[LookupCache] = None,
        sequencer: Optional[RequestSequencer] = None,
        strict_validation: bool = False
    ):
        self.provider = provider
        self.cache = cache or LookupCache()
        self.sequencer = sequencer or RequestSequencer()
        self.strict_validation = strict_validation
        self.rows: Dict[str, LocationRow] = {}
        self.notifications: List[Notification] = []

    def _new_chain(self, row_id: str) -> CascadeChain:
        return CascadeChain(
            chain_id=f"location.{row_id}",
            levels=list(LOCATION_LEVELS),
            provider=self.provider,
            cache=self.cache,
            sequencer=self.sequencer,
            strict_validation=self.strict_validation,
            on_error=self._on_chain_error
        )

    # ============================================================================
    # Rows
    # ============================================================================

    @property
    def visible_rows(self) -> List[LocationRow]:
        return [row for row in self.rows.values() if not row.is_deleted]

    def get_row(self, row_id: str) -> LocationRow:
        if row_id not in self.rows:
            raise ValueError(f"Unknown location row: {row_id}")
        return self.rows[row_id]

    def add_row(self, row_id: Optional[str] = None, is_new: bool = True) -> LocationRow:
        """
        Add an empty row and start loading its countries.

        The country fetch is scheduled on the running loop, so this must be
        called from inside a coroutine. Use new_row() to also wait for it.

        Raises:
            RuntimeError: No event loop is running
        """
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            raise RuntimeError("add_row() needs a running event loop; await new_row() instead") from None

        row_id = row_id or uuid.uuid4().hex
        if row_id in self.rows:
            raise ValueError(f"Location row already exists: {row_id}")

        row = LocationRow(row_id=row_id, chain=self._new_chain(row_id), is_new=is_new)
        self.rows[row_id] = row
        row.chain.start()
        return row

    async def new_row(self) -> LocationRow:
        """Add an empty row and wait for its countries."""
        row = self.add_row()
        await row.chain.settle()
        return row

    def remove_row(self, row_id: str) -> None:
        """Drop a new row, or mark a stored row for deletion."""
        row = self.get_row(row_id)
        if row.is_new:
            del self.rows[row_id]
        else:
            row.is_deleted = True
        logger.info(f"Removed location row {row_id} (stored={not row.is_new})")

    async def select(self, row_id: str, level_id: str, value: Optional[str]) -> Dict[str, Optional[str]]:
        """Select one level of a row and wait for the row to settle."""
        row = self.get_row(row_id)
        row.chain.select(level_id, value)
        await row.chain.settle()
        return row.to_input()

    def set_text(self, row_id: str, address: Optional[str] = None, postal_code: Optional[str] = None) -> None:
        row = self.get_row(row_id)
        if address is not None:
            row.address = address.strip()
        if postal_code is not None:
            row.postal_code = postal_code.strip()

    async def settle(self) -> None:
        await asyncio.gather(*(row.chain.settle() for row in self.rows.values()))

    # ============================================================================
    # Load / Export
    # ============================================================================

    async def load(self, locations: List[Mapping[str, Any]]) -> Dict[str, HydrationResult]:
        """
        Replace the rows with stored locations and hydrate them concurrently.

        Args:
            locations: Stored LocationInput-style dicts, optionally with an "id"

        Returns:
            Dict[str, HydrationResult]: Hydration outcome per row id
        """
        self.rows = {}
        rows = []
        for location in locations:
            row = self.add_row(row_id=location.get("id"), is_new=location.get("id") is None)
            row.address = location.get("address") or ""
            row.postal_code = location.get("postalCode") or ""
            rows.append((row, {level_id: location.get(key) for level_id, key in LEVEL_KEYS.items()}))

        results = await asyncio.gather(*(row.chain.hydrate(values) for row, values in rows))
        for (row, _), result in zip(rows, results):
            row.hydration = result
            if result.mismatch is not None:
                logger.warning(f"Location row {row.row_id} partially restored: {result.mismatch}")

        logger.info(f"Loaded {len(rows)} locations")
        return {row.row_id: result for (row, _), result in zip(rows, results)}

    def to_inputs(self) -> List[Dict[str, Optional[str]]]:
        """LocationInput payloads for every non-empty, non-deleted row."""
        return [row.to_input() for row in self.visible_rows if not row.is_empty()]

    def changes(self) -> Dict[str, Any]:
        """
        Split rows into create / update / delete sets for persistence.

        Returns:
            Dict[str, Any]: {"create": [inputs], "update": {id: input}, "delete": [ids]}
        """
        return {
            "create": [row.to_input() for row in self.visible_rows if row.is_new and not row.is_empty()],
            "update": {row.row_id: row.to_input() for row in self.visible_rows if not row.is_new},
            "delete": [row.row_id for row in self.rows.values() if row.is_deleted],
        }

    def _on_chain_error(self, chain: CascadeChain, node, error) -> None:
        self.notifications.append(Notification(
            "error",
            f"{node.level.display_label} options could not be loaded: {error.message}",
            f"{chain.chain_id}/{node.level_id}"
        ))
