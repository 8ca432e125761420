"""
UrlCodec - Pure, total mapping between FilterState and URL query parameters.

Encoding omits fields at their default value and keeps field declaration
order. Decoding never raises: unknown or malformed parameters are dropped and
reported on the draft.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping
from urllib.parse import parse_qsl, urlencode

from cascade_filters.models import (
    CascadeSelection, FieldKind, FilterDraft, FilterFieldSpec, FilterState
)

logger = logging.getLogger(__name__)


class UrlCodec:
    """Bidirectional FilterState <-> query-string codec for one screen."""

    def __init__(self, fields: Iterable[FilterFieldSpec]):
        self.fields = tuple(fields)

    # ========================================================================
    # Encoding
    # ========================================================================

    def encode(self, state: FilterState) -> Dict[str, str]:
        """
        Encode a state into flat URL parameters.

        Args:
            state: Committed filter state

        Returns:
            Dict[str, str]: Ordered parameters, default fields omitted
        """
        params: Dict[str, str] = {}

        for spec in self.fields:
            try:
                value = spec.coerce(state.get(spec.name, spec.default_value()))
            except ValueError as e:
                logger.warning(f"Skipping unencodable field {spec.name}: {e}")
                continue

            if spec.is_default(value):
                continue

            if spec.kind is FieldKind.CASCADE:
                for level_id, level_value in value.levels:
                    params[spec.param_for_level(level_id)] = level_value
            elif spec.kind is FieldKind.MULTI_SELECT:
                params[spec.url_param] = ",".join(value)
            elif spec.kind is FieldKind.DATE:
                params[spec.url_param] = value.isoformat()
            else:
                params[spec.url_param] = str(value)

        return params

    def encode_query(self, state: FilterState) -> str:
        return self.to_query_string(self.encode(state))

    # ========================================================================
    # Decoding
    # ========================================================================

    def decode(self, params: Mapping[str, Any]) -> FilterDraft:
        """
        Decode URL parameters into a draft.

        Args:
            params: Flat parameters; list values (parse_qs style) use the last entry

        Returns:
            FilterDraft: Every field present, defaults for missing or malformed ones
        """
        flat = self._flatten(params)
        values: Dict[str, Any] = {}
        dropped: List[str] = []
        known = set()

        for spec in self.fields:
            known.update(spec.url_params)

            if spec.kind is FieldKind.CASCADE:
                raw_levels = {
                    level_id: flat.get(spec.param_for_level(level_id))
                    for level_id in spec.level_ids
                }
                selection = CascadeSelection.from_dict(raw_levels, spec.level_ids)
                values[spec.name] = selection
                # A level without its parent cannot be resolved
                for level_id in spec.level_ids[len(selection):]:
                    if raw_levels.get(level_id):
                        dropped.append(spec.param_for_level(level_id))
                continue

            raw = flat.get(spec.url_param)
            if raw is None:
                values[spec.name] = spec.default_value()
                continue

            try:
                values[spec.name] = spec.coerce(raw)
            except (TypeError, ValueError) as e:
                logger.debug(f"Dropping malformed parameter {spec.url_param}={raw!r}: {e}")
                values[spec.name] = spec.default_value()
                dropped.append(spec.url_param)

        dropped.extend(key for key in flat if key not in known)
        if dropped:
            logger.debug(f"Dropped URL parameters: {dropped}")

        return FilterDraft(values, dropped_params=tuple(dropped))

    def decode_query(self, raw: str) -> FilterDraft:
        return self.decode(self.parse_query_string(raw))

    # ========================================================================
    # Query String Helpers
    # ========================================================================

    @staticmethod
    def to_query_string(params: Mapping[str, str]) -> str:
        """Serialise parameters, keeping list commas readable."""
        return urlencode(list(params.items()), safe=",")

    @staticmethod
    def parse_query_string(raw: str) -> Dict[str, str]:
        """
        Parse a query string or full URL into flat parameters.

        Blank values are dropped; for repeated keys the last value wins.
        """
        if not raw:
            return {}
        query = raw.split('#', 1)[0]
        if '?' in query:
            query = query.split('?', 1)[1]
        return dict(parse_qsl(query, keep_blank_values=False))

    @staticmethod
    def _flatten(params: Mapping[str, Any]) -> Dict[str, str]:
        flat: Dict[str, str] = {}
        for key, value in (params or {}).items():
            if isinstance(value, (list, tuple)):
                value = value[-1] if value else None
            if value is None:
                continue
            value = str(value)
            if value.strip():
                flat[str(key)] = value
        return flat
