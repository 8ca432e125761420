"""
StaticLookupProvider - Reference data served from a YAML file.

Root levels are plain option lists; dependent levels are keyed by parent id:

    levels:
      country:
        - {id: TR, name: Turkey}
      city:
        TR:
          - {id: ANK, name: Ankara}
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import yaml

from cascade_filters.models import Option, ReferenceLookupError

logger = logging.getLogger(__name__)


class StaticLookupProvider:
    """Lookup provider over in-memory reference data with optional simulated latency."""

    def __init__(
        self,
        levels: Dict[str, Any],
        latency_ms: int = 0,
        unavailable_levels: Optional[Iterable[str]] = None
    ):
        """
        Initialize provider.

        Args:
            levels: level_id -> option list (root) or parent_id -> option list (dependent)
            latency_ms: Delay applied to every fetch
            unavailable_levels: Levels whose fetches fail (outage simulation)
        """
        self._levels = {level_id: self._parse_level(level_id, data) for level_id, data in levels.items()}
        self.latency_ms = latency_ms
        self.unavailable_levels = set(unavailable_levels or ())
        self.call_count = 0

    @classmethod
    def from_yaml(cls, path: Path, latency_ms: int = 0) -> 'StaticLookupProvider':
        """Load reference data from a YAML file."""
        path = Path(path)
        try:
            with open(path, 'r') as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load reference data from {path}: {e}")
            raise

        provider = cls(data.get('levels') or {}, latency_ms=latency_ms)
        logger.info(f"Loaded reference data for {len(provider.level_ids)} levels from {path}")
        return provider

    @staticmethod
    def _parse_level(level_id: str, data: Any):
        if isinstance(data, list):
            return [Option.from_dict(item) for item in data]
        if isinstance(data, dict):
            return {
                str(parent_id): [Option.from_dict(item) for item in (items or [])]
                for parent_id, items in data.items()
            }
        raise ValueError(f"Level {level_id} must be a list or a parent-keyed mapping")

    @property
    def level_ids(self) -> List[str]:
        return list(self._levels)

    def is_dependent(self, level_id: str) -> bool:
        return isinstance(self._levels.get(level_id), dict)

    async def fetch_options(self, level_id: str, parent_id: Optional[str] = None) -> List[Option]:
        """
        Return the options of a level for a parent value.

        Raises:
            ReferenceLookupError: Unknown or unavailable level
        """
        self.call_count += 1
        if self.latency_ms:
            await asyncio.sleep(self.latency_ms / 1000)

        if level_id in self.unavailable_levels:
            raise ReferenceLookupError(f"{level_id} lookup is unavailable", level_id=level_id, parent_id=parent_id)
        if level_id not in self._levels:
            raise ReferenceLookupError(f"Unknown reference level: {level_id}", level_id=level_id, parent_id=parent_id)

        data = self._levels[level_id]
        if isinstance(data, list):
            return list(data)
        if parent_id is None:
            return []
        return list(data.get(parent_id, []))
