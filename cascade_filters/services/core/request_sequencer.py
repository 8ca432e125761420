"""
RequestSequencer - At-most-one winning response per logical request slot.

Each supersedable async operation is tagged with a per-slot, monotonically
increasing integer when it is issued. A response whose tag is no longer the
latest for its slot is discarded without touching any state.
"""

import logging
from typing import Awaitable, Callable, Dict, TypeVar

from cascade_filters.models import StaleResponseDiscarded

logger = logging.getLogger(__name__)

T = TypeVar('T')


class RequestSequencer:
    """Monotonic tag counter per logical slot (e.g. 'location/city', 'search')."""

    def __init__(self):
        self._latest: Dict[str, int] = {}

    def issue(self, slot: str) -> int:
        """Issue a new tag for slot, superseding every earlier tag."""
        tag = self._latest.get(slot, 0) + 1
        self._latest[slot] = tag
        return tag

    def latest(self, slot: str) -> int:
        """Latest issued tag for slot (0 when nothing was issued)."""
        return self._latest.get(slot, 0)

    def is_current(self, slot: str, tag: int) -> bool:
        return self._latest.get(slot, 0) == tag

    def ensure_current(self, slot: str, tag: int) -> None:
        """
        Raise StaleResponseDiscarded when tag has been superseded.

        Raises:
            StaleResponseDiscarded: If a newer tag was issued for slot
        """
        latest = self._latest.get(slot, 0)
        if latest != tag:
            raise StaleResponseDiscarded(slot, tag, latest)

    async def run(self, slot: str, tag: int, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Await operation and return its result only if tag is still current.

        A failure of a superseded request is discarded as well: the caller
        only ever sees errors belonging to the latest request.

        Raises:
            StaleResponseDiscarded: If the response belongs to a superseded request
        """
        try:
            result = await operation()
        except StaleResponseDiscarded:
            raise
        except Exception:
            if not self.is_current(slot, tag):
                logger.debug(f"Discarding failure of superseded request {slot}#{tag}")
                raise StaleResponseDiscarded(slot, tag, self.latest(slot)) from None
            raise

        if not self.is_current(slot, tag):
            logger.debug(f"Discarding stale response {slot}#{tag} (latest {self.latest(slot)})")
        self.ensure_current(slot, tag)
        return result
