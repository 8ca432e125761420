"""
Shared fixtures for the cascade filter tests.

Async tests run through the anyio pytest plugin on the asyncio backend.
"""

import asyncio
from typing import Any, Dict, List, Optional, Tuple

import pytest

from cascade_filters.models import Option, ReferenceLookupError
from cascade_filters.services.providers.static_lookup_provider import StaticLookupProvider

# ============================================================================
# REFERENCE DATA
# ============================================================================

REFERENCE_LEVELS = {
    'country': [
        {'id': 'TR', 'name': 'Turkey'},
        {'id': 'US', 'name': 'United States'},
    ],
    'city': {
        'TR': [{'id': 'IST', 'name': 'Istanbul'}, {'id': 'ANK', 'name': 'Ankara'}],
        'US': [{'id': 'NYC', 'name': 'New York'}, {'id': 'SFO', 'name': 'San Francisco'}],
    },
    'county': {
        'IST': [{'id': 'KAD', 'name': 'Kadikoy'}],
        'ANK': [{'id': 'CAN', 'name': 'Cankaya'}],
        'NYC': [{'id': 'MAN', 'name': 'Manhattan'}],
    },
    'district': {
        'KAD': [{'id': 'MODA', 'name': 'Moda'}],
        'CAN': [{'id': 'KIZ', 'name': 'Kizilay'}],
    },
    'users': [{'id': 'u1', 'name': 'Ayse'}, {'id': 'u2', 'name': 'John'}],
    'segments': [{'id': 'seg-ent', 'name': 'Enterprise'}],
    'accountTypes': [{'id': 'type-corp', 'name': 'Corporate'}],
    'channels': [{'id': 'ch-web', 'name': 'Web'}],
    'reservationStatuses': [{'id': 'st-pending', 'name': 'Pending'}, {'id': 'st-confirmed', 'name': 'Confirmed'}],
    'reservationTypes': [{'id': 'rt-hotel', 'name': 'Hotel'}],
    'accounts': [{'id': 'acc-1', 'name': 'Bosphorus Travel'}, {'id': 'acc-2', 'name': 'Anatolia Tours'}],
}


class RecordingLookupProvider:
    """
    Lookup provider over REFERENCE_LEVELS that records every call.

    With gated=True each (level_id, parent_id) response is held back until the
    test calls release(), so tests control the order in which responses land.
    """

    def __init__(self, levels: Optional[Dict[str, Any]] = None, gated: bool = False):
        self.static = StaticLookupProvider(levels or REFERENCE_LEVELS)
        self.gated = gated
        self.calls: List[Tuple[str, Optional[str]]] = []
        self.failures: Dict[Tuple[str, Optional[str]], Exception] = {}
        self._gates: Dict[Tuple[str, Optional[str]], asyncio.Event] = {}

    def _gate(self, key: Tuple[str, Optional[str]]) -> asyncio.Event:
        if key not in self._gates:
            self._gates[key] = asyncio.Event()
        return self._gates[key]

    async def fetch_options(self, level_id: str, parent_id: Optional[str] = None) -> List[Option]:
        key = (level_id, parent_id)
        self.calls.append(key)
        if self.gated:
            await self._gate(key).wait()
        if key in self.failures:
            raise self.failures[key]
        return await self.static.fetch_options(level_id, parent_id)

    def release(self, level_id: str, parent_id: Optional[str] = None) -> None:
        self._gate((level_id, parent_id)).set()

    def fail(self, level_id: str, parent_id: Optional[str] = None) -> None:
        self.failures[(level_id, parent_id)] = ReferenceLookupError(
            "backend unavailable", level_id=level_id, parent_id=parent_id
        )

    def recover(self, level_id: str, parent_id: Optional[str] = None) -> None:
        self.failures.pop((level_id, parent_id), None)

    def count(self, level_id: str, parent_id: Optional[str] = None) -> int:
        return self.calls.count((level_id, parent_id))


async def flush(rounds: int = 10) -> None:
    """Let scheduled tasks run up to their next suspension point."""
    for _ in range(rounds):
        await asyncio.sleep(0)


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def anyio_backend():
    return 'asyncio'


@pytest.fixture
def provider():
    """Ungated recording provider."""
    return RecordingLookupProvider()


@pytest.fixture
def gated_provider():
    """Provider whose responses the test releases one by one."""
    return RecordingLookupProvider(gated=True)
