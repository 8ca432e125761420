"""
Tests for RequestSequencer tagging and stale-response discarding.
"""

import asyncio

import pytest

from cascade_filters.models import QueryExecutionError, StaleResponseDiscarded
from cascade_filters.services.core.request_sequencer import RequestSequencer


class TestTags:
    """Test per-slot request tags."""

    def test_tags_increase_per_slot(self):
        """Test that tags grow independently per slot."""
        sequencer = RequestSequencer()
        assert sequencer.issue('location/city') == 1
        assert sequencer.issue('location/city') == 2
        assert sequencer.issue('search') == 1
        assert sequencer.latest('location/city') == 2
        assert sequencer.latest('unused') == 0

    def test_is_current(self):
        """Test recognising the newest tag."""
        sequencer = RequestSequencer()
        first = sequencer.issue('search')
        second = sequencer.issue('search')
        assert not sequencer.is_current('search', first)
        assert sequencer.is_current('search', second)

    def test_ensure_current_raises_for_old_tag(self):
        """Test that an old tag is rejected."""
        sequencer = RequestSequencer()
        first = sequencer.issue('search')
        sequencer.issue('search')
        with pytest.raises(StaleResponseDiscarded) as exc_info:
            sequencer.ensure_current('search', first)
        assert exc_info.value.latest == 2


@pytest.mark.anyio
class TestRun:
    """Test running tagged requests."""

    async def test_current_result_returned(self):
        """Test that the current request returns its result."""
        sequencer = RequestSequencer()
        tag = sequencer.issue('search')

        async def operation():
            return 'rows'

        assert await sequencer.run('search', tag, operation) == 'rows'

    async def test_superseded_result_discarded(self):
        """Test that a superseded result is discarded."""
        sequencer = RequestSequencer()
        gate = asyncio.Event()
        first = sequencer.issue('search')

        async def slow():
            await gate.wait()
            return 'old rows'

        task = asyncio.ensure_future(sequencer.run('search', first, slow))
        await asyncio.sleep(0)
        sequencer.issue('search')
        gate.set()

        with pytest.raises(StaleResponseDiscarded):
            await task

    async def test_superseded_failure_discarded(self):
        """Test that a superseded failure is discarded too."""
        sequencer = RequestSequencer()
        first = sequencer.issue('search')
        sequencer.issue('search')

        async def failing():
            raise QueryExecutionError('timeout')

        with pytest.raises(StaleResponseDiscarded):
            await sequencer.run('search', first, failing)

    async def test_current_failure_propagates(self):
        """Test that a current failure is raised."""
        sequencer = RequestSequencer()
        tag = sequencer.issue('search')

        async def failing():
            raise QueryExecutionError('timeout')

        with pytest.raises(QueryExecutionError):
            await sequencer.run('search', tag, failing)
