"""
CascadeNode - A single level in a cascade (e.g. city depends on country).

The node owns its option list, status and selected value. State is held as an
immutable CascadeNodeState snapshot that is replaced on every transition.
"""

import asyncio
import logging
from dataclasses import replace
from typing import Callable, List, Optional, Set

from cascade_filters.models import (
    CascadeLevelSpec, CascadeNodeState, NodeStatus, Option, OptionFetcher,
    ReferenceLookupError, SelectionValidationError, StaleResponseDiscarded
)
from ..core.request_sequencer import RequestSequencer

logger = logging.getLogger(__name__)


class CascadeNode:
    """
    One level of a CascadeChain.

    `parent_value` is only ever changed by the owning chain. Fetches are tagged
    through the RequestSequencer so that only the latest request for this
    node can commit options.
    """

    def __init__(
        self,
        level: CascadeLevelSpec,
        fetch: OptionFetcher,
        sequencer: RequestSequencer,
        slot: str,
        strict_validation: bool = False,
        on_select: Optional[Callable[['CascadeNode'], None]] = None,
        on_error: Optional[Callable[['CascadeNode', ReferenceLookupError], None]] = None
    ):
        self.level = level
        self.slot = slot
        self.strict_validation = strict_validation
        self._fetch = fetch
        self._sequencer = sequencer
        self._on_select = on_select
        self._on_error = on_error
        self._state = CascadeNodeState(level_id=level.id)
        self._tasks: Set[asyncio.Task] = set()

    # ============================================================================
    # Read Access
    # ============================================================================

    @property
    def level_id(self) -> str:
        return self.level.id

    @property
    def is_root(self) -> bool:
        return self.level.is_root

    @property
    def state(self) -> CascadeNodeState:
        return self._state

    @property
    def options(self) -> List[Option]:
        return list(self._state.options)

    @property
    def parent_value(self) -> Optional[str]:
        return self._state.parent_value

    @property
    def selected_value(self) -> Optional[str]:
        return self._state.selected_value

    @property
    def status(self) -> NodeStatus:
        return self._state.status

    @property
    def request_seq(self) -> int:
        return self._state.request_seq

    @property
    def is_loading(self) -> bool:
        """True while a fetch task for this node is still running."""
        return bool(self._tasks)

    # ============================================================================
    # Transitions
    # ============================================================================

    def set_parent_value(self, parent_id: Optional[str]) -> bool:
        """
        Point this node at a new parent value.

        Clears the selection and options, bumps the request sequence and, for a
        non-null parent, issues a fetch tagged with the new sequence.

        Returns:
            bool: False when parent_id equals the current parent (no-op)
        """
        if self.is_root:
            raise ValueError(f"Root level {self.level_id} has no parent value")
        if parent_id == self._state.parent_value:
            return False

        self._begin(parent_id)
        return True

    def load(self) -> None:
        """Load root options once; repeated calls are no-ops while loading or ready."""
        if not self.is_root:
            raise ValueError(f"Only the root level can be loaded directly, not {self.level_id}")
        if self._state.status in (NodeStatus.LOADING, NodeStatus.READY):
            return
        self._begin(None)

    def retry(self) -> bool:
        """Reissue the fetch for the current parent after a failure."""
        if self._state.status is not NodeStatus.ERROR:
            return False
        logger.info(f"Retrying lookup for {self.slot} (parent={self._state.parent_value})")
        self._begin(self._state.parent_value)
        return True

    def select(self, value: Optional[str]) -> bool:
        """
        Select one of the current options (or None to clear).

        Triggers the chain's downstream propagation when the selection changes.

        Returns:
            bool: True when the selection changed

        Raises:
            SelectionValidationError: In strict mode, if value is not a current option
        """
        if value is not None and not self._state.has_option(value):
            error = SelectionValidationError(self.level_id, value, self._state.option_values)
            logger.error(f"Invalid selection for {self.slot}: {error} (status={self.status.value})")
            if self.strict_validation:
                raise error
            return False

        if value == self._state.selected_value:
            return False

        self._state = replace(self._state, selected_value=value)
        if self._on_select:
            self._on_select(self)
        return True

    def reset(self) -> None:
        """Equivalent to set_parent_value(None) followed by clearing the selection."""
        if not self.is_root:
            self.set_parent_value(None)
        self._state = replace(self._state, selected_value=None)

    async def settle(self) -> None:
        """Wait until no fetch for this node is in flight."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ============================================================================
    # Fetch Handling
    # ============================================================================

    def _begin(self, parent_id: Optional[str]) -> None:
        tag = self._sequencer.issue(self.slot)
        should_fetch = parent_id is not None or self.is_root

        self._state = CascadeNodeState(
            level_id=self.level_id,
            parent_value=parent_id,
            selected_value=None,
            options=(),
            status=NodeStatus.LOADING if should_fetch else NodeStatus.IDLE,
            request_seq=tag
        )

        if should_fetch:
            task = asyncio.get_running_loop().create_task(self._load(parent_id, tag))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _load(self, parent_id: Optional[str], tag: int) -> None:
        try:
            options = await self._sequencer.run(self.slot, tag, lambda: self._fetch(parent_id))
        except StaleResponseDiscarded:
            return
        except ReferenceLookupError as e:
            self._fail(e)
            return
        except Exception as e:
            logger.error(f"Unexpected lookup failure for {self.slot}: {e}")
            self._fail(ReferenceLookupError(str(e), level_id=self.level_id, parent_id=parent_id))
            return

        self._state = replace(
            self._state,
            options=self._unique(options),
            status=NodeStatus.READY,
            error=None
        )
        logger.debug(f"{self.slot} ready with {len(self._state.options)} options (parent={parent_id})")

    def _fail(self, error: ReferenceLookupError) -> None:
        logger.error(f"Lookup failed for {self.slot} (parent={self._state.parent_value}): {error.message}")
        self._state = replace(self._state, options=(), status=NodeStatus.ERROR, error=error.message)
        if self._on_error:
            self._on_error(self, error)

    def _unique(self, options: List[Option]) -> tuple:
        seen = set()
        unique = []
        for option in options:
            if option.value in seen:
                logger.warning(f"Duplicate option value {option.value!r} from {self.slot}, keeping first")
                continue
            seen.add(option.value)
            unique.append(option)
        return tuple(unique)
