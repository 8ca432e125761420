"""
CascadeChain - Ordered sequence of CascadeNodes with parent-change propagation.

A selection on one level re-points the immediate child at the new value; the
child's own transition clears its selection, which in turn idles its child, so
propagation is transitive while only the next level ever fetches.
"""

import asyncio
import logging
from typing import Callable, Dict, List, Mapping, Optional

from cascade_filters.models import (
    CascadeLevelSpec, CascadeNodeState, CascadeSelection, HydrationMismatch,
    HydrationResult, NodeStatus, Option, ReferenceLookupError
)
from ..core.lookup_cache import LookupCache
from ..core.request_sequencer import RequestSequencer
from .cascade_node import CascadeNode

logger = logging.getLogger(__name__)

ChainErrorHandler = Callable[['CascadeChain', CascadeNode, ReferenceLookupError], None]


class CascadeChain:
    """
    Dependent selections such as country -> city -> county -> district.

    Quiescent invariant: node[i+1].parent_value == node[i].selected_value for
    every adjacent pair whenever no fetch is in flight.
    """

    def __init__(
        self,
        chain_id: str,
        levels: List[CascadeLevelSpec],
        provider=None,
        cache: Optional[LookupCache] = None,
        sequencer: Optional[RequestSequencer] = None,
        strict_validation: bool = False,
        on_error: Optional[ChainErrorHandler] = None
    ):
        """
        Initialize the chain.

        Args:
            chain_id: Unique id, also the sequencer slot prefix
            levels: Level specs ordered root first, each child naming the previous level
            provider: Lookup provider used for levels without their own fetch
            cache: Shared lookup cache (a private one is created if omitted)
            sequencer: Shared request sequencer (a private one is created if omitted)
            strict_validation: Raise on invalid selections instead of ignoring them
            on_error: Called with (chain, node, error) when a level fails to load
        """
        self._validate_levels(chain_id, levels)

        self.chain_id = chain_id
        self.levels = list(levels)
        self.provider = provider
        self.cache = cache or LookupCache()
        self.sequencer = sequencer or RequestSequencer()
        self._on_error = on_error
        self._propagation_token = 0

        self.nodes: List[CascadeNode] = [
            CascadeNode(
                level=level,
                fetch=self._fetcher_for(level),
                sequencer=self.sequencer,
                slot=f"{chain_id}/{level.id}",
                strict_validation=strict_validation,
                on_select=self._on_node_selected,
                on_error=self._on_node_error
            )
            for level in self.levels
        ]
        self._index: Dict[str, int] = {node.level_id: i for i, node in enumerate(self.nodes)}

    @staticmethod
    def _validate_levels(chain_id: str, levels: List[CascadeLevelSpec]) -> None:
        if not levels:
            raise ValueError(f"Cascade chain {chain_id} needs at least one level")
        if levels[0].parent_level_id is not None:
            raise ValueError(f"First level of {chain_id} must be a root level, got parent {levels[0].parent_level_id}")
        for previous, level in zip(levels, levels[1:]):
            if level.parent_level_id != previous.id:
                raise ValueError(
                    f"Level {level.id} in {chain_id} must depend on {previous.id}, "
                    f"not {level.parent_level_id}"
                )

    def _fetcher_for(self, level: CascadeLevelSpec):
        if level.fetch is not None:
            source = level.fetch
        elif self.provider is not None:
            def source(parent_id, level_id=level.id):
                return self.provider.fetch_options(level_id, parent_id)
        else:
            raise ValueError(f"Level {level.id} has no fetch function and no provider was given")

        async def fetch(parent_id: Optional[str]) -> List[Option]:
            return await self.cache.get_or_fetch(level.id, parent_id, lambda: source(parent_id))

        return fetch

    # ============================================================================
    # Read Access
    # ============================================================================

    @property
    def level_ids(self) -> List[str]:
        return [node.level_id for node in self.nodes]

    @property
    def root(self) -> CascadeNode:
        return self.nodes[0]

    def node(self, level_id: str) -> CascadeNode:
        if level_id not in self._index:
            raise ValueError(f"Unknown level {level_id} in chain {self.chain_id}")
        return self.nodes[self._index[level_id]]

    def child_of(self, level_id: str) -> Optional[CascadeNode]:
        index = self._index[level_id] + 1
        return self.nodes[index] if index < len(self.nodes) else None

    def selection(self) -> CascadeSelection:
        """Current selected values as a contiguous prefix of the chain."""
        return CascadeSelection.from_dict(
            {node.level_id: node.selected_value for node in self.nodes},
            self.level_ids
        )

    def snapshot(self) -> List[CascadeNodeState]:
        return [node.state for node in self.nodes]

    def is_quiescent(self) -> bool:
        return not any(node.is_loading for node in self.nodes)

    def check_invariant(self) -> bool:
        """Verify the parent/selection linkage between adjacent levels."""
        for parent, child in zip(self.nodes, self.nodes[1:]):
            if child.parent_value != parent.selected_value:
                logger.warning(
                    f"Chain {self.chain_id} out of sync: {child.level_id}.parent={child.parent_value} "
                    f"but {parent.level_id}.selected={parent.selected_value}"
                )
                return False
        return True

    # ============================================================================
    # User Operations
    # ============================================================================

    def start(self) -> None:
        """Load the root level's options if they are not loaded yet."""
        self.root.load()

    def select(self, level_id: str, value: Optional[str]) -> bool:
        """
        Select a value on one level and propagate to its descendants.

        Supersedes any hydration still running on this chain. Re-selecting the
        current value retries a child level that failed to load.
        """
        self._propagation_token += 1
        node = self.node(level_id)
        changed = node.select(value)

        if not changed and value is not None and value == node.selected_value:
            child = self.child_of(level_id)
            if child is not None and child.status is NodeStatus.ERROR:
                child.retry()
        return changed

    def propagate_from(self, level_id: str) -> None:
        """Re-point the immediate child at this level's selection."""
        node = self.node(level_id)
        child = self.child_of(level_id)
        if child is None:
            return
        if child.set_parent_value(node.selected_value):
            # The child's selection was cleared; idle its own child in turn
            self.propagate_from(child.level_id)

    def reset(self) -> None:
        """Clear every selection; the root keeps (or reloads) its options."""
        self._propagation_token += 1
        self.root.reset()
        for node in self.nodes[1:]:
            node.reset()
        if self.root.status in (NodeStatus.IDLE, NodeStatus.ERROR):
            self.root.load()

    async def settle(self) -> None:
        """Wait until no level has a fetch in flight."""
        while not self.is_quiescent():
            await asyncio.gather(*(node.settle() for node in self.nodes))

    # ============================================================================
    # Hydration
    # ============================================================================

    async def hydrate(self, values: Mapping[str, Optional[str]]) -> HydrationResult:
        """
        Restore a selection path level by level.

        Each level's options are fetched and the supplied id is verified
        against them before the next level is requested. A missing id stops
        hydration there and leaves every descendant unselected; this is a
        partial match, not an error.

        Args:
            values: level_id -> id, typically decoded from a URL

        Returns:
            HydrationResult: Applied levels plus any mismatch
        """
        requested = CascadeSelection.from_dict(values, self.level_ids).to_dict()
        result = HydrationResult(chain_id=self.chain_id, requested=requested)

        self._propagation_token += 1
        token = self._propagation_token
        self.start()

        for node in self.nodes:
            await node.settle()

            if token != self._propagation_token:
                logger.info(f"Hydration of {self.chain_id} superseded by a newer selection")
                result.superseded = True
                break

            wanted = requested.get(node.level_id)
            if wanted is None:
                node.select(None)
                break

            if node.status is NodeStatus.ERROR:
                result.mismatch = HydrationMismatch(node.level_id, wanted, reason="lookup_failed")
                break

            if not node.state.has_option(wanted):
                logger.warning(f"Hydration mismatch in {self.chain_id}: {node.level_id}={wanted} no longer exists")
                result.mismatch = HydrationMismatch(node.level_id, wanted, reason="not_found")
                node.select(None)
                break

            node.select(wanted)
            result.applied[node.level_id] = wanted

            child = self.child_of(node.level_id)
            if child is not None and child.status is NodeStatus.ERROR:
                child.retry()

        await self.settle()
        logger.info(f"Hydrated {self.chain_id}: applied={result.applied} mismatch={result.mismatch}")
        return result

    # ============================================================================
    # Callbacks
    # ============================================================================

    def _on_node_selected(self, node: CascadeNode) -> None:
        self.propagate_from(node.level_id)

    def _on_node_error(self, node: CascadeNode, error: ReferenceLookupError) -> None:
        if self._on_error:
            self._on_error(self, node, error)
