"""
FilterController - Keeps a screen's filter state, URL and cascades consistent.

Orchestrates URL -> FilterState hydration on mount, FilterState -> query
projection on apply, FilterState -> URL on apply, and drives the screen's
CascadeChains during hydration and user edits.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from cascade_filters.models import (
    CascadeNodeState, CascadeSelection, FieldKind, FilterDraft, FilterFieldSpec,
    FilterState, HydrationReport, Notification, Option, PaginatedResult,
    ReferenceLookupError, ScreenSpec, StaleResponseDiscarded
)
from ..cascade.cascade_chain import CascadeChain
from ..cascade.cascade_node import CascadeNode
from ..core.lookup_cache import LookupCache
from ..core.request_sequencer import RequestSequencer
from ..core.url_codec import UrlCodec

logger = logging.getLogger(__name__)

_UNSET = object()


class FilterController:
    """
    Single owner of a screen's FilterState.

    UI code reads `state` snapshots and writes only through the controller's
    actions. Lookup and query failures never raise out of the controller; they
    are collected as Notifications.
    """

    def __init__(
        self,
        screen: ScreenSpec,
        provider,
        executor=None,
        navigation=None,
        cache: Optional[LookupCache] = None,
        sequencer: Optional[RequestSequencer] = None,
        strict_validation: bool = False,
        notify: Optional[Callable[[Notification], None]] = None
    ):
        """
        Initialize controller for one screen.

        Args:
            screen: Field and projection configuration
            provider: Lookup provider (fetch_options)
            executor: Query executor (run_query) for the screen's primary list
            navigation: History collaborator (read_current_url / replace_url)
            cache: Screen-scoped lookup cache shared by every chain
            sequencer: Request sequencer shared by every chain and the search slot
            strict_validation: Raise on invalid cascade selections (development)
            notify: Optional callback invoked for every new notification
        """
        self.screen = screen
        self.provider = provider
        self.executor = executor
        self.navigation = navigation
        self.cache = cache or LookupCache()
        self.sequencer = sequencer or RequestSequencer()
        self.codec = UrlCodec(screen.fields)
        self._notify = notify

        self.chains: Dict[str, CascadeChain] = {
            spec.name: CascadeChain(
                chain_id=f"{screen.name}.{spec.name}",
                levels=list(spec.levels),
                provider=provider,
                cache=self.cache,
                sequencer=self.sequencer,
                strict_validation=strict_validation,
                on_error=self._on_chain_error
            )
            for spec in screen.cascade_fields
        }

        self.lookup_options: Dict[str, List[Option]] = {}
        # Parent id each dependent field's options were loaded for
        self._dependent_parents: Dict[str, Optional[str]] = {}
        self.notifications: List[Notification] = []
        self.draft: Optional[FilterDraft] = None
        self.hydration_report: Optional[HydrationReport] = None
        self.last_applied_url: Optional[str] = None
        self.last_query: Optional[Dict[str, Any]] = None
        self.result: Optional[PaginatedResult] = None
        self.is_searching = False

        self._state = FilterState.defaults(screen.fields)
        self._search_slot = f"{screen.name}/search"

    # ============================================================================
    # Read Access
    # ============================================================================

    @property
    def state(self) -> FilterState:
        return self._state

    def options_for(self, name: str, level_id: Optional[str] = None) -> List[Option]:
        """Current options for a lookup field or one level of a cascade field."""
        spec = self.screen.get_field(name)
        if spec.kind is FieldKind.CASCADE:
            chain = self.chains[name]
            return chain.node(level_id or chain.level_ids[0]).options
        return list(self.lookup_options.get(name, []))

    def node_state(self, name: str, level_id: str) -> CascadeNodeState:
        return self.chains[name].node(level_id).state

    def is_settled(self) -> bool:
        return all(chain.is_quiescent() for chain in self.chains.values())

    def drain_notifications(self) -> List[Notification]:
        """Return pending notifications and clear them."""
        pending, self.notifications = self.notifications, []
        return pending

    # ============================================================================
    # Hydration
    # ============================================================================

    async def init_from_url(self, raw: Optional[str] = None) -> HydrationReport:
        """
        Hydrate the committed state from a URL.

        Cascade chains hydrate concurrently with each other and with the flat
        lookups; within one chain levels resolve strictly in order. Fields that
        depend on a cascade level load their options once the chains settle,
        and their URL ids are checked against those options.

        Args:
            raw: Query string or URL; read from navigation when omitted

        Returns:
            HydrationReport: Applied levels, mismatches and dropped ids
        """
        if raw is None:
            raw = self.navigation.read_current_url() if self.navigation else ""

        draft = self.codec.decode_query(raw)
        self.draft = draft
        report = HydrationReport(dropped_params=list(draft.dropped_params))

        chain_names = list(self.chains)
        hydrations = [
            self.chains[name].hydrate(draft.get(name, CascadeSelection()).to_dict())
            for name in chain_names
        ]
        results = await asyncio.gather(self.load_lookups(), *hydrations)
        for name, result in zip(chain_names, results[1:]):
            report.chains[name] = result
        await self.load_dependents()

        values: Dict[str, Any] = {}
        for spec in self.screen.fields:
            if spec.kind is FieldKind.CASCADE:
                values[spec.name] = self.chains[spec.name].selection()
                continue

            value = draft.get(spec.name, spec.default_value())
            if spec.lookup_level and spec.name in self.lookup_options:
                value, dropped = self._confirm_ids(spec, value)
                if dropped:
                    logger.warning(f"Dropping unknown {spec.name} ids from URL: {dropped}")
                    report.dropped_ids[spec.name] = dropped
            values[spec.name] = value

        self._state = FilterState(values)
        self.hydration_report = report
        logger.info(
            f"Hydrated {self.screen.name} from URL: complete={report.complete}, "
            f"mismatches={report.mismatches}"
        )

        if self.screen.auto_apply:
            await self.search()

        return report

    async def load_lookups(self) -> None:
        """Load the flat option lists of every lookup field concurrently."""
        specs = [spec for spec in self.screen.lookup_fields if spec.name not in self.lookup_options]
        await asyncio.gather(*(self._load_lookup(spec) for spec in specs))

    async def _load_lookup(self, spec: FilterFieldSpec) -> None:
        level_id = spec.lookup_level
        try:
            options = await self.cache.get_or_fetch(
                level_id, None, lambda: self.provider.fetch_options(level_id, None)
            )
        except ReferenceLookupError as e:
            self._push(Notification("error", f"{spec.label or spec.name} options could not be loaded: {e.message}", spec.name))
            return
        except Exception as e:
            logger.error(f"Unexpected failure loading {level_id} options: {e}")
            self._push(Notification("error", f"{spec.label or spec.name} options could not be loaded", spec.name))
            return
        self.lookup_options[spec.name] = list(options)

    async def load_dependents(self, cascade_name: Optional[str] = None) -> Dict[str, Any]:
        """
        Load options of fields that depend on a cascade level.

        Args:
            cascade_name: Only refresh fields depending on this cascade

        Returns:
            Dict[str, Any]: Cleared values for fields whose parent value changed
        """
        specs = self.screen.dependent_fields(cascade_name)
        previous = {spec.name: self._dependent_parents.get(spec.name, _UNSET) for spec in specs}
        await asyncio.gather(*(self._load_dependent(spec) for spec in specs))

        cleared = {}
        for spec in specs:
            before = previous[spec.name]
            if before is not _UNSET and before != self._dependent_parents.get(spec.name):
                cleared[spec.name] = spec.default_value()
        return cleared

    def _parent_value(self, spec: FilterFieldSpec) -> Optional[str]:
        cascade_name, level_id = spec.depends_on
        return self.chains[cascade_name].node(level_id).selected_value

    async def _load_dependent(self, spec: FilterFieldSpec) -> None:
        parent_id = self._parent_value(spec)
        if parent_id is None:
            self._dependent_parents[spec.name] = None
            self.lookup_options[spec.name] = []
            return
        if self._dependent_parents.get(spec.name, _UNSET) == parent_id and spec.name in self.lookup_options:
            return

        level_id = spec.lookup_level
        self._dependent_parents[spec.name] = parent_id
        self.lookup_options.pop(spec.name, None)
        try:
            options = await self.cache.get_or_fetch(
                level_id, parent_id, lambda: self.provider.fetch_options(level_id, parent_id)
            )
        except ReferenceLookupError as e:
            self._push(Notification("error", f"{spec.label or spec.name} options could not be loaded: {e.message}", spec.name))
            return
        except Exception as e:
            logger.error(f"Unexpected failure loading {level_id} options for {parent_id}: {e}")
            self._push(Notification("error", f"{spec.label or spec.name} options could not be loaded", spec.name))
            return

        if self._parent_value(spec) == parent_id:
            self.lookup_options[spec.name] = list(options)

    def _confirm_ids(self, spec: FilterFieldSpec, value: Any) -> Tuple[Any, List[str]]:
        known = {option.value for option in self.lookup_options.get(spec.name, [])}
        if spec.kind is FieldKind.MULTI_SELECT:
            kept = tuple(item for item in value if item in known)
            return kept, [item for item in value if item not in known]
        if value is not None and value not in known:
            return None, [value]
        return value, []

    # ============================================================================
    # Edits
    # ============================================================================

    def set_field(self, name: str, value: Any) -> FilterState:
        """
        Commit a leaf field immediately.

        Raises:
            ValueError: For cascade fields or values the field cannot represent
        """
        spec = self.screen.get_field(name)
        if spec.kind is FieldKind.CASCADE:
            raise ValueError(f"{name} is a cascade field; use update_field")
        self._commit(name, spec.coerce(value))
        return self._state

    async def update_field(self, name: str, value: Any, level_id: Optional[str] = None) -> FilterState:
        """
        Update a field and return the new committed state.

        Leaf fields commit immediately. For cascade fields, `level_id` selects
        one level (descendants reset, next level reloads); without `level_id`
        the value is a full levelId -> id path that is hydrated in order. The
        cascade is read back into the state once the chain is quiescent.
        """
        spec = self.screen.get_field(name)
        if spec.kind is not FieldKind.CASCADE:
            return self.set_field(name, value)

        chain = self.chains[name]
        if level_id is None:
            await chain.hydrate(spec.coerce(value).to_dict())
        else:
            chain.select(level_id, value)
            await chain.settle()

        cleared = await self.load_dependents(name)
        self._commit(name, chain.selection(), cleared)
        return self._state

    def _commit(self, name: str, value: Any, extra: Optional[Dict[str, Any]] = None) -> None:
        changes = {name: value}
        changes.update(extra or {})
        page_field = self.screen.page_field
        if page_field and name != page_field:
            changes[page_field] = self.screen.get_field(page_field).default_value()
        self._state = self._state.with_values(changes)

    # ============================================================================
    # Apply / Search / Reset
    # ============================================================================

    def apply(self) -> Dict[str, Any]:
        """
        Write the state to the URL (replace, no navigation) and project the query.

        Returns:
            Dict[str, Any]: Query projection for the screen's executor
        """
        query_string = self.codec.encode_query(self._state)
        if self.navigation is not None:
            self.navigation.replace_url(query_string)
        self.last_applied_url = query_string

        query = self.screen.project(self._state)
        self.last_query = query
        logger.info(f"Applied {self.screen.name} filters: ?{query_string}")
        return query

    async def search(self) -> Optional[PaginatedResult]:
        """
        Apply, then run the projection through the executor.

        A newer search supersedes this one; a superseded result is discarded
        and None returned.
        """
        query = self.apply()
        if self.executor is None:
            logger.warning(f"No query executor configured for {self.screen.name}")
            return None

        tag = self.sequencer.issue(self._search_slot)
        self.is_searching = True
        try:
            result = await self.sequencer.run(
                self._search_slot, tag, lambda: self.executor.run_query(query)
            )
        except StaleResponseDiscarded:
            return None
        except Exception as e:
            message = getattr(e, 'message', str(e))
            logger.error(f"Query for {self.screen.name} failed: {message}")
            self._push(Notification("error", f"Records could not be loaded: {message}", self.screen.name))
            return None
        finally:
            if self.sequencer.is_current(self._search_slot, tag):
                self.is_searching = False

        self.result = result
        return result

    async def go_to_page(self, page_index: int) -> Optional[PaginatedResult]:
        """Move to another page of the applied filters."""
        if not self.screen.page_field:
            raise ValueError(f"Screen {self.screen.name} is not paginated")
        self.set_field(self.screen.page_field, page_index)
        return await self.search()

    async def reset(self) -> Dict[str, Any]:
        """Restore field defaults, reset every chain, then apply."""
        self._state = FilterState.defaults(self.screen.fields)
        for chain in self.chains.values():
            chain.reset()
        await asyncio.gather(*(chain.settle() for chain in self.chains.values()))
        await self.load_dependents()
        return self.apply()

    # ============================================================================
    # Notifications
    # ============================================================================

    def _on_chain_error(self, chain: CascadeChain, node: CascadeNode, error: ReferenceLookupError) -> None:
        self._push(Notification(
            "error",
            f"{node.level.display_label} options could not be loaded: {error.message}",
            f"{chain.chain_id}/{node.level_id}"
        ))

    def _push(self, notification: Notification) -> None:
        self.notifications.append(notification)
        if self._notify:
            try:
                self._notify(notification)
            except Exception as e:
                logger.error(f"Notification callback failed: {e}")
