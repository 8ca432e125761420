# ============================================================================
# cascade_filters/models/core.py - Core cascade models
# ============================================================================

from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Mapping, Optional, Tuple


@dataclass(frozen=True)
class Option:
    """A selectable reference-data entry (one dropdown row)."""
    value: str
    label: str

    def to_dict(self) -> Dict[str, str]:
        """Convert option to dictionary format."""
        return {'value': self.value, 'label': self.label}

    @classmethod
    def from_dict(cls, data: Mapping) -> 'Option':
        """Create Option from a {value, label} or {id, name} mapping."""
        value = data.get('value', data.get('id'))
        label = data.get('label', data.get('name', value))
        return cls(value=str(value), label=str(label))


# Async fetch signature shared by level specs and lookup providers
OptionFetcher = Callable[[Optional[str]], Awaitable[List[Option]]]


@dataclass(frozen=True)
class CascadeLevelSpec:
    """Static descriptor of one level in a cascade (e.g. city depends on country)."""
    id: str
    parent_level_id: Optional[str] = None
    label: str = ""
    fetch: Optional[OptionFetcher] = field(default=None, compare=False, repr=False)

    @property
    def is_root(self) -> bool:
        return self.parent_level_id is None

    @property
    def display_label(self) -> str:
        return self.label or self.id.replace('_', ' ').title()


class NodeStatus(Enum):
    """Lifecycle status of a cascade level's option list."""
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


@dataclass(frozen=True)
class CascadeNodeState:
    """Immutable snapshot of a cascade node. Updates always produce a new snapshot."""
    level_id: str
    parent_value: Optional[str] = None
    selected_value: Optional[str] = None
    options: Tuple[Option, ...] = ()
    status: NodeStatus = NodeStatus.IDLE
    request_seq: int = 0
    error: Optional[str] = None

    @property
    def option_values(self) -> List[str]:
        return [option.value for option in self.options]

    def has_option(self, value: str) -> bool:
        return any(option.value == value for option in self.options)

    def label_for(self, value: Optional[str]) -> Optional[str]:
        """Get display label for a value, None if not among current options."""
        for option in self.options:
            if option.value == value:
                return option.label
        return None


@dataclass(frozen=True)
class CascadeSelection:
    """
    Ordered levelId -> selected id mapping for one cascade.

    Always a prefix of the chain: a level is only present when all of its
    ancestors are present.
    """
    levels: Tuple[Tuple[str, str], ...] = ()

    @classmethod
    def from_dict(cls, values: Mapping[str, Optional[str]], level_order: List[str]) -> 'CascadeSelection':
        """Build a selection from a mapping, keeping the longest contiguous prefix."""
        pairs = []
        for level_id in level_order:
            value = values.get(level_id)
            if not value:
                break
            pairs.append((level_id, str(value)))
        return cls(levels=tuple(pairs))

    def get(self, level_id: str) -> Optional[str]:
        for key, value in self.levels:
            if key == level_id:
                return value
        return None

    def to_dict(self) -> Dict[str, str]:
        return dict(self.levels)

    @property
    def leaf(self) -> Optional[Tuple[str, str]]:
        """Deepest selected (level_id, value) pair."""
        return self.levels[-1] if self.levels else None

    def __bool__(self) -> bool:
        return bool(self.levels)

    def __len__(self) -> int:
        return len(self.levels)


@dataclass(frozen=True)
class HydrationMismatch:
    """A URL-supplied id that no longer resolves against live options."""
    level_id: str
    value: str
    reason: str = "not_found"  # "not_found", "lookup_failed"


@dataclass
class HydrationResult:
    """Outcome of hydrating one cascade chain."""
    chain_id: str
    requested: Dict[str, str] = field(default_factory=dict)
    applied: Dict[str, str] = field(default_factory=dict)
    mismatch: Optional[HydrationMismatch] = None
    superseded: bool = False

    @property
    def complete(self) -> bool:
        """True when every requested level was applied."""
        return self.mismatch is None and not self.superseded and self.applied == self.requested
