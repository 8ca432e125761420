from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from .core import CascadeLevelSpec, CascadeSelection, HydrationResult, Option


class FieldKind(Enum):
    """Kinds of filter fields a screen can declare."""
    TEXT = "text"
    DATE = "date"
    SINGLE_SELECT = "single_select"
    MULTI_SELECT = "multi_select"
    CASCADE = "cascade"
    NUMBER = "number"    # pagination
    CHOICE = "choice"    # sorting


@dataclass(frozen=True)
class FilterFieldSpec:
    """
    Static description of one filter field.

    `param` is the URL key (defaults to the field name). Cascade fields use one
    URL key per level, taken from `level_params` or the level id. `default` is
    only honoured for NUMBER and CHOICE fields; every other kind defaults to
    its canonical empty value.

    A select field with `depends_on=(cascade_field, level_id)` takes its
    options from `lookup_level` for the value selected on that cascade level,
    and is cleared whenever that value changes.
    """
    name: str
    kind: FieldKind
    param: Optional[str] = None
    label: str = ""
    default: Any = None
    lookup_level: Optional[str] = None
    levels: Tuple[CascadeLevelSpec, ...] = ()
    level_params: Dict[str, str] = field(default_factory=dict)
    choices: Tuple[str, ...] = ()
    minimum: int = 0
    depends_on: Optional[Tuple[str, str]] = None

    @property
    def url_param(self) -> str:
        return self.param or self.name

    @property
    def level_ids(self) -> List[str]:
        return [level.id for level in self.levels]

    def param_for_level(self, level_id: str) -> str:
        return self.level_params.get(level_id, level_id)

    @property
    def url_params(self) -> List[str]:
        """All URL keys owned by this field."""
        if self.kind is FieldKind.CASCADE:
            return [self.param_for_level(level_id) for level_id in self.level_ids]
        return [self.url_param]

    def default_value(self) -> Any:
        if self.kind is FieldKind.TEXT:
            return ""
        if self.kind is FieldKind.MULTI_SELECT:
            return ()
        if self.kind is FieldKind.CASCADE:
            return CascadeSelection()
        if self.kind is FieldKind.NUMBER:
            return self.default if self.default is not None else self.minimum
        if self.kind is FieldKind.CHOICE:
            if self.default is not None:
                return self.default
            return self.choices[0] if self.choices else None
        return None

    def coerce(self, value: Any) -> Any:
        """
        Convert a UI or URL value into this field's canonical form.

        Raises:
            ValueError: If the value cannot represent this field
        """
        if self.kind is FieldKind.TEXT:
            return "" if value is None else str(value).strip()

        if self.kind is FieldKind.DATE:
            if value is None or value == "":
                return None
            if isinstance(value, datetime):
                return value.date()
            if isinstance(value, date):
                return value
            return date.fromisoformat(str(value).strip())

        if self.kind is FieldKind.SINGLE_SELECT:
            if isinstance(value, Option):
                return value.value
            if value is None or str(value).strip() == "":
                return None
            return str(value).strip()

        if self.kind is FieldKind.MULTI_SELECT:
            return _coerce_id_list(value)

        if self.kind is FieldKind.CASCADE:
            if value is None:
                return CascadeSelection()
            if isinstance(value, CascadeSelection):
                return CascadeSelection.from_dict(value.to_dict(), self.level_ids)
            if isinstance(value, Mapping):
                return CascadeSelection.from_dict(value, self.level_ids)
            raise ValueError(f"Cascade field {self.name} expects a mapping, got {type(value).__name__}")

        if self.kind is FieldKind.NUMBER:
            if value is None or value == "":
                return self.default_value()
            number = int(value)
            if number < self.minimum:
                raise ValueError(f"{self.name} must be >= {self.minimum}, got {number}")
            return number

        if self.kind is FieldKind.CHOICE:
            if value is None or value == "":
                return self.default_value()
            for choice in self.choices:
                if str(value).strip().lower() == choice.lower():
                    return choice
            raise ValueError(f"{value!r} is not one of {list(self.choices)} for {self.name}")

        raise ValueError(f"Unknown field kind: {self.kind}")

    def is_default(self, value: Any) -> bool:
        return value == self.default_value()


def _coerce_id_list(value: Any) -> Tuple[str, ...]:
    """Normalise ids to a de-duplicated tuple, preserving order."""
    if value is None:
        return ()
    if isinstance(value, str):
        items: Iterable[Any] = value.split(",")
    else:
        items = value

    ids: List[str] = []
    for item in items:
        item_id = item.value if isinstance(item, Option) else item
        if item_id is None:
            continue
        item_id = str(item_id).strip()
        if item_id and item_id not in ids:
            ids.append(item_id)
    return tuple(ids)


@dataclass(frozen=True)
class FilterState:
    """Immutable snapshot of every filter field on a screen."""
    values: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'values', MappingProxyType(dict(self.values)))

    @classmethod
    def defaults(cls, fields: Iterable[FilterFieldSpec]) -> 'FilterState':
        """Create a state with every field at its default value."""
        return cls({spec.name: spec.default_value() for spec in fields})

    def __getitem__(self, name: str) -> Any:
        return self.values[name]

    def get(self, name: str, default: Any = None) -> Any:
        return self.values.get(name, default)

    def with_value(self, name: str, value: Any) -> 'FilterState':
        """Return a new snapshot with one field replaced."""
        updated = dict(self.values)
        updated[name] = value
        return FilterState(updated)

    def with_values(self, changes: Mapping[str, Any]) -> 'FilterState':
        updated = dict(self.values)
        updated.update(changes)
        return FilterState(updated)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.values)

    def non_default(self, fields: Iterable[FilterFieldSpec]) -> Dict[str, Any]:
        """Fields whose values differ from their defaults."""
        return {
            spec.name: self.values.get(spec.name)
            for spec in fields
            if not spec.is_default(self.values.get(spec.name, spec.default_value()))
        }


@dataclass(frozen=True)
class FilterDraft:
    """
    Decoded URL state before hydration.

    Select and cascade ids are opaque here; the controller confirms them
    against live reference data before committing.
    """
    values: Mapping[str, Any] = field(default_factory=dict)
    dropped_params: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'values', MappingProxyType(dict(self.values)))

    def get(self, name: str, default: Any = None) -> Any:
        return self.values.get(name, default)


@dataclass(frozen=True)
class ScreenSpec:
    """Per-screen configuration for the generic filter engine."""
    name: str
    fields: Tuple[FilterFieldSpec, ...]
    project: Callable[[FilterState], Dict[str, Any]] = field(compare=False, repr=False)
    title: str = ""
    page_field: Optional[str] = None
    auto_apply: bool = False

    def __post_init__(self):
        names = [spec.name for spec in self.fields]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate field names in screen {self.name}: {names}")
        params = [param for spec in self.fields for param in spec.url_params]
        if len(params) != len(set(params)):
            raise ValueError(f"Duplicate URL parameters in screen {self.name}: {params}")
        for spec in self.fields:
            if spec.depends_on is None:
                continue
            cascade_name, level_id = spec.depends_on
            parents = [s for s in self.fields if s.name == cascade_name and s.kind is FieldKind.CASCADE]
            if not parents or level_id not in parents[0].level_ids or not spec.lookup_level:
                raise ValueError(f"{spec.name} depends on unknown cascade level {cascade_name}.{level_id}")

    def get_field(self, name: str) -> FilterFieldSpec:
        for spec in self.fields:
            if spec.name == name:
                return spec
        raise ValueError(f"Unknown filter field for screen {self.name}: {name}")

    @property
    def cascade_fields(self) -> List[FilterFieldSpec]:
        return [spec for spec in self.fields if spec.kind is FieldKind.CASCADE]

    @property
    def lookup_fields(self) -> List[FilterFieldSpec]:
        """Select fields with a fixed option list."""
        return [spec for spec in self.fields if spec.lookup_level and spec.depends_on is None]

    def dependent_fields(self, cascade_name: Optional[str] = None) -> List[FilterFieldSpec]:
        """Select fields whose options follow a cascade level, optionally of one cascade."""
        return [
            spec for spec in self.fields
            if spec.depends_on is not None and (cascade_name is None or spec.depends_on[0] == cascade_name)
        ]


@dataclass
class PaginatedResult:
    """One page of records returned by a query executor."""
    items: List[Dict[str, Any]]
    item_count: int
    page_count: int
    page_index: int = 0
    page_size: int = 10


@dataclass(frozen=True)
class Notification:
    """Transient user-facing message (rendered as a toast by the host)."""
    level: str  # "error", "warning", "info"
    message: str
    source: Optional[str] = None


@dataclass
class HydrationReport:
    """What `FilterController.init_from_url` could and could not restore."""
    chains: Dict[str, HydrationResult] = field(default_factory=dict)
    dropped_ids: Dict[str, List[str]] = field(default_factory=dict)
    dropped_params: List[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return all(result.complete for result in self.chains.values()) and not self.dropped_ids

    @property
    def mismatches(self) -> List:
        return [result.mismatch for result in self.chains.values() if result.mismatch is not None]
