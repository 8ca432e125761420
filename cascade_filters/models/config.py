from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List


@dataclass
class DashboardConfig:
    """Main dashboard configuration container."""
    # Data sources
    reference_data_path: Path
    record_paths: Dict[str, Path] = field(default_factory=dict)  # screen name -> CSV

    # Lookup behaviour
    lookup_latency_ms: int = 0
    query_latency_ms: int = 0

    # Screen behaviour
    default_page_size: int = 10
    strict_validation: bool = False
    auto_apply_on_load: bool = True

    # Logging
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any], base_dir: Path = Path(".")) -> 'DashboardConfig':
        """Create config from dictionary. Relative paths resolve against base_dir."""
        def _resolve(value: str) -> Path:
            path = Path(value)
            return path if path.is_absolute() else base_dir / path

        return cls(
            reference_data_path=_resolve(config_dict['reference_data_path']),
            record_paths={
                screen: _resolve(path)
                for screen, path in (config_dict.get('record_paths') or {}).items()
            },
            lookup_latency_ms=int(config_dict.get('lookup_latency_ms', 0)),
            query_latency_ms=int(config_dict.get('query_latency_ms', 0)),
            default_page_size=int(config_dict.get('default_page_size', 10)),
            strict_validation=bool(config_dict.get('strict_validation', False)),
            auto_apply_on_load=bool(config_dict.get('auto_apply_on_load', True)),
            log_level=str(config_dict.get('log_level', 'INFO')).upper()
        )

    def validate(self) -> List[str]:
        """Return a list of configuration problems (empty when valid)."""
        problems = []
        if not self.reference_data_path.exists():
            problems.append(f"Reference data file not found: {self.reference_data_path}")
        for screen, path in self.record_paths.items():
            if not path.exists():
                problems.append(f"Records for screen '{screen}' not found: {path}")
        if self.default_page_size <= 0:
            problems.append(f"default_page_size must be positive, got {self.default_page_size}")
        return problems


@dataclass
class CacheInfo:
    """Lookup cache metadata information."""
    last_updated: datetime
    entry_count: int
    option_count: int
    levels: Dict[str, int]  # level_id -> cached parent count
