# cascade_filters/config/dashboard_config.py
"""
Dashboard configuration loading
"""

import logging
import os
from pathlib import Path
from typing import Optional

import yaml

from cascade_filters.models import DashboardConfig

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "CASCADE_FILTERS_CONFIG"

# Bundled configuration at the repository root
DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "dashboard.yaml"


def load_config(path: Optional[Path] = None) -> DashboardConfig:
    """
    Load dashboard configuration from YAML.

    Args:
        path: Config file; defaults to $CASCADE_FILTERS_CONFIG, then the bundled dashboard.yaml

    Returns:
        DashboardConfig: Parsed configuration, relative paths resolved against the file's directory
    """
    if path is None:
        path = Path(os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH))
    path = Path(path)

    try:
        with open(path, 'r') as f:
            config_dict = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to read config {path}: {e}")
        raise

    config = DashboardConfig.from_dict(config_dict, base_dir=path.parent)

    for problem in config.validate():
        logger.warning(f"Config problem: {problem}")

    logger.info(f"Loaded configuration from {path}")
    return config
