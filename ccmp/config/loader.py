import logging
from pathlib import Path
from typing import Optional
import yaml
from ccmp.config.models import AppConfig

logger = logging.getLogger(__name__)

def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Loads YAML config; a missing or empty file yields the defaults."""
    if config_path is None or not config_path.exists():
        logger.debug(f"No config at {config_path}, using defaults")
        return AppConfig()

    with open(config_path, "r") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Config {config_path} must contain a mapping, got {type(data).__name__}")

    return AppConfig(**data)
