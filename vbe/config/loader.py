import yaml
from pathlib import Path
from .models import AppConfig

def load_config(config_path: Path) -> AppConfig:
    """Loads YAML config and parses it into AppConfig Pydantic model."""
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r') as f:
        data = yaml.safe_load(f) or {}

    return AppConfig(**data)

def load_config_or_default(config_path: Path) -> AppConfig:
    """Like load_config, but a missing file yields the built-in defaults."""
    if not config_path.exists():
        return AppConfig()
    return load_config(config_path)
