"""
Configuration file utilities.
"""
import json
from pathlib import Path
from typing import Dict, Any


def _coerce(value: str) -> Any:
    if value.lower() in ('true', 'false'):
        return value.lower() == 'true'
    unsigned = value[1:] if value[:1] in ('-', '+') else value
    if unsigned.isdigit():
        return int(value)
    if unsigned.replace('.', '', 1).isdigit():
        return float(value)
    return value


def load_simple_config(config_path: Path | str) -> Dict[str, Any]:
    config = {}
    config_path = Path(config_path)

    if not config_path.exists():
        return config

    with open(config_path, 'r', encoding='utf-8') as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith('#') and '=' in line:
                key, value = line.split('=', 1)
                config[key.strip()] = _coerce(value.strip())
    return config


def save_simple_config(config: Dict[str, Any], config_path: Path | str, header: str = "Configuration File"):
    config_path = Path(config_path)
    with open(config_path, 'w', encoding='utf-8') as f:
        f.write(f"# {header}\n")
        f.write("# Automatically generated - edit as needed\n\n")
        for key, value in config.items():
            if isinstance(value, bool):
                value = str(value).lower()
            f.write(f"{key}={value}\n")


def load_config_file(config_path: Path | str) -> Dict[str, Any]:
    """
    Load a settings mapping from ``.json`` or ``key=value`` text.

    A missing file yields an empty mapping so callers fall back to defaults.
    """
    config_path = Path(config_path)
    if not config_path.exists():
        return {}
    if config_path.suffix.lower() == '.json':
        with open(config_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Config file {config_path} must contain a JSON object")
        return data
    return load_simple_config(config_path)
