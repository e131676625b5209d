from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import ColumnMapping, ImportConfig, MappingConfig

"""YAML configuration loader.

Responsibilities:
- Locate the config file (``--config``, then $PAYROLL_IMPORT_CONFIG, then
  ``config/import.yml``)
- Validate it against the packaged JSON schema (unknown keys are rejected)
- Convert it into frozen ImportConfig / MappingConfig dataclasses
"""

__all__ = [
    "CONFIG_ENV_VAR",
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "load_config",
    "resolve_config_path",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config") / "import.yml"
CONFIG_ENV_VAR = "PAYROLL_IMPORT_CONFIG"


class ConfigError(Exception):
    pass


def resolve_config_path(explicit: str | Path | None = None) -> Path:
    if explicit:
        return Path(explicit)
    from_env = os.environ.get(CONFIG_ENV_VAR)
    if from_env:
        return Path(from_env)
    return DEFAULT_CONFIG_PATH


def _validate_config_schema(data: Any) -> None:
    """Validate raw config data against the JSON schema.

    Raises:
        ConfigError: schema file missing or unreadable, or the data violates it.
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    try:
        jsonschema.validate(data, schema)
    except ValidationError as e:
        location = "/".join(str(p) for p in e.absolute_path)
        suffix = f" (at {location})" if location else ""
        raise ConfigError(f"config validation failed: {e.message}{suffix}") from e


def _mapping_config(raw: dict[str, Any]) -> MappingConfig:
    mappings = tuple(ColumnMapping.from_dict(m) for m in raw["mappings"])
    fields = [m.database_field for m in mappings]
    duplicated = sorted({f for f in fields if fields.count(f) > 1})
    if duplicated:
        raise ConfigError(
            f"mapping config '{raw['config_name']}' maps {duplicated} more than once"
        )
    return MappingConfig(
        config_name=raw["config_name"],
        file_type=raw["file_type"],
        mappings=mappings,
        description=raw.get("description", ""),
    )


def load_config(path: Path) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e

    _validate_config_schema(data)

    configs: dict[str, MappingConfig] = {}
    for raw in data.get("mapping_configs", []):
        config = _mapping_config(raw)
        if config.config_name in configs:
            raise ConfigError(f"duplicate mapping config name: {config.config_name}")
        configs[config.config_name] = config

    return ImportConfig(
        source_directory=data["source_directory"],
        mapping_configs=configs,
        error_log_dir=data.get("error_log_dir", "./logs"),
        attendance_sheet=data.get("attendance_sheet"),
    )
