from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..mapping.coercion import resolve_timezone
from ..models.candidate import EntityKind
from .entities import DEFAULT_ENTITY_CONFIGS, EntityFieldConfig

"""Configuration loader.

- Load YAML (``config/import.yml`` by default)
- Validate against ``config_schema.json``
- Apply defaults (batch_size=100, timezone=UTC)
- Build per-entity field configs: built-in tables plus any extra aliases
"""

__all__ = [
    "ConfigError",
    "DatabaseConfig",
    "ImportConfig",
    "SCHEMA_PATH",
    "DEFAULT_CONFIG_PATH",
    "load_config",
    "default_config",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/import.yml")


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection fallback; environment variables take precedence."""
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class ImportConfig:
    batch_size: int = 100
    timezone: str = "UTC"
    logs_dir: str = "logs"
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    entities: dict[EntityKind, EntityFieldConfig] = field(
        default_factory=lambda: dict(DEFAULT_ENTITY_CONFIGS)
    )

    @property
    def tables(self) -> dict[EntityKind, str]:
        return {kind: cfg.table for kind, cfg in self.entities.items()}


def default_config() -> ImportConfig:
    return ImportConfig()


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Raise ConfigError if ``data`` does not satisfy the JSON schema."""
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    try:
        jsonschema.validate(data, schema)
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _build_entities(raw: dict[str, Any]) -> dict[EntityKind, EntityFieldConfig]:
    entities = dict(DEFAULT_ENTITY_CONFIGS)
    for name, override in raw.items():
        kind = EntityKind(name)
        cfg = entities[kind]
        if override.get("aliases"):
            try:
                cfg = cfg.with_extra_aliases(override["aliases"])
            except KeyError as e:
                raise ConfigError(f"entities.{name}.aliases: {e.args[0]}") from e
        if override.get("table"):
            cfg = cfg.with_table(override["table"])
        entities[kind] = cfg
    return entities


def _check_timezone(name: str) -> None:
    try:
        resolve_timezone(name)
    except ValueError as e:
        raise ConfigError(str(e)) from e


def load_config(path: Path) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config root must be a mapping")

    _validate_config_schema(data)

    tz = data.get("timezone", "UTC")
    _check_timezone(tz)
    db_raw = data.get("database") or {}
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )
    return ImportConfig(
        batch_size=data.get("batch_size", 100),
        timezone=tz,
        logs_dir=data.get("logs_dir", "logs"),
        database=db,
        entities=_build_entities(data.get("entities") or {}),
    )
