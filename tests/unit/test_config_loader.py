from __future__ import annotations

from pathlib import Path

import pytest

from crm_import.config.loader import ConfigError, default_config, load_config
from crm_import.models.candidate import EntityKind

PROJECT_ROOT = Path(__file__).resolve().parents[2]


def _write(tmp_path: Path, text: str) -> Path:
    p = tmp_path / "import.yml"
    p.write_text(text, encoding="utf-8")
    return p


def test_defaults() -> None:
    cfg = default_config()
    assert cfg.batch_size == 100
    assert cfg.timezone == "UTC"
    assert cfg.tables[EntityKind.LEAD] == "leads"


def test_empty_file_gives_defaults(tmp_path: Path) -> None:
    cfg = load_config(_write(tmp_path, ""))
    assert cfg == default_config()


def test_example_config_is_valid() -> None:
    cfg = load_config(PROJECT_ROOT / "config" / "import.example.yml")
    assert cfg.timezone == "Asia/Kolkata"
    assert cfg.database.port == 5432
    assert "WhatsApp Number" in cfg.entities[EntityKind.LEAD].spec_for("phone").aliases


def test_table_override(tmp_path: Path) -> None:
    cfg = load_config(_write(tmp_path, "entities:\n  owner:\n    table: crm_owners\n"))
    assert cfg.tables[EntityKind.OWNER] == "crm_owners"
    assert cfg.tables[EntityKind.LEAD] == "leads"


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "nope.yml")


@pytest.mark.parametrize(
    "text",
    [
        "batch_size: 0\n",
        "batch_size: ten\n",
        "unknown_key: 1\n",
        "entities:\n  vendor:\n    table: vendors\n",
        "entities:\n  lead:\n    table: 'drop table;'\n",
    ],
)
def test_schema_violations(tmp_path: Path, text: str) -> None:
    with pytest.raises(ConfigError, match="validation failed"):
        load_config(_write(tmp_path, text))


def test_invalid_yaml(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="invalid yaml"):
        load_config(_write(tmp_path, "batch_size: [1,\n"))


def test_root_must_be_mapping(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="mapping"):
        load_config(_write(tmp_path, "- a\n- b\n"))


def test_unknown_timezone(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="unknown timezone"):
        load_config(_write(tmp_path, "timezone: Mars/Olympus\n"))


def test_alias_for_unknown_field(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="entities.lead.aliases"):
        load_config(_write(tmp_path, "entities:\n  lead:\n    aliases:\n      shoe_size: [Shoe]\n"))
