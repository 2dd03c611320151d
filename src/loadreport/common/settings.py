from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import jsonschema
import yaml


@dataclass(frozen=True)
class Settings:
    config_version: str
    log_level: str
    app_log_path: Optional[str]
    report_interval_sec: float
    config_path: Path
    raw: Dict[str, Any]

    def sink_section(self, name: str) -> Dict[str, Any]:
        sinks = self.raw.get("sinks", {}) or {}
        return sinks.get(name, {}) or {}


def load_yaml(path: Path) -> Dict[str, Any]:
    data = yaml.safe_load(path.read_text())
    return data or {}


def validate_config(config: Dict[str, Any], schema_path: Path) -> None:
    schema = json.loads(schema_path.read_text())
    jsonschema.validate(instance=config, schema=schema)


def load_settings(config_path: Path, schema_path: Path) -> Settings:
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    if not schema_path.exists():
        raise FileNotFoundError(f"Schema file not found: {schema_path}")

    config = load_yaml(config_path)
    validate_config(config, schema_path)

    app_log_path = config.get("app_log_path")
    return Settings(
        config_version=str(config["config_version"]),
        log_level=str(config.get("log_level", "INFO")),
        app_log_path=str(app_log_path) if app_log_path else None,
        report_interval_sec=float(config.get("report_interval_sec", 0)),
        config_path=config_path,
        raw=config,
    )
