from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import date, datetime, time
from pathlib import Path
from typing import Mapping, TypeAlias
import tomllib

DEFAULT_CONFIG_NAME = "lspbridge.toml"
DEFAULT_SOURCE = "lspbridge"
DEFAULT_LOG_LEVEL = "INFO"
LOG_LEVEL_ENV = "LSPBRIDGE_LOG_LEVEL"

TomlScalar: TypeAlias = str | int | float | bool | None | date | datetime | time
TomlValue: TypeAlias = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]


@dataclass(frozen=True)
class FeedbackOptions:
    report_false_positive: bool = False
    report_confusion: bool = False


@dataclass(frozen=True)
class BridgeConfig:
    report_false_positive: bool = False
    report_confusion: bool = False
    source: str = DEFAULT_SOURCE
    log_level: str = DEFAULT_LOG_LEVEL

    @property
    def feedback(self) -> FeedbackOptions:
        return FeedbackOptions(
            report_false_positive=self.report_false_positive,
            report_confusion=self.report_confusion,
        )


def _load_toml(path: Path) -> TomlTable:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError:
        return {}
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


def load_config(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    if config_path is None:
        base = root if root is not None else Path.cwd()
        config_path = base / DEFAULT_CONFIG_NAME
    return _load_toml(config_path)


def _section(data: TomlTable, name: str) -> TomlTable:
    section = data.get(name, {})
    return section if isinstance(section, dict) else {}


def feedback_defaults(
    root: Path | None = None, config_path: Path | None = None
) -> TomlTable:
    return _section(load_config(root=root, config_path=config_path), "feedback")


def diagnostics_defaults(
    root: Path | None = None, config_path: Path | None = None
) -> TomlTable:
    return _section(load_config(root=root, config_path=config_path), "diagnostics")


def logging_defaults(
    root: Path | None = None, config_path: Path | None = None
) -> TomlTable:
    return _section(load_config(root=root, config_path=config_path), "logging")


def _as_bool(value: TomlValue) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return False


def _as_text(value: TomlValue, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def merge_payload(payload: Mapping[str, TomlValue], defaults: TomlTable) -> TomlTable:
    merged = dict(defaults)
    for key, value in payload.items():
        if value is None:
            continue
        merged[key] = value
    return merged


def _flatten_overrides(overrides: Mapping[str, object] | None) -> TomlTable:
    """Accept either sectioned (``{"feedback": {...}}``) or flat client options."""
    if not overrides:
        return {}
    flat: TomlTable = {}
    for key, value in overrides.items():
        if key in {"feedback", "diagnostics", "logging"} and isinstance(value, dict):
            flat.update(value)
        else:
            flat[str(key)] = value  # type: ignore[assignment]
    return flat


def bridge_config(
    root: Path | None = None,
    config_path: Path | None = None,
    overrides: Mapping[str, object] | None = None,
) -> BridgeConfig:
    defaults: TomlTable = {}
    defaults.update(feedback_defaults(root=root, config_path=config_path))
    defaults.update(diagnostics_defaults(root=root, config_path=config_path))
    defaults.update(logging_defaults(root=root, config_path=config_path))
    env_level = os.getenv(LOG_LEVEL_ENV, "").strip()
    if env_level:
        defaults["level"] = env_level
    merged = merge_payload(_flatten_overrides(overrides), defaults)
    return BridgeConfig(
        report_false_positive=_as_bool(merged.get("report_false_positive")),
        report_confusion=_as_bool(merged.get("report_confusion")),
        source=_as_text(merged.get("source"), DEFAULT_SOURCE),
        log_level=_as_text(merged.get("level"), DEFAULT_LOG_LEVEL).upper(),
    )
