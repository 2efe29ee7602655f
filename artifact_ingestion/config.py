"""
Engine configuration (``artifact_ingestion.config``).

Responsibility
--------------
Loads the ingestion engine's YAML configuration file and parses it into an
immutable ``IngestionConfig``. Every key is optional; defaults reproduce the
behaviour of the external extraction tool's TSV output.

Failure modes
-------------
* Missing or unreadable YAML file  -> ``ConfigParseError``.
* Malformed YAML                   -> ``ConfigParseError``.
* Unknown key, wrong type, unknown timezone or quoting mode,
  non-positive ``max_batch_size``  -> ``ConfigParseError``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from artifact_ingestion.exceptions import ConfigParseError

QUOTING_MODES = frozenset({"minimal", "none"})

DEFAULT_CUSTOM_RECORD_TYPES: Mapping[str, str] = MappingProxyType(
    {"TSK_IP_DHCP": "DHCP Information"}
)


@dataclass(frozen=True)
class IngestionConfig:
    """Immutable engine settings shared by the loader, coercer and driver."""

    module_name: str = "artifact_ingestion"  # Source name attached to posted records
    mapping_document: Path | None = None
    file_extension: str = ".tsv"
    encoding: str = "utf-8"
    delimiter: str = "\t"
    quoting: str = "minimal"
    timestamp_format: str = "%Y-%m-%d %H:%M:%S"
    timezone: str = "UTC"
    max_batch_size: int | None = None  # None: one post per pass
    enforce_required: bool = False
    domain_attribute_types: tuple[str, ...] = ("TSK_DOMAIN",)
    comment_attribute_type: str = "TSK_COMMENT"
    custom_record_types: Mapping[str, str] = field(
        default_factory=lambda: DEFAULT_CUSTOM_RECORD_TYPES
    )
    database_url: str | None = None
    log_level: str = "INFO"

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def source_options(self) -> dict[str, Any]:
        """Options handed to the TSV source adapter."""
        return {
            "delimiter": self.delimiter,
            "encoding": self.encoding,
            "quoting": self.quoting,
        }

    def is_domain_attribute(self, attribute_name: str) -> bool:
        return attribute_name.upper() in self.domain_attribute_types


DEFAULT_CONFIG = IngestionConfig()


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        ConfigParseError: if the file cannot be read or is not valid YAML.
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as exc:
        raise ConfigParseError(str(path), str(exc)) from exc
    except yaml.YAMLError as exc:
        raise ConfigParseError(str(path), f"invalid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigParseError(str(path), "top level must be a mapping")
    return data


def _expect(source: str, key: str, value: Any, kinds: type | tuple[type, ...]) -> Any:
    if not isinstance(value, kinds) or (isinstance(value, bool) and bool not in _as_tuple(kinds)):
        raise ConfigParseError(source, f"{key!r} has invalid value {value!r}")
    return value


def _as_tuple(kinds: type | tuple[type, ...]) -> tuple[type, ...]:
    return kinds if isinstance(kinds, tuple) else (kinds,)


def parse_config(data: dict[str, Any], source: str = "<config>") -> IngestionConfig:
    """
    Parse an ``IngestionConfig`` from a dict.

    Preconditions:
        - ``data`` keys are a subset of the IngestionConfig field names.
    Raises:
        ConfigParseError: on unknown keys or invalid values.
    """
    known = {f.name for f in fields(IngestionConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigParseError(source, f"unknown keys: {', '.join(unknown)}")

    kwargs: dict[str, Any] = {}
    for key in ("module_name", "file_extension", "encoding", "delimiter",
                "timestamp_format", "timezone", "comment_attribute_type", "log_level"):
        if key in data:
            kwargs[key] = _expect(source, key, data[key], str)

    if "mapping_document" in data and data["mapping_document"] is not None:
        kwargs["mapping_document"] = Path(_expect(source, "mapping_document", data["mapping_document"], str))

    if "database_url" in data and data["database_url"] is not None:
        kwargs["database_url"] = _expect(source, "database_url", data["database_url"], str)

    if "quoting" in data:
        quoting = str(_expect(source, "quoting", data["quoting"], str)).lower()
        if quoting not in QUOTING_MODES:
            raise ConfigParseError(source, f"quoting must be one of {sorted(QUOTING_MODES)}")
        kwargs["quoting"] = quoting

    if "max_batch_size" in data and data["max_batch_size"] is not None:
        size = _expect(source, "max_batch_size", data["max_batch_size"], int)
        if size <= 0:
            raise ConfigParseError(source, "max_batch_size must be positive")
        kwargs["max_batch_size"] = size

    if "enforce_required" in data:
        kwargs["enforce_required"] = _expect(source, "enforce_required", data["enforce_required"], bool)

    if "domain_attribute_types" in data:
        names = _expect(source, "domain_attribute_types", data["domain_attribute_types"], list)
        kwargs["domain_attribute_types"] = tuple(str(n).upper() for n in names)

    if "custom_record_types" in data:
        custom = _expect(source, "custom_record_types", data["custom_record_types"] or {}, dict)
        kwargs["custom_record_types"] = MappingProxyType(
            {str(k): str(v) for k, v in custom.items()}
        )

    if len(kwargs.get("delimiter", "\t")) != 1:
        raise ConfigParseError(source, "delimiter must be a single character")

    timezone = kwargs.get("timezone", "UTC")
    try:
        ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigParseError(source, f"unknown timezone {timezone!r}") from exc

    level = kwargs.get("log_level", "INFO").upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ConfigParseError(source, f"unknown log_level {level!r}")
    kwargs["log_level"] = level

    return IngestionConfig(**kwargs)


def load_config(path: Path) -> IngestionConfig:
    """Load and parse an engine configuration YAML file."""
    path = Path(path)
    config = parse_config(load_yaml_file(path), source=str(path))
    if config.mapping_document is not None and not config.mapping_document.is_absolute():
        # Relative mapping paths are resolved against the config file
        config = replace(config, mapping_document=path.parent / config.mapping_document)
    return config
