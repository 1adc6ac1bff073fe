# src/alchemist/dataloader/config_loader.py
from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from alchemist.errors import ConfigError
from alchemist.schemas.models import Config

_INPUT_KEYS = ("clients_csv", "workers_csv", "tasks_csv")


class ConfigLoader:
    """
    @brief
    Reads config.yaml and turns it into a validated Config.

    @details
    Every failure (missing file, wrong extension, YAML syntax, non-mapping
    root, schema mismatch) surfaces as a ConfigError with a suggested action.
    Relative input paths are resolved against the directory holding the
    configuration file, so a config can be used from any working directory.
    """

    def load(self, path: Path | str) -> Config:
        """
        @brief
        Load, validate and resolve a configuration file.

        @params
            path : Path | str
                Location of the .yaml / .yml file.

        @returns
            Validated Config with input paths made absolute.

        @raises
            ConfigError
        """
        path = Path(path)

        # (1) Parse the YAML document
        data = self._read_yaml(path)

        # (2) Schema validation
        cfg = self._validate(data, source=str(path))

        # (3) Anchor relative input paths at the config location
        return self._resolve_inputs(cfg, path.resolve().parent)

    def _read_yaml(self, path: Path) -> dict[str, Any]:
        """Strict YAML read: file must exist, be .yaml/.yml, parse, and hold a mapping."""
        if not path.is_file():
            raise ConfigError(
                message=f"Configuration file not found: {path}",
                source="ConfigLoader._read_yaml",
                suggested_action="Pass --config pointing to an existing config.yaml.",
            )

        if path.suffix.lower() not in {".yaml", ".yml"}:
            raise ConfigError(
                message=f"Unsupported configuration extension: {path.suffix or '<none>'}",
                source="ConfigLoader._read_yaml",
                suggested_action="Rename the configuration file to .yaml or .yml.",
            )

        try:
            with path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(
                message=f"YAML parsing failed: {e}",
                source="ConfigLoader._read_yaml",
                suggested_action="Fix YAML syntax or indentation near the reported line.",
            ) from e
        except OSError as e:
            raise ConfigError(
                message=f"Unable to read configuration file: {e}",
                source="ConfigLoader._read_yaml",
                suggested_action="Check file permissions.",
            ) from e

        if data is None:
            raise ConfigError(
                message="Configuration file is empty.",
                source="ConfigLoader._read_yaml",
                suggested_action="Add at least the input CSV locations to config.yaml.",
            )
        if not isinstance(data, Mapping):
            raise ConfigError(
                message=f"Configuration root must be a mapping, got {type(data).__name__}.",
                source="ConfigLoader._read_yaml",
                suggested_action="Use key: value pairs at the top level of config.yaml.",
            )
        return dict(data)

    def _validate(self, data: Mapping[str, Any], source: str = "<mapping>") -> Config:
        try:
            return Config.model_validate(dict(data))
        except ValidationError as e:
            raise ConfigError(
                message=f"Invalid configuration in {source}: {e}",
                source="ConfigLoader._validate",
                suggested_action=(
                    "Check field names and types; unknown keys are rejected. "
                    "validation.skill_matching must be exact|substring, "
                    "validation.phase_overflow must be clip|allow."
                ),
            ) from e

    @staticmethod
    def _resolve_inputs(cfg: Config, base: Path) -> Config:
        updates: dict[str, str] = {}
        for key in _INPUT_KEYS:
            value = getattr(cfg, key)
            if value and not Path(value).is_absolute():
                updates[key] = str(base / value)
        return cfg.model_copy(update=updates) if updates else cfg


__all__ = ["ConfigLoader"]
