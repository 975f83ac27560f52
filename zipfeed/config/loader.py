"""Configuration loading helpers for zipfeed."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

import yaml

from .models import PipelineConfig

CONFIG_EXTENSIONS = (".yaml", ".yml", ".json")
PIPELINE_CONFIG_FILENAME = "pipeline.yaml"

# Environment variable -> (section, field) applied on top of the config file.
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "ZIPFEED_LISTING_URL": ("crawl", "listing_url"),
    "ZIPFEED_REDIS_HOST": ("redis", "host"),
    "ZIPFEED_REDIS_PORT": ("redis", "port"),
}


def _read_file(path: Path) -> dict:
    if path.suffix not in CONFIG_EXTENSIONS:
        raise ValueError(f"Unsupported configuration format: {path}")
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


def apply_env_overrides(payload: dict, environ: Mapping[str, str] | None = None) -> dict:
    """Return a copy of ``payload`` with ``ZIPFEED_*`` variables merged in."""

    environ = os.environ if environ is None else environ
    merged = {key: dict(value) if isinstance(value, dict) else value for key, value in payload.items()}
    for variable, (section, field) in ENV_OVERRIDES.items():
        value = environ.get(variable)
        if not value:
            continue
        merged.setdefault(section, {})
        merged[section][field] = value
    return merged


@dataclass(slots=True)
class ConfigLocator:
    """Resolve important paths from project root."""

    project_root: Path | None = None
    data_dir: Path | None = None
    scratch_dir: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get("ZIPFEED_HOME")
        if env_root:
            root = Path(env_root).expanduser().resolve()
        else:
            root = (self.project_root or Path.cwd()).resolve()
        self.project_root = root
        self.data_dir = (root / "data").resolve()
        self.scratch_dir = (self.data_dir / "scratch").resolve()
        self.logs_dir = (root / "logs").resolve()
        self.ensure_directories()

    def ensure_directories(self) -> None:
        for directory in (self.data_dir, self.scratch_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def pipeline_config_path(self) -> Path:
        return self.data_dir / PIPELINE_CONFIG_FILENAME


class ConfigRepository:
    """Repository encapsulating config IO and schema validation."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()

    def load_pipeline_config(
        self,
        path: Path | None = None,
        overrides: Mapping[str, object] | None = None,
    ) -> PipelineConfig:
        """Load, merge env/CLI overrides and validate the pipeline config.

        ``overrides`` uses dotted keys (``"crawl.listing_url"``, ``"workers"``)
        and wins over both the file and the environment. An explicit ``path``
        must exist; the default location may be absent when overrides supply
        the required fields.
        """

        target = path or self.locator.pipeline_config_path()
        if target.exists():
            payload = _read_file(target)
        elif path is not None:
            raise FileNotFoundError(f"Pipeline configuration not found: {path}")
        else:
            payload = {}
        payload = apply_env_overrides(payload)
        for dotted, value in (overrides or {}).items():
            if value is None:
                continue
            section, _, field = dotted.rpartition(".")
            if section:
                payload.setdefault(section, {})
                payload[section][field] = value
            else:
                payload[field] = value
        return PipelineConfig.model_validate(payload)

    def save_pipeline_config(self, config: PipelineConfig, path: Path | None = None) -> Path:
        target = path or self.locator.pipeline_config_path()
        _write_file(target, config.model_dump(mode="json", exclude_none=True))
        return target


__all__ = [
    "CONFIG_EXTENSIONS",
    "ConfigLocator",
    "ConfigRepository",
    "ENV_OVERRIDES",
    "apply_env_overrides",
]
