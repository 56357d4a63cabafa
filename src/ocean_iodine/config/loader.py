"""Load and validate YAML configuration against the structured schema."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Optional, Union

from hydra import compose, initialize_config_dir
from hydra.core.global_hydra import GlobalHydra
from hydra.errors import HydraException
from omegaconf import DictConfig, OmegaConf
from omegaconf.errors import OmegaConfBaseException
import yaml

from ocean_iodine.config.schema import AppConfig, register_configs
from ocean_iodine.errors import ConfigurationError

DEFAULT_CONFIG_NAME = "default"


def read_yaml_payload(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle)


def merge_config(payload: Any) -> DictConfig:
    """Merge a raw mapping over :class:`AppConfig` defaults."""
    if payload is None:
        payload = {}
    if isinstance(payload, DictConfig):
        payload = OmegaConf.to_container(payload, resolve=True)
    if not isinstance(payload, Mapping):
        raise ConfigurationError(
            f"Config must be a mapping, got {type(payload).__name__}."
        )
    base = OmegaConf.structured(AppConfig)
    try:
        merged = OmegaConf.merge(base, dict(payload))
    except OmegaConfBaseException as exc:
        raise ConfigurationError(f"Invalid config: {exc}") from exc
    return merged


def load_config(source: Union[str, Path, Mapping[str, Any]]) -> DictConfig:
    if isinstance(source, Mapping):
        return merge_config(source)
    path = Path(source)
    if not path.exists():
        raise ConfigurationError(f"Config not found: {path}")
    try:
        payload = read_yaml_payload(path)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Failed to load config from {path}: {exc}") from exc
    return merge_config(payload)


def compose_config(
    config_dir: Union[str, Path],
    *,
    config_name: str = DEFAULT_CONFIG_NAME,
    overrides: Optional[Sequence[str]] = None,
) -> DictConfig:
    """Compose ``config_name`` from a Hydra config directory and validate it.

    Overrides use Hydra syntax, e.g. ``runtime.chunk_rows=2``.
    """
    register_configs()
    config_dir = Path(config_dir)
    if not config_dir.is_absolute():
        config_dir = (Path.cwd() / config_dir).resolve()
    if not config_dir.exists():
        raise ConfigurationError(f"Config directory not found: {config_dir}")
    if config_name.endswith((".yaml", ".yml")):
        config_name = Path(config_name).stem
    if GlobalHydra.instance().is_initialized():
        GlobalHydra.instance().clear()
    try:
        with initialize_config_dir(config_dir=str(config_dir), version_base=None):
            cfg = compose(config_name=config_name, overrides=list(overrides or []))
    except (HydraException, OmegaConfBaseException) as exc:
        raise ConfigurationError(
            f"Failed to compose config {config_name!r} from {config_dir}: {exc}"
        ) from exc
    return merge_config(cfg)


def to_container(cfg: DictConfig) -> dict[str, Any]:
    return OmegaConf.to_container(cfg, resolve=True)  # type: ignore[return-value]


__all__ = [
    "DEFAULT_CONFIG_NAME",
    "read_yaml_payload",
    "merge_config",
    "load_config",
    "compose_config",
    "to_container",
]
