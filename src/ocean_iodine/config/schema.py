"""Structured config schema for OmegaConf and Hydra."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from hydra.core.config_store import ConfigStore

DEFAULT_EXTENSION_NAME = "Inorg_Iodine"


@dataclass
class RuntimeConfig:
    # None lets the thread pool pick its default worker count.
    max_workers: Optional[int] = None
    chunk_rows: int = 4
    id_policy: str = "legacy"
    log_level: str = "INFO"


@dataclass
class ExtensionConfig:
    number: int = -1
    enabled: bool = True
    # Order matters for iodine: the first species is HOI, the second I2.
    species: List[str] = field(default_factory=list)
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass
class AppConfig:
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    extensions: Dict[str, ExtensionConfig] = field(default_factory=dict)
    species: Dict[str, int] = field(default_factory=dict)


def register_configs() -> None:
    cs = ConfigStore.instance()
    cs.store(group="schema", name="base", node=AppConfig, package="_global_")


__all__ = [
    "DEFAULT_EXTENSION_NAME",
    "RuntimeConfig",
    "ExtensionConfig",
    "AppConfig",
    "register_configs",
]
