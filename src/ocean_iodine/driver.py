"""Minimal host driver wiring config, collaborators and the iodine hooks."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
import logging
from pathlib import Path
from typing import Any, Optional, Union

from omegaconf import DictConfig

from ocean_iodine.config.loader import (
    DEFAULT_CONFIG_NAME,
    compose_config,
    load_config,
    to_container,
)
from ocean_iodine.config.schema import DEFAULT_EXTENSION_NAME, RuntimeConfig
from ocean_iodine.engine import EmissionEngine
from ocean_iodine.extension import final_iodine, init_iodine, run_iodine
from ocean_iodine.fields import coerce_fields
from ocean_iodine.host.base import ExtState, FluxAccumulator
from ocean_iodine.host.memory import EmissionBuffer, ExtensionList, SpeciesTable
from ocean_iodine.logging_utils import configure_logging, run_with_error_handling
from ocean_iodine.registry import InstanceRegistry


class EmissionDriver:
    """Run the iodine extension over a sequence of field snapshots.

    ``start`` creates the instance, ``step`` runs one timestep, ``close``
    removes the instance. Errors are logged and re-raised. Pass
    ``setup_logging=True`` from a top-level script to apply
    ``runtime.log_level`` to the package logger.
    """

    def __init__(
        self,
        cfg: Union[str, Path, Mapping[str, Any]],
        *,
        accumulator: Optional[FluxAccumulator] = None,
        ext_name: str = DEFAULT_EXTENSION_NAME,
        logger: Optional[logging.Logger] = None,
        setup_logging: bool = False,
    ) -> None:
        self.cfg = cfg if isinstance(cfg, DictConfig) else load_config(cfg)
        container = to_container(self.cfg)
        self.runtime = RuntimeConfig(**container["runtime"])
        self.extensions = ExtensionList.from_config(container)
        self.species = SpeciesTable(container["species"])
        self.state = ExtState(
            registry=InstanceRegistry(id_policy=self.runtime.id_policy)
        )
        self.engine = EmissionEngine(
            max_workers=self.runtime.max_workers,
            chunk_rows=self.runtime.chunk_rows,
        )
        self.accumulator = accumulator
        self.ext_name = ext_name
        self.instance_id = 0
        self.steps = 0
        if setup_logging:
            configure_logging(self.runtime.log_level)
        self.logger = logger or logging.getLogger("ocean_iodine.driver")

    @classmethod
    def from_config_dir(
        cls,
        config_dir: Union[str, Path],
        *,
        config_name: str = DEFAULT_CONFIG_NAME,
        overrides: Optional[Sequence[str]] = None,
        **kwargs: Any,
    ) -> "EmissionDriver":
        """Build a driver from a Hydra-composed config directory."""
        cfg = compose_config(config_dir, config_name=config_name, overrides=overrides)
        return cls(cfg, **kwargs)

    def start(self) -> int:
        self.instance_id = run_with_error_handling(
            init_iodine,
            self.state,
            self.extensions,
            self.species,
            ext_name=self.ext_name,
            logger=self.logger,
        )
        return self.instance_id

    def step(self, fields: Any) -> None:
        snapshot = run_with_error_handling(coerce_fields, fields, logger=self.logger)
        if self.accumulator is None:
            self.accumulator = EmissionBuffer(snapshot.shape)
        run_with_error_handling(
            run_iodine,
            self.state,
            self.instance_id,
            snapshot,
            self.accumulator,
            engine=self.engine,
            logger=self.logger,
        )
        self.steps += 1

    def close(self) -> None:
        if self.instance_id > 0:
            final_iodine(self.state, self.instance_id)
            self.logger.debug(
                "Closed %s after %d steps.", self.ext_name, self.steps
            )
        self.instance_id = 0

    def __enter__(self) -> "EmissionDriver":
        self.start()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


__all__ = ["EmissionDriver"]
