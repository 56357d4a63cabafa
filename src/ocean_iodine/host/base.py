"""Host collaborator interfaces and shared extension state."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from ocean_iodine.registry import InstanceRegistry


class FluxAccumulator(ABC):
    """Host mechanism that collects emission fluxes per species."""

    @abstractmethod
    def add_flux(self, flux: np.ndarray, species_id: int, *, ext_nr: int) -> None:
        """Add a (ny, nx) flux array in kg m-2 s-1 for ``species_id``."""


class SpeciesResolver(ABC):
    """Host species registry."""

    @abstractmethod
    def ext_species_ids(
        self, extensions: "ExtensionSource", ext_nr: int
    ) -> tuple[list[int], list[str]]:
        """Return ids and names of the species listed for an extension.

        Unknown species resolve to -1.
        """


class ExtensionSource(ABC):
    """Host extension configuration."""

    @abstractmethod
    def ext_nr(self, name: str) -> int:
        """Extension number, or -1 when absent or disabled."""

    @abstractmethod
    def option(self, ext_nr: int, name: str) -> bool:
        """Boolean extension option."""

    @abstractmethod
    def species(self, ext_nr: int) -> Sequence[str]:
        """Species names listed for the extension, in configuration order."""


@dataclass
class ExtState:
    """Per-simulation state shared between the host driver and extensions."""

    registry: InstanceRegistry = field(default_factory=InstanceRegistry)
    instances: dict[str, int] = field(default_factory=dict)
    requested_fields: set[str] = field(default_factory=set)

    def request_fields(self, names: Iterable[str]) -> None:
        self.requested_fields.update(names)

    def instance_id(self, ext_name: str) -> int:
        """Instance id for an extension, 0 when it is not active."""
        return self.instances.get(ext_name, 0)


__all__ = ["FluxAccumulator", "SpeciesResolver", "ExtensionSource", "ExtState"]
