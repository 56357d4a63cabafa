"""Host collaborator interfaces and in-memory implementations."""

from ocean_iodine.host.base import (
    ExtensionSource,
    ExtState,
    FluxAccumulator,
    SpeciesResolver,
)
from ocean_iodine.host.memory import EmissionBuffer, ExtensionList, SpeciesTable

__all__ = [
    "ExtensionSource",
    "ExtState",
    "FluxAccumulator",
    "SpeciesResolver",
    "EmissionBuffer",
    "ExtensionList",
    "SpeciesTable",
]
