"""Init, run and final hooks for the oceanic inorganic iodine extension.

The host driver calls :func:`init_iodine` once per simulation, then
:func:`run_iodine` every timestep with the instance id it was handed, and
finally :func:`final_iodine` at teardown.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from ocean_iodine.config.schema import DEFAULT_EXTENSION_NAME, RuntimeConfig
from ocean_iodine.engine import EmissionEngine
from ocean_iodine.errors import ConfigurationError, IodineEmissionError, UpstreamError
from ocean_iodine.fields import REQUIRED_FIELDS
from ocean_iodine.host.base import (
    ExtensionSource,
    ExtState,
    FluxAccumulator,
    SpeciesResolver,
)

OPTION_EMIT_I2 = "Emit I2"
OPTION_EMIT_HOI = "Emit HOI"


def _resolve_species(
    species: SpeciesResolver, extensions: ExtensionSource, ext_nr: int
) -> tuple[list[int], list[str]]:
    try:
        ids, names = species.ext_species_ids(extensions, ext_nr)
    except IodineEmissionError:
        raise
    except Exception as exc:
        raise UpstreamError(
            f"Species resolution failed for extension {ext_nr}: {exc}",
            context={"ext_nr": ext_nr},
        ) from exc
    return [int(item) for item in ids], [str(item) for item in names]


def init_iodine(
    state: ExtState,
    extensions: ExtensionSource,
    species: SpeciesResolver,
    *,
    ext_name: str = DEFAULT_EXTENSION_NAME,
) -> int:
    """Create an iodine instance and return its id (0 if not enabled)."""
    logger = logging.getLogger("ocean_iodine.extension")
    ext_nr = extensions.ext_nr(ext_name)
    if ext_nr <= 0:
        logger.debug("Extension %s is not enabled; skipping init.", ext_name)
        return 0

    calc_i2 = extensions.option(ext_nr, OPTION_EMIT_I2)
    calc_hoi = extensions.option(ext_nr, OPTION_EMIT_HOI)
    min_len = int(calc_i2) + int(calc_hoi)

    ids, names = _resolve_species(species, extensions, ext_nr)
    if len(ids) < min_len:
        raise ConfigurationError(
            "Not enough iodine emission species set",
            context={"ext_nr": ext_nr, "required": min_len, "found": names},
        )

    # Positional: first listed species is HOI, second is I2.
    id_hoi = ids[0] if len(ids) > 0 else -1
    id_i2 = ids[1] if len(ids) > 1 else -1
    calc_hoi = calc_hoi and id_hoi > 0
    calc_i2 = calc_i2 and id_i2 > 0

    instance_id = state.registry.create(
        ext_nr,
        species_id_hoi=id_hoi,
        species_id_i2=id_i2,
        calc_hoi=calc_hoi,
        calc_i2=calc_i2,
    )
    state.instances[ext_name] = instance_id
    state.request_fields(REQUIRED_FIELDS)

    logger.info("Using extension: %s (HOI and I2 emissions)", ext_name)
    if calc_hoi:
        logger.debug("HOI: %s %d", names[0], id_hoi)
    if calc_i2:
        logger.debug("I2: %s %d", names[1], id_i2)
    return instance_id


def run_iodine(
    state: ExtState,
    instance_id: int,
    fields: Any,
    accumulator: FluxAccumulator,
    *,
    runtime: Optional[RuntimeConfig] = None,
    engine: Optional[EmissionEngine] = None,
) -> None:
    """Compute and submit fluxes for one timestep.

    Does nothing when ``instance_id <= 0``, the host convention for a
    disabled extension.
    """
    if instance_id <= 0:
        return
    instance = state.registry.get(instance_id)
    if engine is None:
        runtime = runtime or RuntimeConfig()
        engine = EmissionEngine(
            max_workers=runtime.max_workers,
            chunk_rows=runtime.chunk_rows,
        )
    engine.emit(instance, fields, accumulator)


def final_iodine(state: ExtState, instance_id: int) -> None:
    if not state.registry.remove(instance_id):
        logging.getLogger("ocean_iodine.extension").debug(
            "Instance %s already removed.", instance_id
        )
    # A reused legacy id may still resolve to an older shadowed instance.
    if instance_id in state.registry:
        return
    for name, value in list(state.instances.items()):
        if value == instance_id:
            del state.instances[name]


__all__ = [
    "OPTION_EMIT_I2",
    "OPTION_EMIT_HOI",
    "init_iodine",
    "run_iodine",
    "final_iodine",
]
