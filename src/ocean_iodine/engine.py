"""Oceanic HOI and I2 emission fluxes.

The I2 and HOI fluxes follow the Carpenter et al. (2013) parameterisation
(nmol m-2 d-1, converted here to kg m-2 s-1), driven by surface ozone, 10 m
wind speed and a sea-surface iodide concentration parameterised from skin
temperature (MacDonald et al., 2014).

References:
    Carpenter et al. 2013, https://doi.org/10.1038/ngeo1687
    MacDonald et al. 2014, https://doi.org/10.5194/acp-14-5841-2014
    Sherwen et al. 2016, https://doi.org/10.5194/acp-16-1161-2016
"""

from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
import logging
from typing import Any, Optional

import numpy as np

from ocean_iodine.errors import IodineEmissionError, UpstreamError
from ocean_iodine.fields import MetFields, coerce_fields
from ocean_iodine.host.base import FluxAccumulator
from ocean_iodine.landtype import SurfaceType, classify_surface
from ocean_iodine.registry import Instance

AIR_MOLAR_MASS = 28.97  # g/mol
O3_MOLAR_MASS = 48.0  # g/mol
MWT_I2 = 2.54e-1  # kg/mol
MWT_HOI = 1.44e-1  # kg/mol
MIN_WIND_SPEED = 5.0  # m/s
SECONDS_PER_DAY = 86400.0
DEFAULT_CHUNK_ROWS = 4

Classifier = Callable[..., np.ndarray]


@dataclass(frozen=True)
class IodineFluxes:
    """HOI and I2 emission fluxes in kg m-2 s-1, shape (ny, nx)."""

    hoi: np.ndarray
    i2: np.ndarray

    def total_rate(self, area_m2: np.ndarray) -> dict[str, float]:
        """Domain-integrated emission rate per species in kg s-1."""
        area = np.asarray(area_m2, dtype=np.float64)
        return {
            "HOI": float(np.sum(self.hoi * area)),
            "I2": float(np.sum(self.i2 * area)),
        }


def surface_wind_speed(u10m: np.ndarray, v10m: np.ndarray) -> np.ndarray:
    # Calm winds are floored at MIN_WIND_SPEED.
    return np.maximum(MIN_WIND_SPEED, np.sqrt(u10m * u10m + v10m * v10m))


def seawater_iodide(tskin: np.ndarray) -> np.ndarray:
    """Sea-surface iodide concentration from skin temperature in K."""
    return 1.46e6 * np.exp(-9134.0 / tskin)


def ozone_nmol_mol(
    o3_mmr: np.ndarray, air_molar_mass: float = AIR_MOLAR_MASS
) -> np.ndarray:
    """Convert ozone mass mixing ratio (kg/kg) to nmol/mol."""
    return o3_mmr * (air_molar_mass / O3_MOLAR_MASS) * 1.0e9


def i2_flux(o3: np.ndarray, iodide: np.ndarray, wind: np.ndarray) -> np.ndarray:
    flux = (
        o3
        * np.power(iodide, 1.3)
        * (1.74e9 - 6.54e8 * np.log(wind))
        / SECONDS_PER_DAY
        / 1.0e9
        * MWT_I2
    )
    # Negative above the parameterisation's wind-speed range.
    return np.maximum(flux, 0.0)


def hoi_flux(o3: np.ndarray, iodide: np.ndarray, wind: np.ndarray) -> np.ndarray:
    root_iodide = np.sqrt(iodide)
    flux = (
        o3
        * (4.15e5 * (root_iodide / wind) - 20.6 / wind - 2.36e4 * root_iodide)
        / SECONDS_PER_DAY
        / 1.0e9
        * MWT_HOI
    )
    return np.maximum(flux, 0.0)


def _row_chunks(ny: int, chunk_rows: int) -> list[range]:
    return [
        range(start, min(start + chunk_rows, ny))
        for start in range(0, ny, chunk_rows)
    ]


def _chunk_fluxes(
    rows: range,
    fields: MetFields,
    instance: Instance,
    classify: Classifier,
    air_molar_mass: float,
) -> tuple[np.ndarray, np.ndarray]:
    block = slice(rows.start, rows.stop)
    nx = fields.shape[1]
    hoi = np.zeros((len(rows), nx))
    i2 = np.zeros((len(rows), nx))

    codes = np.asarray(
        classify(
            fields.frland[block],
            fields.frlandic[block],
            fields.frocean[block],
            fields.frseaice[block],
            fields.frlake[block],
        )
    )
    ocean = codes == SurfaceType.WATER
    if not ocean.any():
        return hoi, i2

    wind = surface_wind_speed(fields.u10m[block][ocean], fields.v10m[block][ocean])
    iodide = seawater_iodide(fields.tskin[block][ocean])
    o3 = ozone_nmol_mol(fields.o3[block][ocean], air_molar_mass)

    if instance.calc_i2:
        i2[ocean] = i2_flux(o3, iodide, wind)
    if instance.calc_hoi:
        hoi[ocean] = hoi_flux(o3, iodide, wind)
    return hoi, i2


class EmissionEngine:
    """Grid-parallel flux calculation for one iodine instance."""

    def __init__(
        self,
        *,
        max_workers: Optional[int] = None,
        chunk_rows: int = DEFAULT_CHUNK_ROWS,
        classify: Classifier = classify_surface,
        air_molar_mass: float = AIR_MOLAR_MASS,
    ) -> None:
        if max_workers is not None and max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}.")
        if chunk_rows < 1:
            raise ValueError(f"chunk_rows must be >= 1, got {chunk_rows}.")
        self.max_workers = max_workers
        self.chunk_rows = chunk_rows
        self.classify = classify
        self.air_molar_mass = air_molar_mass

    def compute(self, instance: Instance, fields: Any) -> IodineFluxes:
        snapshot = coerce_fields(fields)
        ny, nx = snapshot.shape
        chunks = _row_chunks(ny, self.chunk_rows)

        def worker(rows: range) -> tuple[np.ndarray, np.ndarray]:
            return _chunk_fluxes(
                rows, snapshot, instance, self.classify, self.air_molar_mass
            )

        if self.max_workers == 1 or len(chunks) <= 1:
            blocks = [worker(rows) for rows in chunks]
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                blocks = list(executor.map(worker, chunks))

        if not blocks:
            empty = np.zeros((ny, nx))
            return IodineFluxes(hoi=empty, i2=empty.copy())
        hoi = np.concatenate([block[0] for block in blocks], axis=0)
        i2 = np.concatenate([block[1] for block in blocks], axis=0)
        return IodineFluxes(hoi=hoi, i2=i2)

    def emit(
        self,
        instance: Instance,
        fields: Any,
        accumulator: FluxAccumulator,
    ) -> IodineFluxes:
        """Compute fluxes and add them to the host accumulator, HOI first."""
        logger = logging.getLogger("ocean_iodine.engine")
        snapshot = coerce_fields(fields)
        fluxes = self.compute(instance, snapshot)

        submissions = (
            ("HOI", instance.calc_hoi, instance.species_id_hoi, fluxes.hoi),
            ("I2", instance.calc_i2, instance.species_id_i2, fluxes.i2),
        )
        for label, enabled, species_id, flux in submissions:
            if not enabled:
                continue
            try:
                accumulator.add_flux(flux, species_id, ext_nr=instance.ext_nr)
            except IodineEmissionError:
                raise
            except Exception as exc:
                raise UpstreamError(
                    f"Flux accumulation failed for {label}: {exc}",
                    context={
                        "species": label,
                        "species_id": species_id,
                        "instance_id": instance.instance_id,
                        "ext_nr": instance.ext_nr,
                    },
                ) from exc

        if snapshot.area_m2 is not None and logger.isEnabledFor(logging.DEBUG):
            totals = fluxes.total_rate(snapshot.area_m2)
            logger.debug(
                "Instance %d emitted HOI %.4e kg/s, I2 %.4e kg/s.",
                instance.instance_id,
                totals["HOI"],
                totals["I2"],
            )
        return fluxes


__all__ = [
    "AIR_MOLAR_MASS",
    "O3_MOLAR_MASS",
    "MWT_I2",
    "MWT_HOI",
    "MIN_WIND_SPEED",
    "SECONDS_PER_DAY",
    "DEFAULT_CHUNK_ROWS",
    "IodineFluxes",
    "EmissionEngine",
    "surface_wind_speed",
    "seawater_iodide",
    "ozone_nmol_mol",
    "i2_flux",
    "hoi_flux",
]
