"""Meteorological field snapshots consumed by the emission engine."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields as dataclass_fields
from typing import Any, Optional

import numpy as np

from ocean_iodine.errors import UpstreamError

# Fields the extension asks the host pipeline to populate before any run.
REQUIRED_FIELDS = (
    "frland",
    "frlandic",
    "frocean",
    "frseaice",
    "frlake",
    "tskin",
    "u10m",
    "v10m",
    "o3",
    "air",
)

# Subset actually read by the flux calculation.
COMPUTE_FIELDS = REQUIRED_FIELDS[:-1]


def _as_grid(value: Any, label: str) -> np.ndarray:
    try:
        array = np.asarray(value, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise UpstreamError(
            f"Field {label!r} is not numeric.", context={"field": label}
        ) from exc
    return array


@dataclass(frozen=True)
class MetFields:
    """Read-only snapshot of the gridded inputs for one timestep.

    Every 2-D array has shape ``(ny, nx)``. ``o3`` may also be 3-D with the
    surface level first; only that level is used.
    """

    frland: np.ndarray
    frlandic: np.ndarray
    frocean: np.ndarray
    frseaice: np.ndarray
    frlake: np.ndarray
    tskin: np.ndarray
    u10m: np.ndarray
    v10m: np.ndarray
    o3: np.ndarray
    air: Optional[np.ndarray] = None
    area_m2: Optional[np.ndarray] = None

    def __post_init__(self) -> None:
        for item in dataclass_fields(self):
            value = getattr(self, item.name)
            if value is None:
                continue
            array = _as_grid(value, item.name)
            if item.name == "o3" and array.ndim == 3:
                array = array[0]
            object.__setattr__(self, item.name, array)
        shape = self.shape
        if len(shape) != 2:
            raise UpstreamError(
                f"Fields must be 2-D (ny, nx); got shape {shape}.",
                context={"shape": shape},
            )
        for item in dataclass_fields(self):
            value = getattr(self, item.name)
            if item.name == "air" or value is None:
                continue
            if value.shape != shape:
                raise UpstreamError(
                    f"Field {item.name!r} has shape {value.shape}; expected {shape}.",
                    context={"field": item.name, "shape": value.shape},
                )

    @property
    def shape(self) -> tuple[int, ...]:
        return tuple(self.frland.shape)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "MetFields":
        """Build from any mapping of arrays, e.g. an ``xarray.Dataset``."""
        missing = [name for name in COMPUTE_FIELDS if name not in data]
        if missing:
            raise UpstreamError(
                f"Missing required fields: {missing}.",
                context={"missing": missing},
            )
        values = {name: data[name] for name in COMPUTE_FIELDS}
        for name in ("air", "area_m2"):
            if name in data:
                values[name] = data[name]
        return cls(**values)


def coerce_fields(fields: Any) -> MetFields:
    if isinstance(fields, MetFields):
        return fields
    if isinstance(fields, Mapping):
        return MetFields.from_mapping(fields)
    raise UpstreamError(
        f"Unsupported field snapshot type: {type(fields)!r}.",
        context={"type": type(fields).__name__},
    )


__all__ = [
    "REQUIRED_FIELDS",
    "COMPUTE_FIELDS",
    "MetFields",
    "coerce_fields",
]
