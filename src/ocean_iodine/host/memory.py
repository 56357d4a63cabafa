"""In-memory host collaborators for standalone runs and tests."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Optional

import numpy as np
import xarray as xr

from ocean_iodine.errors import ConfigurationError
from ocean_iodine.host.base import ExtensionSource, FluxAccumulator, SpeciesResolver

_TRUE_TOKENS = {"true", "t", "yes", "y", "on", "1"}
_FALSE_TOKENS = {"false", "f", "no", "n", "off", "0"}


def _as_bool(value: Any, label: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        token = value.strip().lower()
        if token in _TRUE_TOKENS:
            return True
        if token in _FALSE_TOKENS:
            return False
    raise ConfigurationError(
        f"{label} must be a boolean, got {value!r}.",
        context={"option": label, "value": value},
    )


def _as_mapping(value: Any, label: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"{label} must be a mapping, got {type(value)!r}.")
    return value


class ExtensionList(ExtensionSource):
    """Extension table keyed by name, as found in the ``extensions`` config."""

    def __init__(self, extensions: Mapping[str, Any]) -> None:
        self._by_name: dict[str, dict[str, Any]] = {}
        self._by_nr: dict[int, dict[str, Any]] = {}
        for name, raw in _as_mapping(extensions, "extensions").items():
            entry = _as_mapping(raw, f"extensions.{name}")
            try:
                number = int(entry.get("number", -1))
            except (TypeError, ValueError) as exc:
                raise ConfigurationError(
                    f"extensions.{name}.number must be an int."
                ) from exc
            species = entry.get("species") or []
            if isinstance(species, str) or not isinstance(species, Sequence):
                raise ConfigurationError(
                    f"extensions.{name}.species must be a list of names."
                )
            record = {
                "name": name,
                "number": number,
                "enabled": _as_bool(entry.get("enabled", True), f"{name}.enabled"),
                "species": [str(item) for item in species],
                "options": dict(_as_mapping(entry.get("options"), f"{name}.options")),
            }
            if number > 0 and number in self._by_nr:
                other = self._by_nr[number]["name"]
                raise ConfigurationError(
                    f"Extension number {number} is used by both {other!r} and {name!r}."
                )
            self._by_name[name] = record
            if number > 0:
                self._by_nr[number] = record

    @classmethod
    def from_config(cls, cfg: Mapping[str, Any]) -> "ExtensionList":
        return cls(_as_mapping(cfg.get("extensions"), "extensions"))

    def _entry(self, ext_nr: int) -> dict[str, Any]:
        entry = self._by_nr.get(ext_nr)
        if entry is None:
            raise ConfigurationError(
                f"Extension number {ext_nr} is not configured.",
                context={"ext_nr": ext_nr},
            )
        return entry

    def ext_nr(self, name: str) -> int:
        entry = self._by_name.get(name)
        if entry is None or not entry["enabled"] or entry["number"] <= 0:
            return -1
        return entry["number"]

    def option(self, ext_nr: int, name: str) -> bool:
        entry = self._entry(ext_nr)
        options = entry["options"]
        if name not in options:
            raise ConfigurationError(
                f"Option {name!r} not found for extension {entry['name']!r}.",
                context={"extension": entry["name"], "option": name},
            )
        return _as_bool(options[name], name)

    def species(self, ext_nr: int) -> list[str]:
        return list(self._entry(ext_nr)["species"])


class SpeciesTable(SpeciesResolver):
    """Species name to positive integer id."""

    def __init__(self, species: Mapping[str, Any]) -> None:
        self._ids: dict[str, int] = {}
        for name, value in _as_mapping(species, "species").items():
            try:
                self._ids[str(name)] = int(value)
            except (TypeError, ValueError) as exc:
                raise ConfigurationError(
                    f"species.{name} must be an int id, got {value!r}."
                ) from exc

    @classmethod
    def from_names(cls, names: Sequence[str]) -> "SpeciesTable":
        return cls({name: index + 1 for index, name in enumerate(names)})

    def get_id(self, name: str) -> int:
        return self._ids.get(name, -1)

    def name_of(self, species_id: int) -> Optional[str]:
        for name, value in self._ids.items():
            if value == species_id:
                return name
        return None

    def ext_species_ids(
        self, extensions: ExtensionSource, ext_nr: int
    ) -> tuple[list[int], list[str]]:
        names = list(extensions.species(ext_nr))
        return [self.get_id(name) for name in names], names


class EmissionBuffer(FluxAccumulator):
    """Sums fluxes per species and keeps per-extension contributions."""

    def __init__(self, shape: Sequence[int]) -> None:
        self.shape = tuple(int(item) for item in shape)
        self._totals: dict[int, np.ndarray] = {}
        self._by_ext: dict[tuple[int, int], np.ndarray] = {}

    def add_flux(self, flux: np.ndarray, species_id: int, *, ext_nr: int) -> None:
        if species_id <= 0:
            raise ValueError(f"species_id must be positive, got {species_id}.")
        array = np.asarray(flux, dtype=np.float64)
        if array.shape != self.shape:
            raise ValueError(
                f"Flux shape {array.shape} does not match buffer shape {self.shape}."
            )
        total = self._totals.setdefault(species_id, np.zeros(self.shape))
        total += array
        key = (ext_nr, species_id)
        contrib = self._by_ext.setdefault(key, np.zeros(self.shape))
        contrib += array

    def species_ids(self) -> list[int]:
        return sorted(self._totals)

    def get(self, species_id: int, *, ext_nr: Optional[int] = None) -> np.ndarray:
        if ext_nr is None:
            source = self._totals.get(species_id)
        else:
            source = self._by_ext.get((ext_nr, species_id))
        if source is None:
            return np.zeros(self.shape)
        return source.copy()

    def reset(self) -> None:
        self._totals.clear()
        self._by_ext.clear()

    def to_dataset(self, species: Optional[SpeciesTable] = None) -> xr.Dataset:
        data_vars = {}
        for species_id in self.species_ids():
            name = species.name_of(species_id) if species is not None else None
            label = f"emis_{name or species_id}"
            data_vars[label] = xr.DataArray(
                self._totals[species_id],
                dims=("y", "x"),
                attrs={"units": "kg m-2 s-1", "species_id": species_id},
            )
        return xr.Dataset(data_vars)


__all__ = ["ExtensionList", "SpeciesTable", "EmissionBuffer"]
