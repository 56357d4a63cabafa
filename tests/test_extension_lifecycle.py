import logging

import numpy as np
import pytest

from ocean_iodine.config.schema import RuntimeConfig
from ocean_iodine.errors import ConfigurationError, InstanceNotFoundError, UpstreamError
from ocean_iodine.extension import final_iodine, init_iodine, run_iodine
from ocean_iodine.fields import REQUIRED_FIELDS, MetFields
from ocean_iodine.host.base import ExtState, SpeciesResolver
from ocean_iodine.host.memory import EmissionBuffer, ExtensionList, SpeciesTable


def _extensions(emit_i2=True, emit_hoi=True, species=("HOI", "I2"), enabled=True):
    return ExtensionList(
        {
            "Inorg_Iodine": {
                "number": 108,
                "enabled": enabled,
                "species": list(species),
                "options": {"Emit I2": emit_i2, "Emit HOI": emit_hoi},
            }
        }
    )


def _ocean_fields(shape=(3, 2)) -> MetFields:
    return MetFields(
        frland=np.zeros(shape),
        frlandic=np.zeros(shape),
        frocean=np.ones(shape),
        frseaice=np.zeros(shape),
        frlake=np.zeros(shape),
        tskin=np.full(shape, 293.0),
        u10m=np.full(shape, 4.0),
        v10m=np.full(shape, 1.0),
        o3=np.full(shape, 5.0e-8),
    )


def test_init_creates_instance_and_requests_fields(caplog) -> None:
    state = ExtState()
    species = SpeciesTable({"HOI": 7, "I2": 9})

    with caplog.at_level(logging.DEBUG, logger="ocean_iodine.extension"):
        instance_id = init_iodine(state, _extensions(), species)

    instance = state.registry.get(instance_id)
    assert instance_id == 1
    assert state.instance_id("Inorg_Iodine") == 1
    assert instance.ext_nr == 108
    assert (instance.species_id_hoi, instance.species_id_i2) == (7, 9)
    assert instance.calc_hoi and instance.calc_i2
    assert state.requested_fields == set(REQUIRED_FIELDS)
    messages = [record.getMessage() for record in caplog.records]
    assert "Using extension: Inorg_Iodine (HOI and I2 emissions)" in messages
    assert "HOI: HOI 7" in messages


def test_species_are_assigned_by_position() -> None:
    state = ExtState()
    species = SpeciesTable({"HOI": 7, "I2": 9})

    # Listed in the wrong order: positions win over names.
    instance_id = init_iodine(state, _extensions(species=("I2", "HOI")), species)

    instance = state.registry.get(instance_id)
    assert instance.species_id_hoi == 9
    assert instance.species_id_i2 == 7


def test_unresolved_species_downgrades_flag() -> None:
    state = ExtState()
    species = SpeciesTable({"HOI": 7})

    instance_id = init_iodine(state, _extensions(), species)

    instance = state.registry.get(instance_id)
    assert instance.calc_hoi is True
    assert instance.calc_i2 is False
    assert instance.species_id_i2 == -1


def test_too_few_species_is_configuration_error() -> None:
    state = ExtState()

    with pytest.raises(ConfigurationError) as exc:
        init_iodine(state, _extensions(species=("HOI",)), SpeciesTable({"HOI": 1}))

    assert "Not enough iodine emission species" in str(exc.value)
    assert len(state.registry) == 0
    assert not state.requested_fields


def test_single_flag_needs_single_species() -> None:
    state = ExtState()
    extensions = _extensions(emit_i2=False, species=("HOI",))

    instance_id = init_iodine(state, extensions, SpeciesTable({"HOI": 1}))

    instance = state.registry.get(instance_id)
    assert instance.calc_hoi is True
    assert instance.calc_i2 is False


def test_disabled_extension_is_not_initialised() -> None:
    state = ExtState()

    instance_id = init_iodine(state, _extensions(enabled=False), SpeciesTable({}))

    assert instance_id == 0
    assert len(state.registry) == 0


def test_missing_option_is_configuration_error() -> None:
    extensions = ExtensionList(
        {"Inorg_Iodine": {"number": 3, "species": ["HOI", "I2"], "options": {}}}
    )

    with pytest.raises(ConfigurationError) as exc:
        init_iodine(ExtState(), extensions, SpeciesTable({"HOI": 1, "I2": 2}))

    assert "Emit I2" in str(exc.value)


def test_species_resolver_failure_is_upstream_error() -> None:
    class BrokenResolver(SpeciesResolver):
        def ext_species_ids(self, extensions, ext_nr):
            raise RuntimeError("species database offline")

    with pytest.raises(UpstreamError) as exc:
        init_iodine(ExtState(), _extensions(), BrokenResolver())

    assert "species database offline" in str(exc.value)


def test_run_submits_fluxes_to_accumulator() -> None:
    state = ExtState()
    instance_id = init_iodine(state, _extensions(), SpeciesTable({"HOI": 1, "I2": 2}))
    fields = _ocean_fields()
    buffer = EmissionBuffer(fields.shape)

    runtime = RuntimeConfig(max_workers=2, chunk_rows=1)

    result = run_iodine(state, instance_id, fields, buffer, runtime=runtime)

    assert result is None
    assert (buffer.get(1) > 0.0).all()
    assert (buffer.get(2) > 0.0).all()
    assert buffer.species_ids() == [1, 2]


def test_run_with_non_positive_id_is_noop() -> None:
    buffer = EmissionBuffer((3, 2))

    run_iodine(ExtState(), 0, _ocean_fields(), buffer)

    assert buffer.species_ids() == []


def test_run_unknown_instance_is_fatal() -> None:
    with pytest.raises(InstanceNotFoundError):
        run_iodine(ExtState(), 4, _ocean_fields(), EmissionBuffer((3, 2)))


def test_final_removes_instance_and_tolerates_repeats() -> None:
    state = ExtState()
    instance_id = init_iodine(state, _extensions(), SpeciesTable({"HOI": 1, "I2": 2}))

    final_iodine(state, instance_id)
    final_iodine(state, instance_id)

    assert instance_id not in state.registry
    assert state.instance_id("Inorg_Iodine") == 0
    with pytest.raises(InstanceNotFoundError):
        run_iodine(state, instance_id, _ocean_fields(), EmissionBuffer((3, 2)))


def test_instances_are_independent() -> None:
    state = ExtState()
    species = SpeciesTable({"HOI": 1, "I2": 2})
    first = init_iodine(state, _extensions(emit_hoi=False), species)
    second = init_iodine(state, _extensions(emit_i2=False), species)
    fields = _ocean_fields()
    buffer = EmissionBuffer(fields.shape)

    run_iodine(state, first, fields, buffer)

    assert (first, second) == (1, 2)
    assert buffer.species_ids() == [2]


def test_final_on_reused_id_keeps_shadowed_mapping() -> None:
    state = ExtState()
    for ext_nr in (10, 20, 30):
        state.registry.create(ext_nr)
    state.instances["Older"] = 3
    state.registry.remove(2)
    assert state.registry.create(40) == 3
    state.instances["Newer"] = 3

    final_iodine(state, 3)

    assert state.registry.get(3).ext_nr == 30
    assert state.instance_id("Older") == 3
    assert state.instance_id("Newer") == 3

    final_iodine(state, 3)

    assert 3 not in state.registry
    assert state.instance_id("Older") == 0
    assert state.instance_id("Newer") == 0
