import logging

import pytest

from ocean_iodine.errors import InstanceNotFoundError
from ocean_iodine.registry import InstanceRegistry


def test_create_get_remove_roundtrip() -> None:
    registry = InstanceRegistry()

    instance_id = registry.create(108)

    assert registry.get(instance_id).ext_nr == 108
    assert instance_id in registry
    assert registry.remove(instance_id) is True
    with pytest.raises(InstanceNotFoundError):
        registry.get(instance_id)
    assert instance_id not in registry


def test_create_stores_settings_immutably() -> None:
    registry = InstanceRegistry()
    instance_id = registry.create(
        7, species_id_hoi=3, species_id_i2=4, calc_hoi=True, calc_i2=False
    )
    instance = registry.get(instance_id)

    assert instance.species_id_hoi == 3
    assert instance.species_id_i2 == 4
    assert instance.calc_hoi is True
    assert instance.calc_i2 is False
    with pytest.raises(AttributeError):
        instance.calc_i2 = True  # type: ignore[misc]


def test_sequential_ids_start_at_one() -> None:
    registry = InstanceRegistry()

    ids = [registry.create(1) for _ in range(3)]

    assert ids == [1, 2, 3]
    assert len(registry) == 3
    assert registry.ids() == [3, 2, 1]


def test_legacy_policy_reuses_ids_after_removal(caplog) -> None:
    registry = InstanceRegistry()
    for ext_nr in (10, 20, 30):
        registry.create(ext_nr)

    registry.remove(2)
    with caplog.at_level(logging.WARNING, logger="ocean_iodine.registry"):
        reused = registry.create(40)

    # Count-based ids: two live instances, so the next id is 3 again.
    assert reused == 3
    assert registry.get(3).ext_nr == 40
    assert any("reused" in record.getMessage() for record in caplog.records)

    # Removing the newest id 3 uncovers the older instance with the same id.
    assert registry.remove(3) is True
    assert registry.get(3).ext_nr == 30
    assert registry.get(1).ext_nr == 10


def test_monotonic_policy_never_repeats_ids() -> None:
    registry = InstanceRegistry(id_policy="monotonic")
    for ext_nr in (10, 20, 30):
        registry.create(ext_nr)

    registry.remove(2)
    new_id = registry.create(40)

    assert new_id == 4
    assert [item.ext_nr for item in registry.instances()] == [40, 30, 10]


def test_remove_missing_is_benign() -> None:
    registry = InstanceRegistry()
    registry.create(1)

    assert registry.remove(99) is False
    assert len(registry) == 1


def test_unknown_id_error_is_clear() -> None:
    registry = InstanceRegistry()
    registry.create(5)

    with pytest.raises(InstanceNotFoundError) as exc:
        registry.get(42)

    message = str(exc.value)
    assert "not registered" in message
    assert "42" in message
    assert exc.value.context == {"instance_id": 42}


def test_unknown_policy_rejected() -> None:
    with pytest.raises(ValueError) as exc:
        InstanceRegistry(id_policy="random")

    assert "Unknown id policy" in str(exc.value)
