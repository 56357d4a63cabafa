"""Registry of live iodine extension instances keyed by integer id."""

from __future__ import annotations

from dataclasses import dataclass
import logging

from ocean_iodine.errors import InstanceNotFoundError

ID_POLICIES = ("legacy", "monotonic")


@dataclass(frozen=True)
class Instance:
    """One fully configured copy of the iodine extension."""

    instance_id: int
    ext_nr: int
    species_id_hoi: int = -1
    species_id_i2: int = -1
    calc_hoi: bool = False
    calc_i2: bool = False


def _validate_policy(value: str) -> str:
    if value not in ID_POLICIES:
        options = ", ".join(ID_POLICIES)
        raise ValueError(f"Unknown id policy: {value!r}. Available: {options}.")
    return value


class InstanceRegistry:
    """Owning map from instance id to :class:`Instance`.

    With the ``legacy`` policy a new id is the number of live instances plus
    one, so ids are reused after removals. A reused id may collide with a
    live instance; the newer instance then shadows the older one until it is
    removed. The ``monotonic`` policy never repeats an id.

    Not safe for concurrent mutation: call :meth:`create` and :meth:`remove`
    only from setup and teardown.
    """

    def __init__(self, *, id_policy: str = "legacy") -> None:
        self.id_policy = _validate_policy(id_policy)
        # Newest entry last within each id; see ids() for traversal order.
        self._entries: dict[int, list[Instance]] = {}
        self._created: list[int] = []
        self._counter = 0

    def __len__(self) -> int:
        return sum(len(stack) for stack in self._entries.values())

    def __contains__(self, instance_id: object) -> bool:
        return bool(self._entries.get(instance_id))  # type: ignore[arg-type]

    def _next_id(self) -> int:
        if self.id_policy == "monotonic":
            self._counter += 1
            return self._counter
        return len(self) + 1

    def create(
        self,
        ext_nr: int,
        *,
        species_id_hoi: int = -1,
        species_id_i2: int = -1,
        calc_hoi: bool = False,
        calc_i2: bool = False,
    ) -> int:
        instance_id = self._next_id()
        instance = Instance(
            instance_id=instance_id,
            ext_nr=int(ext_nr),
            species_id_hoi=int(species_id_hoi),
            species_id_i2=int(species_id_i2),
            calc_hoi=bool(calc_hoi),
            calc_i2=bool(calc_i2),
        )
        stack = self._entries.setdefault(instance_id, [])
        if stack:
            logging.getLogger("ocean_iodine.registry").warning(
                "Instance id %d reused while still live; newest instance shadows it.",
                instance_id,
            )
        stack.append(instance)
        self._created.append(instance_id)
        return instance_id

    def get(self, instance_id: int) -> Instance:
        stack = self._entries.get(instance_id)
        if not stack:
            available = ", ".join(str(item) for item in self.ids()) or "<none>"
            raise InstanceNotFoundError(
                f"Instance {instance_id!r} is not registered. Available: {available}.",
                context={"instance_id": instance_id},
            )
        return stack[-1]

    def remove(self, instance_id: int) -> bool:
        """Remove the newest instance with this id; ``False`` when absent."""
        stack = self._entries.get(instance_id)
        if not stack:
            return False
        stack.pop()
        if not stack:
            del self._entries[instance_id]
        # Drop the most recent creation record for this id.
        for index in range(len(self._created) - 1, -1, -1):
            if self._created[index] == instance_id:
                del self._created[index]
                break
        return True

    def ids(self) -> list[int]:
        """Live ids, most recently created first."""
        return list(reversed(self._created))

    def instances(self) -> list[Instance]:
        seen: dict[int, int] = {}
        result: list[Instance] = []
        for instance_id in self.ids():
            depth = seen.get(instance_id, 0)
            seen[instance_id] = depth + 1
            stack = self._entries[instance_id]
            result.append(stack[len(stack) - 1 - depth])
        return result


__all__ = ["ID_POLICIES", "Instance", "InstanceRegistry"]
