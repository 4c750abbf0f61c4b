"""Entity records and the world view Herald reads from the host simulation.

Architecture
------------
Herald never owns simulation state.  The host hands it two things each
tick:

  1. The live entity population, via ``EntitySource.live_entities()``.
     ``EntityRegistry`` is the reference implementation: an owned mapping
     from stable id to ``Entity`` with an explicit ``enabled`` liveness
     flag.  Iteration is over values, never indices.

  2. A ``WorldView`` describing the surroundings the cause classifier
     inspects when an entity disappears: hostile units, predator dens,
     and deep-water tiles on the settlement grid.

Ages and durations are in simulation years, already divided by the host's
year length.  Positions are (x, z) in tile units.
"""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass, field
from typing import Iterable, Protocol


@dataclass
class Entity:
    """One villager as the host exposes it.  Read-only to Herald."""

    entity_id: str
    name: str
    enabled: bool = True
    job_description: str | None = None  # rich text, may carry markup
    residence: str | None = None
    sick: bool = False
    sick_duration: float = 0.0
    missed_meals: int = 0
    health: float = 1.0  # fraction in [0, 1]
    age: float = 0.0  # years alive
    life_expectancy: float = 80.0  # years
    position: tuple[float, float] = (0.0, 0.0)
    skills: list[str] = field(default_factory=list)
    thought: str = ""

    @property
    def has_home(self) -> bool:
        return self.residence is not None

    @property
    def whole_years(self) -> int:
        return math.floor(self.age)


@dataclass(frozen=True)
class WorldView:
    """Surroundings consulted by the cause classifier.

    Attributes:
        hostiles: Positions of live hostile units (raiders, dragons).
        predator_dens: Positions of predator dens (wolf dens).
        deep_water: Grid cells ``(x, z)`` that are deep water.
        grid_width: Number of columns in the settlement grid.
        grid_height: Number of rows in the settlement grid.
    """

    hostiles: tuple[tuple[float, float], ...] = ()
    predator_dens: tuple[tuple[float, float], ...] = ()
    deep_water: frozenset[tuple[int, int]] = frozenset()
    grid_width: int = 0
    grid_height: int = 0

    def cell_at(self, position: tuple[float, float]) -> tuple[int, int]:
        return (math.floor(position[0]), math.floor(position[1]))

    def is_interior(self, cell: tuple[int, int]) -> bool:
        """True for cells strictly inside the grid border."""
        x, z = cell
        return 0 < x < self.grid_width and 0 < z < self.grid_height

    def neighbors(self, cell: tuple[int, int]) -> list[tuple[int, int]]:
        x, z = cell
        return [(x + 1, z), (x - 1, z), (x, z + 1), (x, z - 1)]


EMPTY_WORLD = WorldView()


class EntitySource(Protocol):
    """Per-tick read access to the host's population."""

    def live_entities(self) -> list[Entity]:
        ...

    def world_view(self) -> WorldView:
        ...


class EntityRegistry:
    """Thread-safe owned mapping from entity id to entity record.

    The host writes through ``upsert``/``disable``/``remove``; Herald reads
    through ``live_entities`` which returns only enabled entities, in
    insertion order.
    """

    def __init__(self, entities: Iterable[Entity] = (), world: WorldView | None = None) -> None:
        self._entities: dict[str, Entity] = {}
        self._lock = threading.Lock()
        self._world = world or EMPTY_WORLD
        for entity in entities:
            self._entities[entity.entity_id] = entity

    def upsert(self, entity: Entity) -> None:
        with self._lock:
            self._entities[entity.entity_id] = entity

    def disable(self, entity_id: str) -> bool:
        with self._lock:
            entity = self._entities.get(entity_id)
            if entity is None:
                return False
            entity.enabled = False
            return True

    def remove(self, entity_id: str) -> bool:
        with self._lock:
            return self._entities.pop(entity_id, None) is not None

    def get(self, entity_id: str) -> Entity | None:
        with self._lock:
            return self._entities.get(entity_id)

    def live_entities(self) -> list[Entity]:
        with self._lock:
            return [e for e in self._entities.values() if e.enabled]

    def set_world(self, world: WorldView) -> None:
        with self._lock:
            self._world = world

    def world_view(self) -> WorldView:
        with self._lock:
            return self._world

    def __len__(self) -> int:
        with self._lock:
            return len(self._entities)
