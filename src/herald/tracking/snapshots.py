"""SnapshotStore — last-cycle entity state and the per-tick diff.

Architecture
------------
Each tick the service compares the live population against the store:

  changed  — entities with no prior snapshot, or whose job description,
             home, sickness or skill count differ, or whose whole-year
             age increased.
  removed  — snapshot ids with no matching enabled entity.

Comparisons are exact field equality except age, which compares
``floor(age)``.  Skill *composition* changes with an equal count are not
detected.

The store is replaced wholesale by ``capture()`` once per completed cycle.
There is no partial update path: the tick handler is the only writer and
readers see either the old mapping or the new one.

Besides the diffed fields, a snapshot keeps the last known vitals
(health, hunger, sickness duration, position) so that the cause
classifier can reason about an entity after it has left the population.
"""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping

from loguru import logger

from herald.world.entities import Entity


@dataclass(frozen=True)
class Snapshot:
    """Immutable capture of one entity at the end of a cycle."""

    entity_id: str
    name: str
    age: float
    job_description: str
    has_home: bool
    is_sick: bool
    skill_count: int
    # Last known vitals, not diffed
    sick_duration: float = 0.0
    missed_meals: int = 0
    health: float = 1.0
    life_expectancy: float = 80.0
    position: tuple[float, float] = (0.0, 0.0)

    @classmethod
    def of(cls, entity: Entity) -> Snapshot:
        return cls(
            entity_id=entity.entity_id,
            name=entity.name,
            age=entity.age,
            job_description=entity.job_description or "",
            has_home=entity.has_home,
            is_sick=entity.sick,
            skill_count=len(entity.skills),
            sick_duration=entity.sick_duration,
            missed_meals=entity.missed_meals,
            health=entity.health,
            life_expectancy=entity.life_expectancy,
            position=entity.position,
        )

    @property
    def whole_years(self) -> int:
        return math.floor(self.age)


@dataclass
class DiffResult:
    """Outcome of comparing the live population with the store."""

    changed: list[Entity] = field(default_factory=list)
    removed_ids: list[str] = field(default_factory=list)
    unchanged_ids: list[str] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.changed and not self.removed_ids


def has_changed(entity: Entity, snapshot: Snapshot) -> bool:
    """True when ``entity`` differs meaningfully from its last snapshot."""
    if (entity.job_description or "") != snapshot.job_description:
        return True
    if entity.has_home != snapshot.has_home:
        return True
    if entity.sick != snapshot.is_sick:
        return True
    if len(entity.skills) != snapshot.skill_count:
        return True
    return math.floor(entity.age) > snapshot.whole_years


class SnapshotStore:
    """Mapping id -> Snapshot, replaced atomically once per cycle."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._snapshots: Mapping[str, Snapshot] = MappingProxyType({})

    def capture(self, entities: Iterable[Entity]) -> int:
        """Replace the store with one snapshot per enabled entity.

        Returns the number of snapshots captured.
        """
        fresh: dict[str, Snapshot] = {}
        for entity in entities:
            if entity is None or not entity.enabled:
                continue
            fresh[entity.entity_id] = Snapshot.of(entity)
        with self._lock:
            self._snapshots = MappingProxyType(fresh)
        logger.debug(f"Captured {len(fresh)} villager snapshots")
        return len(fresh)

    def current(self) -> Mapping[str, Snapshot]:
        """The store's current read-only mapping."""
        with self._lock:
            return self._snapshots

    def get(self, entity_id: str) -> Snapshot | None:
        return self.current().get(entity_id)

    def __len__(self) -> int:
        return len(self.current())

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self.current()


def diff(
    entities: Iterable[Entity],
    store: SnapshotStore | Mapping[str, Snapshot],
    full_update: bool = False,
) -> DiffResult:
    """Partition the live population against ``store``.

    With ``full_update`` every enabled entity is reported as changed;
    removals are still computed.
    """
    snapshots = store.current() if isinstance(store, SnapshotStore) else store
    result = DiffResult()
    seen: set[str] = set()

    for entity in entities:
        if entity is None or not entity.enabled:
            continue
        seen.add(entity.entity_id)
        prior = snapshots.get(entity.entity_id)
        if full_update or prior is None or has_changed(entity, prior):
            result.changed.append(entity)
        else:
            result.unchanged_ids.append(entity.entity_id)

    result.removed_ids = [sid for sid in snapshots if sid not in seen]
    return result
