"""Synthetic settlement — a seeded stand-in host for demos and soak runs.

Populates an ``EntityRegistry`` with villagers and advances it one step at
a time: villagers age, change jobs, fall ill, go hungry, are born and die.
Deaths are written to an ``InMemoryEventFeed`` the way a real host's
kingdom log would record them (only some of them, so the heuristic
classifier gets exercised too).  Every step publishes the matching host
events on the EventBus.
"""

from __future__ import annotations

import random
import uuid

from herald.comms.event_bus import ENTITY_CREATED, ENTITY_REMOVED, ENTITY_SICK, JOB_QUIT, EventBus
from herald.world.entities import Entity, EntityRegistry, WorldView
from herald.world.event_feed import FeedRecord, InMemoryEventFeed

FIRST_NAMES = [
    "Aldric", "Bertrand", "Cedric", "Dunstan", "Edith", "Freya", "Gareth",
    "Hilda", "Isolde", "Jocelyn", "Kendric", "Leofric", "Matilda", "Nesta",
    "Osric", "Petra", "Quenby", "Rowena", "Sigrid", "Tristan", "Ulric",
    "Wynn", "Yvaine", "Elspeth",
]

JOBS = [
    None,
    "<sprite name=icon_wood> Woodcutter",
    "Forester",
    "Stonemason at the Quarry",
    "<b>Farmer</b> <sprite name=icon_wheat>",
    "Fisherman <sprite name=icon_fish>",
    "Blacksmith",
    "Hunter",
    "Iron Miner",
    "Builder: Castle Wall",
    "<color=#ffcc00>Baker</color>",
]

THOUGHTS = [
    "",
    "Gathering: <sprite name=icon_apple>",
    "Returning home to rest",
    "Idle and bored",
    "Searching: <sprite name=icon_stone>",
    "I wish the granary were fuller.",
    "Patrolling the <b>outer wall</b>",
]

SKILLS = ["Farming", "Forestry", "Masonry", "Fishing", "Smithing", "Hunting", "Building"]

GRID_SIZE = 64


class SyntheticSettlement:
    """A small deterministic village driven by ``step()``."""

    def __init__(self, population: int = 30, seed: int = 7, event_bus: EventBus | None = None) -> None:
        self._rng = random.Random(seed)
        self.registry = EntityRegistry()
        self.feed = InMemoryEventFeed()
        self._event_bus = event_bus
        water = {(x, z) for x in range(40, 48) for z in range(10, 30)}
        self.registry.set_world(WorldView(
            hostiles=(),
            predator_dens=((8.0, 56.0),),
            deep_water=frozenset(water),
            grid_width=GRID_SIZE,
            grid_height=GRID_SIZE,
        ))
        for _ in range(population):
            self._spawn(age=self._rng.uniform(16.0, 70.0))

    def _spawn(self, age: float = 0.0) -> Entity:
        rng = self._rng
        entity = Entity(
            entity_id=str(uuid.UUID(int=rng.getrandbits(128))),
            name=f"{rng.choice(FIRST_NAMES)} {rng.randint(1, 99)}",
            job_description=rng.choice(JOBS),
            residence=f"house-{rng.randint(1, 20)}" if rng.random() < 0.85 else None,
            age=age,
            life_expectancy=rng.uniform(60.0, 95.0),
            health=rng.uniform(0.5, 1.0),
            position=(rng.uniform(1, GRID_SIZE - 1), rng.uniform(1, GRID_SIZE - 1)),
            skills=rng.sample(SKILLS, k=rng.randint(0, 3)),
            thought=rng.choice(THOUGHTS),
        )
        self.registry.upsert(entity)
        self._publish(ENTITY_CREATED, entity)
        return entity

    def _publish(self, event_type: str, entity: Entity) -> None:
        if self._event_bus is not None:
            self._event_bus.publish(event_type, {"entity": entity})

    def step(self, years: float = 0.25) -> None:
        """Advance the settlement by ``years`` of simulated time."""
        rng = self._rng
        for entity in self.registry.live_entities():
            entity.age += years
            entity.position = (
                min(max(entity.position[0] + rng.uniform(-2, 2), 0.0), GRID_SIZE - 1.0),
                min(max(entity.position[1] + rng.uniform(-2, 2), 0.0), GRID_SIZE - 1.0),
            )
            if entity.sick:
                entity.sick_duration += years * 12
                entity.health = max(entity.health - 0.05, 0.0)
            elif rng.random() < 0.03:
                entity.sick = True
                entity.sick_duration = 0.0
                self._publish(ENTITY_SICK, entity)
            if rng.random() < 0.05:
                entity.job_description = rng.choice(JOBS)
                self._publish(JOB_QUIT, entity)
            if rng.random() < 0.02:
                entity.missed_meals += 1
            if self._dies(entity):
                self._kill(entity)
        if rng.random() < 0.3:
            self._spawn()

    def _dies(self, entity: Entity) -> bool:
        if entity.age >= entity.life_expectancy:
            return True
        if entity.sick and entity.sick_duration > 10 and self._rng.random() < 0.3:
            return True
        return self._rng.random() < 0.005

    def _kill(self, entity: Entity) -> None:
        rng = self._rng
        if entity.sick and rng.random() < 0.5:
            self.feed.append(FeedRecord("plaguedeath", entity.name))
        elif entity.missed_meals > 1 and rng.random() < 0.5:
            self.feed.append(FeedRecord("starvedeath", entity.name))
        self.registry.disable(entity.entity_id)
        self._publish(ENTITY_REMOVED, entity)
