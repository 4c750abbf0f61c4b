"""Shared fixtures for Herald tests."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from herald.world.entities import Entity

FIXED_NOW = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_entity(n: int = 0, **overrides) -> Entity:
    """Villager with predictable defaults; ``n`` varies id and name."""
    values = dict(
        entity_id=f"v-{n:04d}",
        name=f"Villager {n:04d}",
        job_description="Farmer",
        residence="house-1",
        age=30.5,
        life_expectancy=80.0,
        skills=["Farming"],
        thought="Content",
    )
    values.update(overrides)
    return Entity(**values)


@pytest.fixture
def entity_factory():
    return make_entity


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW
