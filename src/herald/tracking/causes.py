"""Cause classifier — why did a villager disappear?

Priority is data, not control flow: ``CAUSE_RULES`` is an ordered table of
(name, predicate, cause) rows and the first matching row wins.  The
authoritative event feed is consulted before the table; any failure in
the feed degrades to "no match".

Rule order:
    feed lookup > old age > plague > starvation > poor health
    > hostile nearby > predator den nearby > drowning > job accident
    > unknown
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Callable

from loguru import logger

from herald.tracking.snapshots import Snapshot
from herald.world.entities import EMPTY_WORLD, WorldView
from herald.world.event_feed import EventFeed

HOSTILE_RADIUS = 10.0
PREDATOR_DEN_RADIUS = 15.0

OLD_AGE_THRESHOLD = 65.0
LIFE_EXPECTANCY_GRACE = 5.0
PLAGUE_SICK_DURATION = 8.0
STARVATION_MISSED_MEALS = 1
POOR_HEALTH = 0.2

HOSTILE_ATTACK = "Hostile Attack"
PREDATOR_ATTACK = "Predator Attack"
STARVATION = "Starvation"
PLAGUE = "Plague"
POOR_HEALTH_CAUSE = "Poor Health"
DROWNING = "Drowning"
UNKNOWN_CAUSES = "Unknown Causes"

# (minimum age, label), highest band first
AGE_BANDS: tuple[tuple[float, str], ...] = (
    (90.0, "Extreme Old Age (90+ years)"),
    (80.0, "Very Old Age (80+ years)"),
    (70.0, "Old Age (70+ years)"),
    (0.0, "Natural Causes"),
)

# Word-start keyword patterns over the raw job description, checked in order
JOB_ACCIDENTS: tuple[tuple[re.Pattern, str], ...] = (
    (re.compile(r"\b(?:wood|tree|forest)", re.IGNORECASE), "Woodcutting Accident"),
    (re.compile(r"\b(?:ston|quarr)", re.IGNORECASE), "Stonecutting Accident"),
    (re.compile(r"\bmoat", re.IGNORECASE), "Moat Construction Accident"),
    (re.compile(r"\b(?:wall|tower)", re.IGNORECASE), "Construction Accident"),
    (re.compile(r"\bmine", re.IGNORECASE), "Mining Accident"),
    (re.compile(r"\bhunt", re.IGNORECASE), "Hunting Accident"),
)

FEED_CODES = {
    "dragonkill": HOSTILE_ATTACK,
    "starvedeath": STARVATION,
    "plaguedeath": PLAGUE,
}


@dataclass(frozen=True)
class CauseRule:
    """One row of the classifier table.

    ``cause`` receives the snapshot and world view and returns the cause
    label, or None when the rule does not apply.
    """

    name: str
    cause: Callable[[Snapshot, WorldView], str | None]


def _within(a: tuple[float, float], b: tuple[float, float], radius: float) -> bool:
    return math.hypot(a[0] - b[0], a[1] - b[1]) < radius


def _old_age(s: Snapshot, world: WorldView) -> str | None:
    if s.age < s.life_expectancy - LIFE_EXPECTANCY_GRACE and s.age < OLD_AGE_THRESHOLD:
        return None
    for minimum, label in AGE_BANDS:
        if s.age >= minimum:
            return label
    return AGE_BANDS[-1][1]


def _plague(s: Snapshot, world: WorldView) -> str | None:
    return PLAGUE if s.is_sick and s.sick_duration > PLAGUE_SICK_DURATION else None


def _starvation(s: Snapshot, world: WorldView) -> str | None:
    return STARVATION if s.missed_meals > STARVATION_MISSED_MEALS else None


def _poor_health(s: Snapshot, world: WorldView) -> str | None:
    return POOR_HEALTH_CAUSE if s.health < POOR_HEALTH else None


def _hostile_nearby(s: Snapshot, world: WorldView) -> str | None:
    if any(_within(h, s.position, HOSTILE_RADIUS) for h in world.hostiles):
        return HOSTILE_ATTACK
    return None


def _predator_den_nearby(s: Snapshot, world: WorldView) -> str | None:
    if any(_within(d, s.position, PREDATOR_DEN_RADIUS) for d in world.predator_dens):
        return PREDATOR_ATTACK
    return None


def _drowning(s: Snapshot, world: WorldView) -> str | None:
    cell = world.cell_at(s.position)
    if not world.is_interior(cell):
        return None
    if any(n in world.deep_water for n in world.neighbors(cell)):
        return DROWNING
    return None


def _job_accident(s: Snapshot, world: WorldView) -> str | None:
    if not s.job_description:
        return None
    for pattern, label in JOB_ACCIDENTS:
        if pattern.search(s.job_description):
            return label
    return None


CAUSE_RULES: tuple[CauseRule, ...] = (
    CauseRule("old_age", _old_age),
    CauseRule("plague", _plague),
    CauseRule("starvation", _starvation),
    CauseRule("poor_health", _poor_health),
    CauseRule("hostile_nearby", _hostile_nearby),
    CauseRule("predator_den_nearby", _predator_den_nearby),
    CauseRule("drowning", _drowning),
    CauseRule("job_accident", _job_accident),
)


def cause_for_code(code: str) -> str | None:
    """Map an event-feed code to a cause label, or None if unrecognised."""
    if code in FEED_CODES:
        return FEED_CODES[code]
    if "wolf" in code and "kill" in code:
        return PREDATOR_ATTACK
    return None


def cause_from_feed(feed: EventFeed | None, name: str) -> str | None:
    """Look ``name`` up in the authoritative feed.  Never raises."""
    if feed is None:
        return None
    try:
        records = feed.records_for(name)
    except Exception as e:
        logger.debug(f"Event feed lookup failed for {name}: {e}")
        return None
    for record in records:
        cause = cause_for_code(record.code)
        if cause is not None:
            return cause
    return None


def classify_heuristic(snapshot: Snapshot, world: WorldView | None = None) -> str:
    """Run the rule table only (no feed)."""
    world = world or EMPTY_WORLD
    for rule in CAUSE_RULES:
        cause = rule.cause(snapshot, world)
        if cause is not None:
            return cause
    return UNKNOWN_CAUSES


def classify_cause(
    snapshot: Snapshot,
    world: WorldView | None = None,
    feed: EventFeed | None = None,
) -> str:
    """Infer why the entity recorded in ``snapshot`` was removed."""
    cause = cause_from_feed(feed, snapshot.name)
    if cause is not None:
        return cause
    return classify_heuristic(snapshot, world)
