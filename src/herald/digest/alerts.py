"""Single-card notifications sent outside the periodic cycle."""

from __future__ import annotations

import math
from datetime import datetime

from herald.config import Settings
from herald.digest.assembler import job_label, skills_label, thought_label
from herald.digest.cards import DEFAULT_BUDGET, ORANGE, PURPLE, Batch, Budget, Card, Field
from herald.text.sanitizer import truncate
from herald.world.entities import Entity

STARTUP_TITLE = "🏰 Villager Herald Started"
STARTUP_DESCRIPTION = (
    "The Villager Herald has been initialized and is now monitoring your kingdom!"
)
STARTUP_FOOTER = "Experimental"

SICK_TITLE = "🤒 Villager Became Sick"


def _field(name: str, value: str, budget: Budget, inline: bool = True) -> Field:
    return Field(
        name=truncate(name, budget.max_field_name),
        value=truncate(value, budget.max_field_value),
        inline=inline,
    )


def startup_batch(settings: Settings, now: datetime | None = None, budget: Budget = DEFAULT_BUDGET) -> Batch:
    """Announce that monitoring has started, with the active settings."""
    now = now or datetime.now()
    mode = "Full Updates" if settings.send_full_updates else "Changed Villagers Only"
    card = Card(
        title=STARTUP_TITLE,
        description=STARTUP_DESCRIPTION,
        color=PURPLE,
        fields=[
            _field("Update Interval", f"{settings.update_interval:g} seconds", budget),
            _field("Update Mode", mode, budget),
            _field("Max Villagers", str(settings.max_records_to_show), budget),
            _field("Started At", now.strftime("%Y-%m-%d %H:%M:%S"), budget),
        ],
        footer=STARTUP_FOOTER,
    )
    return Batch([card])


def sickness_batch(entity: Entity, budget: Budget = DEFAULT_BUDGET) -> Batch:
    """Urgent card for a villager who just fell ill."""
    card = Card(
        title=SICK_TITLE,
        description=truncate(
            f"**{entity.name}** has fallen ill and needs medical attention!",
            budget.max_description,
        ),
        color=ORANGE,
        fields=[
            _field("Health Status", "Sick - Requires medical care", budget),
            _field("Job", job_label(entity.job_description), budget),
            _field("Age", f"{math.floor(entity.age)} years", budget),
            _field("Skills", skills_label(entity.skills), budget),
            _field("Thoughts", thought_label(entity.thought), budget),
        ],
    )
    return Batch([card])
