"""BatchAssembler — packs villager records into size-bounded card batches.

Architecture
------------
One cycle's output is a single Batch:

  1. Summary card ("Villager Status Report") with population totals.  Its
     worst-case size is reserved from the display budget G up front.
  2. Detail cards ("Villagers (i/n)") holding one field per changed
     villager, greedily filled in sorted order.  Before each field is
     placed the assembler checks that the remaining budget stays above
     the safety margin M; the first field that would break it stops
     placement for the whole cycle.  A card closes when it holds its
     quota of fields and the next one opens while the card cap C and the
     minimum per-card budget allow.
  3. Lost cards ("Villager Lost: <name>"), one per removed villager, built
     from the terminal snapshot.  Appended while the card cap and the
     remaining budget allow; the rest are dropped for this cycle.

Titles of detail cards depend on the final card count, so they are
rewritten in a finalisation pass once placement is complete.  A final
guard serialises the batch and, if the request body still exceeds the
sink's hard cap, collapses it to the summary card plus a warning field.

Records are sorted by (raw job description, name, id) so identical input
always yields an identical batch.  The summary timestamp comes from the
injected clock.
"""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Callable, Iterable

from loguru import logger

from herald.digest.cards import BLUE, DEFAULT_BUDGET, RED, Batch, Budget, Card, Field
from herald.text.sanitizer import ELLIPSIS, sanitize, truncate
from herald.tracking.snapshots import Snapshot
from herald.world.entities import Entity

SUMMARY_TITLE = "Villager Status Report"
DETAIL_TITLE = "Villagers"
LOST_TITLE = "Villager Lost: {name}"

WARNING_NAME = "⚠️ Warning"
WARNING_VALUE = (
    "Message was too large for Discord and had to be truncated. "
    "Try reducing the maximum villager count in settings."
)

UNEMPLOYED = "Unemployed"
NONE_LABEL = "None"
THOUGHT_LENGTH = 50
SKILLS_SHOWN = 2
BREAKDOWN_THRESHOLD = 10


@dataclass
class Assembly:
    """A finished batch plus the bookkeeping behind it."""

    batch: Batch
    candidates: int = 0      # records offered before the max-records cap
    shown: int = 0           # records left after the cap
    placed: int = 0          # records that made it into detail cards
    overage: int = 0         # records cut by the max-records cap
    lost_placed: int = 0
    lost_dropped: int = 0
    collapsed: bool = False
    detail_cards: int = 0
    remaining_budget: int = 0
    population: int = 0
    summary: Card | None = None
    notes: list[str] = field(default_factory=list)


def sort_key(entity: Entity) -> tuple[str, str, str]:
    return (entity.job_description or "", entity.name, entity.entity_id)


def job_label(job_description: str | None) -> str:
    label = sanitize(job_description)
    return label if label.strip() else UNEMPLOYED


def thought_label(thought: str | None) -> str:
    text = sanitize(thought)
    return truncate(text, THOUGHT_LENGTH) if text else NONE_LABEL


def skills_label(skills: list[str]) -> str:
    names = [s for s in skills[:SKILLS_SHOWN] if s]
    return ", ".join(names) if names else NONE_LABEL


def summary_description(population: int, placed: int, truncated: bool = False) -> str:
    """Population line for the summary card.

    Mentions the shown/total ratio whenever fewer records than the
    population are shown, and the size limit when placement stopped early.
    """
    text = f"Total Villagers: {population}"
    if truncated:
        return text + f" (showing {placed} out of {population} to stay within message size limits)"
    if placed < population:
        return text + f" (showing {placed} out of {population})"
    return text


class BatchAssembler:
    """Builds one batch per cycle under a nested size budget."""

    def __init__(
        self,
        budget: Budget = DEFAULT_BUDGET,
        max_records: int = 25,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if max_records < 0:
            raise ValueError("max_records must not be negative")
        self.budget = budget
        self.max_records = max_records
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # -- Field rendering ------------------------------------------------

    def render_field(self, entity: Entity) -> Field:
        """One villager as a detail field, name and value truncated independently."""
        home = "Has Home" if entity.has_home else "Homeless"
        health = "Sick" if entity.sick else "Healthy"
        value = (
            f"**Age:** {math.floor(entity.age)} years\n"
            f"**Job:** {job_label(entity.job_description)}\n"
            f"**Status:** {home}, {health}\n"
            f"**Skills:** {skills_label(entity.skills)}\n"
            f"**Thoughts:** {thought_label(entity.thought)}"
        )
        return Field(
            name=truncate(entity.name or entity.entity_id, self.budget.max_field_name),
            value=truncate(value, self.budget.max_field_value),
            inline=False,
        )

    def lost_card(self, snapshot: Snapshot, cause: str) -> Card:
        description = (
            "A villager has left or died.\n"
            f"**Name:** {snapshot.name}\n"
            f"**Age:** {snapshot.whole_years} years\n"
            f"**Profession:** {job_label(snapshot.job_description)}\n"
            f"**Cause:** {cause}"
        )
        return Card(
            title=truncate(LOST_TITLE.format(name=snapshot.name), self.budget.max_title),
            description=truncate(description, self.budget.max_description),
            color=RED,
        )

    def _detail_title(self, index: int, total: int) -> str:
        return truncate(f"{DETAIL_TITLE} ({index}/{total})", self.budget.max_title)

    # -- Assembly -------------------------------------------------------

    def assemble(
        self,
        changed: Iterable[Entity],
        population: int,
        lost: Iterable[tuple[Snapshot, str]] = (),
        include_summary: bool = True,
    ) -> Assembly:
        """Build the batch for one cycle.

        Args:
            changed: Candidate villagers for detail fields.
            population: Live population size reported on the summary card.
            lost: (terminal snapshot, cause) pairs for removed villagers.
            include_summary: Emit the summary and detail cards.  When False
                only lost cards are produced.
        """
        budget = self.budget
        records = sorted(changed, key=sort_key)
        shown = records[: self.max_records]
        assembly = Assembly(
            batch=Batch(),
            candidates=len(records),
            population=population,
            shown=len(shown),
            overage=len(records) - len(shown),
        )
        if assembly.overage:
            logger.warning(
                f"Limiting update to {len(shown)} villagers out of {len(records)} "
                f"to respect the configured limit"
            )
        if len(shown) > BREAKDOWN_THRESHOLD:
            self._log_breakdown(shown)

        remaining = budget.max_total
        cards: list[Card] = []

        if include_summary:
            summary, remaining = self._summary(population, len(shown))
            assembly.summary = summary
            cards.append(summary)
            details, remaining, placed = self._pack_details(shown, remaining)
            assembly.placed = placed
            assembly.detail_cards = len(details)
            if placed < len(shown):
                summary.description = truncate(
                    summary_description(population, placed, truncated=True),
                    self._description_limit(),
                )
                assembly.notes.append(f"placed {placed} of {len(shown)} records")
                logger.debug(f"Character limit approaching, stopped at {placed} villagers")
            for i, card in enumerate(details, start=1):
                card.title = self._detail_title(i, len(details))
            cards.extend(details)

        remaining = self._append_lost(cards, lost, remaining, assembly)

        assembly.remaining_budget = remaining
        assembly.batch = self.finalize(Batch(cards), assembly)
        logger.debug(
            f"Final character count estimate: {assembly.batch.char_count()} out of "
            f"{budget.max_total} max; {assembly.detail_cards} detail cards with "
            f"{assembly.placed} villagers"
        )
        return assembly

    def _description_limit(self) -> int:
        room = max(self.budget.max_total - len(SUMMARY_TITLE), 0)
        return min(self.budget.max_description, room)

    def _summary(self, population: int, shown: int) -> tuple[Card, int]:
        budget = self.budget
        limit = self._description_limit()
        summary = Card(
            title=truncate(SUMMARY_TITLE, budget.max_title),
            description=truncate(summary_description(population, shown), limit),
            color=BLUE,
            timestamp=self._clock().isoformat(),
        )
        # The description may be rewritten after placement; reserve the longer form
        worst = len(truncate(summary_description(population, shown, truncated=True), limit))
        reserved = len(summary.title) + max(len(summary.description or ""), worst)
        return summary, budget.max_total - reserved

    def _pack_details(self, shown: list[Entity], remaining: int) -> tuple[list[Card], int, int]:
        budget = self.budget
        per_card = budget.fields_per_card
        title_reserve = len(self._detail_title(budget.max_cards, budget.max_cards))
        cards: list[Card] = []
        placed = 0
        stopped = False

        while (
            not stopped
            and placed < len(shown)
            and remaining > budget.min_card_budget
            and len(cards) < budget.max_cards - 1
        ):
            card = Card(title=DETAIL_TITLE, color=BLUE)
            remaining -= title_reserve
            while placed < len(shown) and len(card.fields) < per_card:
                f = self.render_field(shown[placed])
                size = f.char_count()
                if remaining - size < budget.safety_margin:
                    logger.debug(
                        f"Character limit approaching, stopping at {placed} villagers "
                        f"with {remaining} chars left"
                    )
                    stopped = True
                    break
                card.fields.append(f)
                remaining -= size
                placed += 1
            if not card.fields:
                remaining += title_reserve
                break
            cards.append(card)

        return cards, remaining, placed

    def _append_lost(
        self,
        cards: list[Card],
        lost: Iterable[tuple[Snapshot, str]],
        remaining: int,
        assembly: Assembly,
    ) -> int:
        entries = sorted(lost, key=lambda pair: (pair[0].name, pair[0].entity_id))
        for snapshot, cause in entries:
            card = self.lost_card(snapshot, cause)
            size = card.char_count()
            if len(cards) >= self.budget.max_cards or remaining - size < self.budget.safety_margin:
                assembly.lost_dropped += 1
                continue
            cards.append(card)
            remaining -= size
            assembly.lost_placed += 1
        if assembly.lost_dropped:
            logger.warning(f"Dropped {assembly.lost_dropped} lost-villager cards this cycle")
        return remaining

    def finalize(self, batch: Batch, assembly: Assembly | None = None) -> Batch:
        """Final guard: collapse to summary + warning when the body is over the hard cap."""
        budget = self.budget
        if len(batch.cards) > budget.max_cards:
            logger.warning(f"Truncated cards to {budget.max_cards} to respect the sink limit")
            batch = Batch(batch.cards[: budget.max_cards])
        size = batch.encoded_size()
        if size <= budget.hard_cap or not batch.cards:
            return batch

        logger.error(
            f"Payload is still too large ({size} bytes) despite dynamic limiting. "
            f"Reducing to bare minimum."
        )
        if assembly is not None and assembly.summary is not None:
            head = replace(assembly.summary, fields=[])
        else:
            # Lost-only batch: the report still leads with a summary
            population = assembly.population if assembly is not None else 0
            head, _ = self._summary(population, 0)
        warning = self._warning_field(head)
        collapsed = Batch([replace(head, fields=[warning] if warning else [])])
        if assembly is not None:
            assembly.collapsed = True
            assembly.placed = 0
            assembly.detail_cards = 0
            assembly.lost_dropped += assembly.lost_placed
            assembly.lost_placed = 0
            assembly.summary = collapsed.cards[0]
        new_size = collapsed.encoded_size()
        if new_size > budget.hard_cap:
            logger.error(f"Collapsed payload is still {new_size} bytes; the sink will refuse it")
        return collapsed

    def _warning_field(self, summary: Card) -> Field | None:
        """The truncation warning, shortened to the display budget left after ``summary``."""
        budget = self.budget
        name = truncate(WARNING_NAME, budget.max_field_name)
        room = budget.max_total - summary.char_count() - len(name)
        limit = min(budget.max_field_value, room)
        if limit <= len(ELLIPSIS):
            logger.warning("No display budget left for the truncation warning")
            return None
        return Field(name, truncate(WARNING_VALUE, limit), False)

    def _log_breakdown(self, records: list[Entity]) -> None:
        counts = Counter(job_label(e.job_description) for e in records)
        logger.debug("Villager job breakdown for this update:")
        for job, count in counts.most_common():
            logger.debug(f"  - {job}: {count} villagers")
