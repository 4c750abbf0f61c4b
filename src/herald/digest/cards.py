"""Card, Field and Batch — the webhook payload model and its size rules.

A Batch is what the sink posts: ``{"embeds": [card, ...]}``.  Two
different size measures apply:

  - ``char_count`` — the sink's display budget: title, description,
    field names/values and footer text summed, in characters.  This is
    what ``Budget.max_total`` (G) bounds.
  - ``encoded_size`` — the UTF-8 byte length of the serialised JSON
    request body.  This is what ``Budget.hard_cap`` bounds.

Serialisation is deterministic: keys are emitted in a fixed order, with
compact separators and no ASCII escaping, so identical batches always
produce identical bytes.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field

from herald.text.sanitizer import ELLIPSIS

BLUE = 3447003
RED = 16711680
ORANGE = 16738740
PURPLE = 5763719

# Room for a summary title and a minimal description
MIN_TOTAL = 100


@dataclass(frozen=True)
class Budget:
    """Nested size limits for one batch.

    Attributes:
        max_cards: Cards per batch (C).
        max_fields: Fields per card the sink accepts (F).
        records_per_card: Detail records packed per card, at most F.
        max_title: Card title length (T).
        max_description: Card description length (D).
        max_field_name: Field name length (N).
        max_field_value: Field value length (V).
        max_footer: Footer text length.
        max_total: Display characters across the whole batch (G).
        safety_margin: Budget kept free after every placed field (M).
        min_card_budget: Remaining budget needed to open another card.
        hard_cap: Encoded request-body bytes the sink accepts.
    """

    max_cards: int = 10
    max_fields: int = 25
    records_per_card: int = 10
    max_title: int = 256
    max_description: int = 4096
    max_field_name: int = 256
    max_field_value: int = 1024
    max_footer: int = 2048
    max_total: int = 6000
    safety_margin: int = 200
    min_card_budget: int = 500
    hard_cap: int = 8000

    def __post_init__(self) -> None:
        for name in ("max_cards", "max_fields", "records_per_card", "max_total", "hard_cap"):
            if getattr(self, name) < 1:
                raise ValueError(f"Budget.{name} must be positive")
        for name in ("max_title", "max_description", "max_field_name", "max_field_value", "max_footer"):
            if getattr(self, name) <= len(ELLIPSIS):
                raise ValueError(f"Budget.{name} must exceed the {len(ELLIPSIS)}-character ellipsis")
        if self.safety_margin < 0 or self.min_card_budget < 0:
            raise ValueError("Budget margins must not be negative")
        if self.max_total < MIN_TOTAL:
            raise ValueError(f"Budget.max_total must be at least {MIN_TOTAL}")

    @property
    def fields_per_card(self) -> int:
        return min(self.records_per_card, self.max_fields)


DEFAULT_BUDGET = Budget()


@dataclass
class Field:
    name: str
    value: str
    inline: bool = False

    def char_count(self) -> int:
        return len(self.name) + len(self.value)

    def to_dict(self) -> dict:
        return {"name": self.name, "value": self.value, "inline": self.inline}


@dataclass
class Card:
    """One embed: a bounded display unit within a batch."""

    title: str
    description: str | None = None
    color: int = BLUE
    fields: list[Field] = field(default_factory=list)
    timestamp: str | None = None
    footer: str | None = None

    def char_count(self) -> int:
        total = len(self.title) + len(self.description or "") + len(self.footer or "")
        return total + sum(f.char_count() for f in self.fields)

    def to_dict(self) -> dict:
        data: dict = {"title": self.title}
        if self.description is not None:
            data["description"] = self.description
        data["color"] = self.color
        if self.fields:
            data["fields"] = [f.to_dict() for f in self.fields]
        if self.footer is not None:
            data["footer"] = {"text": self.footer}
        if self.timestamp is not None:
            data["timestamp"] = self.timestamp
        return data


@dataclass
class Batch:
    """Ordered cards posted together in one request."""

    cards: list[Card] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.cards)

    def __bool__(self) -> bool:
        return bool(self.cards)

    def char_count(self) -> int:
        return sum(c.char_count() for c in self.cards)

    def to_payload(self) -> dict:
        return {"embeds": [c.to_dict() for c in self.cards]}

    def serialize(self) -> str:
        return json.dumps(self.to_payload(), ensure_ascii=False, separators=(",", ":"))

    def encode(self) -> bytes:
        return self.serialize().encode("utf-8")

    def encoded_size(self) -> int:
        return len(self.encode())


def violations(batch: Batch, budget: Budget = DEFAULT_BUDGET) -> list[str]:
    """Every way ``batch`` breaks ``budget``; empty when it fits."""
    problems: list[str] = []
    if len(batch.cards) > budget.max_cards:
        problems.append(f"{len(batch.cards)} cards > {budget.max_cards}")
    for i, card in enumerate(batch.cards):
        if len(card.title) > budget.max_title:
            problems.append(f"card {i} title length {len(card.title)}")
        if card.description is not None and len(card.description) > budget.max_description:
            problems.append(f"card {i} description length {len(card.description)}")
        if card.footer is not None and len(card.footer) > budget.max_footer:
            problems.append(f"card {i} footer length {len(card.footer)}")
        if len(card.fields) > budget.max_fields:
            problems.append(f"card {i} has {len(card.fields)} fields")
        for j, f in enumerate(card.fields):
            if len(f.name) > budget.max_field_name:
                problems.append(f"card {i} field {j} name length {len(f.name)}")
            if len(f.value) > budget.max_field_value:
                problems.append(f"card {i} field {j} value length {len(f.value)}")
    if batch.char_count() > budget.max_total:
        problems.append(f"{batch.char_count()} characters > {budget.max_total}")
    return problems
