"""Card model, batch assembly and single-card alerts."""

from .assembler import Assembly, BatchAssembler
from .cards import DEFAULT_BUDGET, Batch, Budget, Card, Field, violations

__all__ = [
    "Assembly",
    "Batch",
    "BatchAssembler",
    "Budget",
    "Card",
    "DEFAULT_BUDGET",
    "Field",
    "violations",
]
