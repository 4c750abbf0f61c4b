"""Unit tests for the card model, serialisation and budget checks."""
from __future__ import annotations

import json

import pytest

from herald.digest.cards import Batch, Budget, Card, Field, violations

pytestmark = pytest.mark.unit


class TestBudget:
    def test_defaults_match_sink_limits(self):
        b = Budget()
        assert (b.max_cards, b.max_fields, b.max_title, b.max_description) == (10, 25, 256, 4096)
        assert (b.max_field_name, b.max_field_value, b.max_total, b.hard_cap) == (256, 1024, 6000, 8000)
        assert b.fields_per_card == 10

    def test_fields_per_card_capped_by_sink(self):
        assert Budget(records_per_card=40).fields_per_card == 25

    @pytest.mark.parametrize("kwargs", [
        {"max_cards": 0},
        {"max_field_value": 3},
        {"safety_margin": -1},
        {"max_total": 50},
    ])
    def test_invalid_budgets(self, kwargs):
        with pytest.raises(ValueError):
            Budget(**kwargs)


class TestSerialisation:
    def test_card_dict_omits_empty_parts(self):
        assert Card(title="T").to_dict() == {"title": "T", "color": 3447003}

    def test_full_card_dict(self):
        card = Card(title="T", description="D", color=1, fields=[Field("n", "v", True)],
                    timestamp="2024-01-01T00:00:00+00:00", footer="F")
        assert card.to_dict() == {
            "title": "T",
            "description": "D",
            "color": 1,
            "fields": [{"name": "n", "value": "v", "inline": True}],
            "footer": {"text": "F"},
            "timestamp": "2024-01-01T00:00:00+00:00",
        }

    def test_payload_shape(self):
        batch = Batch([Card(title="A"), Card(title="B")])
        assert [c["title"] for c in json.loads(batch.serialize())["embeds"]] == ["A", "B"]

    def test_serialisation_is_compact_and_stable(self):
        batch = Batch([Card(title="A", fields=[Field("x", "y")])])
        assert batch.serialize() == (
            '{"embeds":[{"title":"A","color":3447003,'
            '"fields":[{"name":"x","value":"y","inline":false}]}]}'
        )

    def test_encoded_size_counts_utf8_bytes(self):
        batch = Batch([Card(title="🏰")])
        assert batch.encoded_size() == len(batch.serialize()) + 3


class TestCharCount:
    def test_counts_display_text_only(self):
        card = Card(title="abc", description="de", fields=[Field("f", "ghij")], footer="k",
                    timestamp="ignored")
        assert card.char_count() == 3 + 2 + 1 + 1 + 4

    def test_batch_sums_cards(self):
        assert Batch([Card(title="ab"), Card(title="cde")]).char_count() == 5


class TestViolations:
    def test_fitting_batch(self):
        assert violations(Batch([Card(title="ok")])) == []

    def test_reports_each_problem(self):
        budget = Budget(max_cards=1, max_fields=1, records_per_card=1, max_title=10,
                        max_field_value=10, max_total=100)
        batch = Batch([
            Card(title="x" * 11, fields=[Field("a", "b" * 11), Field("c", "d")]),
            Card(title="y" * 90),
        ])
        problems = violations(batch, budget)
        assert any("cards" in p for p in problems)
        assert any("title length" in p for p in problems)
        assert any("fields" in p for p in problems)
        assert any("value length" in p for p in problems)
        assert any("characters" in p for p in problems)
