"""Unit tests for the startup and sickness cards."""
from __future__ import annotations

import pytest

from herald.config import Settings
from herald.digest.alerts import SICK_TITLE, STARTUP_TITLE, sickness_batch, startup_batch
from herald.digest.cards import ORANGE, PURPLE, violations

pytestmark = pytest.mark.unit


class TestStartupBatch:
    def test_reports_active_settings(self, fixed_clock):
        settings = Settings(_env_file=None, update_interval=60, max_records_to_show=25)
        batch = startup_batch(settings, now=fixed_clock())
        card = batch.cards[0]
        assert card.title == STARTUP_TITLE
        assert card.color == PURPLE
        assert card.footer == "Experimental"
        assert {f.name: f.value for f in card.fields} == {
            "Update Interval": "60 seconds",
            "Update Mode": "Changed Villagers Only",
            "Max Villagers": "25",
            "Started At": "2024-03-01 12:00:00",
        }
        assert all(f.inline for f in card.fields)

    def test_full_update_mode(self, fixed_clock):
        settings = Settings(_env_file=None, send_full_updates=True)
        fields = {f.name: f.value for f in startup_batch(settings, now=fixed_clock()).cards[0].fields}
        assert fields["Update Mode"] == "Full Updates"


class TestSicknessBatch:
    def test_card_content(self, entity_factory):
        entity = entity_factory(3, name="Hilda", sick=True, job_description=None,
                                skills=["Farming", "Fishing", "Smithing"], thought="")
        card = sickness_batch(entity).cards[0]
        assert card.title == SICK_TITLE
        assert card.color == ORANGE
        assert card.description == "**Hilda** has fallen ill and needs medical attention!"
        assert [(f.name, f.value) for f in card.fields] == [
            ("Health Status", "Sick - Requires medical care"),
            ("Job", "Unemployed"),
            ("Age", "30 years"),
            ("Skills", "Farming, Fishing"),
            ("Thoughts", "None"),
        ]

    def test_long_name_stays_in_budget(self, entity_factory):
        batch = sickness_batch(entity_factory(1, name="x" * 5000, sick=True))
        assert violations(batch) == []
