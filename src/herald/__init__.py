"""Villager Herald — population change notifications for a settlement simulation.

Watches the host's villagers each tick, diffs them against the last
snapshot, and posts size-bounded card batches to a webhook.
"""

__version__ = "0.1.0"
