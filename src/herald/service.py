"""HeraldService — the periodic notification cycle and the urgent-alert path.

Architecture
------------
The service is constructed and owned by the host's startup sequence and
runs two daemon threads:

  1. herald-tick — every ``update_interval`` seconds runs one cycle:
     diff the live population against the snapshot store, build the
     batch, hand it to the sink (fire-and-forget), then replace the store
     wholesale.  Cycles run back to back on this one thread, so they
     never overlap and the store has exactly one writer.

  2. herald-alerts — subscribes to host events on the EventBus.  An
     ``entity_sick`` event produces one urgent card immediately.  Other
     lifecycle events are only logged; the periodic diff picks up the
     changes on its own.  This thread never reads or writes the store.

Incremental mode sends only changed and removed villagers.  The first
incremental cycle has no baseline, so it captures one and sends a full
report instead.  Full mode reports everyone every tick.
"""

from __future__ import annotations

import queue
import threading
import time

from loguru import logger

from herald.comms.event_bus import ENTITY_SICK, HOST_EVENTS, EventBus
from herald.comms.webhook import WebhookSink
from herald.config import Settings
from herald.digest.alerts import sickness_batch, startup_batch
from herald.digest.assembler import Assembly, BatchAssembler
from herald.digest.cards import DEFAULT_BUDGET, Batch, Budget
from herald.tracking.causes import classify_cause
from herald.tracking.snapshots import SnapshotStore, diff
from herald.world.entities import Entity, EntitySource
from herald.world.event_feed import EventFeed


class HeraldService:
    """Drives capture -> diff -> assemble -> send once per tick."""

    def __init__(
        self,
        settings: Settings,
        source: EntitySource,
        sink: WebhookSink | None = None,
        event_bus: EventBus | None = None,
        event_feed: EventFeed | None = None,
        budget: Budget = DEFAULT_BUDGET,
        assembler: BatchAssembler | None = None,
    ) -> None:
        self.settings = settings
        self._source = source
        self._sink = sink or WebhookSink(
            settings.webhook_url, timeout=settings.request_timeout, hard_cap=budget.hard_cap
        )
        self._event_bus = event_bus
        self._event_feed = event_feed
        self._assembler = assembler or BatchAssembler(
            budget=budget, max_records=settings.max_records_to_show
        )
        self.store = SnapshotStore()
        self._cycle_lock = threading.Lock()
        self._stop = threading.Event()
        self._tick_thread: threading.Thread | None = None
        self._alert_thread: threading.Thread | None = None
        self._alert_queue: queue.Queue | None = None
        self._disabled_logged = False
        self.cycles = 0

    # -- Lifecycle ------------------------------------------------------

    @property
    def enabled(self) -> bool:
        if self.settings.webhook_enabled and self.settings.webhook_configured:
            return True
        if not self._disabled_logged:
            self._disabled_logged = True
            if not self.settings.webhook_enabled:
                logger.warning("Villager webhook is disabled.")
            else:
                logger.warning(
                    "Villager webhook not initialized: set HERALD_WEBHOOK_URL to a real webhook URL"
                )
        return False

    @property
    def running(self) -> bool:
        return self._tick_thread is not None and self._tick_thread.is_alive()

    def start(self) -> bool:
        """Start the tick and alert threads.  Returns False when disabled."""
        if not self.enabled:
            return False
        if self.running:
            return True
        self._stop.clear()
        logger.info(
            f"Herald started: interval {self.settings.update_interval}s, "
            f"full updates {self.settings.send_full_updates}, "
            f"max villagers {self.settings.max_records_to_show}"
        )
        if self.settings.send_startup_notification:
            self._sink.submit(startup_batch(self.settings, budget=self._assembler.budget))
        self._tick_thread = threading.Thread(
            target=self._tick_loop, name="herald-tick", daemon=True
        )
        self._tick_thread.start()
        if self._event_bus is not None:
            self._alert_queue = self._event_bus.subscribe(HOST_EVENTS)
            self._alert_thread = threading.Thread(
                target=self._alert_loop, name="herald-alerts", daemon=True
            )
            self._alert_thread.start()
        return True

    def stop(self, timeout: float = 2.0) -> None:
        self._stop.set()
        for thread in (self._tick_thread, self._alert_thread):
            if thread is not None:
                thread.join(timeout=timeout)
        self._tick_thread = None
        self._alert_thread = None
        if self._event_bus is not None and self._alert_queue is not None:
            self._event_bus.unsubscribe(self._alert_queue)
            self._alert_queue = None
        self._sink.drain(timeout=timeout)
        logger.info("Herald stopped")

    def _tick_loop(self) -> None:
        while not self._stop.wait(self.settings.update_interval):
            try:
                self.tick()
            except Exception as e:
                logger.error(f"Herald cycle failed: {e}")

    # -- Periodic cycle -------------------------------------------------

    def tick(self) -> Assembly | None:
        """Run one cycle in the configured mode."""
        if self.settings.send_full_updates:
            return self.send_update(force_full=True)
        return self.send_changed_update()

    def send_update(self, force_full: bool = True) -> Assembly | None:
        """Report the whole population (or changes only when not forced)."""
        if not force_full:
            return self.send_changed_update()
        if not self.enabled:
            return None
        with self._cycle_lock:
            return self._full_cycle(self._source.live_entities())

    def _full_cycle(self, entities: list[Entity]) -> Assembly | None:
        # Caller holds _cycle_lock
        if not entities:
            logger.info("No villagers to send update for")
            return None
        assembly = self._assembler.assemble(entities, population=len(entities))
        self._dispatch(assembly.batch)
        self.store.capture(entities)
        self.cycles += 1
        return assembly

    def send_changed_update(self) -> Assembly | None:
        """Report only villagers that changed or left since the last capture."""
        if not self.enabled:
            return None
        with self._cycle_lock:
            entities = self._source.live_entities()
            if len(self.store) == 0:
                logger.info("No baseline yet, sending a full update")
                return self._full_cycle(entities)

            result = diff(entities, self.store)
            logger.debug(
                f"Diff: {len(result.changed)} changed, {len(result.removed_ids)} removed, "
                f"{len(result.unchanged_ids)} unchanged"
            )
            if result.empty:
                return None

            snapshots = self.store.current()
            world = self._source.world_view()
            lost = []
            for sid in result.removed_ids:
                snapshot = snapshots[sid]
                lost.append((snapshot, classify_cause(snapshot, world, self._event_feed)))

            assembly = self._assembler.assemble(
                result.changed,
                population=len(entities),
                lost=lost,
                include_summary=bool(result.changed),
            )
            if assembly.batch:
                self._dispatch(assembly.batch)
            self.store.capture(entities)
            self.cycles += 1
            return assembly

    def _dispatch(self, batch: Batch) -> None:
        logger.info(f"Sending {len(batch.cards)} cards to webhook")
        self._sink.submit(batch)

    # -- Urgent path ----------------------------------------------------

    def notify_sick(self, entity: Entity) -> threading.Thread | None:
        """Send the urgent sickness card for ``entity``."""
        if not self.enabled or not entity.enabled or not entity.sick:
            return None
        logger.info(f"Villager became sick: {entity.name} ({entity.entity_id}), sending urgent notification")
        return self._sink.submit(sickness_batch(entity, self._assembler.budget))

    def handle_event(self, event: dict) -> None:
        event_type = event.get("type")
        data = event.get("data") or {}
        entity = data.get("entity")
        if event_type == ENTITY_SICK and isinstance(entity, Entity):
            self.notify_sick(entity)
        elif entity is not None:
            name = getattr(entity, "name", entity)
            logger.debug(f"Host event {event_type}: {name}")

    def _alert_loop(self) -> None:
        q = self._alert_queue
        while not self._stop.is_set() and q is not None:
            try:
                event = q.get(timeout=0.2)
            except queue.Empty:
                continue
            try:
                self.handle_event(event)
            except Exception as e:
                logger.error(f"Error creating urgent notification: {e}")


def run_cycles(service: HeraldService, ticks: int, interval: float = 0.0) -> list[Assembly | None]:
    """Drive ``ticks`` cycles synchronously (demo runner and tests)."""
    results = []
    for _ in range(ticks):
        results.append(service.tick())
        if interval:
            time.sleep(interval)
    return results
