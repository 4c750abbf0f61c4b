"""Run Herald against a synthetic settlement.

Usage:
    python -m herald [--ticks N] [--full] [--dry-run] [--seed S]

With ``--dry-run`` (or when no webhook URL is configured) the batches are
printed as JSON instead of being posted.  Ticks run back to back; host
events raised by each settlement step are dispatched before the next
cycle.
"""

from __future__ import annotations

import argparse
import queue
import sys

from loguru import logger

from herald.comms.event_bus import HOST_EVENTS, EventBus
from herald.comms.webhook import DeliveryStatus, WebhookSink
from herald.config import Settings
from herald.digest.cards import Batch
from herald.service import HeraldService
from herald.synthetic import SyntheticSettlement

DRY_RUN_URL = "https://example.invalid/webhook"


class PrintingSink(WebhookSink):
    """Sink that prints payloads instead of posting them."""

    def deliver(self, batch: Batch) -> DeliveryStatus:
        print(batch.serialize())
        return self._record(DeliveryStatus.SUCCESS)

    def submit(self, batch: Batch) -> None:
        self.deliver(batch)


def _dispatch_events(service: HeraldService, events: queue.Queue) -> None:
    while True:
        try:
            service.handle_event(events.get_nowait())
        except queue.Empty:
            return


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Villager Herald demo runner")
    parser.add_argument("--ticks", type=int, default=5, help="Cycles to run")
    parser.add_argument("--population", type=int, default=30, help="Initial villagers")
    parser.add_argument("--seed", type=int, default=7, help="Settlement RNG seed")
    parser.add_argument("--full", action="store_true", help="Send full updates every tick")
    parser.add_argument("--dry-run", action="store_true", help="Print payloads instead of posting")
    args = parser.parse_args(argv)

    settings = Settings()
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level.upper())

    overrides: dict = {"send_full_updates": args.full or settings.send_full_updates}
    dry_run = args.dry_run or not settings.webhook_configured
    if dry_run:
        overrides["webhook_url"] = DRY_RUN_URL
    settings = settings.model_copy(update=overrides)

    bus = EventBus()
    events = bus.subscribe(HOST_EVENTS)
    settlement = SyntheticSettlement(population=args.population, seed=args.seed, event_bus=bus)
    sink = PrintingSink(settings.webhook_url) if dry_run else None
    service = HeraldService(
        settings,
        settlement.registry,
        sink=sink,
        event_bus=bus,
        event_feed=settlement.feed,
    )
    if not service.enabled:
        return 1

    for tick in range(args.ticks):
        if tick:
            settlement.step()
        _dispatch_events(service, events)
        assembly = service.tick()
        if assembly is None:
            logger.info(f"Tick {tick + 1}: nothing to report")
        else:
            logger.info(
                f"Tick {tick + 1}: {len(assembly.batch)} cards, {assembly.placed} villagers, "
                f"{assembly.lost_placed} lost"
            )
    service.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
