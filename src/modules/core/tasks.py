"""Asynchronous tasks of the core module."""

import structlog
from celery import shared_task
from django.conf import settings
from django.db import transaction

from modules.core.models import OutboxEvent
from shared.domain.events import DomainEvent
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)


@shared_task(name="core.publish_outbox_events")
def publish_outbox_events(batch_size: int | None = None):
    """Dispatch publishable outbox events to the in-memory event bus.

    Events are processed oldest first.  A failing handler marks its event
    as FAILED (retried on the next run until ``OUTBOX_MAX_RETRIES``) and
    does not stop the batch.
    """
    limit = batch_size or settings.OUTBOX_BATCH_SIZE
    published = failed = 0

    with transaction.atomic():
        events = list(
            OutboxEvent.objects.select_for_update()
            .publishable(settings.OUTBOX_MAX_RETRIES)[:limit]
        )
        for outbox_event in events:
            log = logger.bind(
                outbox_event_id=str(outbox_event.id),
                event_type=outbox_event.event_type,
                aggregate_id=outbox_event.aggregate_id,
            )
            try:
                event_bus.publish(DomainEvent.from_payload(outbox_event.payload))
            except Exception as exc:  # noqa: BLE001 - recorded on the event row
                log.exception("outbox.publish_failed")
                outbox_event.mark_as_failed(str(exc))
                failed += 1
            else:
                outbox_event.mark_as_published()
                published += 1

    logger.info("outbox.batch_processed", published=published, failed=failed)
    return {"published": published, "failed": failed}
