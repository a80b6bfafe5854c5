"""Tasks assíncronas do módulo core."""

from __future__ import annotations

import structlog
from celery import shared_task

from modules.core.models import EventStatus, OutboxEvent
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)


@shared_task(name="core.publish_outbox_events")
def publish_outbox_events(batch_size: int = 100) -> dict:
    """Drena eventos PENDING do outbox para o barramento em memória.

    Cada evento é reconstruído a partir do payload e publicado; falhas ficam
    registradas no próprio registro (status FAILED + retry_count).
    """
    pending = list(
        OutboxEvent.objects.filter(status=EventStatus.PENDING).order_by("created_at")[
            :batch_size
        ]
    )
    published = failed = 0

    for outbox in pending:
        log = logger.bind(outbox_id=str(outbox.id), event_type=outbox.event_type)
        event_class = event_bus.resolve(outbox.event_type)
        if event_class is None:
            outbox.mark_as_failed(f"No handler registered for {outbox.event_type}.")
            log.warning("outbox.unroutable_event")
            failed += 1
            continue
        try:
            event_bus.publish(event_class.from_payload(outbox.payload))
        except Exception as exc:
            outbox.mark_as_failed(str(exc))
            log.exception("outbox.publish_failed")
            failed += 1
            continue
        outbox.mark_as_published()
        published += 1

    logger.info("outbox.drained", published=published, failed=failed)
    return {"published": published, "failed": failed}
