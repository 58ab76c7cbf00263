# autospa/core/events.py
"""Hand domain events to the background workers"""
import logging
from typing import Iterable

from autospa.schemas.events import DomainEvent

logger = logging.getLogger(__name__)


class EventDispatcher:
    """
    Enqueues deliver_domain_event for each event.

    The write that produced the events has already committed, so a broker
    outage is logged and never turned into a failed request.
    """

    def dispatch(self, events: Iterable[DomainEvent]) -> None:
        from autospa.tasks.webhook_tasks import deliver_domain_event

        for event in events:
            try:
                deliver_domain_event.delay(event.model_dump(mode="json"))
            except Exception as e:
                logger.error(
                    f"Failed to enqueue {event.event_type} for appointment "
                    f"{event.appointment_id}: {e}"
                )

