# autospa/tasks/webhook_tasks.py
import logging

from autospa.config.celery_config import celery_app
from autospa.config.database import SessionLocal
from autospa.schemas.events import DomainEvent
from autospa.services.webhook.webhook_service import WebhookService

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=3)
def deliver_domain_event(self, event: dict):
    """Fan a domain event out to subscribed webhook endpoints. Retries reuse event_id, so nothing is sent twice"""
    domain_event = DomainEvent.model_validate(event)
    db = SessionLocal()
    service = WebhookService(db)
    try:
        records = service.fire_event(domain_event)
        logger.info(
            f"{domain_event.event_type} for appointment {domain_event.appointment_id}: "
            f"{len(records)} webhook deliveries"
        )
        return {"status": "success", "deliveries": len(records)}

    except Exception as exc:
        logger.error(f"Failed to fan out {domain_event.event_type}: {exc}")
        db.rollback()
        raise self.retry(exc=exc, countdown=60 * (self.request.retries + 1))

    finally:
        service.close()
        db.close()


@celery_app.task
def retry_pending_webhooks(batch_size: int = 50):
    """Beat task: redeliver webhook events whose backoff has elapsed"""
    db = SessionLocal()
    service = WebhookService(db)
    try:
        processed = service.retry_pending_webhooks(batch_size=batch_size)
        if processed:
            logger.info(f"Retried {processed} pending webhooks")
        return {"processed": processed}
    finally:
        service.close()
        db.close()
