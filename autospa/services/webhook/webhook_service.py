# autospa/services/webhook/webhook_service.py
import httpx
import hmac
import hashlib
import json
import logging
from typing import Optional, List, Dict, Any
from datetime import datetime, timedelta, timezone
from sqlalchemy.orm import Session
from sqlalchemy import and_, or_

from autospa.config.settings import get_settings
from autospa.models.webhook_endpoint import WebhookEndpoint
from autospa.models.webhook_event import WebhookEvent
from autospa.schemas.events import DomainEvent

logger = logging.getLogger(__name__)

# Retry delays after the 1st, 2nd, ... failed attempt
BACKOFF_MINUTES = [1, 5, 15, 60, 360]


class WebhookService:
    """Delivers appointment domain events to subscribed HTTP endpoints"""

    VALID_EVENT_TYPES = [
        "booking.created",
        "booking.rescheduled",
        "booking.confirmed",
        "booking.cancelled",
        "booking.completed",
        "booking.status_changed",
    ]

    def __init__(self, db: Session, http_client: Optional[httpx.Client] = None):
        settings = get_settings()
        self.db = db
        self.timeout = settings.WEBHOOK_TIMEOUT_SECONDS
        self.max_attempts = settings.WEBHOOK_MAX_ATTEMPTS
        self.http_client = http_client or httpx.Client(
            timeout=self.timeout,
            follow_redirects=True
        )

    def fire_event(self, event: DomainEvent, trigger_immediately: bool = True) -> List[WebhookEvent]:
        """
        Record one delivery per subscribed endpoint and (optionally) send them now.

        Safe to call again for the same event (a retried task): endpoints that
        already have a row for event.event_id are not recorded twice, and
        only rows that were never attempted are sent. Later attempts belong
        to retry_pending_webhooks.

        Returns:
            The WebhookEvent rows for this event
        """
        if event.event_type not in self.VALID_EVENT_TYPES:
            raise ValueError(f"Invalid event type: {event.event_type}")

        endpoints = self._get_subscribed_endpoints(event.event_type)
        if not endpoints:
            logger.debug(f"No endpoints subscribed to {event.event_type}")
            return []

        recorded = {
            row.webhook_endpoint_id: row
            for row in self.db.query(WebhookEvent).filter(
                WebhookEvent.domain_event_id == event.event_id
            ).all()
        }

        payload = self._build_payload(event)
        webhook_events = []
        for endpoint in endpoints:
            webhook_event = recorded.get(endpoint.id)
            if webhook_event is None:
                webhook_event = WebhookEvent(
                    webhook_endpoint_id=endpoint.id,
                    event_type=event.event_type,
                    event_data=payload,
                    domain_event_id=event.event_id,
                    status="pending",
                    attempts=0,
                    max_attempts=self.max_attempts
                )
                self.db.add(webhook_event)
            webhook_events.append(webhook_event)

        self.db.commit()

        if trigger_immediately:
            for webhook_event in webhook_events:
                self.db.refresh(webhook_event)
                if webhook_event.status != "pending" or webhook_event.attempts:
                    continue
                self._deliver_webhook(webhook_event)

        return webhook_events

    def _deliver_webhook(self, webhook_event: WebhookEvent) -> bool:
        """Attempt a single delivery. Returns True on a 2xx response."""
        endpoint = self.db.query(WebhookEndpoint).filter(
            WebhookEndpoint.id == webhook_event.webhook_endpoint_id
        ).first()

        if not endpoint or not endpoint.is_active:
            webhook_event.status = "failed"
            webhook_event.error_message = "Endpoint not found or inactive"
            webhook_event.failed_at = datetime.now(timezone.utc)
            self.db.commit()
            return False

        payload_json = json.dumps(webhook_event.event_data, sort_keys=True)
        signature = self._sign_payload(payload_json, endpoint.secret)

        headers = {
            "Content-Type": "application/json",
            "X-Webhook-Signature": signature,
            "X-Webhook-Event": webhook_event.event_type,
            "X-Webhook-Id": str(webhook_event.id),
            "User-Agent": "AutoSpa-Webhook/1.0"
        }

        webhook_event.attempts = (webhook_event.attempts or 0) + 1
        webhook_event.last_attempt_at = datetime.now(timezone.utc)
        webhook_event.status = "retrying"

        start_time = datetime.now(timezone.utc)

        delivered = False
        try:
            response = self.http_client.post(
                endpoint.url,
                content=payload_json,
                headers=headers
            )

            webhook_event.response_status_code = response.status_code
            webhook_event.response_body = response.text[:1000]
            webhook_event.response_time_ms = int(
                (datetime.now(timezone.utc) - start_time).total_seconds() * 1000
            )

            if 200 <= response.status_code < 300:
                delivered = True
            else:
                webhook_event.error_message = f"HTTP {response.status_code}: {response.text[:200]}"

        except httpx.TimeoutException:
            webhook_event.error_message = f"Request timeout ({self.timeout:g}s)"

        except httpx.RequestError as e:
            webhook_event.error_message = f"Request error: {str(e)[:200]}"

        except Exception as e:
            webhook_event.error_message = f"Unexpected error: {str(e)[:200]}"
            logger.exception(f"Unexpected error delivering webhook {webhook_event.id}")

        if delivered:
            webhook_event.status = "delivered"
            webhook_event.delivered_at = datetime.now(timezone.utc)

            endpoint.consecutive_failures = 0
            endpoint.last_success_at = datetime.now(timezone.utc)

            self.db.commit()
            logger.info(f"Webhook {webhook_event.id} delivered to {endpoint.url}")
            return True

        self._handle_failed_delivery(webhook_event, endpoint)
        return False

    def _handle_failed_delivery(self, webhook_event: WebhookEvent, endpoint: WebhookEndpoint):
        """Update endpoint health and schedule the retry (or give up)."""
        now = datetime.now(timezone.utc)

        endpoint.consecutive_failures = (endpoint.consecutive_failures or 0) + 1
        endpoint.last_failure_at = now
        endpoint.last_failure_reason = (webhook_event.error_message or "")[:500]

        if endpoint.consecutive_failures >= endpoint.max_consecutive_failures:
            endpoint.is_active = False
            endpoint.auto_disabled_at = now
            webhook_event.status = "failed"
            webhook_event.failed_at = now
            logger.error(
                f"Webhook endpoint {endpoint.id} disabled after "
                f"{endpoint.consecutive_failures} consecutive failures"
            )

        elif webhook_event.attempts < webhook_event.max_attempts:
            delay_minutes = BACKOFF_MINUTES[min(webhook_event.attempts - 1, len(BACKOFF_MINUTES) - 1)]
            webhook_event.next_retry_at = now + timedelta(minutes=delay_minutes)
            webhook_event.status = "pending"
            logger.warning(
                f"Webhook {webhook_event.id} failed ({webhook_event.error_message}), "
                f"retry in {delay_minutes}min"
            )
        else:
            webhook_event.status = "failed"
            webhook_event.failed_at = now
            logger.error(f"Webhook {webhook_event.id} failed after {webhook_event.attempts} attempts")

        self.db.commit()

    def retry_pending_webhooks(self, batch_size: int = 50) -> int:
        """
        Deliver pending events whose retry time has come. Run from celery beat.

        Returns:
            Number of webhooks processed
        """
        now = datetime.now(timezone.utc)

        pending_events = self.db.query(WebhookEvent).filter(
            and_(
                WebhookEvent.status == "pending",
                or_(
                    WebhookEvent.next_retry_at.is_(None),
                    WebhookEvent.next_retry_at <= now
                ),
                WebhookEvent.attempts < WebhookEvent.max_attempts
            )
        ).order_by(WebhookEvent.created_at.asc()).limit(batch_size).all()

        for webhook_event in pending_events:
            self._deliver_webhook(webhook_event)

        return len(pending_events)

    def _get_subscribed_endpoints(self, event_type: str) -> List[WebhookEndpoint]:
        endpoints = self.db.query(WebhookEndpoint).filter(
            WebhookEndpoint.is_active.is_(True)
        ).all()

        return [
            endpoint for endpoint in endpoints
            if "*" in (endpoint.enabled_events or []) or event_type in (endpoint.enabled_events or [])
        ]

    @staticmethod
    def _build_payload(event: DomainEvent) -> Dict[str, Any]:
        return {
            "id": event.event_id,
            "event": event.event_type,
            "timestamp": event.occurred_at.isoformat(),
            "appointment_id": event.appointment_id,
            "data": event.data
        }

    @staticmethod
    def _sign_payload(payload_json: str, secret: str) -> str:
        """HMAC-SHA256 of the exact body sent, as "sha256=<hex>"."""
        signature = hmac.new(
            secret.encode(),
            payload_json.encode(),
            hashlib.sha256
        ).hexdigest()

        return f"sha256={signature}"

    @staticmethod
    def verify_signature(payload_json: str, signature: str, secret: str) -> bool:
        expected_signature = WebhookService._sign_payload(payload_json, secret)
        return hmac.compare_digest(signature, expected_signature)

    def close(self):
        self.http_client.close()
