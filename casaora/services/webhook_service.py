from datetime import datetime
from typing import Dict, Mapping, Union
from sqlalchemy.exc import IntegrityError
from casaora.database import DatabaseManager, get_db
from casaora.models import WebhookEvent as WebhookEventRecord
from casaora.integrations.background_check_types import (
    BackgroundCheckError,
    BackgroundCheckStatus,
    ErrorCode,
    WebhookEvent,
    WebhookEventType,
)
from casaora.integrations.provider_factory import BackgroundCheckProviderFactory
from casaora.services.background_check_service import BackgroundCheckService
from casaora.utils.logger import get_logger

logger = get_logger(__name__)


class WebhookService:
    """Service for handling background check webhook events"""

    def __init__(self, provider_factory: BackgroundCheckProviderFactory,
                 background_check_service: BackgroundCheckService = None):
        self.provider_factory = provider_factory
        self.background_check_service = background_check_service or BackgroundCheckService(provider_factory)
        self.event_db = DatabaseManager(WebhookEventRecord)

    def process_background_check_webhook(self, raw_body: Union[str, bytes], headers: Mapping[str, str]) -> Dict:
        """
        Verify, record and dispatch a provider webhook.

        Raises BackgroundCheckError when the request cannot be authenticated
        or parsed. Returns {'duplicate': True} for events already received.
        """
        provider, signature = self.provider_factory.provider_for_webhook(headers)
        event = provider.verify_webhook(raw_body, signature, headers)

        logger.info(f"Processing {provider.name} event: {event.type.value} for {event.provider_check_id}")

        if not event.provider_check_id:
            raise BackgroundCheckError(
                "Webhook is missing a check id",
                ErrorCode.INVALID_PAYLOAD,
                event.provider
            )

        record_id = self._record_event(event)
        if record_id is None:
            logger.info(f"Duplicate {provider.name} webhook {event.event_key}, skipping")
            return {'event_id': event.event_key, 'duplicate': True}

        try:
            result = self._dispatch(provider, event)
        except BackgroundCheckError as e:
            self.event_db.update(record_id, status='failed', error_message=e.message,
                                 processed_at=datetime.utcnow())
            logger.error(f"Error processing {provider.name} webhook {event.event_key}: {e.message}")
            raise

        self.event_db.update(record_id, status='completed', processed_at=datetime.utcnow())
        return {'event_id': event.event_key, 'duplicate': False, 'result': result}

    def _record_event(self, event: WebhookEvent):
        """Insert the event row; None means the event was seen before"""
        try:
            with get_db() as db:
                record = WebhookEventRecord(
                    event_id=event.event_key,
                    event_type=event.type.value,
                    provider=event.provider.value,
                    status='processing',
                    payload=event.data
                )
                db.add(record)
                db.flush()
                return record.id
        except IntegrityError:
            return None

    def _dispatch(self, provider, event: WebhookEvent) -> Dict:
        if event.type == WebhookEventType.CHECK_CREATED:
            found = self.background_check_service.update_status(event.provider_check_id, event.status)
            return {'status': event.status.value, 'found': found}

        if event.type == WebhookEventType.CHECK_COMPLETED:
            # Webhook payloads are partial, the full result comes from the provider
            result = provider.get_check_status(event.provider_check_id)
            if not result.success:
                raise result.error
            return self.background_check_service.apply_result(result.value)

        if event.type == WebhookEventType.CHECK_UPDATED:
            result = provider.get_check_status(event.provider_check_id)
            if result.success:
                return self.background_check_service.apply_result(result.value)
            logger.warning(f"Could not fetch {event.provider_check_id} after update: {result.error.message}")
            found = self.background_check_service.update_status(event.provider_check_id, event.status)
            return {'status': event.status.value, 'found': found}

        if event.type == WebhookEventType.CHECK_FAILED:
            found = self.background_check_service.update_status(
                event.provider_check_id, BackgroundCheckStatus.SUSPENDED, event.data
            )
            return {'status': BackgroundCheckStatus.SUSPENDED.value, 'found': found}

        return {'event_type': event.type.value, 'processed': True}
