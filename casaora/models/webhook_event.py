from sqlalchemy import Column, String, DateTime, JSON, Text, UniqueConstraint
from .base import BaseModel


class WebhookEvent(BaseModel):
    """Received provider webhook, stored before processing for idempotency"""
    __tablename__ = 'webhook_events'
    __table_args__ = (
        UniqueConstraint('event_id', 'provider', name='uq_webhook_events_event_provider'),
    )

    event_id = Column(String(255), nullable=False)  # provider_check_id:event_type
    event_type = Column(String(50), nullable=False)
    provider = Column(String(20), nullable=False)
    status = Column(String(20), default='processing')  # processing, completed, failed
    payload = Column(JSON)
    error_message = Column(Text)
    processed_at = Column(DateTime)
