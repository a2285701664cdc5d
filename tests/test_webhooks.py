import json
import pytest
from datetime import datetime
from unittest.mock import patch
from casaora.database import DatabaseManager
from casaora.models import BackgroundCheck, WebhookEvent
from casaora.integrations import CheckrClient, TruoraClient
from casaora.integrations.background_check_types import (
    BackgroundCheckError,
    BackgroundCheckProvider,
    BackgroundCheckResult,
    BackgroundCheckStatus,
    ErrorCode,
    ProviderResult,
    Recommendation,
)
from casaora.utils.security import compute_hmac_sha256

CHECKR_SECRET = 'test_checkr_webhook_secret'
TRUORA_SECRET = 'test_truora_webhook_secret'


def checkr_webhook(client, event_type, report_id='rep_1', status='complete', secret=CHECKR_SECRET):
    body = json.dumps({'type': event_type, 'data': {'object': {'id': report_id, 'status': status}}})
    return client.post(
        '/api/webhooks/background-checks',
        data=body,
        headers={'X-Checkr-Signature': compute_hmac_sha256(secret, body), 'Content-Type': 'application/json'}
    )


def clear_result(provider_check_id='rep_1'):
    now = datetime.utcnow()
    return BackgroundCheckResult(
        id=provider_check_id,
        provider_check_id=provider_check_id,
        provider=BackgroundCheckProvider.CHECKR,
        professional_id=None,
        status=BackgroundCheckStatus.CLEAR,
        checks_performed=frozenset(),
        results={},
        recommendation=Recommendation.APPROVED,
        raw_data={},
        created_at=now,
        updated_at=now,
        completed_at=now
    )


@pytest.fixture
def pending_check(app, make_professional):
    professional = make_professional()
    return DatabaseManager(BackgroundCheck).create(
        professional_id=professional.id,
        provider='checkr',
        provider_check_id='rep_1',
        status='pending'
    )


@pytest.fixture(autouse=True)
def no_emails():
    with patch('casaora.integrations.sendgrid_client.SendGridClient.send_email', return_value=None) as mock_send:
        yield mock_send


class TestWebhookVerification:

    def test_missing_signature(self, client):
        response = client.post('/api/webhooks/background-checks', data='{}')
        assert response.status_code == 400

    def test_bad_signature(self, client, pending_check):
        response = checkr_webhook(client, 'report.completed', secret='wrong_secret')

        assert response.status_code == 400
        assert DatabaseManager(WebhookEvent).count() == 0
        assert DatabaseManager(BackgroundCheck).get(pending_check.id).status == 'pending'

    def test_truora_signature_checked_with_truora_secret(self, client):
        body = json.dumps({'event_type': 'check.created', 'check_id': 'CHK1'})
        response = client.post(
            '/api/webhooks/background-checks',
            data=body,
            headers={'X-Truora-Signature': compute_hmac_sha256(CHECKR_SECRET, body)}
        )

        assert response.status_code == 400

    def test_payload_without_check_id(self, client):
        body = json.dumps({'type': 'report.completed', 'data': {}})
        response = client.post(
            '/api/webhooks/background-checks',
            data=body,
            headers={'X-Checkr-Signature': compute_hmac_sha256(CHECKR_SECRET, body)}
        )

        assert response.status_code == 400

    def test_null_data_envelope_is_rejected(self, client):
        body = json.dumps({'type': 'report.completed', 'data': None})
        response = client.post(
            '/api/webhooks/background-checks',
            data=body,
            headers={'X-Checkr-Signature': compute_hmac_sha256(CHECKR_SECRET, body)}
        )

        assert response.status_code == 400
        assert DatabaseManager(WebhookEvent).count() == 0


class TestWebhookProcessing:

    @patch.object(CheckrClient, 'get_check_status')
    def test_completed_event_applies_result(self, mock_status, client, pending_check):
        mock_status.return_value = ProviderResult.ok(clear_result())

        response = checkr_webhook(client, 'report.completed')

        assert response.status_code == 200
        assert response.get_json()['duplicate'] is False
        assert DatabaseManager(BackgroundCheck).get(pending_check.id).status == 'clear'

        event = DatabaseManager(WebhookEvent).get_by(event_id='rep_1:check.completed')
        assert event.status == 'completed'
        assert event.processed_at is not None

    @patch.object(CheckrClient, 'get_check_status')
    def test_duplicate_event_is_acknowledged_once(self, mock_status, client, pending_check):
        mock_status.return_value = ProviderResult.ok(clear_result())

        first = checkr_webhook(client, 'report.completed')
        second = checkr_webhook(client, 'report.completed')

        assert first.status_code == 200
        assert second.status_code == 200
        assert second.get_json()['duplicate'] is True
        assert mock_status.call_count == 1
        assert DatabaseManager(WebhookEvent).count() == 1

    @patch.object(CheckrClient, 'get_check_status')
    def test_fetch_failure_marks_event_failed(self, mock_status, client, pending_check):
        mock_status.return_value = ProviderResult.fail(
            BackgroundCheckError('Checkr API unreachable', ErrorCode.NETWORK_ERROR, BackgroundCheckProvider.CHECKR)
        )

        response = checkr_webhook(client, 'report.completed')

        assert response.status_code == 500
        event = DatabaseManager(WebhookEvent).get_by(event_id='rep_1:check.completed')
        assert event.status == 'failed'
        assert event.error_message == 'Checkr API unreachable'
        assert DatabaseManager(BackgroundCheck).get(pending_check.id).status == 'pending'

    def test_failed_event_suspends_check(self, client, pending_check):
        response = checkr_webhook(client, 'report.failed', status='pending')

        assert response.status_code == 200
        assert DatabaseManager(BackgroundCheck).get(pending_check.id).status == 'suspended'

    def test_created_event_records_status(self, client, pending_check):
        response = checkr_webhook(client, 'report.created', status='pending')

        assert response.status_code == 200
        assert response.get_json()['result'] == {'status': 'pending', 'found': True}

    @patch.object(CheckrClient, 'get_check_status')
    def test_updated_event_falls_back_to_webhook_status(self, mock_status, client, pending_check):
        mock_status.return_value = ProviderResult.fail(
            BackgroundCheckError('Checkr API error 500', ErrorCode.PROVIDER_ERROR, BackgroundCheckProvider.CHECKR)
        )

        response = checkr_webhook(client, 'report.updated', status='consider')

        assert response.status_code == 200
        assert DatabaseManager(BackgroundCheck).get(pending_check.id).status == 'consider'

    @patch.object(TruoraClient, 'get_check_status')
    def test_truora_webhook(self, mock_status, client, make_professional):
        professional = make_professional()
        DatabaseManager(BackgroundCheck).create(
            professional_id=professional.id, provider='truora', provider_check_id='CHK1', status='pending'
        )
        mock_status.return_value = ProviderResult.ok(clear_result('CHK1'))

        body = json.dumps({'event_type': 'check.completed', 'check_id': 'CHK1', 'status': 'success'})
        response = client.post(
            '/api/webhooks/background-checks',
            data=body,
            headers={'X-Truora-Signature': compute_hmac_sha256(TRUORA_SECRET, body)}
        )

        assert response.status_code == 200
        assert DatabaseManager(BackgroundCheck).get_by(provider_check_id='CHK1').status == 'clear'
