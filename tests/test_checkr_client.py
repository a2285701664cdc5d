import json
import pytest
import requests
from unittest.mock import patch
from casaora.integrations.checkr_client import CheckrClient, COLOMBIA_PACKAGE
from casaora.integrations.background_check_types import (
    Address,
    BackgroundCheckError,
    BackgroundCheckStatus,
    CheckType,
    ErrorCode,
    ProfessionalInfo,
    Recommendation,
    WebhookEventType,
)
from casaora.utils.security import compute_hmac_sha256


@pytest.fixture
def checkr():
    return CheckrClient('test_checkr_key', 'test_checkr_webhook_secret')


@pytest.fixture
def professional_info():
    return ProfessionalInfo(
        professional_id='pro-1',
        first_name='Luisa',
        last_name='Martínez',
        email='luisa@example.com',
        phone='+573001112233',
        document_id='1020304050',
        document_type='CC',
        date_of_birth='1991-02-03',
        address=Address(street='Calle 1', city='Bogotá', postal_code='110111')
    )


class TestCheckrStatus:
    """Test Checkr status mapping"""

    @pytest.mark.parametrize('raw,expected', [
        ('pending', BackgroundCheckStatus.PENDING),
        ('complete', BackgroundCheckStatus.CLEAR),
        ('consider', BackgroundCheckStatus.CONSIDER),
        ('suspended', BackgroundCheckStatus.SUSPENDED),
        ('canceled', BackgroundCheckStatus.SUSPENDED),
    ])
    def test_known_statuses(self, checkr, raw, expected):
        assert checkr.transform_status(raw) == expected

    @pytest.mark.parametrize('raw', ['approved', 'clear', 'dispute', '', None, 42, 'COMPLETEISH'])
    def test_unknown_statuses_stay_pending(self, checkr, raw):
        """Unknown vendor values must never read as clear"""
        assert checkr.transform_status(raw) == BackgroundCheckStatus.PENDING


class TestCheckrCreateCheck:
    """Test candidate and report creation"""

    @patch('casaora.integrations.provider_base.requests.request')
    def test_create_check(self, mock_request, api_response, checkr, professional_info):
        mock_request.side_effect = [
            api_response(201, {'id': 'cand_123'}),
            api_response(201, {'id': 'rep_456', 'tat': '120'}),
        ]

        result = checkr.create_check(professional_info)

        assert result.success is True
        assert result.value.provider_check_id == 'rep_456'
        assert result.value.estimated_completion_date is not None

        candidate_call, report_call = mock_request.call_args_list
        assert candidate_call.kwargs['url'].endswith('/candidates')
        assert candidate_call.kwargs['json']['custom_id'] == '1020304050'
        assert candidate_call.kwargs['headers']['Authorization'].startswith('Basic ')
        assert report_call.kwargs['json']['candidate_id'] == 'cand_123'
        assert report_call.kwargs['json']['package'] == COLOMBIA_PACKAGE

    @patch('casaora.integrations.provider_base.requests.request')
    def test_create_check_without_tat(self, mock_request, api_response, checkr, professional_info):
        mock_request.side_effect = [
            api_response(201, {'id': 'cand_123'}),
            api_response(201, {'id': 'rep_456', 'tat': 'unknown'}),
        ]

        result = checkr.create_check(professional_info)

        assert result.success is True
        assert result.value.estimated_completion_date is None

    @patch('casaora.integrations.provider_base.requests.request')
    def test_rejected_candidate_is_provider_error(self, mock_request, api_response, checkr, professional_info):
        mock_request.return_value = api_response(422, {'error': 'dob is invalid'})

        result = checkr.create_check(professional_info)

        assert result.success is False
        assert result.error_code == ErrorCode.PROVIDER_ERROR
        assert 'dob is invalid' in result.error.message

    @patch('casaora.integrations.provider_base.requests.request')
    def test_network_failure_is_wrapped(self, mock_request, api_response, checkr, professional_info):
        mock_request.side_effect = requests.exceptions.ConnectionError('connection refused')

        result = checkr.create_check(professional_info)

        assert result.success is False
        assert result.error_code == ErrorCode.NETWORK_ERROR
        assert isinstance(result.error.original, requests.exceptions.ConnectionError)


class TestCheckrStatusAndCancel:
    """Test polling and cancellation"""

    @patch('casaora.integrations.provider_base.requests.request')
    def test_get_check_status_transforms_report(self, mock_request, api_response, checkr):
        mock_request.return_value = api_response(200, {
            'id': 'rep_456',
            'status': 'consider',
            'created_at': '2024-03-01T10:00:00Z',
            'completed_at': '2024-03-02T10:00:00Z',
            'metadata': {'professional_id': 'pro-1'},
            'criminal_search': {
                'status': 'consider',
                'records': [{
                    'file_date': '2019-06-01',
                    'charges': [{'charge': 'Theft', 'severity': 'Misdemeanor'}]
                }]
            },
            'national_id_search': {'status': 'complete', 'records': [{'matched': True}]}
        })

        result = checkr.get_check_status('rep_456')

        assert result.success is True
        check = result.value
        assert check.status == BackgroundCheckStatus.CONSIDER
        assert check.recommendation == Recommendation.REVIEW_REQUIRED
        assert check.professional_id == 'pro-1'
        assert check.checks_performed == frozenset({CheckType.CRIMINAL, CheckType.IDENTITY})
        assert check.results[CheckType.CRIMINAL].records[0].severity == 'medium'
        assert check.results[CheckType.CRIMINAL].records[0].description == 'Theft'
        assert check.results[CheckType.IDENTITY].status == BackgroundCheckStatus.CLEAR

    @patch('casaora.integrations.provider_base.requests.request')
    def test_felony_is_high_severity(self, mock_request, api_response, checkr):
        mock_request.return_value = api_response(200, {
            'id': 'rep_1',
            'status': 'suspended',
            'criminal_search': {
                'status': 'consider',
                'records': [{'charges': [{'charge': 'Fraud', 'severity': 'Felony'}]}]
            }
        })

        check = checkr.get_check_status('rep_1').unwrap()

        assert check.results[CheckType.CRIMINAL].records[0].severity == 'high'
        assert check.recommendation == Recommendation.REJECTED

    @patch('casaora.integrations.provider_base.requests.request')
    def test_get_check_status_never_raises(self, mock_request, api_response, checkr):
        mock_request.return_value = api_response(404, {'error': 'Not found'})

        result = checkr.get_check_status('missing')

        assert result.success is False
        assert result.error_code == ErrorCode.PROVIDER_ERROR

    @patch('casaora.integrations.provider_base.requests.request')
    def test_malformed_report_is_invalid_payload(self, mock_request, api_response, checkr):
        mock_request.return_value = api_response(200, {'status': 'complete'})

        result = checkr.get_check_status('rep_1')

        assert result.success is False
        assert result.error_code == ErrorCode.INVALID_PAYLOAD

    @patch('casaora.integrations.provider_base.requests.request')
    def test_cancel_check(self, mock_request, api_response, checkr):
        mock_request.return_value = api_response(204)

        result = checkr.cancel_check('rep_456')

        assert result.success is True
        assert mock_request.call_args.kwargs['method'] == 'DELETE'
        assert mock_request.call_args.kwargs['url'].endswith('/reports/rep_456')

    @patch('casaora.integrations.provider_base.requests.request')
    def test_cancel_failure_is_envelope(self, mock_request, api_response, checkr):
        mock_request.side_effect = requests.exceptions.Timeout('timed out')

        result = checkr.cancel_check('rep_456')

        assert result.success is False
        assert result.error_code == ErrorCode.NETWORK_ERROR


class TestCheckrWebhook:
    """Test webhook verification"""

    def _signed(self, payload):
        body = json.dumps(payload)
        return body, compute_hmac_sha256('test_checkr_webhook_secret', body)

    def test_valid_signature(self, checkr):
        body, signature = self._signed({
            'type': 'report.completed',
            'data': {'object': {'id': 'rep_456', 'status': 'complete'}}
        })

        event = checkr.verify_webhook(body, signature)

        assert event.type == WebhookEventType.CHECK_COMPLETED
        assert event.provider_check_id == 'rep_456'
        assert event.status == BackgroundCheckStatus.CLEAR

    def test_valid_signature_over_bytes(self, checkr):
        body, signature = self._signed({'type': 'report.created', 'data': {'object': {'id': 'rep_1'}}})

        event = checkr.verify_webhook(body.encode('utf-8'), signature)

        assert event.type == WebhookEventType.CHECK_CREATED

    def test_signature_mismatch_raises(self, checkr):
        body, _ = self._signed({'type': 'report.completed', 'data': {'object': {'id': 'rep_456'}}})

        with pytest.raises(BackgroundCheckError) as exc_info:
            checkr.verify_webhook(body, compute_hmac_sha256('wrong_secret', body))

        assert exc_info.value.code == ErrorCode.WEBHOOK_VERIFICATION_FAILED

    def test_tampered_body_raises(self, checkr):
        body, signature = self._signed({'type': 'report.completed', 'data': {'object': {'id': 'rep_456'}}})

        with pytest.raises(BackgroundCheckError) as exc_info:
            checkr.verify_webhook(body.replace('rep_456', 'rep_999'), signature)

        assert exc_info.value.code == ErrorCode.WEBHOOK_VERIFICATION_FAILED

    def test_missing_signature_raises(self, checkr):
        body, _ = self._signed({'type': 'report.completed'})

        with pytest.raises(BackgroundCheckError) as exc_info:
            checkr.verify_webhook(body, None)

        assert exc_info.value.code == ErrorCode.WEBHOOK_VERIFICATION_FAILED

    def test_non_object_body_is_invalid_payload(self, checkr):
        body = json.dumps(['not', 'an', 'object'])

        with pytest.raises(BackgroundCheckError) as exc_info:
            checkr.verify_webhook(body, compute_hmac_sha256('test_checkr_webhook_secret', body))

        assert exc_info.value.code == ErrorCode.INVALID_PAYLOAD

    def test_unknown_event_type_is_update(self, checkr):
        body, signature = self._signed({'type': 'candidate.updated', 'data': {'object': {'id': 'cand_1'}}})

        event = checkr.verify_webhook(body, signature)

        assert event.type == WebhookEventType.CHECK_UPDATED

    def test_null_data_envelope_falls_back_to_top_level_id(self, checkr):
        body, signature = self._signed({'type': 'report.completed', 'data': None, 'id': 'rep_789'})

        event = checkr.verify_webhook(body, signature)

        assert event.provider_check_id == 'rep_789'
        assert event.status == BackgroundCheckStatus.PENDING

    def test_unhashable_event_type_is_invalid_payload(self, checkr):
        body, signature = self._signed({'type': ['report.completed'], 'data': {'object': {'id': 'rep_1'}}})

        with pytest.raises(BackgroundCheckError) as exc_info:
            checkr.verify_webhook(body, signature)

        assert exc_info.value.code == ErrorCode.INVALID_PAYLOAD


class TestCheckrCredentials:

    @patch('casaora.integrations.provider_base.requests.request')
    def test_valid_credentials(self, mock_request, api_response, checkr):
        mock_request.return_value = api_response(200, {'data': []})
        assert checkr.test_credentials() is True

    @patch('casaora.integrations.provider_base.requests.request')
    def test_invalid_credentials(self, mock_request, api_response, checkr):
        mock_request.return_value = api_response(401, {'error': 'Bad authentication'})
        assert checkr.test_credentials() is False

    def test_missing_api_key(self):
        assert CheckrClient('', 'secret').test_credentials() is False
