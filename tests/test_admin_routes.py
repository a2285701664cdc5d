import pytest
from datetime import datetime, timedelta
from unittest.mock import patch
from casaora.database import DatabaseManager
from casaora.models import User
from casaora.models.user import SuspensionType, UserRole
from casaora.integrations import TruoraClient


@pytest.fixture
def users(app, make_user):
    return {
        'customer': make_user(),
        'professional': make_user(role=UserRole.PROFESSIONAL),
        'admin': make_user(role=UserRole.ADMIN),
    }


class TestBulkSuspend:

    def test_requires_admin(self, client, customer_headers, users):
        response = client.post('/api/admin/bulk/suspend', json={'user_ids': [users['customer'].id]},
                               headers=customer_headers)
        assert response.status_code == 403

    def test_requires_token(self, client):
        assert client.post('/api/admin/bulk/suspend', json={'user_ids': ['u1']}).status_code == 401

    def test_empty_selection(self, client, admin_headers):
        response = client.post('/api/admin/bulk/suspend', json={'user_ids': [], 'reason': 'x'},
                               headers=admin_headers)
        assert response.status_code == 400

    def test_partial_failure(self, client, admin_headers, users):
        expires_at = (datetime.utcnow() + timedelta(days=7)).isoformat()
        response = client.post('/api/admin/bulk/suspend', json={
            'user_ids': [users['customer'].id, users['professional'].id, users['admin'].id, 'missing'],
            'reason': 'Repeated no-shows',
            'type': 'temporary',
            'expires_at': expires_at
        }, headers=admin_headers)

        assert response.status_code == 200
        data = response.get_json()
        assert data['successful'] == 2
        assert data['failed'] == 2
        assert {error['userId'] for error in data['errors']} == {users['admin'].id, 'missing'}

        customer = DatabaseManager(User).get(users['customer'].id)
        assert customer.is_suspended is True
        assert customer.is_active is False
        assert customer.suspension_type == SuspensionType.TEMPORARY
        assert customer.suspended_by == 'admin-user'
        assert DatabaseManager(User).get(users['admin'].id).is_suspended is False

    def test_temporary_needs_future_expiry(self, client, admin_headers, users):
        response = client.post('/api/admin/bulk/suspend', json={
            'user_ids': [users['customer'].id],
            'reason': 'Spam',
            'type': 'temporary',
            'expires_at': (datetime.utcnow() - timedelta(days=1)).isoformat()
        }, headers=admin_headers)

        assert response.status_code == 400

    def test_permanent(self, client, admin_headers, users):
        response = client.post('/api/admin/bulk/suspend', json={
            'user_ids': [users['customer'].id],
            'reason': 'Fraud',
            'type': 'permanent',
            'expires_at': None
        }, headers=admin_headers)

        assert response.status_code == 200
        customer = DatabaseManager(User).get(users['customer'].id)
        assert customer.suspension_type == SuspensionType.PERMANENT
        assert customer.suspended_until is None

    def test_reason_required(self, client, admin_headers, users):
        response = client.post('/api/admin/bulk/suspend', json={
            'user_ids': [users['customer'].id], 'type': 'permanent'
        }, headers=admin_headers)

        assert response.status_code == 400


class TestBulkVerifyAndMessage:

    def test_verify(self, client, admin_headers, users):
        response = client.post('/api/admin/bulk/verify', json={
            'user_ids': [users['professional'].id, 'missing'], 'approved': True
        }, headers=admin_headers)

        assert response.get_json() == {
            'successful': 1, 'failed': 1, 'errors': [{'userId': 'missing', 'error': 'User not found'}]
        }
        professional = DatabaseManager(User).get(users['professional'].id)
        assert professional.is_verified is True
        assert professional.verified_at is not None

    def test_verify_requires_boolean_approval(self, client, admin_headers, users):
        response = client.post('/api/admin/bulk/verify', json={
            'user_ids': [users['professional'].id], 'approved': 'false'
        }, headers=admin_headers)

        assert response.status_code == 400
        assert DatabaseManager(User).get(users['professional'].id).is_verified is False

    @patch('casaora.integrations.sendgrid_client.SendGridClient.send_email')
    def test_message(self, mock_send, client, admin_headers, users):
        mock_send.side_effect = [{'status_code': 202, 'message_id': 'm1'}, None]

        response = client.post('/api/admin/bulk/message', json={
            'user_ids': [users['customer'].id, users['professional'].id],
            'subject': 'Nuevo horario',
            'message': '<p>Hola</p><script>alert(1)</script>'
        }, headers=admin_headers)

        data = response.get_json()
        assert data['successful'] == 1
        assert data['errors'] == [{'userId': users['professional'].id, 'error': 'Failed to send email'}]

        html = mock_send.call_args_list[0].args[2]
        assert '<p>Hola</p>' in html
        assert '<script>' not in html

    @patch('casaora.integrations.sendgrid_client.SendGridClient.send_email')
    def test_message_escapes_recipient_name(self, mock_send, client, admin_headers, make_user):
        user = make_user(first_name='<img src=x onerror=alert(1)>')
        mock_send.return_value = {'status_code': 202, 'message_id': 'm1'}

        response = client.post('/api/admin/bulk/message', json={
            'user_ids': [user.id], 'subject': 'Hola', 'message': '<p>Nuevo horario</p>'
        }, headers=admin_headers)

        assert response.get_json()['successful'] == 1
        html = mock_send.call_args.args[2]
        assert '&lt;img src=x onerror=alert(1)&gt;' in html
        assert '<img' not in html

    def test_message_requires_body(self, client, admin_headers, users):
        response = client.post('/api/admin/bulk/message', json={
            'user_ids': [users['customer'].id], 'subject': 'Hola', 'message': '<script></script>'
        }, headers=admin_headers)

        assert response.status_code == 400


class TestProviderSettings:

    def test_status(self, client, admin_headers):
        response = client.get('/api/admin/background-check-providers', headers=admin_headers)

        assert response.status_code == 200
        assert response.get_json()['active_provider'] == 'checkr'

    @patch.object(TruoraClient, 'test_credentials', return_value=True)
    def test_switch_provider(self, mock_test, client, admin_headers, app):
        response = client.put('/api/admin/background-check-providers/active',
                              json={'provider': 'truora'}, headers=admin_headers)

        assert response.status_code == 200
        assert response.get_json()['active_provider'] == 'truora'
        assert app.extensions['background_checks'].active_provider.value == 'truora'

    @patch.object(TruoraClient, 'test_credentials', return_value=False)
    def test_switch_rejected(self, mock_test, client, admin_headers, app):
        response = client.put('/api/admin/background-check-providers/active',
                              json={'provider': 'truora'}, headers=admin_headers)

        assert response.status_code == 400
        assert response.get_json()['code'] == 'CONFIGURATION_ERROR'
        assert app.extensions['background_checks'].active_provider.value == 'checkr'

    def test_health(self, client):
        assert client.get('/api/health').get_json() == {
            'status': 'ok', 'background_check_provider': 'checkr'
        }
