from datetime import datetime
from flask import Blueprint, current_app, request, jsonify
from casaora.middleware.auth import require_auth, require_admin
from casaora.integrations.background_check_types import BackgroundCheckError
from casaora.services.background_check_service import BackgroundCheckService
from casaora.services.bulk_admin_service import BulkAdminService
from casaora.utils.validators import validate_user_ids
from casaora.utils.logger import get_logger

bp = Blueprint('admin', __name__)
logger = get_logger(__name__)
bulk_admin_service = BulkAdminService()


def _provider_factory():
    return current_app.extensions.get('background_checks')


def _background_checks_unavailable():
    return jsonify({'error': 'Background checks are not configured'}), 503


def _parse_expires_at(value):
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if parsed.tzinfo is not None:
        parsed = datetime.utcfromtimestamp(parsed.timestamp())
    return parsed


@bp.route('/bulk/suspend', methods=['POST'])
@require_auth
@require_admin
def bulk_suspend(current_user):
    """Suspend a batch of users"""
    try:
        data = request.get_json() or {}

        valid, error = validate_user_ids(data.get('user_ids'))
        if not valid:
            return jsonify({'error': error}), 400

        try:
            expires_at = _parse_expires_at(data.get('expires_at'))
        except (TypeError, ValueError):
            return jsonify({'error': 'Invalid expiry date'}), 400

        result = bulk_admin_service.suspend_users(
            current_user['user_id'],
            data['user_ids'],
            data.get('reason'),
            data.get('type', 'temporary'),
            expires_at
        )
        if result.get('error'):
            return jsonify({'error': result['error']}), 400

        return jsonify(result), 200

    except Exception as e:
        logger.error(f"Error suspending users: {str(e)}")
        return jsonify({'error': 'Failed to suspend users'}), 500


@bp.route('/bulk/verify', methods=['POST'])
@require_auth
@require_admin
def bulk_verify(current_user):
    """Verify a batch of users"""
    try:
        data = request.get_json() or {}

        valid, error = validate_user_ids(data.get('user_ids'))
        if not valid:
            return jsonify({'error': error}), 400

        approved = data.get('approved', True)
        if not isinstance(approved, bool):
            return jsonify({'error': 'approved must be true or false'}), 400

        result = bulk_admin_service.verify_users(current_user['user_id'], data['user_ids'], approved)
        return jsonify(result), 200

    except Exception as e:
        logger.error(f"Error verifying users: {str(e)}")
        return jsonify({'error': 'Failed to verify users'}), 500


@bp.route('/bulk/message', methods=['POST'])
@require_auth
@require_admin
def bulk_message(current_user):
    """Email a batch of users"""
    try:
        data = request.get_json() or {}

        valid, error = validate_user_ids(data.get('user_ids'))
        if not valid:
            return jsonify({'error': error}), 400

        result = bulk_admin_service.message_users(
            current_user['user_id'],
            data['user_ids'],
            data.get('subject'),
            data.get('message')
        )
        if result.get('error'):
            return jsonify({'error': result['error']}), 400

        return jsonify(result), 200

    except Exception as e:
        logger.error(f"Error messaging users: {str(e)}")
        return jsonify({'error': 'Failed to message users'}), 500


@bp.route('/background-check-providers', methods=['GET'])
@require_auth
@require_admin
def get_background_check_providers(current_user):
    """Get background check provider configuration"""
    factory = _provider_factory()
    if factory is None:
        return _background_checks_unavailable()

    return jsonify(factory.status()), 200


@bp.route('/background-check-providers/active', methods=['PUT'])
@require_auth
@require_admin
def set_active_background_check_provider(current_user):
    """Switch the active background check provider"""
    factory = _provider_factory()
    if factory is None:
        return _background_checks_unavailable()

    data = request.get_json() or {}
    if not data.get('provider'):
        return jsonify({'error': 'Provider is required'}), 400

    try:
        provider = factory.set_active_provider(data['provider'])
    except BackgroundCheckError as e:
        return jsonify(e.to_dict()), 400

    logger.info(f"Admin {current_user['user_id']} set background check provider to {provider.value}")
    return jsonify(factory.status()), 200


@bp.route('/background-check-providers/<provider>/test', methods=['POST'])
@require_auth
@require_admin
def test_background_check_provider(current_user, provider):
    """Test a provider's credentials"""
    factory = _provider_factory()
    if factory is None:
        return _background_checks_unavailable()

    return jsonify({'provider': provider, 'valid': factory.test_provider(provider)}), 200


@bp.route('/professionals/<professional_id>/background-checks', methods=['POST'])
@require_auth
@require_admin
def initiate_background_check(current_user, professional_id):
    """Start a background check for a professional"""
    factory = _provider_factory()
    if factory is None:
        return _background_checks_unavailable()

    try:
        data = request.get_json(silent=True) or {}
        result = BackgroundCheckService(factory).initiate_check(professional_id, data.get('country_code'))
        if result.get('error'):
            status = 404 if result['error'] == 'Professional not found' else 400
            if result.get('code') in ('PROVIDER_ERROR', 'NETWORK_ERROR'):
                status = 502
            return jsonify(result), status

        return jsonify(result), 201

    except Exception as e:
        logger.error(f"Error starting background check: {str(e)}")
        return jsonify({'error': 'Failed to start background check'}), 500


@bp.route('/background-checks/<background_check_id>/refresh', methods=['POST'])
@require_auth
@require_admin
def refresh_background_check(current_user, background_check_id):
    """Poll the provider for a check's latest status"""
    factory = _provider_factory()
    if factory is None:
        return _background_checks_unavailable()

    result = BackgroundCheckService(factory).refresh_check(background_check_id)
    if result.get('error'):
        status = 404 if result['error'] == 'Background check not found' else 502
        return jsonify(result), status

    return jsonify(result), 200


@bp.route('/background-checks/<background_check_id>/cancel', methods=['POST'])
@require_auth
@require_admin
def cancel_background_check(current_user, background_check_id):
    """Cancel a pending background check"""
    factory = _provider_factory()
    if factory is None:
        return _background_checks_unavailable()

    result = BackgroundCheckService(factory).cancel_check(background_check_id)
    if result.get('error'):
        status = 404 if result['error'] == 'Background check not found' else 400
        return jsonify(result), status

    return jsonify(result), 200
