from flask import Blueprint, current_app, request, jsonify
from casaora.integrations.background_check_types import BackgroundCheckError, ErrorCode
from casaora.services.webhook_service import WebhookService
from casaora.utils.logger import get_logger

bp = Blueprint('webhooks', __name__)
logger = get_logger(__name__)

# Errors caused by the request itself rather than by processing it
REQUEST_ERROR_CODES = (ErrorCode.WEBHOOK_VERIFICATION_FAILED, ErrorCode.INVALID_PAYLOAD)


@bp.route('/background-checks', methods=['POST'])
def background_check_webhook():
    """Handle Checkr and Truora webhook events"""
    factory = current_app.extensions.get('background_checks')
    if factory is None:
        return jsonify({'error': 'Background checks are not configured'}), 503

    payload = request.get_data()

    try:
        result = WebhookService(factory).process_background_check_webhook(payload, request.headers)
    except BackgroundCheckError as e:
        if e.code in REQUEST_ERROR_CODES:
            logger.warning(f"Rejected background check webhook: {e.message}")
            return jsonify({'error': e.message}), 400
        logger.error(f"Error processing background check webhook: {e.message}")
        return jsonify({'error': e.message}), 500
    except Exception as e:
        logger.error(f"Error processing background check webhook: {str(e)}")
        return jsonify({'error': str(e)}), 500

    return jsonify({'received': True, **result}), 200
