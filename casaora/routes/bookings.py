from flask import Blueprint, request, jsonify
from casaora.middleware.auth import require_auth
from casaora.services.payment_service import PaymentService
from casaora.services.pricing_service import PricingConfigurationError
from casaora.utils.logger import get_logger

bp = Blueprint('bookings', __name__)
logger = get_logger(__name__)
payment_service = PaymentService()


@bp.route('/payment-intent', methods=['POST'])
@require_auth
def create_payment_intent(current_user):
    """Create the payment intent for a booking"""
    data = request.get_json() or {}

    required = ['professional_id', 'amount_cop']
    for field in required:
        if field not in data:
            return jsonify({'error': f'{field} is required'}), 400

    amount_cop = data['amount_cop']
    if not isinstance(amount_cop, int) or isinstance(amount_cop, bool) or amount_cop <= 0:
        return jsonify({'error': 'amount_cop must be a positive integer'}), 400

    try:
        result = payment_service.create_booking_payment(
            customer_id=current_user['user_id'],
            professional_id=data['professional_id'],
            amount_cop=amount_cop,
            service_category=data.get('service_category'),
            city=data.get('city'),
            booking_id=data.get('booking_id')
        )
    except PricingConfigurationError as e:
        logger.critical(str(e))
        return jsonify({'error': 'Pricing is not configured'}), 503
    except Exception as e:
        logger.error(f"Error creating payment intent: {str(e)}")
        return jsonify({'error': 'Failed to create payment intent'}), 500

    if result.get('error'):
        return jsonify({'error': result['error']}), 400

    return jsonify(result), 201
