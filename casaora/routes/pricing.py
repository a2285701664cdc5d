from flask import Blueprint, request, jsonify
from casaora.middleware.auth import require_auth, require_admin
from casaora.services.pricing_service import PricingConfigurationError, PricingService
from casaora.utils.validators import parse_date
from casaora.utils.logger import get_logger

bp = Blueprint('pricing', __name__)
logger = get_logger(__name__)
pricing_service = PricingService()


@bp.route('/admin/pricing-rules', methods=['GET'])
@require_auth
@require_admin
def list_pricing_rules(current_user):
    """List pricing rules"""
    include_inactive = request.args.get('include_inactive', 'true').lower() == 'true'
    rules = pricing_service.list_rules(include_inactive=include_inactive)
    return jsonify({'rules': [rule.to_dict() for rule in rules]}), 200


@bp.route('/admin/pricing-rules', methods=['POST'])
@require_auth
@require_admin
def create_pricing_rule(current_user):
    """Create a pricing rule"""
    try:
        data = request.get_json() or {}
        rule, error = pricing_service.create_rule(data)
        if error:
            return jsonify({'error': error}), 400

        logger.info(f"Admin {current_user['user_id']} created pricing rule {rule.id}")
        return jsonify(rule.to_dict()), 201

    except Exception as e:
        logger.error(f"Error creating pricing rule: {str(e)}")
        return jsonify({'error': 'Failed to create pricing rule'}), 500


@bp.route('/admin/pricing-rules/<rule_id>', methods=['PUT'])
@require_auth
@require_admin
def update_pricing_rule(current_user, rule_id):
    """Update a pricing rule"""
    try:
        data = request.get_json() or {}
        rule, error = pricing_service.update_rule(rule_id, data)
        if error:
            status = 404 if error == 'Pricing rule not found' else 400
            return jsonify({'error': error}), status

        return jsonify(rule.to_dict()), 200

    except Exception as e:
        logger.error(f"Error updating pricing rule: {str(e)}")
        return jsonify({'error': 'Failed to update pricing rule'}), 500


@bp.route('/admin/pricing-rules/<rule_id>/toggle', methods=['POST'])
@require_auth
@require_admin
def toggle_pricing_rule(current_user, rule_id):
    """Activate or deactivate a pricing rule"""
    data = request.get_json(silent=True) or {}
    if 'is_active' not in data:
        return jsonify({'error': 'is_active is required'}), 400

    rule, error = pricing_service.set_rule_active(rule_id, bool(data['is_active']))
    if error:
        return jsonify({'error': error}), 404

    return jsonify(rule.to_dict()), 200


@bp.route('/pricing/quote', methods=['GET'])
def pricing_quote():
    """Quote the fees for a booking amount"""
    try:
        amount_cop = int(request.args.get('amount_cop', ''))
    except ValueError:
        return jsonify({'error': 'amount_cop must be an integer'}), 400

    if amount_cop <= 0:
        return jsonify({'error': 'amount_cop must be positive'}), 400

    try:
        on_date = parse_date(request.args.get('date'))
    except ValueError:
        return jsonify({'error': 'Invalid date'}), 400

    try:
        fees = pricing_service.calculate_booking_fees(
            amount_cop,
            request.args.get('service_category'),
            request.args.get('city'),
            on_date
        )
    except PricingConfigurationError as e:
        logger.critical(str(e))
        return jsonify({'error': 'Pricing is not configured'}), 503

    if fees.get('error'):
        return jsonify(fees), 400

    return jsonify(fees), 200
