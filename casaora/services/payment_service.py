from typing import Dict, Optional
from casaora.database import get_db
from casaora.models import User
from casaora.models.user import UserRole
from casaora.integrations import StripeClient
from casaora.services.pricing_service import PricingService
from casaora.utils.logger import get_logger

logger = get_logger(__name__)

# Stripe expresses COP in cents even though the peso has no minor unit in practice
COP_MINOR_UNITS = 100


class PaymentService:
    """Service for booking payments"""

    def __init__(self, pricing_service: PricingService = None):
        self.stripe = StripeClient()
        self.pricing_service = pricing_service or PricingService()

    def create_booking_payment(self, customer_id: str, professional_id: str, amount_cop: int,
                               service_category: Optional[str], city: Optional[str],
                               booking_id: str = None) -> Dict:
        """Create a PaymentIntent for a booking with the platform commission as application fee"""
        with get_db() as db:
            customer = db.query(User).filter_by(id=customer_id).first()
            if not customer:
                return {'error': 'Customer not found'}
            if not customer.stripe_customer_id:
                return {'error': 'Customer has no payment profile'}

            professional = db.query(User).filter_by(id=professional_id).first()
            if not professional or professional.role != UserRole.PROFESSIONAL:
                return {'error': 'Professional not found'}

            stripe_customer_id = customer.stripe_customer_id
            destination_account = professional.stripe_account_id
            professional_name = professional.full_name

        fees = self.pricing_service.calculate_booking_fees(amount_cop, service_category, city)
        if 'error' in fees:
            return fees

        intent = self.stripe.create_payment_intent(
            amount_minor=amount_cop * COP_MINOR_UNITS,
            currency='cop',
            customer_id=stripe_customer_id,
            description=f"{service_category or 'Service'} booking with {professional_name}",
            application_fee_minor=fees['commission_cop'] * COP_MINOR_UNITS,
            destination_account=destination_account,
            metadata={
                'booking_id': booking_id or '',
                'customer_id': customer_id,
                'professional_id': professional_id,
                'pricing_rule_id': fees['rule_id'],
                'commission_cop': str(fees['commission_cop'])
            }
        )

        if not intent:
            return {'error': 'Failed to create payment intent'}

        logger.info(f"Created payment intent {intent['id']} for booking {booking_id} ({amount_cop} COP)")

        return {
            'payment_intent_id': intent['id'],
            'client_secret': intent['client_secret'],
            'fees': fees
        }
