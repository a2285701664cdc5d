import stripe
from typing import Dict, Optional
from config.config import Config
from casaora.utils.logger import get_logger

logger = get_logger(__name__)

# Configure Stripe
stripe.api_key = Config.STRIPE_SECRET_KEY


class StripeClient:
    """Wrapper for Stripe API operations"""

    def __init__(self):
        self.api_key = Config.STRIPE_SECRET_KEY
        if not self.api_key:
            logger.warning("Stripe API key not configured")

    def create_payment_intent(self, amount_minor: int, currency: str, customer_id: str,
                              description: str, application_fee_minor: int = None,
                              destination_account: str = None, metadata: Dict = None) -> Optional[Dict]:
        """Create a payment intent for a booking, routing the professional's share to their account"""
        try:
            params = {
                'amount': amount_minor,
                'currency': currency.lower(),
                'customer': customer_id,
                'description': description,
                'metadata': metadata or {},
                'automatic_payment_methods': {"enabled": True}
            }

            if destination_account:
                params['transfer_data'] = {'destination': destination_account}
                if application_fee_minor:
                    params['application_fee_amount'] = application_fee_minor

            intent = stripe.PaymentIntent.create(**params)
            return intent
        except stripe.error.StripeError as e:
            logger.error(f"Error creating payment intent: {str(e)}")
            return None
