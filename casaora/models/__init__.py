from .user import User
from .background_check import BackgroundCheck
from .webhook_event import WebhookEvent
from .pricing_rule import PricingRule

__all__ = ['User', 'BackgroundCheck', 'WebhookEvent', 'PricingRule']
