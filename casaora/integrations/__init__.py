from .stripe_client import StripeClient
from .sendgrid_client import SendGridClient
from .checkr_client import CheckrClient
from .truora_client import TruoraClient
from .provider_factory import BackgroundCheckProviderFactory, BackgroundCheckSettings

__all__ = [
    'StripeClient', 'SendGridClient', 'CheckrClient', 'TruoraClient',
    'BackgroundCheckProviderFactory', 'BackgroundCheckSettings'
]
