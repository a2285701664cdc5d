import threading
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple, Type
from casaora.integrations.background_check_types import (
    BackgroundCheckError,
    BackgroundCheckProvider,
    ErrorCode,
    parse_provider,
)
from casaora.integrations.checkr_client import CheckrClient
from casaora.integrations.provider_base import BackgroundCheckProviderBase
from casaora.integrations.truora_client import TruoraClient
from casaora.utils.logger import get_logger

logger = get_logger(__name__)

PROVIDER_CLASSES: Dict[BackgroundCheckProvider, Type[BackgroundCheckProviderBase]] = {
    BackgroundCheckProvider.CHECKR: CheckrClient,
    BackgroundCheckProvider.TRUORA: TruoraClient,
}

_missing_adapters = set(BackgroundCheckProvider) - set(PROVIDER_CLASSES)
if _missing_adapters:
    raise ImportError(f"No adapter registered for providers: {sorted(p.value for p in _missing_adapters)}")

COUNTRY_PROVIDERS = {
    'CO': BackgroundCheckProvider.CHECKR,
    'PY': BackgroundCheckProvider.TRUORA,
    'UY': BackgroundCheckProvider.TRUORA,
    'AR': BackgroundCheckProvider.TRUORA,
}


@dataclass
class ProviderCredentials:
    api_key: str = ''
    webhook_secret: str = ''
    enabled: bool = False

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key and self.webhook_secret)


@dataclass
class BackgroundCheckSettings:
    active_provider: BackgroundCheckProvider
    credentials: Dict[BackgroundCheckProvider, ProviderCredentials] = field(default_factory=dict)
    fallback_provider: Optional[BackgroundCheckProvider] = None
    timeout: int = 30

    @classmethod
    def from_config(cls, config: Mapping) -> 'BackgroundCheckSettings':
        """Build settings from a Flask config mapping or any dict with the same keys"""
        credentials = {}
        for provider in BackgroundCheckProvider:
            prefix = provider.name
            credentials[provider] = ProviderCredentials(
                api_key=config.get(f'{prefix}_API_KEY') or '',
                webhook_secret=config.get(f'{prefix}_WEBHOOK_SECRET') or '',
                enabled=bool(config.get(f'{prefix}_ENABLED'))
            )

        fallback = config.get('BACKGROUND_CHECK_FALLBACK_PROVIDER')

        return cls(
            active_provider=parse_provider(config.get('BACKGROUND_CHECK_PROVIDER') or 'checkr'),
            credentials=credentials,
            fallback_provider=parse_provider(fallback) if fallback else None,
            timeout=int(config.get('BACKGROUND_CHECK_TIMEOUT_SECONDS') or 30)
        )

    @property
    def any_enabled(self) -> bool:
        return any(creds.enabled for creds in self.credentials.values())

    def credentials_for(self, provider: BackgroundCheckProvider) -> ProviderCredentials:
        return self.credentials.get(provider) or ProviderCredentials()

    def validate(self):
        """Fail fast on configurations that could never serve a check"""
        if not self.any_enabled:
            raise BackgroundCheckError(
                "At least one background check provider must be enabled",
                ErrorCode.CONFIGURATION_ERROR
            )

        self.ensure_usable(self.active_provider)

        if self.fallback_provider is not None:
            if self.fallback_provider == self.active_provider:
                raise BackgroundCheckError(
                    "Fallback provider must differ from the active provider",
                    ErrorCode.CONFIGURATION_ERROR,
                    self.fallback_provider
                )
            self.ensure_usable(self.fallback_provider)

    def ensure_usable(self, provider: BackgroundCheckProvider):
        creds = self.credentials_for(provider)
        if not creds.enabled:
            raise BackgroundCheckError(
                f"Background check provider {provider.value} is not enabled",
                ErrorCode.CONFIGURATION_ERROR,
                provider
            )
        if not creds.has_credentials:
            raise BackgroundCheckError(
                f"Background check provider {provider.value} credentials missing",
                ErrorCode.CONFIGURATION_ERROR,
                provider
            )


class BackgroundCheckProviderFactory:
    """
    Creates provider clients from validated settings.

    Built once from configuration and handed to routes, services and scripts.
    The active provider is its only mutable state; it is swapped under a lock
    after the candidate has passed validation and a live credential test.
    """

    def __init__(self, settings: BackgroundCheckSettings):
        settings.validate()
        self.settings = settings
        self._lock = threading.Lock()
        logger.info(f"Background check factory initialized with provider: {settings.active_provider.value}")

    @property
    def active_provider(self) -> BackgroundCheckProvider:
        return self.settings.active_provider

    def get_provider(self) -> BackgroundCheckProviderBase:
        """Get the active background check provider"""
        return self._create_provider(self.active_provider)

    def get_provider_by_name(self, name) -> BackgroundCheckProviderBase:
        return self._create_provider(parse_provider(name))

    def get_provider_for_country(self, country_code: str) -> BackgroundCheckProviderBase:
        """Pick the provider that covers a country (CO: Checkr; PY, UY, AR: Truora)"""
        provider = COUNTRY_PROVIDERS.get((country_code or '').upper())
        if provider is None:
            raise BackgroundCheckError(
                f"No background check provider configured for country: {country_code}",
                ErrorCode.PROVIDER_ERROR
            )

        logger.info(f"Using {provider.value} for country {country_code}")
        return self._create_provider(provider)

    def get_fallback_provider(self) -> Optional[BackgroundCheckProviderBase]:
        if self.settings.fallback_provider is None:
            return None
        return self._create_provider(self.settings.fallback_provider)

    def provider_for_webhook(self, headers: Mapping[str, str]) -> Tuple[BackgroundCheckProviderBase, str]:
        """Find the provider whose signature header is present on a webhook request"""
        normalized = {key.lower(): value for key, value in headers.items()}

        for provider, provider_class in PROVIDER_CLASSES.items():
            signature = normalized.get(provider_class.signature_header.lower())
            if not signature:
                continue
            if not self.settings.credentials_for(provider).enabled:
                raise BackgroundCheckError(
                    f"Webhook received for disabled provider {provider.value}",
                    ErrorCode.WEBHOOK_VERIFICATION_FAILED,
                    provider
                )
            return self._create_provider(provider), signature

        raise BackgroundCheckError("Missing webhook signature", ErrorCode.WEBHOOK_VERIFICATION_FAILED)

    def test_provider(self, name) -> bool:
        """Test if a provider's credentials are valid"""
        try:
            return self.get_provider_by_name(name).test_credentials()
        except BackgroundCheckError as e:
            logger.error(f"Failed to test provider {name}: {e.message}")
            return False

    def set_active_provider(self, name) -> BackgroundCheckProvider:
        """
        Switch the active provider.

        Every check runs before the swap, so a rejected switch leaves the
        current provider in place.
        """
        provider = parse_provider(name)
        self.settings.ensure_usable(provider)

        if not self._create_provider(provider).test_credentials():
            raise BackgroundCheckError(
                f"Cannot set {provider.value} as active: invalid credentials",
                ErrorCode.CONFIGURATION_ERROR,
                provider
            )

        with self._lock:
            previous = self.settings.active_provider
            self.settings.active_provider = provider

        logger.info(f"Switched background check provider: {previous.value} -> {provider.value}")
        return provider

    def status(self) -> Dict:
        """Provider configuration summary for the admin settings screen"""
        return {
            'active_provider': self.active_provider.value,
            'fallback_provider': self.settings.fallback_provider.value if self.settings.fallback_provider else None,
            'providers': {
                provider.value: {
                    'enabled': self.settings.credentials_for(provider).enabled,
                    'has_credentials': self.settings.credentials_for(provider).has_credentials
                }
                for provider in BackgroundCheckProvider
            }
        }

    def _create_provider(self, provider: BackgroundCheckProvider) -> BackgroundCheckProviderBase:
        self.settings.ensure_usable(provider)
        creds = self.settings.credentials_for(provider)
        return PROVIDER_CLASSES[provider](creds.api_key, creds.webhook_secret, timeout=self.settings.timeout)
