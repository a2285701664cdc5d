import json
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Iterable, Mapping, Optional, Union
import requests
from casaora.integrations.background_check_types import (
    BackgroundCheckError,
    BackgroundCheckProvider,
    BackgroundCheckResult,
    BackgroundCheckStatus,
    CreateCheckResponse,
    ErrorCode,
    ProfessionalInfo,
    ProviderResult,
    WebhookEvent,
    WebhookEventType,
)
from casaora.utils.logger import get_logger
from casaora.utils.security import compute_hmac_sha256, constant_time_compare

logger = get_logger(__name__)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp from a provider payload"""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace('Z', '+00:00'))
    except (TypeError, ValueError):
        logger.warning(f"Unparseable provider timestamp: {value}")
        return None


class BackgroundCheckProviderBase(ABC):
    """
    Contract shared by every background check vendor.

    Public operations never leak `requests` exceptions: create, status and
    cancel return a ProviderResult, webhook verification raises
    BackgroundCheckError.
    """

    provider: BackgroundCheckProvider = None
    default_base_url: str = None
    signature_header: str = None

    # Vendor status -> unified status; anything missing maps to pending
    STATUS_MAP: Dict[str, BackgroundCheckStatus] = {}

    # Vendor webhook type -> unified event type
    WEBHOOK_TYPE_MAP: Dict[str, WebhookEventType] = {}

    def __init__(self, api_key: str, webhook_secret: str, base_url: str = None, timeout: int = 30):
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        self.base_url = (base_url or self.default_base_url).rstrip('/')
        self.timeout = timeout

        if not self.api_key:
            logger.warning(f"{self.name} API key not configured")

    @property
    def name(self) -> str:
        return self.provider.value.capitalize()

    def _error(self, message: str, code: ErrorCode = ErrorCode.PROVIDER_ERROR,
               original: BaseException = None, details=None) -> BackgroundCheckError:
        return BackgroundCheckError(message, code, self.provider, original=original, details=details)

    def _get_headers(self) -> Dict[str, str]:
        return {'Content-Type': 'application/json'}

    def _make_request(self, method: str, endpoint: str, data: Dict = None) -> Dict:
        """Make API request to the provider, raising BackgroundCheckError on any failure"""
        url = f"{self.base_url}{endpoint}"

        try:
            response = requests.request(
                method=method,
                url=url,
                headers=self._get_headers(),
                json=data,
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"{self.name} API request failed: {method} {endpoint}: {str(e)}")
            raise self._error(f"{self.name} API unreachable", ErrorCode.NETWORK_ERROR, original=e)

        if not response.ok:
            try:
                body = response.json()
            except ValueError:
                body = None
            message = (body.get('message') or body.get('error')) if isinstance(body, dict) else None
            logger.error(f"{self.name} API error {response.status_code} on {method} {endpoint}: {message}")
            raise self._error(
                f"{self.name} API error {response.status_code}: {message or response.reason}",
                details=body
            )

        if not response.content:
            return {}

        try:
            return response.json()
        except ValueError as e:
            raise self._error(f"{self.name} API returned invalid JSON", original=e)

    # ------------------------------------------------------------------
    # Public contract
    # ------------------------------------------------------------------

    def create_check(self, info: ProfessionalInfo) -> ProviderResult:
        """Start a background check for a professional"""
        try:
            response = self._create_check(info)
            logger.info(
                f"{self.name} check {response.provider_check_id} created for professional {info.professional_id}"
            )
            return ProviderResult.ok(response)
        except BackgroundCheckError as e:
            logger.error(f"{self.name} create check failed for professional {info.professional_id}: {e.message}")
            return ProviderResult.fail(e)
        except (KeyError, TypeError) as e:
            logger.error(f"{self.name} returned an unexpected payload while creating a check: {str(e)}")
            return ProviderResult.fail(
                self._error("Unexpected create check payload", ErrorCode.PROVIDER_ERROR, original=e)
            )

    def get_check_status(self, provider_check_id: str) -> ProviderResult:
        """Fetch the current state of a check"""
        try:
            data = self._fetch_check(provider_check_id)
            return ProviderResult.ok(self.transform_result(data))
        except BackgroundCheckError as e:
            logger.error(f"{self.name} get status failed for {provider_check_id}: {e.message}")
            return ProviderResult.fail(e)
        except (KeyError, TypeError, AttributeError) as e:
            logger.error(f"{self.name} returned an unexpected payload for {provider_check_id}: {str(e)}")
            return ProviderResult.fail(self._error("Unexpected check payload", ErrorCode.INVALID_PAYLOAD, original=e))

    def cancel_check(self, provider_check_id: str) -> ProviderResult:
        """Cancel a pending check"""
        try:
            self._cancel_check(provider_check_id)
            logger.info(f"{self.name} check {provider_check_id} cancelled")
            return ProviderResult.ok()
        except BackgroundCheckError as e:
            logger.error(f"{self.name} cancel failed for {provider_check_id}: {e.message}")
            return ProviderResult.fail(e)

    def verify_webhook(self, payload: Union[str, bytes], signature: Optional[str],
                       headers: Mapping[str, str] = None) -> WebhookEvent:
        """Verify the HMAC-SHA256 signature of a webhook body and parse it"""
        if not self.webhook_secret:
            raise self._error("Webhook secret not configured", ErrorCode.CONFIGURATION_ERROR)

        expected_signature = compute_hmac_sha256(self.webhook_secret, payload)

        if not constant_time_compare(signature, expected_signature):
            logger.warning(f"{self.name} webhook signature mismatch")
            raise self._error("Webhook signature verification failed", ErrorCode.WEBHOOK_VERIFICATION_FAILED)

        try:
            data = json.loads(payload)
        except ValueError as e:
            raise self._error("Webhook payload is not valid JSON", ErrorCode.INVALID_PAYLOAD, original=e)

        if not isinstance(data, dict):
            raise self._error("Webhook payload must be a JSON object", ErrorCode.INVALID_PAYLOAD)

        try:
            return self._transform_webhook_event(data)
        except (AttributeError, TypeError, KeyError) as e:
            logger.warning(f"{self.name} webhook payload has an unexpected shape: {str(e)}")
            raise self._error("Webhook payload has an unexpected shape", ErrorCode.INVALID_PAYLOAD, original=e)

    def transform_status(self, provider_status: Optional[str]) -> BackgroundCheckStatus:
        """Map a vendor status to the unified status; unknown values stay pending"""
        if not isinstance(provider_status, str):
            return BackgroundCheckStatus.PENDING
        return self.STATUS_MAP.get(provider_status.strip().lower(), BackgroundCheckStatus.PENDING)

    def map_webhook_type(self, provider_type: Optional[str]) -> WebhookEventType:
        return self.WEBHOOK_TYPE_MAP.get(provider_type, WebhookEventType.CHECK_UPDATED)

    def test_credentials(self) -> bool:
        """Check that the configured API key is accepted"""
        if not self.api_key:
            return False
        try:
            self._make_request('GET', self.credentials_endpoint)
            return True
        except BackgroundCheckError as e:
            logger.error(f"{self.name} credential test failed: {e.message}")
            return False

    def estimate_cost(self, check_types: Iterable[str]) -> Optional[int]:
        """Estimated cost in US cents, None when the vendor has no public pricing"""
        return None

    # ------------------------------------------------------------------
    # Vendor specific
    # ------------------------------------------------------------------

    credentials_endpoint: str = None

    @abstractmethod
    def _create_check(self, info: ProfessionalInfo) -> CreateCheckResponse:
        pass

    @abstractmethod
    def _fetch_check(self, provider_check_id: str) -> Dict:
        pass

    @abstractmethod
    def _cancel_check(self, provider_check_id: str) -> None:
        pass

    @abstractmethod
    def transform_result(self, data: Dict) -> BackgroundCheckResult:
        pass

    @abstractmethod
    def _transform_webhook_event(self, data: Dict) -> WebhookEvent:
        pass
