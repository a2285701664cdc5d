import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, FrozenSet, List, Optional


class BackgroundCheckProvider(enum.Enum):
    """Supported vendors; adapters translate their payloads into the types below"""
    CHECKR = "checkr"
    TRUORA = "truora"


class BackgroundCheckStatus(enum.Enum):
    PENDING = "pending"
    CLEAR = "clear"
    CONSIDER = "consider"
    SUSPENDED = "suspended"


class Recommendation(enum.Enum):
    APPROVED = "approved"
    REVIEW_REQUIRED = "review_required"
    REJECTED = "rejected"


class CheckType(enum.Enum):
    CRIMINAL = "criminal"
    IDENTITY = "identity"
    DISCIPLINARY = "disciplinary"


class WebhookEventType(enum.Enum):
    CHECK_CREATED = "check.created"
    CHECK_COMPLETED = "check.completed"
    CHECK_UPDATED = "check.updated"
    CHECK_FAILED = "check.failed"


class ErrorCode(enum.Enum):
    PROVIDER_ERROR = "PROVIDER_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    WEBHOOK_VERIFICATION_FAILED = "WEBHOOK_VERIFICATION_FAILED"
    INVALID_PAYLOAD = "INVALID_PAYLOAD"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


class BackgroundCheckError(Exception):
    """Single error type raised or carried by every provider operation"""

    def __init__(self, message: str, code: ErrorCode, provider: Optional[BackgroundCheckProvider] = None,
                 original: Optional[BaseException] = None, details: Any = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.provider = provider
        self.original = original
        self.details = details

    def to_dict(self) -> Dict:
        return {
            'error': self.message,
            'code': self.code.value,
            'provider': self.provider.value if self.provider else None
        }


def parse_provider(value) -> BackgroundCheckProvider:
    """Coerce a provider name into the enum, rejecting unknown vendors"""
    if isinstance(value, BackgroundCheckProvider):
        return value
    try:
        return BackgroundCheckProvider(str(value).strip().lower())
    except ValueError:
        raise BackgroundCheckError(
            f"Unknown background check provider: {value}",
            ErrorCode.CONFIGURATION_ERROR
        )


@dataclass
class Address:
    street: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    postal_code: Optional[str] = None
    country: str = "CO"


@dataclass
class ProfessionalInfo:
    professional_id: str
    first_name: str
    last_name: str
    email: str
    document_id: str
    document_type: str = "CC"
    phone: Optional[str] = None
    date_of_birth: Optional[str] = None  # YYYY-MM-DD
    address: Optional[Address] = None


@dataclass
class CheckRecord:
    description: str
    date: Optional[str] = None
    severity: Optional[str] = None  # low, medium, high
    details: Any = None

    def to_dict(self) -> Dict:
        return {
            'description': self.description,
            'date': self.date,
            'severity': self.severity,
            'details': self.details
        }


@dataclass
class CheckSection:
    status: BackgroundCheckStatus
    records: List[CheckRecord] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            'status': self.status.value,
            'records': [record.to_dict() for record in self.records]
        }


@dataclass
class BackgroundCheckResult:
    id: str
    provider_check_id: str
    provider: BackgroundCheckProvider
    professional_id: Optional[str]
    status: BackgroundCheckStatus
    checks_performed: FrozenSet[CheckType]
    results: Dict[CheckType, CheckSection]
    recommendation: Recommendation
    raw_data: Dict[str, Any]
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'provider_check_id': self.provider_check_id,
            'provider': self.provider.value,
            'professional_id': self.professional_id,
            'status': self.status.value,
            'checks_performed': sorted(check.value for check in self.checks_performed),
            'results': {check.value: section.to_dict() for check, section in self.results.items()},
            'recommendation': self.recommendation.value,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
            'completed_at': self.completed_at.isoformat() if self.completed_at else None
        }


@dataclass
class CreateCheckResponse:
    check_id: str
    provider_check_id: str
    provider: BackgroundCheckProvider
    estimated_completion_date: Optional[datetime] = None


@dataclass
class WebhookEvent:
    type: WebhookEventType
    provider: BackgroundCheckProvider
    check_id: Optional[str]
    provider_check_id: Optional[str]
    status: BackgroundCheckStatus
    timestamp: datetime
    data: Dict[str, Any]

    @property
    def event_key(self) -> str:
        return f"{self.provider_check_id}:{self.type.value}"


@dataclass
class ProviderResult:
    """Success/failure envelope returned by every provider call"""
    success: bool
    value: Any = None
    error: Optional[BackgroundCheckError] = None

    @classmethod
    def ok(cls, value=None) -> 'ProviderResult':
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: BackgroundCheckError) -> 'ProviderResult':
        return cls(success=False, error=error)

    @property
    def error_code(self) -> Optional[ErrorCode]:
        return self.error.code if self.error else None

    def unwrap(self):
        if not self.success:
            raise self.error
        return self.value
