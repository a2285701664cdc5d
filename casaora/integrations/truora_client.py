from datetime import datetime, timedelta
from typing import Dict, Iterable, Optional
from casaora.integrations.background_check_types import (
    BackgroundCheckProvider,
    BackgroundCheckResult,
    BackgroundCheckStatus,
    CheckRecord,
    CheckSection,
    CheckType,
    CreateCheckResponse,
    ProfessionalInfo,
    Recommendation,
    WebhookEvent,
    WebhookEventType,
)
from casaora.integrations.provider_base import BackgroundCheckProviderBase, parse_timestamp
from casaora.utils.logger import get_logger

logger = get_logger(__name__)

# LatAm document types -> Truora's document vocabulary
DOCUMENT_TYPES = {
    'CC': 'cedula_ciudadania',
    'CE': 'cedula_extranjeria',
    'NIT': 'nit',
    'CI': 'cedula_identidad',
    'DNI': 'dni',
    'PA': 'passport',
}

REQUESTED_CHECKS = [
    'national_background_check',
    'judicial_records',
    'disciplinary_records',  # Procuraduria (PGN)
    'identity_validation',
]

# Truora usually settles within a day
ESTIMATED_TURNAROUND = timedelta(hours=24)

# Approximate prices in US cents
CHECK_COSTS = {'criminal': 200, 'disciplinary': 100, 'identity': 100}
BASE_FEE_CENTS = 50


class TruoraClient(BackgroundCheckProviderBase):
    """Wrapper for Truora background check operations (Colombia and LatAm)"""

    provider = BackgroundCheckProvider.TRUORA
    default_base_url = "https://api.truora.com/v1"
    signature_header = 'X-Truora-Signature'
    credentials_endpoint = '/account'

    STATUS_MAP = {
        'pending': BackgroundCheckStatus.PENDING,
        'success': BackgroundCheckStatus.CLEAR,
        'failure': BackgroundCheckStatus.SUSPENDED,
        'manual_review': BackgroundCheckStatus.CONSIDER,
        'expired': BackgroundCheckStatus.SUSPENDED,
    }

    SUMMARY_MAP = {
        'pass': BackgroundCheckStatus.CLEAR,
        'fail': BackgroundCheckStatus.SUSPENDED,
        'review': BackgroundCheckStatus.CONSIDER,
    }

    WEBHOOK_TYPE_MAP = {
        'check.created': WebhookEventType.CHECK_CREATED,
        'check.completed': WebhookEventType.CHECK_COMPLETED,
        'check.updated': WebhookEventType.CHECK_UPDATED,
        'check.failed': WebhookEventType.CHECK_FAILED,
    }

    def _get_headers(self) -> Dict[str, str]:
        headers = super()._get_headers()
        headers['Truora-API-Key'] = self.api_key
        return headers

    def _create_check(self, info: ProfessionalInfo) -> CreateCheckResponse:
        data = {
            'type': 'background-check-colombia',
            'country': (info.address.country if info.address else None) or 'CO',
            'user_authorized': True,
            'national_id': info.document_id,
            'document_type': DOCUMENT_TYPES.get((info.document_type or '').upper(), 'cedula_ciudadania'),
            'user_data': {
                'first_name': info.first_name,
                'last_name': info.last_name,
                'date_of_birth': info.date_of_birth,
                'email': info.email,
                'phone': info.phone
            },
            'checks_requested': REQUESTED_CHECKS,
            'metadata': {
                'professional_id': info.professional_id,
                'source': 'casaora_onboarding'
            }
        }

        check = self._make_request('POST', '/checks', data)

        return CreateCheckResponse(
            check_id=check['check_id'],
            provider_check_id=check['check_id'],
            provider=self.provider,
            estimated_completion_date=datetime.utcnow() + ESTIMATED_TURNAROUND
        )

    def _fetch_check(self, provider_check_id: str) -> Dict:
        return self._make_request('GET', f'/checks/{provider_check_id}')

    def _cancel_check(self, provider_check_id: str) -> None:
        # No cancel endpoint; the check expires on Truora's side
        logger.warning(f"Truora does not support cancellation, check {provider_check_id} will expire naturally")

    def transform_result(self, data: Dict) -> BackgroundCheckResult:
        """Transform a Truora check into the unified result"""
        status = self.transform_status(data.get('status'))
        checks = data.get('checks') or {}
        created_at = parse_timestamp(data.get('creation_date')) or datetime.utcnow()

        results = {}
        for check_type, key in ((CheckType.CRIMINAL, 'judicial_records'),
                                (CheckType.DISCIPLINARY, 'disciplinary_records'),
                                (CheckType.IDENTITY, 'identity_validation')):
            section = checks.get(key)
            if section:
                results[check_type] = self._transform_section(section, with_severity=check_type != CheckType.IDENTITY)

        checks_performed = set(results.keys())
        if checks.get('national_background_check'):
            checks_performed.add(CheckType.CRIMINAL)

        return BackgroundCheckResult(
            id=data['check_id'],
            provider_check_id=data['check_id'],
            provider=self.provider,
            professional_id=(data.get('metadata') or {}).get('professional_id'),
            status=status,
            checks_performed=frozenset(checks_performed),
            results=results,
            recommendation=self._determine_recommendation(data),
            raw_data=data,
            created_at=created_at,
            updated_at=datetime.utcnow(),
            completed_at=created_at if status != BackgroundCheckStatus.PENDING else None
        )

    def estimate_cost(self, check_types: Iterable[str]) -> Optional[int]:
        check_types = set(check_types)
        return BASE_FEE_CENTS + sum(cost for check, cost in CHECK_COSTS.items() if check in check_types)

    def _transform_section(self, section: Dict, with_severity: bool = True) -> CheckSection:
        return CheckSection(
            status=self.SUMMARY_MAP.get(section.get('summary'), BackgroundCheckStatus.PENDING),
            records=[
                CheckRecord(
                    description=item.get('description', ''),
                    date=item.get('date') if with_severity else None,
                    severity=self._map_severity(item.get('severity')) if with_severity else None,
                    details=item.get('details')
                )
                for item in section.get('breakdown') or []
            ]
        )

    def _transform_webhook_event(self, data: Dict) -> WebhookEvent:
        obj = data.get('object')
        if not isinstance(obj, dict):
            obj = {}
        check_id = data.get('check_id') or obj.get('check_id')

        return WebhookEvent(
            type=self.map_webhook_type(data.get('event_type') or data.get('type')),
            provider=self.provider,
            check_id=check_id,
            provider_check_id=check_id,
            status=self.transform_status(data.get('status') or obj.get('status')),
            timestamp=datetime.utcnow(),
            data=data
        )

    def _map_severity(self, severity: Optional[str]) -> str:
        if not severity:
            return 'low'
        severity = severity.lower()
        if 'high' in severity or 'grave' in severity:
            return 'high'
        if 'medium' in severity or 'moderate' in severity:
            return 'medium'
        return 'low'

    def _determine_recommendation(self, data: Dict) -> Recommendation:
        status = data.get('status')

        if status == 'success':
            sub_checks = (data.get('checks') or {}).values()
            if all(result.get('summary') == 'pass' for result in sub_checks):
                return Recommendation.APPROVED
            return Recommendation.REVIEW_REQUIRED

        if status == 'failure':
            return Recommendation.REJECTED

        return Recommendation.REVIEW_REQUIRED
